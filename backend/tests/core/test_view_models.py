"""View Models — paging arithmetic, update outcome and button targets."""

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from entitymvc.core.metadata import get_metadata
from entitymvc.core.view_models import (
    EntityActionButton, EntityUpdateModel, EntityViewModel,
)
from entitymvc.models import Member, Thread


def test_total_pages_rounds_up():
    model = EntityViewModel(items=[], metadata=get_metadata(Thread), size=20, total=41)
    assert model.total_pages == 3


def test_total_pages_is_one_when_empty():
    model = EntityViewModel(items=[], metadata=get_metadata(Thread), total=0)
    assert model.total_pages == 1


def test_view_model_properties_are_list_properties():
    md = get_metadata(Member)
    model = EntityViewModel(items=[], metadata=md)
    assert model.properties == md.view_properties


def test_update_model_success_iff_no_errors():
    md = get_metadata(Thread)
    assert EntityUpdateModel(item=Thread(), metadata=md).is_success
    failed = EntityUpdateModel(
        item=Thread(), metadata=md,
        error_messages=[(md.get_property("title"), "Title is required.")],
    )
    assert not failed.is_success


def test_action_button_target_resolved_from_route_name():
    app = Starlette(routes=[
        Route("/thread/create", lambda r: Response(), name="Thread.create"),
    ])
    request = Request({
        "type": "http", "method": "GET", "path": "/thread",
        "headers": [(b"host", b"test")], "scheme": "http",
        "server": ("test", 80), "root_path": "", "query_string": b"",
        "app": app, "router": app.router,
    })
    button = EntityActionButton("Create", "Thread.create", "plus")
    assert button.target is None
    button.set_target(request)
    assert button.target == "http://test/thread/create"
