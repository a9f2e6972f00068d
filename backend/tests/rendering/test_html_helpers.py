"""HTML Helpers — editor/viewer dispatch, member expressions and enum analysis.

Tests cover:
    - Partial selection by data type, custom type and Default fallback
    - Argument checks on editor()/viewer()
    - Direct member access only for editor_for()/viewer_for()
    - enum_analyze labels, caching and non-enum rejection
"""

import operator
import uuid
from enum import IntEnum

import jinja2
import pytest

from entitymvc.core.metadata import CustomDataType, PropertyMetadata, get_metadata
from entitymvc.core.view_models import EntityEditModel
from entitymvc.models import Forum, Member, Thread, ThreadStatus
from entitymvc.rendering.html_helpers import (
    EnumItem, display_index, display_text, enum_analyze, member_name,
)
from entitymvc.rendering.templates import setup_templates


@pytest.fixture
def env(tmp_path) -> jinja2.Environment:
    (tmp_path / "editors").mkdir()
    (tmp_path / "editors" / "StarsEditor.html").write_text(
        '<input class="stars" value="{{ model.value }}">',
    )
    return setup_templates(tmp_path).env


def _render(env: jinja2.Environment, source: str, **context) -> str:
    return env.from_string(source).render(**context)


# ─── editor / viewer ────────────────────────────────────────────

def test_editor_picks_partial_by_type(env):
    thread = Thread(title="Hello", status=ThreadStatus.LOCKED)
    md = get_metadata(Thread)
    html = _render(
        env, "{{ editor(item, prop) }}", item=thread, prop=md.get_property("status"),
    )
    assert "<select" in html
    assert 'value="locked" selected' in html


def test_editor_escapes_values(env):
    forum = Forum(name='<b>"Hi"</b>')
    html = _render(
        env, "{{ editor(item, prop) }}",
        item=forum, prop=get_metadata(Forum).get_property("name"),
    )
    assert "&lt;b&gt;" in html
    assert "<b>" not in html


def test_viewer_falls_back_to_default_partial(env):
    forum = Forum(name="General")
    html = _render(
        env, "{{ viewer(item, prop) }}",
        item=forum, prop=get_metadata(Forum).get_property("name"),
    )
    assert html == '<span class="value">General</span>'


def test_explicit_value_overrides_entity_value(env):
    forum = Forum(name="General")
    html = _render(
        env, "{{ viewer(item, prop, 'Other') }}",
        item=forum, prop=get_metadata(Forum).get_property("name"),
    )
    assert "Other" in html


def test_other_type_uses_custom_partial(env):
    prop = PropertyMetadata(
        clr_name="position", name="Rating", type=CustomDataType.OTHER, custom_type="Stars",
    )
    html = _render(env, "{{ editor(item, prop) }}", item=Forum(position=4), prop=prop)
    assert html == '<input class="stars" value="4">'


def test_application_directory_overrides_package_partial(tmp_path):
    (tmp_path / "viewers").mkdir()
    (tmp_path / "viewers" / "BooleanViewer.html").write_text("custom")
    env = setup_templates(tmp_path).env
    prop = PropertyMetadata(clr_name="position", name="Flag", type=CustomDataType.BOOLEAN)
    assert _render(env, "{{ viewer(item, prop) }}", item=Forum(position=1), prop=prop) == "custom"


def test_editor_rejects_missing_entity(env):
    with pytest.raises(ValueError, match="entity"):
        _render(
            env, "{{ editor(none, prop) }}",
            prop=get_metadata(Forum).get_property("name"),
        )


def test_viewer_rejects_missing_property(env):
    with pytest.raises(ValueError, match="property"):
        _render(env, "{{ viewer(item, none) }}", item=Forum(name="General"))


# ─── editor_for / viewer_for ────────────────────────────────────

def test_member_name_accepts_name_and_attrgetter():
    assert member_name("title") == "title"
    assert member_name(operator.attrgetter("title")) == "title"


@pytest.mark.parametrize("expression", [
    operator.attrgetter("member.username"),
    operator.attrgetter("title", "status"),
    lambda item: item.title,
    "member.username",
])
def test_member_name_rejects_anything_but_direct_member_access(expression):
    with pytest.raises(NotImplementedError):
        member_name(expression)


def test_editor_for_resolves_property_and_value(env):
    md = get_metadata(Thread)
    model = EntityEditModel(
        item=Thread(title="Hello"), metadata=md, properties=md.edit_properties,
    )
    html = _render(env, "{{ editor_for(model, 'title') }}", model=model)
    assert 'value="Hello"' in html
    assert 'maxlength="200"' in html


def test_viewer_for_unknown_member_raises(env):
    md = get_metadata(Thread)
    model = EntityEditModel(item=Thread(), metadata=md, properties=md.edit_properties)
    with pytest.raises(KeyError):
        _render(env, "{{ viewer_for(model, 'nope') }}", model=model)


# ─── display helpers ────────────────────────────────────────────

def test_display_text_and_index():
    key = uuid.uuid4()
    member = Member(id=key, username="alice")
    assert display_text(member) == "alice"
    assert display_text(None) == ""
    assert display_index(member) == str(key)
    assert display_index(None) == ""


# ─── enum_analyze ───────────────────────────────────────────────

class Priority(IntEnum):
    LOW = 1
    HIGH = 2


def test_enum_analyze_uses_labels():
    assert enum_analyze(ThreadStatus) == (
        EnumItem("Open", "open"),
        EnumItem("Locked", "locked"),
        EnumItem("Pinned to top", "pinned"),
    )


def test_enum_analyze_falls_back_to_member_name():
    assert enum_analyze(Priority) == (EnumItem("LOW", 1), EnumItem("HIGH", 2))


def test_enum_analyze_is_cached():
    assert enum_analyze(Priority) is enum_analyze(Priority)


@pytest.mark.parametrize("not_enum", [int, str, ThreadStatus.OPEN])
def test_enum_analyze_rejects_non_enum_types(not_enum):
    with pytest.raises(TypeError, match="is not a enum type."):
        enum_analyze(not_enum)
