"""Entity Controller — generic CRUD actions for one entity type, mounted as an APIRouter.

Invariants:
    - Every action runs the entity authorization filter before its body
    - UnauthorizedAccessError → 401 and EntityNotFoundError → 404 (plain-text message);
      every other exception reaches the application's global error handlers
    - accept-content: application/json → metadata JSON; otherwise a Jinja2 view
    - update → 204 on success, 400 + [{Property, Name, ErrorMessage}] on validation failure
    - remove → 200 with an empty body
    - Route names are "<Entity>.<action>" — view buttons resolve them with url_for

Design Decisions:
    - Access errors translated by a custom APIRoute (EntityRoute): the filter runs as a
      dependency, so a per-action try/except would miss its failures
    - The domain service is resolved through get_entity_service, a dependency the
      application can override per controller (tests, decorated services)
    - Actions are instance methods looked up at request time: subclasses override
      index/create/edit/... without re-registering routes
"""

import logging
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import jinja2
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from fastapi.routing import APIRoute
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from entitymvc.api.dependencies import (
    entity_access, entity_authorize, get_authentication,
)
from entitymvc.api.value_provider import ValueProvider, get_value_provider
from entitymvc.core.errors import EntityNotFoundError, UnauthorizedAccessError
from entitymvc.core.metadata import get_metadata
from entitymvc.core.security import Authentication, AuthorizeOption, EntityAction
from entitymvc.core.view_models import EntityUpdateModel, EntityViewModel
from entitymvc.infrastructure.database import get_db
from entitymvc.rendering.json_converters import EntityJsonConverter, serialize
from entitymvc.rendering.templates import default_templates
from entitymvc.services.entity_service import EntityDomainService, route_name

logger = logging.getLogger(__name__)
T = TypeVar("T")

JSON_MEDIA_TYPE = "application/json"


class EntityRoute(APIRoute):
    """APIRoute translating entity access errors into bare status responses."""

    def get_route_handler(self):
        handler = super().get_route_handler()

        async def entity_route_handler(request: Request) -> Response:
            try:
                return await handler(request)
            except UnauthorizedAccessError as exc:
                logger.warning(
                    exc.message,
                    extra={
                        "error_code": exc.code, "path": request.url.path,
                        "entity": exc.context.entity, "action": exc.context.action,
                        "request_id": getattr(request.state, "request_id", None),
                    },
                )
                return PlainTextResponse(exc.message, status_code=401)
            except EntityNotFoundError as exc:
                logger.info(
                    exc.message,
                    extra={
                        "error_code": exc.code, "path": request.url.path,
                        "request_id": getattr(request.state, "request_id", None),
                    },
                )
                return PlainTextResponse(exc.message, status_code=404)

        return entity_route_handler


@dataclass
class ActionContext:
    """Everything one controller action needs, resolved by FastAPI."""
    request: Request
    db: AsyncSession
    authentication: Authentication
    option: AuthorizeOption
    values: ValueProvider
    service: EntityDomainService


def wants_json(request: Request) -> bool:
    """True when the accept-content header asks for application/json."""
    for header in request.headers.getlist("accept-content"):
        for token in header.split(","):
            if token.split(";")[0].strip().lower() == JSON_MEDIA_TYPE:
                return True
    return False


class EntityController(Generic[T]):
    """List/create/edit/detail/update/remove/selector actions for one entity type."""

    def __init__(
        self,
        entity_type: type[T],
        prefix: str | None = None,
        templates: Jinja2Templates | None = None,
        tags: list[str] | None = None,
    ):
        self.entity_type = entity_type
        self.metadata = get_metadata(entity_type)
        self.prefix = prefix if prefix is not None else f"/{self.metadata.name.lower()}"
        self._templates = templates
        self.router = APIRouter(
            prefix=self.prefix,
            tags=tags or [self.metadata.name],
            route_class=EntityRoute,
        )
        self._register_routes()

    @property
    def templates(self) -> Jinja2Templates:
        return self._templates or default_templates()

    # ─── Wiring ────────────────────────────────────────────────

    def get_entity_service(self) -> EntityDomainService[T]:
        """Per-request domain service (overridable dependency)."""
        return EntityDomainService(self.entity_type)

    def _action_context(self, action: EntityAction, filter_roles: bool = True):
        if filter_roles:
            authorize = entity_authorize(self.metadata, action)
        else:
            authorize = entity_access(self.metadata, action)

        async def resolve(
            request: Request,
            db: AsyncSession = Depends(get_db),
            authentication: Authentication = Depends(get_authentication),
            option: AuthorizeOption = Depends(authorize),
            values: ValueProvider = Depends(get_value_provider),
            service: EntityDomainService = Depends(self.get_entity_service),
        ) -> ActionContext:
            return ActionContext(
                request=request, db=db, authentication=authentication,
                option=option, values=values, service=service,
            )

        return resolve

    def _register_routes(self) -> None:
        actions = (
            ("index", "", "GET", EntityAction.VIEW, True),
            ("create", "/create", "GET", EntityAction.CREATE, True),
            ("edit", "/edit", "GET", EntityAction.EDIT, True),
            ("detail", "/detail", "GET", EntityAction.DETAIL, True),
            ("selector", "/selector", "GET", EntityAction.VIEW, True),
            ("multiple_selector", "/multiple-selector", "GET", EntityAction.VIEW, True),
            # create-or-edit is decided by the service from the posted id
            ("update", "/update", "POST", EntityAction.EDIT, False),
            ("remove", "/remove", "POST", EntityAction.REMOVE, True),
        )
        for name, path, method, action, filter_roles in actions:
            self.router.add_api_route(
                path,
                self._endpoint(name, action, filter_roles),
                methods=[method],
                name=route_name(self.metadata, name),
                response_class=Response,
            )

    def _endpoint(self, name: str, action: EntityAction, filter_roles: bool):
        async def endpoint(
            context: ActionContext = Depends(self._action_context(action, filter_roles)),
        ):
            return await getattr(self, name)(context)

        endpoint.__name__ = f"{self.metadata.name.lower()}_{name}"
        return endpoint

    # ─── Responses ─────────────────────────────────────────────

    def json(self, context: ActionContext, model: Any, action: EntityAction) -> Response:
        converter = EntityJsonConverter(
            AuthorizeOption.for_action(self.metadata, action),
            context.authentication,
        )
        return Response(
            content=serialize(model, converter).encode("utf-8"),
            media_type=f"{JSON_MEDIA_TYPE}; charset=utf-8",
        )

    def resolve_view(self, view: str) -> str:
        """<Entity>/<View>.html when the application provides it, else entity/<View>.html."""
        name = f"{self.metadata.name}/{view}.html"
        try:
            self.templates.get_template(name)
        except jinja2.TemplateNotFound:
            return f"entity/{view}.html"
        return name

    def view(self, context: ActionContext, view: str, model: Any) -> Response:
        return self.templates.TemplateResponse(
            context.request,
            self.resolve_view(view),
            {"model": model, "metadata": self.metadata, "controller": self},
        )

    def _negotiate(
        self, context: ActionContext, view: str, model: Any, action: EntityAction,
    ) -> Response:
        if wants_json(context.request):
            return self.json(context, model, action)
        return self.view(context, view, model)

    def _set_targets(self, context: ActionContext, model: EntityViewModel) -> None:
        for button in model.view_buttons:
            button.set_target(context.request)
        for button in model.item_buttons:
            button.set_target(context.request)

    # ─── Actions ───────────────────────────────────────────────

    async def index(self, context: ActionContext) -> Response:
        model = await context.service.list(
            context.db, context.authentication, context.option, context.values,
        )
        self._set_targets(context, model)
        return self._negotiate(context, "Index", model, EntityAction.VIEW)

    async def create(self, context: ActionContext) -> Response:
        model = await context.service.create(
            context.db, context.authentication, context.option,
        )
        return self._negotiate(context, "Edit", model, EntityAction.CREATE)

    async def edit(self, context: ActionContext) -> Response:
        model = await context.service.edit(
            context.db, context.authentication, context.values, context.option,
        )
        return self._negotiate(context, "Edit", model, EntityAction.EDIT)

    async def detail(self, context: ActionContext) -> Response:
        model = await context.service.detail(
            context.db, context.authentication, context.values, context.option,
        )
        return self._negotiate(context, "Detail", model, EntityAction.DETAIL)

    async def selector(self, context: ActionContext) -> Response:
        model = await context.service.list(
            context.db, context.authentication, context.option, context.values,
        )
        return self._negotiate(context, "Selector", model, EntityAction.VIEW)

    async def multiple_selector(self, context: ActionContext) -> Response:
        model = await context.service.list(
            context.db, context.authentication, context.option, context.values,
        )
        return self._negotiate(context, "MultipleSelector", model, EntityAction.VIEW)

    async def update(self, context: ActionContext) -> Response:
        result: EntityUpdateModel = await context.service.update(
            context.db, context.authentication, context.values, context.option,
        )
        if result.is_success:
            return Response(status_code=204)
        return JSONResponse(
            status_code=400,
            content=[
                {
                    "Property": prop.clr_name,
                    "Name": prop.name,
                    "ErrorMessage": message,
                }
                for prop, message in result.error_messages
            ],
        )

    async def remove(self, context: ActionContext) -> Response:
        await context.service.remove(
            context.db, context.authentication, context.values, context.option,
        )
        return Response(status_code=200)
