"""Entity Domain Service — generic list/create/edit/detail/update/remove over one entity type.

Invariants:
    - Every operation validates its AuthorizeOption before touching the database
    - update() on an item without id authorizes as create, otherwise as edit
    - A failed update leaves the entity and the session unchanged (changes are
      staged and applied only when every property bound cleanly)
    - edit/detail/update/remove raise EntityNotFoundError for a missing or malformed id
    - Relationships are eager-loaded (selectinload): no lazy IO after the await
    - page is clamped so (page - 1) * size always fits a signed 64-bit OFFSET

Design Decisions:
    - One service instance per request (built by the controller dependency):
      carries only the entity type, its metadata and settings
    - Error messages are (PropertyMetadata, message) pairs: the controller decides
      the wire shape, the service decides the wording
"""

import logging
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from sqlalchemy import func, inspect as sa_inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from entitymvc.config import Settings, get_settings
from entitymvc.core.errors import EntityNotFoundError, ErrorContext
from entitymvc.core.metadata import (
    CustomDataType, EntityMetadata, PropertyMetadata, TEXT_TYPES, get_metadata,
)
from entitymvc.core.security import Authentication, AuthorizeOption, EntityAction
from entitymvc.core.view_models import (
    EntityActionButton, EntityEditModel, EntityUpdateModel, EntityViewModel,
)
from entitymvc.services.value_binding import (
    convert_value, is_blank, parse_key, to_int,
)

logger = logging.getLogger(__name__)
T = TypeVar("T")

SEARCH_PREFIX = "search."
# largest OFFSET a 64-bit signed SQL integer can carry
MAX_OFFSET = 2**63 - 1


def route_name(metadata: EntityMetadata, action: str) -> str:
    """Route name shared by the controller and the buttons pointing at it."""
    return f"{metadata.name}.{action}"


class EntityDomainService(Generic[T]):
    """CRUD operations for one entity type, driven by its metadata."""

    def __init__(self, entity_type: type[T], settings: Settings | None = None):
        self.entity_type = entity_type
        self.metadata = get_metadata(entity_type)
        self.settings = settings or get_settings()

    # ─── Queries ───────────────────────────────────────────────

    def _select(self):
        stmt = select(self.entity_type)
        for prop in self.metadata.relation_properties:
            stmt = stmt.options(
                selectinload(getattr(self.entity_type, prop.clr_name)),
            )
        return stmt

    def _key_column(self):
        return getattr(self.entity_type, self.metadata.key_property.clr_name)

    async def _get_item(self, db: AsyncSession, values, action: EntityAction) -> T:
        raw = values.get("id") if values is not None else None
        key = parse_key(self.metadata.key_property.python_type, raw)
        if key is None:
            raise EntityNotFoundError(
                self.metadata.name, None if raw is None else str(raw),
                ErrorContext(entity=self.metadata.name, action=action.value),
            )
        result = await db.execute(self._select().where(self._key_column() == key))
        item = result.scalar_one_or_none()
        if item is None:
            raise EntityNotFoundError(
                self.metadata.name, str(key),
                ErrorContext(
                    entity=self.metadata.name, action=action.value,
                    entity_id=str(key),
                ),
            )
        return item

    def _new_item(self) -> T:
        item = self.entity_type()
        for prop in sa_inspect(self.entity_type).column_attrs:
            default = prop.columns[0].default
            if default is not None and default.is_scalar:
                setattr(item, prop.key, default.arg)
        return item

    # ─── Paging and search ─────────────────────────────────────

    def _paging(self, values) -> tuple[int, int]:
        page, size = 1, self.settings.default_page_size
        if values is not None:
            try:
                page = max(1, to_int(values.get("page", 1)))
            except ValueError:
                page = 1
            try:
                size = to_int(values.get("size", size))
            except ValueError:
                size = self.settings.default_page_size
        size = min(max(1, size), self.settings.max_page_size)
        page = min(page, MAX_OFFSET // size + 1)
        return page, size

    def _search_condition(self, prop: PropertyMetadata, raw: Any):
        column = getattr(self.entity_type, prop.clr_name)
        if prop.type == CustomDataType.ENTITY:
            target = get_metadata(prop.target_type)
            key = parse_key(target.key_property.python_type, raw)
            if key is None:
                raise ValueError(f"invalid key {raw!r}")
            target_key = getattr(prop.target_type, target.key_property.clr_name)
            return column.has(target_key == key)
        if prop.type in TEXT_TYPES:
            return column.ilike(f"%{str(raw).strip()}%")
        return column == convert_value(prop, raw)

    def _search(self, values) -> tuple[list, dict[str, str]]:
        conditions, applied = [], {}
        if values is None:
            return conditions, applied
        terms = values.keys_with_prefix(SEARCH_PREFIX)
        for prop in self.metadata.search_properties:
            raw = terms.get(prop.clr_name)
            if is_blank(raw):
                continue
            try:
                conditions.append(self._search_condition(prop, raw))
            except ValueError:
                logger.warning(
                    f"Ignoring invalid search value for {prop.clr_name}",
                    extra={"entity": self.metadata.name, "action": "view"},
                )
                continue
            applied[prop.clr_name] = str(raw)
        return conditions, applied

    def _buttons(self, authentication: Authentication):
        def allowed(action: EntityAction) -> bool:
            return AuthorizeOption.for_action(self.metadata, action).is_satisfied(
                self.metadata, authentication,
            )

        view_buttons = []
        if allowed(EntityAction.CREATE):
            view_buttons.append(EntityActionButton(
                "Create", route_name(self.metadata, "create"), "plus",
            ))
        item_buttons = []
        if allowed(EntityAction.DETAIL):
            item_buttons.append(EntityActionButton(
                "Detail", route_name(self.metadata, "detail"), "eye",
            ))
        if allowed(EntityAction.EDIT):
            item_buttons.append(EntityActionButton(
                "Edit", route_name(self.metadata, "edit"), "pencil",
            ))
        if allowed(EntityAction.REMOVE):
            item_buttons.append(EntityActionButton(
                "Remove", route_name(self.metadata, "remove"), "trash", method="POST",
            ))
        return view_buttons, item_buttons

    async def _bind_related(
        self, db: AsyncSession, prop: PropertyMetadata, raw: Any,
    ) -> Any:
        target = get_metadata(prop.target_type)
        key = parse_key(target.key_property.python_type, raw)
        if key is None:
            raise ValueError(f"invalid key {raw!r}")
        related = await db.get(prop.target_type, key)
        if related is None:
            raise ValueError(f"{target.name} '{key}' does not exist")
        return related

    async def _bind(
        self,
        db: AsyncSession,
        authentication: Authentication,
        values,
        is_new: bool,
    ) -> tuple[list[tuple[PropertyMetadata, Any]], list[tuple[PropertyMetadata, str]]]:
        changes, errors = [], []
        for prop in self.metadata.edit_properties:
            if not prop.is_editable(authentication):
                continue
            if prop.type == CustomDataType.COLLECTION:
                continue
            if not values.contains(prop.clr_name):
                if is_new and prop.is_required:
                    errors.append((prop, f"{prop.name} is required."))
                continue
            raw = values.get(prop.clr_name)
            if prop.type == CustomDataType.PASSWORD and is_blank(raw) and not is_new:
                continue
            try:
                if prop.type == CustomDataType.ENTITY:
                    value = None if is_blank(raw) else await self._bind_related(db, prop, raw)
                else:
                    value = convert_value(prop, raw)
            except ValueError:
                errors.append((prop, f"{prop.name} is invalid."))
                continue
            if value is None and prop.is_required:
                errors.append((prop, f"{prop.name} is required."))
                continue
            if (
                prop.max_length is not None and isinstance(value, str)
                and len(value) > prop.max_length
            ):
                errors.append((
                    prop, f"{prop.name} must be at most {prop.max_length} characters.",
                ))
                continue
            changes.append((prop, value))
        return changes, errors

    # ─── Operations ────────────────────────────────────────────

    async def list(
        self,
        db: AsyncSession,
        authentication: Authentication,
        option: AuthorizeOption,
        values=None,
    ) -> EntityViewModel[T]:
        """A page of entities, filtered by search.<property> values."""
        option.validate(self.metadata, authentication)
        page, size = self._paging(values)
        conditions, applied = self._search(values)

        count_stmt = select(func.count()).select_from(self.entity_type)
        if conditions:
            count_stmt = count_stmt.where(*conditions)
        total = (await db.execute(count_stmt)).scalar_one()

        sort_column = getattr(self.entity_type, self.metadata.sort_property.clr_name)
        order = sort_column.desc() if self.metadata.sort_descending else sort_column.asc()
        stmt = self._select().where(*conditions).order_by(order, self._key_column())
        stmt = stmt.limit(size).offset((page - 1) * size)
        items = list((await db.execute(stmt)).scalars().all())

        view_buttons, item_buttons = self._buttons(authentication)
        logger.info(
            f"Listed {self.metadata.name} page {page}",
            extra={
                "entity": self.metadata.name, "action": "view", "total": total,
                "user": authentication.user_id,
            },
        )
        return EntityViewModel(
            items=items,
            metadata=self.metadata,
            page=page,
            size=size,
            total=total,
            view_buttons=view_buttons,
            item_buttons=item_buttons,
            search=applied,
        )

    async def create(
        self,
        db: AsyncSession,
        authentication: Authentication,
        option: AuthorizeOption,
    ) -> EntityEditModel[T]:
        """A new, unsaved entity for the create form."""
        option.validate(self.metadata, authentication)
        return EntityEditModel(
            item=self._new_item(),
            metadata=self.metadata,
            properties=self.metadata.edit_properties,
            is_new=True,
        )

    async def edit(
        self,
        db: AsyncSession,
        authentication: Authentication,
        values,
        option: AuthorizeOption,
    ) -> EntityEditModel[T]:
        option.validate(self.metadata, authentication)
        item = await self._get_item(db, values, EntityAction.EDIT)
        return EntityEditModel(
            item=item,
            metadata=self.metadata,
            properties=self.metadata.edit_properties,
        )

    async def detail(
        self,
        db: AsyncSession,
        authentication: Authentication,
        values,
        option: AuthorizeOption,
    ) -> EntityEditModel[T]:
        option.validate(self.metadata, authentication)
        item = await self._get_item(db, values, EntityAction.DETAIL)
        return EntityEditModel(
            item=item,
            metadata=self.metadata,
            properties=self.metadata.detail_properties,
        )

    async def update(
        self,
        db: AsyncSession,
        authentication: Authentication,
        values,
        option: AuthorizeOption,
    ) -> EntityUpdateModel[T]:
        """Bind request values onto a new or existing entity and save it."""
        is_new = is_blank(values.get("id"))
        if is_new:
            option = AuthorizeOption.for_action(self.metadata, EntityAction.CREATE)
        option.validate(self.metadata, authentication)
        item = self._new_item() if is_new else await self._get_item(
            db, values, EntityAction.EDIT,
        )

        changes, errors = await self._bind(db, authentication, values, is_new)
        if errors:
            logger.info(
                f"Rejected {self.metadata.name} update with {len(errors)} error(s)",
                extra={
                    "entity": self.metadata.name, "action": option.action.value,
                    "user": authentication.user_id,
                },
            )
            return EntityUpdateModel(item=item, metadata=self.metadata, error_messages=errors)

        for prop, value in changes:
            prop.set_value(item, value)
        if is_new:
            db.add(item)
        elif hasattr(item, "edited_at"):
            item.edited_at = datetime.now(timezone.utc)
        await db.commit()
        key = self.metadata.key_property.get_value(item)
        logger.info(
            f"Saved {self.metadata.name}",
            extra={
                "entity": self.metadata.name, "action": option.action.value,
                "entity_id": str(key),
                "user": authentication.user_id,
            },
        )
        return EntityUpdateModel(item=item, metadata=self.metadata)

    async def remove(
        self,
        db: AsyncSession,
        authentication: Authentication,
        values,
        option: AuthorizeOption,
    ) -> None:
        option.validate(self.metadata, authentication)
        item = await self._get_item(db, values, EntityAction.REMOVE)
        key = self.metadata.key_property.get_value(item)
        await db.delete(item)
        await db.commit()
        logger.info(
            f"Removed {self.metadata.name}",
            extra={
                "entity": self.metadata.name, "action": "remove",
                "entity_id": str(key),
                "user": authentication.user_id,
            },
        )
