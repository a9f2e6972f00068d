"""Entity Metadata — reflection-derived descriptors of entity properties and display rules.

Invariants:
    - Metadata is built from the SQLAlchemy mapper plus declared options, never from instances
    - One EntityMetadata per entity type per process (lru_cache)
    - Properties ordered by (order, declaration index) — stable
    - Foreign key columns backing a relationship never surface as properties
    - The key property is never editable; collections are never editable
    - get_property() raises KeyError for unknown names

Design Decisions:
    - Display rules live in column/relationship `info` under the "entity" key:
      one declaration site per property, no parallel registry (ADR: locality)
    - PropertyOptions / EntityOptions are pydantic models with extra="forbid":
      typos in declarations fail at import, not at render time
    - PropertyMetadata compares by identity: it is used as a key in error lists
"""

from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Literal, Type

from pydantic import BaseModel, ConfigDict
from sqlalchemy import inspect as sa_inspect
from sqlalchemy import types as sa_types
from sqlalchemy.orm import ColumnProperty, RelationshipDirection, RelationshipProperty

INFO_KEY = "entity"


class CustomDataType(str, Enum):
    """Data type of a property — selects the editor/viewer partial."""
    DEFAULT = "default"
    BOOLEAN = "boolean"
    CURRENCY = "currency"
    DATE = "date"
    DATE_TIME = "date_time"
    TIME = "time"
    EMAIL_ADDRESS = "email_address"
    HTML = "html"
    IMAGE_URL = "image_url"
    INTEGER = "integer"
    MULTILINE_TEXT = "multiline_text"
    NUMBER = "number"
    PASSWORD = "password"
    PHONE_NUMBER = "phone_number"
    TEXT = "text"
    URL = "url"
    ENUM = "enum"
    ENTITY = "entity"
    COLLECTION = "collection"
    OTHER = "other"

    @property
    def template_name(self) -> str:
        """PascalCase fragment used in partial names, e.g. MultilineText."""
        return "".join(part.capitalize() for part in self.value.split("_"))


TEXT_TYPES = frozenset({
    CustomDataType.TEXT, CustomDataType.MULTILINE_TEXT, CustomDataType.HTML,
    CustomDataType.EMAIL_ADDRESS, CustomDataType.URL, CustomDataType.IMAGE_URL,
    CustomDataType.PHONE_NUMBER, CustomDataType.PASSWORD,
})


class PropertyOptions(BaseModel):
    """Declared display rules for a single property."""
    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    name: str | None = None
    type: CustomDataType | None = None
    custom_type: str | None = None
    order: int = 0
    required: bool | None = None
    searchable: bool = False
    hide_in_list: bool = False
    hide_in_edit: bool = False
    hide_in_detail: bool = False
    view_roles: tuple[str, ...] = ()
    edit_roles: tuple[str, ...] = ()
    enum_type: Type[Enum] | None = None


class EntityOptions(BaseModel):
    """Declared entity-level rules, read from the class `__entity__` dict."""
    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    display_property: str | None = None
    sort_property: str | None = None
    sort_descending: bool | None = None
    allow_anonymous: bool = True
    mode: Literal["all", "any"] = "any"
    view_roles: tuple[str, ...] = ()
    add_roles: tuple[str, ...] = ()
    edit_roles: tuple[str, ...] = ()
    remove_roles: tuple[str, ...] = ()


def entity_property(**options: Any) -> dict:
    """Build the `info` dict carrying display rules for mapped_column()/relationship()."""
    return {INFO_KEY: PropertyOptions(**options)}


@dataclass(eq=False)
class PropertyMetadata:
    """Descriptor of one entity property."""
    clr_name: str
    name: str
    type: CustomDataType
    custom_type: str | None = None
    order: int = 0
    is_required: bool = False
    is_key: bool = False
    is_searchable: bool = False
    is_hidden_in_list: bool = False
    is_hidden_in_edit: bool = False
    is_hidden_in_detail: bool = False
    max_length: int | None = None
    python_type: type | None = None
    enum_type: type | None = None
    target_type: type | None = None
    view_roles: tuple[str, ...] = ()
    edit_roles: tuple[str, ...] = ()

    @property
    def template_name(self) -> str:
        if self.type == CustomDataType.OTHER and self.custom_type:
            return self.custom_type
        return self.type.template_name

    @property
    def is_relation(self) -> bool:
        return self.type in (CustomDataType.ENTITY, CustomDataType.COLLECTION)

    def get_value(self, entity: Any) -> Any:
        return getattr(entity, self.clr_name)

    def set_value(self, entity: Any, value: Any) -> None:
        setattr(entity, self.clr_name, value)

    def is_viewable(self, authentication) -> bool:
        if not self.view_roles:
            return True
        return any(authentication.is_in_role(r) for r in self.view_roles)

    def is_editable(self, authentication) -> bool:
        if self.is_key or self.is_hidden_in_edit:
            return False
        if not self.edit_roles:
            return True
        return any(authentication.is_in_role(r) for r in self.edit_roles)


@dataclass(eq=False)
class EntityMetadata:
    """Descriptor of an entity type: its properties and authorization rules."""
    type: type
    name: str
    key_property: PropertyMetadata
    display_property: PropertyMetadata
    sort_property: PropertyMetadata
    sort_descending: bool
    properties: tuple[PropertyMetadata, ...]
    allow_anonymous: bool = True
    authentication_required_mode: str = "any"
    view_roles: tuple[str, ...] = ()
    add_roles: tuple[str, ...] = ()
    edit_roles: tuple[str, ...] = ()
    remove_roles: tuple[str, ...] = ()
    _by_name: dict[str, PropertyMetadata] = field(
        default_factory=dict, repr=False,
    )

    def __post_init__(self):
        self._by_name = {p.clr_name: p for p in self.properties}

    @property
    def view_properties(self) -> tuple[PropertyMetadata, ...]:
        return tuple(p for p in self.properties if not p.is_hidden_in_list)

    @property
    def edit_properties(self) -> tuple[PropertyMetadata, ...]:
        return tuple(
            p for p in self.properties
            if not p.is_hidden_in_edit and not p.is_key
        )

    @property
    def detail_properties(self) -> tuple[PropertyMetadata, ...]:
        return tuple(p for p in self.properties if not p.is_hidden_in_detail)

    @property
    def search_properties(self) -> tuple[PropertyMetadata, ...]:
        return tuple(p for p in self.properties if p.is_searchable)

    @property
    def relation_properties(self) -> tuple[PropertyMetadata, ...]:
        return tuple(p for p in self.properties if p.is_relation)

    def get_property(self, name: str) -> PropertyMetadata:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(
                f"{self.name} has no property named '{name}'",
            ) from None

    def has_property(self, name: str) -> bool:
        return name in self._by_name

    def get_display_text(self, entity: Any) -> str:
        if entity is None:
            return ""
        value = self.display_property.get_value(entity)
        return "" if value is None else str(value)


# ─── Metadata construction ──────────────────────────────────────

def _humanize(name: str) -> str:
    return name.replace("_", " ").strip().title()


def _infer_column_type(column_type: sa_types.TypeEngine) -> CustomDataType:
    # Order matters: Float subclasses Numeric, Text subclasses String
    if isinstance(column_type, sa_types.Enum):
        return CustomDataType.ENUM
    if isinstance(column_type, sa_types.Boolean):
        return CustomDataType.BOOLEAN
    if isinstance(column_type, sa_types.Integer):
        return CustomDataType.INTEGER
    if isinstance(column_type, sa_types.Float):
        return CustomDataType.NUMBER
    if isinstance(column_type, sa_types.Numeric):
        return CustomDataType.CURRENCY
    if isinstance(column_type, sa_types.DateTime):
        return CustomDataType.DATE_TIME
    if isinstance(column_type, sa_types.Date):
        return CustomDataType.DATE
    if isinstance(column_type, sa_types.Time):
        return CustomDataType.TIME
    if isinstance(column_type, sa_types.Text):
        return CustomDataType.MULTILINE_TEXT
    if isinstance(column_type, sa_types.String):
        return CustomDataType.TEXT
    return CustomDataType.DEFAULT


def _python_type(column_type: sa_types.TypeEngine) -> type | None:
    try:
        return column_type.python_type
    except NotImplementedError:
        return None


def _column_property(prop: ColumnProperty) -> PropertyMetadata:
    column = prop.columns[0]
    opts: PropertyOptions = column.info.get(INFO_KEY) or PropertyOptions()
    data_type = opts.type or _infer_column_type(column.type)
    enum_type = opts.enum_type
    if enum_type is None and isinstance(column.type, sa_types.Enum):
        enum_type = column.type.enum_class
    if opts.required is not None:
        required = opts.required
    else:
        required = (
            not column.nullable and not column.primary_key
            and column.default is None and column.server_default is None
        )
    max_length = None
    if isinstance(column.type, sa_types.String) and not isinstance(
        column.type, sa_types.Text,
    ):
        max_length = column.type.length
    return PropertyMetadata(
        clr_name=prop.key,
        name=opts.name or _humanize(prop.key),
        type=data_type,
        custom_type=opts.custom_type,
        order=opts.order,
        is_required=required,
        is_key=column.primary_key,
        is_searchable=opts.searchable,
        is_hidden_in_list=opts.hide_in_list,
        is_hidden_in_edit=opts.hide_in_edit or column.primary_key,
        is_hidden_in_detail=opts.hide_in_detail,
        max_length=max_length,
        python_type=_python_type(column.type),
        enum_type=enum_type,
        view_roles=opts.view_roles,
        edit_roles=opts.edit_roles,
    )


def _relationship_property(prop: RelationshipProperty) -> PropertyMetadata:
    opts: PropertyOptions = prop.info.get(INFO_KEY) or PropertyOptions()
    if prop.direction is RelationshipDirection.MANYTOONE:
        data_type = CustomDataType.ENTITY
        if opts.required is not None:
            required = opts.required
        else:
            required = any(not c.nullable for c in prop.local_columns)
        hide_in_list, hide_in_edit = opts.hide_in_list, opts.hide_in_edit
    else:
        data_type = CustomDataType.COLLECTION
        required = False
        hide_in_list, hide_in_edit = True, True
    return PropertyMetadata(
        clr_name=prop.key,
        name=opts.name or _humanize(prop.key),
        type=opts.type or data_type,
        custom_type=opts.custom_type,
        order=opts.order,
        is_required=required,
        is_searchable=opts.searchable and data_type == CustomDataType.ENTITY,
        is_hidden_in_list=hide_in_list,
        is_hidden_in_edit=hide_in_edit,
        is_hidden_in_detail=opts.hide_in_detail,
        target_type=prop.mapper.class_,
        view_roles=opts.view_roles,
        edit_roles=opts.edit_roles,
    )


def _pick(
    properties: list[PropertyMetadata], name: str | None, label: str,
    entity_name: str,
) -> PropertyMetadata | None:
    if name is None:
        return None
    for p in properties:
        if p.clr_name == name:
            return p
    raise ValueError(f"{entity_name}: {label} '{name}' is not a mapped property")


@lru_cache(maxsize=None)
def get_metadata(entity_type: type) -> EntityMetadata:
    """Build (once) the metadata of a mapped entity type."""
    mapper = sa_inspect(entity_type)
    opts = EntityOptions(**getattr(entity_type, "__entity__", {}))
    entity_name = opts.name or entity_type.__name__

    foreign_keys = {
        column.key
        for rel in mapper.relationships
        if rel.direction is RelationshipDirection.MANYTOONE
        for column in rel.local_columns
    }
    collected: list[PropertyMetadata] = []
    for prop in mapper.attrs:
        if isinstance(prop, RelationshipProperty):
            collected.append(_relationship_property(prop))
        elif isinstance(prop, ColumnProperty):
            if prop.columns[0].key in foreign_keys:
                continue
            collected.append(_column_property(prop))
    indexed = sorted(enumerate(collected), key=lambda pair: (pair[1].order, pair[0]))
    properties = [p for _, p in indexed]

    key = next((p for p in properties if p.is_key), None)
    if key is None:
        raise ValueError(f"{entity_name} has no primary key property")
    display = _pick(properties, opts.display_property, "display property", entity_name)
    if display is None:
        display = next(
            (p for p in properties if p.type in TEXT_TYPES and not p.is_key),
            key,
        )
    sort = _pick(properties, opts.sort_property, "sort property", entity_name)
    if sort is None:
        sort = next((p for p in properties if p.clr_name == "created_at"), key)
    sort_descending = (
        opts.sort_descending if opts.sort_descending is not None
        else sort.clr_name == "created_at"
    )
    return EntityMetadata(
        type=entity_type,
        name=entity_name,
        key_property=key,
        display_property=display,
        sort_property=sort,
        sort_descending=sort_descending,
        properties=tuple(properties),
        allow_anonymous=opts.allow_anonymous,
        authentication_required_mode=opts.mode,
        view_roles=opts.view_roles,
        add_roles=opts.add_roles,
        edit_roles=opts.edit_roles,
        remove_roles=opts.remove_roles,
    )
