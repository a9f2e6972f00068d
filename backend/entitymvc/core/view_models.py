"""View Models — transient per-request shapes handed to views and JSON converters.

Invariants:
    - View models never touch the database; they only carry loaded entities
    - EntityUpdateModel.is_success is True iff error_messages is empty
    - A view button has no target until set_target() resolves it for a request
    - button.method is the HTTP method of the target route (GET links, POST forms)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from starlette.requests import Request

from entitymvc.core.metadata import EntityMetadata, PropertyMetadata

T = TypeVar("T")


class EntityViewButton(ABC):
    """A button rendered above (view buttons) or beside (item buttons) a list."""

    def __init__(self, name: str, icon: str | None = None, method: str = "GET"):
        self.name = name
        self.icon = icon
        self.method = method
        self.target: str | None = None

    @abstractmethod
    def set_target(self, request: Request) -> None: ...


class EntityActionButton(EntityViewButton):
    """Button pointing at a named controller route."""

    def __init__(
        self, name: str, route_name: str, icon: str | None = None, method: str = "GET",
    ):
        super().__init__(name, icon, method)
        self.route_name = route_name

    def set_target(self, request: Request) -> None:
        self.target = str(request.url_for(self.route_name))


@dataclass
class EntityViewModel(Generic[T]):
    """A page of entities plus what the list view needs to render it."""
    items: list[T]
    metadata: EntityMetadata
    page: int = 1
    size: int = 20
    total: int = 0
    view_buttons: list[EntityViewButton] = field(default_factory=list)
    item_buttons: list[EntityViewButton] = field(default_factory=list)
    search: dict[str, str] = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        if self.total == 0:
            return 1
        return (self.total + self.size - 1) // self.size

    @property
    def properties(self) -> tuple[PropertyMetadata, ...]:
        return self.metadata.view_properties


@dataclass
class EntityEditModel(Generic[T]):
    """One entity plus the properties an edit or detail view shows."""
    item: T
    metadata: EntityMetadata
    properties: tuple[PropertyMetadata, ...]
    is_new: bool = False


@dataclass
class EntityUpdateModel(Generic[T]):
    """Outcome of binding and saving an entity."""
    item: T
    metadata: EntityMetadata
    error_messages: list[tuple[PropertyMetadata, str]] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return not self.error_messages


@dataclass
class EditorModel:
    """Model passed to every editor/viewer partial."""
    metadata: PropertyMetadata
    value: Any
    entity: Any
