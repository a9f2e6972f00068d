"""Security — caller authentication and entity-level authorization options.

Invariants:
    - Authentication is immutable; ANONYMOUS has no roles and is not authenticated
    - AuthorizeOption.validate() either returns None or raises UnauthorizedAccessError
    - Entities without allow_anonymous require an authenticated caller for every action
    - Empty role list means "any authenticated caller" (or anyone, when anonymous allowed)

Design Decisions:
    - AuthenticationProvider is a Protocol: applications plug in sessions, JWT, etc.
      without inheriting from anything (ADR: structural subtyping at boundaries)
    - HeaderAuthenticationProvider is the default: identity is established upstream
      (reverse proxy / gateway) and forwarded in headers
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from starlette.requests import Request

from entitymvc.core.errors import ErrorContext, UnauthorizedAccessError
from entitymvc.core.metadata import EntityMetadata


class EntityAction(str, Enum):
    """Entity operations subject to authorization."""
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DETAIL = "detail"
    REMOVE = "remove"


@dataclass(frozen=True)
class Authentication:
    """Identity of the caller."""
    user_id: str | None = None
    name: str | None = None
    roles: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def is_in_role(self, role: str) -> bool:
        return role in self.roles


ANONYMOUS = Authentication()


class AuthenticationProvider(Protocol):
    """Resolves the Authentication of the current request."""
    def get_authentication(self, request: Request) -> Authentication: ...


class HeaderAuthenticationProvider:
    """Reads user id and comma-separated roles from request headers."""

    def __init__(self, user_header: str = "X-User", roles_header: str = "X-Roles"):
        self.user_header = user_header
        self.roles_header = roles_header

    def get_authentication(self, request: Request) -> Authentication:
        user = request.headers.get(self.user_header, "").strip()
        if not user:
            return ANONYMOUS
        raw_roles = request.headers.get(self.roles_header, "")
        roles = frozenset(r.strip() for r in raw_roles.split(",") if r.strip())
        return Authentication(user_id=user, name=user, roles=roles)


_ROLE_SOURCES = {
    EntityAction.VIEW: "view_roles",
    EntityAction.DETAIL: "view_roles",
    EntityAction.CREATE: "add_roles",
    EntityAction.EDIT: "edit_roles",
    EntityAction.REMOVE: "remove_roles",
}


@dataclass(frozen=True)
class AuthorizeOption:
    """Role requirement for one action on one entity."""
    action: EntityAction
    mode: str = "any"
    roles: tuple[str, ...] = ()

    @classmethod
    def for_action(cls, metadata: EntityMetadata, action: EntityAction) -> "AuthorizeOption":
        return cls(
            action=action,
            mode=metadata.authentication_required_mode,
            roles=tuple(getattr(metadata, _ROLE_SOURCES[action])),
        )

    def is_satisfied(self, metadata: EntityMetadata, authentication: Authentication) -> bool:
        if not authentication.is_authenticated:
            return metadata.allow_anonymous and not self.roles
        if not self.roles:
            return True
        if self.mode == "all":
            return all(authentication.is_in_role(r) for r in self.roles)
        return any(authentication.is_in_role(r) for r in self.roles)

    def validate(self, metadata: EntityMetadata, authentication: Authentication) -> None:
        if self.is_satisfied(metadata, authentication):
            return
        raise UnauthorizedAccessError(
            f"Not allowed to {self.action.value} {metadata.name}.",
            ErrorContext(entity=metadata.name, action=self.action.value),
        )
