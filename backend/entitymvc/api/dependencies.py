"""Request Dependencies — authentication resolution and the entity authorization filter.

Invariants:
    - get_authentication never raises: unknown callers are ANONYMOUS
    - entity_access(...) only checks entity-level access (anonymous vs authenticated)
    - entity_authorize(...) runs before the action body and raises UnauthorizedAccessError
      when the caller may not perform the action on the entity
    - The authentication provider is read from app.state, falling back to headers

Design Decisions:
    - Filter as a dependency factory: FastAPI's equivalent of an attribute filter,
      composable per route without middleware ordering concerns
"""

from fastapi import Depends, Request

from entitymvc.config import get_settings
from entitymvc.core.errors import ErrorContext, UnauthorizedAccessError
from entitymvc.core.metadata import EntityMetadata
from entitymvc.core.security import (
    Authentication, AuthenticationProvider, AuthorizeOption, EntityAction,
    HeaderAuthenticationProvider,
)


def get_authentication_provider(request: Request) -> AuthenticationProvider:
    provider = getattr(request.app.state, "authentication_provider", None)
    if provider is None:
        settings = get_settings()
        provider = HeaderAuthenticationProvider(
            settings.user_header, settings.roles_header,
        )
    return provider


def get_authentication(
    request: Request,
    provider: AuthenticationProvider = Depends(get_authentication_provider),
) -> Authentication:
    return provider.get_authentication(request)


def entity_authorize(metadata: EntityMetadata, action: EntityAction):
    """Build the authorization filter dependency for one entity action."""

    async def authorize(
        authentication: Authentication = Depends(get_authentication),
    ) -> AuthorizeOption:
        option = AuthorizeOption.for_action(metadata, action)
        option.validate(metadata, authentication)
        return option

    authorize.__name__ = f"authorize_{metadata.name.lower()}_{action.value}"
    return authorize


def entity_access(metadata: EntityMetadata, action: EntityAction):
    """Entity-level filter only: role checks are left to the domain service.

    Used where the effective action depends on the request (update creates
    when no id is posted, edits otherwise).
    """

    async def authorize(
        authentication: Authentication = Depends(get_authentication),
    ) -> AuthorizeOption:
        if not (metadata.allow_anonymous or authentication.is_authenticated):
            raise UnauthorizedAccessError(
                f"Not allowed to access {metadata.name}.",
                ErrorContext(entity=metadata.name, action=action.value),
            )
        return AuthorizeOption.for_action(metadata, action)

    authorize.__name__ = f"access_{metadata.name.lower()}_{action.value}"
    return authorize
