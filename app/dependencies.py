"""FastAPI dependencies."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.profiles import Profile, Role
from app.services.profile_session import ProfileSession
from app.services.profile_store import SqlProfileStore
from app.services.provisioning_service import ProfileResolver
from app.services.session_service import AuthBackend, AuthEventHub, SessionAccessor
from app.services.settings_service import SiteSettingsService

# Security; anonymous requests are allowed through
security = HTTPBearer(auto_error=False)


def get_auth_backend(request: Request) -> AuthBackend:
    """Identity provider configured on the application."""
    return request.app.state.auth_backend


def get_event_hub(request: Request) -> AuthEventHub:
    """Process-wide identity event hub."""
    return request.app.state.auth_events


def get_site_settings_service(request: Request) -> SiteSettingsService:
    """Placeholder site settings store."""
    return request.app.state.site_settings


def get_profile_store(db: Annotated[AsyncSession, Depends(get_db)]) -> SqlProfileStore:
    """Profile store bound to the request's database session."""
    return SqlProfileStore(db)


async def get_session_accessor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    backend: Annotated[AuthBackend, Depends(get_auth_backend)],
    hub: Annotated[AuthEventHub, Depends(get_event_hub)],
) -> SessionAccessor:
    """Session accessor for the request's bearer token, if any."""
    token = credentials.credentials if credentials else None
    return SessionAccessor(backend, hub, token)


async def get_profile_session(
    accessor: Annotated[SessionAccessor, Depends(get_session_accessor)],
    store: Annotated[SqlProfileStore, Depends(get_profile_store)],
) -> AsyncGenerator[ProfileSession, None]:
    """
    Start a profile session for the request and close it afterwards.

    Yields:
        Started session with identity and profile resolved
    """
    session = ProfileSession(accessor, ProfileResolver(store))
    try:
        await session.start()
        yield session
    finally:
        session.close()


def require_role(role: Role | None) -> Callable[..., Awaitable[Profile | None]]:
    """
    Build a dependency enforcing the authorization gate for a view.

    Args:
        role: Role the view requires, or None for public views

    Returns:
        Dependency returning the resolved profile or redirecting
    """

    async def dependency(
        session: Annotated[ProfileSession, Depends(get_profile_session)],
    ) -> Profile | None:
        return await session.authorize(role)

    return dependency


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
ProfileStoreDep = Annotated[SqlProfileStore, Depends(get_profile_store)]
SessionAccessorDep = Annotated[SessionAccessor, Depends(get_session_accessor)]
CurrentSession = Annotated[ProfileSession, Depends(get_profile_session)]
AdminProfile = Annotated[Profile, Depends(require_role(Role.ADMIN))]
SiteSettingsDep = Annotated[SiteSettingsService, Depends(get_site_settings_service)]
