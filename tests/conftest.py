import asyncio
import os
from collections.abc import AsyncGenerator, Mapping
from datetime import UTC, datetime
from typing import Any

# Must be set before the application settings are first loaded
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.exceptions import (
    AuthServiceError,
    ProfileConflictError,
    ProfileNotFoundError,
)
from app.database import create_tables, get_db
from app.dependencies import get_auth_backend
from app.main import app
from app.schemas.profiles import Identity, Profile, ProfileCreate, Role
from app.services.profile_store import SqlProfileStore
from app.services.session_service import AuthEventHub
from app.services.settings_service import SiteSettingsService

USER_TOKEN = "user-token"
ADMIN_TOKEN = "admin-token"
MODERATOR_TOKEN = "moderator-token"


class FakeAuthBackend:
    """Identity provider double keyed by bearer token."""

    def __init__(self) -> None:
        self.identities: dict[str, Identity] = {}
        self.unavailable = False
        self.fail_updates = False
        self.signed_out: list[str] = []
        self.revoked: set[str] = set()
        self.metadata_updates: list[tuple[str, dict[str, Any]]] = []

    def register(self, token: str, identity: Identity) -> Identity:
        self.identities[token] = identity
        return identity

    async def authenticate(self, token: str) -> Identity | None:
        if self.unavailable:
            raise AuthServiceError("Identity provider unavailable")
        identity = self.identities.get(token)
        if identity is None or identity.id in self.revoked:
            return None
        return identity

    async def sign_out(self, identity: Identity) -> None:
        self.signed_out.append(identity.id)
        self.revoked.add(identity.id)

    async def update_metadata(self, identity: Identity, fields: dict[str, Any]) -> Identity:
        if self.fail_updates:
            raise AuthServiceError("Failed to update identity metadata")
        self.metadata_updates.append((identity.id, dict(fields)))
        return identity.model_copy(update={"metadata": {**identity.metadata, **fields}})


class InMemoryProfileStore:
    """Profile store double with hooks for failure and interleaving."""

    def __init__(self) -> None:
        self.rows: dict[str, Profile] = {}
        self.calls: list[str] = []
        self.read_error: Exception | None = None
        self.insert_barrier: asyncio.Barrier | None = None

    async def get_by_id(self, profile_id: str) -> Profile:
        self.calls.append("get_by_id")
        await asyncio.sleep(0)
        if self.read_error is not None:
            raise self.read_error
        if profile_id not in self.rows:
            raise ProfileNotFoundError(profile_id)
        return self.rows[profile_id].model_copy()

    async def insert(self, profile: ProfileCreate) -> Profile:
        self.calls.append("insert")
        if self.insert_barrier is not None:
            await self.insert_barrier.wait()
        if profile.id in self.rows:
            raise ProfileConflictError(profile.id)
        self.rows[profile.id] = Profile.model_validate(profile.model_dump())
        return self.rows[profile.id].model_copy()

    async def update(self, profile_id: str, fields: Mapping[str, Any]) -> Profile:
        self.calls.append("update")
        if profile_id not in self.rows:
            raise ProfileNotFoundError(profile_id)
        current = self.rows[profile_id]
        now = max(datetime.now(UTC), current.updated_at)
        self.rows[profile_id] = current.model_copy(update={**fields, "updated_at": now})
        return self.rows[profile_id].model_copy()

    async def list_all(self, order_by: str = "updated_at", descending: bool = True) -> list[Profile]:
        return sorted(self.rows.values(), key=lambda p: getattr(p, order_by), reverse=descending)

    async def count(self) -> int:
        return len(self.rows)


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine shared by every connection of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def sql_store(db_session: AsyncSession) -> SqlProfileStore:
    return SqlProfileStore(db_session)


@pytest.fixture
def memory_store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def auth_backend() -> FakeAuthBackend:
    backend = FakeAuthBackend()
    backend.register(
        USER_TOKEN,
        Identity(
            id="user-1",
            email="jane@example.com",
            metadata={"full_name": "Jane Doe", "avatar_url": "https://img.example.com/jane.png"},
        ),
    )
    backend.register(ADMIN_TOKEN, Identity(id="admin-1", email="root@example.com"))
    backend.register(MODERATOR_TOKEN, Identity(id="mod-1", email="mod@example.com"))
    return backend


@pytest.fixture
def event_hub() -> AuthEventHub:
    return AuthEventHub()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    auth_backend: FakeAuthBackend,
    event_hub: AuthEventHub,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_backend] = lambda: auth_backend

    saved_state = (app.state.auth_events, app.state.site_settings)
    app.state.auth_events = event_hub
    app.state.site_settings = SiteSettingsService("Your App")

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.state.auth_events, app.state.site_settings = saved_state
    app.dependency_overrides.clear()


async def _seed(store: SqlProfileStore, profile_id: str, role: Role, full_name: str) -> Profile:
    return await store.insert(
        ProfileCreate(
            id=profile_id,
            full_name=full_name,
            avatar_url="",
            role=role,
            updated_at=datetime(2024, 1, 1, tzinfo=UTC),
        )
    )


@pytest_asyncio.fixture
async def admin_profile(sql_store: SqlProfileStore) -> Profile:
    return await _seed(sql_store, "admin-1", Role.ADMIN, "Root Admin")


@pytest_asyncio.fixture
async def moderator_profile(sql_store: SqlProfileStore) -> Profile:
    return await _seed(sql_store, "mod-1", Role.MODERATOR, "Mod")


@pytest.fixture
def user_headers() -> dict:
    return {"Authorization": f"Bearer {USER_TOKEN}"}


@pytest.fixture
def admin_headers(admin_profile: Profile) -> dict:
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
def moderator_headers(moderator_profile: Profile) -> dict:
    return {"Authorization": f"Bearer {MODERATOR_TOKEN}"}
