"""Tests for the session accessor and per-session profile state."""

import asyncio

import pytest

from app.core.exceptions import AuthServiceError, RedirectException, StoreError
from app.core.gate import ALLOW, PENDING, Deny
from app.core.routes import Destination
from app.schemas.profiles import Identity, Role
from app.services.profile_session import PROFILE_LOAD_ERROR, ProfileSession, SessionStatus
from app.services.provisioning_service import ProfileResolver
from app.services.session_service import AuthEvent, SessionAccessor

USER_TOKEN = "user-token"
ADMIN_TOKEN = "admin-token"


class BlockingResolver:
    """Resolver that waits until released, to hold a resolution in flight."""

    def __init__(self, resolver: ProfileResolver):
        self.resolver = resolver
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def resolve(self, identity):
        self.started.set()
        await self.release.wait()
        return await self.resolver.resolve(identity)


@pytest.mark.asyncio
class TestSessionAccessor:
    """Tests for SessionAccessor."""

    async def test_no_token_is_anonymous(self, auth_backend, event_hub):
        accessor = SessionAccessor(auth_backend, event_hub)
        assert await accessor.get_current_identity() is None

    async def test_unknown_token_is_anonymous(self, auth_backend, event_hub):
        accessor = SessionAccessor(auth_backend, event_hub, "forged")
        assert await accessor.get_current_identity() is None

    async def test_valid_token_resolves_identity(self, auth_backend, event_hub):
        accessor = SessionAccessor(auth_backend, event_hub, USER_TOKEN)

        identity = await accessor.get_current_identity()

        assert identity.id == "user-1"
        assert identity.full_name == "Jane Doe"

    async def test_provider_failure_treated_as_no_identity(self, auth_backend, event_hub):
        auth_backend.unavailable = True
        accessor = SessionAccessor(auth_backend, event_hub, USER_TOKEN)

        assert await accessor.get_current_identity() is None

    async def test_unsubscribe_detaches_once(self, auth_backend, event_hub):
        accessor = SessionAccessor(auth_backend, event_hub, USER_TOKEN)
        await accessor.get_current_identity()
        received = []

        subscription = accessor.subscribe(received.append)
        assert event_hub.listener_count(accessor.channel) == 1

        subscription.unsubscribe()
        subscription.unsubscribe()

        assert not subscription.active
        assert event_hub.listener_count() == 0

    async def test_sign_out_reaches_other_sessions_of_same_identity(self, auth_backend, event_hub):
        first = SessionAccessor(auth_backend, event_hub, USER_TOKEN)
        second = SessionAccessor(auth_backend, event_hub, USER_TOKEN)
        other = SessionAccessor(auth_backend, event_hub, ADMIN_TOKEN)
        for accessor in (first, second, other):
            await accessor.get_current_identity()

        seen_by_second, seen_by_other = [], []
        second.subscribe(seen_by_second.append)
        other.subscribe(seen_by_other.append)

        await first.sign_out()

        assert seen_by_second == [None]
        assert seen_by_other == []
        assert auth_backend.signed_out == ["user-1"]
        assert await first.get_current_identity() is None

    async def test_update_metadata_publishes_updated_identity(self, auth_backend, event_hub):
        accessor = SessionAccessor(auth_backend, event_hub, USER_TOKEN)
        await accessor.get_current_identity()
        received = []
        accessor.subscribe(received.append)

        updated = await accessor.update_identity_metadata({"full_name": "Jane Roe"})

        assert updated.full_name == "Jane Roe"
        assert received == [updated]
        assert auth_backend.metadata_updates == [("user-1", {"full_name": "Jane Roe"})]

    async def test_update_metadata_requires_identity(self, auth_backend, event_hub):
        accessor = SessionAccessor(auth_backend, event_hub)

        with pytest.raises(AuthServiceError):
            await accessor.update_identity_metadata({"full_name": "Nobody"})

    async def test_failing_listener_does_not_block_others(self, event_hub):
        received = []

        def broken(identity):
            raise RuntimeError("listener bug")

        event_hub.add("identity:x", broken)
        event_hub.add("identity:x", received.append)
        event_hub.publish("identity:x", None, AuthEvent.SIGNED_OUT)

        assert received == [None]


@pytest.mark.asyncio
class TestProfileSession:
    """Tests for ProfileSession."""

    async def test_anonymous_session(self, auth_backend, event_hub, memory_store):
        session = ProfileSession(SessionAccessor(auth_backend, event_hub), ProfileResolver(memory_store))

        await session.start()

        assert session.status is SessionStatus.READY
        assert session.profile is None
        assert session.decide(None) == ALLOW
        assert session.decide(Role.ADMIN) == Deny(redirect_to=Destination.SIGN_IN)
        assert memory_store.rows == {}

    async def test_start_provisions_profile(self, auth_backend, event_hub, memory_store):
        accessor = SessionAccessor(auth_backend, event_hub, USER_TOKEN)
        session = ProfileSession(accessor, ProfileResolver(memory_store))

        await session.start()

        assert session.profile.id == "user-1"
        assert session.profile.full_name == "Jane Doe"
        assert session.profile.role is Role.USER
        assert session.decide(Role.ADMIN) == Deny(redirect_to=Destination.HOME)
        assert session.decide(Role.USER) == ALLOW
        assert not session.is_admin

    async def test_pending_while_profile_loads(self, auth_backend, event_hub, memory_store):
        """Neither allow nor deny is reported until resolution completes."""
        resolver = BlockingResolver(ProfileResolver(memory_store))
        session = ProfileSession(SessionAccessor(auth_backend, event_hub, USER_TOKEN), resolver)

        task = asyncio.create_task(session.start())
        await resolver.started.wait()

        assert session.loading
        assert session.decide(Role.USER) is PENDING
        assert session.decide(None) is PENDING

        resolver.release.set()
        await task

        assert session.decide(Role.USER) == ALLOW

    async def test_sign_out_discards_in_flight_resolution(
        self, auth_backend, event_hub, memory_store
    ):
        resolver = BlockingResolver(ProfileResolver(memory_store))
        session = ProfileSession(SessionAccessor(auth_backend, event_hub, USER_TOKEN), resolver)

        task = asyncio.create_task(session.start())
        await resolver.started.wait()

        await SessionAccessor(auth_backend, event_hub, USER_TOKEN).sign_out()
        resolver.release.set()
        await task

        assert session.identity is None
        assert session.profile is None
        assert session.decide(Role.USER) == Deny(redirect_to=Destination.SIGN_IN)

    async def test_close_discards_in_flight_resolution(self, auth_backend, event_hub, memory_store):
        resolver = BlockingResolver(ProfileResolver(memory_store))
        session = ProfileSession(SessionAccessor(auth_backend, event_hub, USER_TOKEN), resolver)

        task = asyncio.create_task(session.start())
        await resolver.started.wait()
        session.close()
        resolver.release.set()
        await task

        assert session.status is SessionStatus.CLOSED
        assert session.profile is None
        assert event_hub.listener_count() == 0

    async def test_close_unsubscribes_once(self, auth_backend, event_hub, memory_store):
        session = ProfileSession(
            SessionAccessor(auth_backend, event_hub, USER_TOKEN), ProfileResolver(memory_store)
        )
        await session.start()
        assert event_hub.listener_count() == 1

        session.close()
        session.close()

        assert event_hub.listener_count() == 0
        assert not session.alive

    async def test_store_failure_fails_closed(self, auth_backend, event_hub, memory_store):
        memory_store.read_error = StoreError("Failed to read profile")
        session = ProfileSession(
            SessionAccessor(auth_backend, event_hub, USER_TOKEN), ProfileResolver(memory_store)
        )

        await session.start()

        assert session.status is SessionStatus.ERROR
        assert session.error == PROFILE_LOAD_ERROR
        assert session.decide(Role.USER) == Deny(redirect_to=Destination.HOME)
        assert session.decide(None) == ALLOW

        with pytest.raises(RedirectException) as exc_info:
            await session.authorize(Role.USER)
        assert exc_info.value.destination is Destination.HOME

    async def test_identity_switch_reloads_profile(self, auth_backend, event_hub, memory_store):
        accessor = SessionAccessor(auth_backend, event_hub, USER_TOKEN)
        session = ProfileSession(accessor, ProfileResolver(memory_store))
        await session.start()

        event_hub.publish(accessor.channel, Identity(id="user-2"), AuthEvent.SIGNED_IN)
        assert session.loading

        profile = await session.authorize(Role.USER)

        assert profile.id == "user-2"
        assert set(memory_store.rows) == {"user-1", "user-2"}

    async def test_authorize_admin(self, auth_backend, event_hub, memory_store):
        session = ProfileSession(
            SessionAccessor(auth_backend, event_hub, ADMIN_TOKEN), ProfileResolver(memory_store)
        )
        await session.start()
        await memory_store.update("admin-1", {"role": Role.ADMIN})
        await session.load_profile()

        profile = await session.authorize(Role.ADMIN)

        assert profile.role is Role.ADMIN
        assert session.is_admin
