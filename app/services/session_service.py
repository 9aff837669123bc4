"""Session accessor over the hosted identity provider."""

from collections import defaultdict
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol
from uuid import uuid4

import structlog

from app.core.exceptions import AuthServiceError
from app.core.firebase import (
    revoke_firebase_sessions,
    update_firebase_user,
    verify_firebase_token,
)
from app.schemas.profiles import Identity

logger = structlog.get_logger(__name__)

IdentityListener = Callable[[Identity | None], None]

# Provider metadata keys mirrored from the profile
METADATA_FIELDS = ("full_name", "avatar_url")


class AuthEvent(str, Enum):
    """Identity change notifications."""

    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"
    USER_UPDATED = "user_updated"


class AuthBackend(Protocol):
    """Calls into the hosted identity provider."""

    async def authenticate(self, token: str) -> Identity | None: ...

    async def sign_out(self, identity: Identity) -> None: ...

    async def update_metadata(self, identity: Identity, fields: dict[str, Any]) -> Identity: ...


def identity_from_claims(claims: dict[str, Any]) -> Identity:
    """Build an Identity from decoded ID token claims."""
    metadata = {
        "full_name": claims.get("name"),
        "avatar_url": claims.get("picture"),
    }
    return Identity(
        id=claims["uid"],
        email=claims.get("email"),
        metadata={key: value for key, value in metadata.items() if value is not None},
    )


class FirebaseAuthBackend:
    """Identity provider backed by Firebase Authentication."""

    async def authenticate(self, token: str) -> Identity | None:
        """
        Verify an ID token.

        Returns:
            Identity, or None if the token is invalid or expired

        Raises:
            AuthServiceError: If Firebase cannot be reached
        """
        try:
            claims = await verify_firebase_token(token)
        except ValueError:
            return None
        except Exception as e:
            raise AuthServiceError("Identity provider unavailable") from e

        return identity_from_claims(claims)

    async def sign_out(self, identity: Identity) -> None:
        """Revoke the identity's refresh tokens."""
        try:
            await revoke_firebase_sessions(identity.id)
        except Exception as e:
            raise AuthServiceError("Failed to sign out") from e

    async def update_metadata(self, identity: Identity, fields: dict[str, Any]) -> Identity:
        """Write display metadata to the provider and return the updated identity."""
        try:
            await update_firebase_user(
                identity.id,
                full_name=fields.get("full_name"),
                avatar_url=fields.get("avatar_url"),
            )
        except Exception as e:
            raise AuthServiceError("Failed to update identity metadata") from e

        return identity.model_copy(update={"metadata": {**identity.metadata, **fields}})


class AuthEventHub:
    """Process-wide fan-out of identity changes, keyed by channel."""

    def __init__(self) -> None:
        """Initialize with no listeners."""
        self._listeners: dict[str, list[IdentityListener]] = defaultdict(list)

    def add(self, channel: str, listener: IdentityListener) -> None:
        """Register a listener on a channel."""
        self._listeners[channel].append(listener)

    def remove(self, channel: str, listener: IdentityListener) -> None:
        """Detach a listener; unknown listeners are ignored."""
        listeners = self._listeners.get(channel)
        if not listeners:
            return
        if listener in listeners:
            listeners.remove(listener)
        if not listeners:
            del self._listeners[channel]

    def listener_count(self, channel: str | None = None) -> int:
        """Count listeners on one channel or on all of them."""
        if channel is not None:
            return len(self._listeners.get(channel, ()))
        return sum(len(listeners) for listeners in self._listeners.values())

    def publish(self, channel: str, identity: Identity | None, event: AuthEvent) -> None:
        """Notify every listener on the channel."""
        listeners = list(self._listeners.get(channel, ()))
        logger.info("auth_event_published", event=event.value, listeners=len(listeners))
        for listener in listeners:
            try:
                listener(identity)
            except Exception as e:
                logger.error("auth_listener_failed", event=event.value, error=str(e))


class Subscription:
    """Handle returned by ``SessionAccessor.subscribe``."""

    def __init__(self, hub: AuthEventHub, channel: str, listener: IdentityListener):
        """Attach the listener to the hub."""
        self._hub = hub
        self._channel = channel
        self._listener = listener
        self._active = True
        hub.add(channel, listener)

    @property
    def active(self) -> bool:
        """Whether the listener is still attached."""
        return self._active

    def unsubscribe(self) -> None:
        """Detach the listener; later calls do nothing."""
        if not self._active:
            return
        self._active = False
        self._hub.remove(self._channel, self._listener)


class SessionAccessor:
    """
    Per-request view of the caller's identity.

    The identity is looked up once from the bearer token. Subscriptions made
    after the lookup follow that identity across the process, so a sign-out
    from another request reaches this one too. Subscriptions of anonymous
    sessions only see events raised through this accessor.
    """

    def __init__(self, backend: AuthBackend, hub: AuthEventHub, token: str | None = None):
        """Initialize accessor for one bearer token."""
        self.backend = backend
        self.hub = hub
        self._token = token
        self._identity: Identity | None = None
        self._looked_up = False
        self._anonymous_channel = f"anonymous:{uuid4()}"

    @property
    def channel(self) -> str:
        """Event channel this accessor publishes and subscribes on."""
        if self._identity is not None:
            return f"identity:{self._identity.id}"
        return self._anonymous_channel

    async def get_current_identity(self) -> Identity | None:
        """
        Return the signed-in identity, or None.

        Provider failures are logged and treated as no identity.
        """
        if self._looked_up:
            return self._identity

        self._looked_up = True
        if not self._token:
            return None

        try:
            self._identity = await self.backend.authenticate(self._token)
        except AuthServiceError as e:
            logger.warning("identity_lookup_failed", error=e.message)
            self._identity = None

        return self._identity

    def subscribe(self, on_change: IdentityListener) -> Subscription:
        """Receive identity changes until ``unsubscribe`` is called."""
        return Subscription(self.hub, self.channel, on_change)

    async def sign_out(self) -> None:
        """Sign the current identity out and notify subscribers."""
        identity = await self.get_current_identity()
        if identity is None:
            return

        channel = self.channel
        try:
            await self.backend.sign_out(identity)
        except AuthServiceError as e:
            logger.warning("sign_out_failed", identity_id=identity.id, error=e.message)

        self._identity = None
        self._token = None
        self.hub.publish(channel, None, AuthEvent.SIGNED_OUT)
        logger.info("signed_out", identity_id=identity.id)

    async def update_identity_metadata(self, fields: dict[str, Any]) -> Identity:
        """
        Mirror display fields into the provider's user record.

        Raises:
            AuthServiceError: If there is no identity or the provider call fails
        """
        identity = await self.get_current_identity()
        if identity is None:
            raise AuthServiceError("No signed-in identity")

        unknown = set(fields) - set(METADATA_FIELDS)
        if unknown:
            raise ValueError(f"Unsupported metadata fields: {sorted(unknown)}")

        updated = await self.backend.update_metadata(identity, fields)
        self._identity = updated
        self.hub.publish(self.channel, updated, AuthEvent.USER_UPDATED)
        return updated
