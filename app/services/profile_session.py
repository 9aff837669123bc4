"""Per-session view state: identity, resolved profile and access decisions."""

from enum import Enum

import structlog

from app.core.exceptions import RedirectException, StoreError
from app.core.gate import ALLOW, PENDING, Decision, Deny, decide
from app.core.routes import Destination
from app.schemas.profiles import Identity, Profile, Role
from app.services.provisioning_service import ProfileResolver
from app.services.session_service import SessionAccessor, Subscription

logger = structlog.get_logger(__name__)

PROFILE_LOAD_ERROR = "Error loading profile"


class SessionStatus(str, Enum):
    """Lifecycle of a profile session."""

    LOADING = "loading"
    READY = "ready"
    ERROR = "error"
    CLOSED = "closed"


class ProfileSession:
    """
    Explicit session state for one view.

    Created with ``start()`` and torn down with ``close()``, which detaches the
    identity subscription exactly once. Every profile resolution is tagged with
    a generation; a sign-out or identity switch bumps the generation so that a
    resolution still in flight is discarded when it completes.
    """

    def __init__(self, accessor: SessionAccessor, resolver: ProfileResolver):
        """Initialize an unstarted session."""
        self.accessor = accessor
        self.resolver = resolver
        self.identity: Identity | None = None
        self.profile: Profile | None = None
        self.status = SessionStatus.LOADING
        self.error: str | None = None
        self._generation = 0
        self._subscription: Subscription | None = None

    @property
    def alive(self) -> bool:
        """Whether the session still accepts updates."""
        return self.status is not SessionStatus.CLOSED

    @property
    def loading(self) -> bool:
        """Whether a decision is still pending."""
        return self.status is SessionStatus.LOADING

    @property
    def is_admin(self) -> bool:
        """Whether the resolved profile holds the admin role."""
        return self.has_role(Role.ADMIN)

    def has_role(self, role: Role) -> bool:
        """Whether the resolved profile holds exactly this role."""
        return self.profile is not None and self.profile.role is role

    async def start(self) -> None:
        """Look up the identity, subscribe to changes and resolve the profile."""
        if self._subscription is not None or not self.alive:
            return

        self.identity = await self.accessor.get_current_identity()
        self._subscription = self.accessor.subscribe(self._on_identity_change)
        await self.load_profile()

    async def load_profile(self) -> None:
        """Resolve the current identity's profile, provisioning it if needed."""
        if not self.alive:
            return

        identity = self.identity
        if identity is None:
            self.profile = None
            self.error = None
            self.status = SessionStatus.READY
            return

        self._generation += 1
        generation = self._generation
        self.status = SessionStatus.LOADING
        self.error = None

        try:
            profile = await self.resolver.resolve(identity)
        except StoreError as e:
            if self._is_stale(generation):
                logger.info("stale_profile_error_discarded", identity_id=identity.id)
                return
            logger.error("profile_resolution_failed", identity_id=identity.id, error=e.message)
            self.profile = None
            self.error = PROFILE_LOAD_ERROR
            self.status = SessionStatus.ERROR
            return

        if self._is_stale(generation):
            logger.info("stale_profile_discarded", identity_id=identity.id)
            return

        self.profile = profile
        self.status = SessionStatus.READY

    def decide(self, required_role: Role | None) -> Decision:
        """
        Access decision for a view requiring ``required_role``.

        Pending while the profile is loading. A failed resolution fails
        closed: protected views redirect home.
        """
        match self.status:
            case SessionStatus.LOADING:
                return PENDING
            case SessionStatus.ERROR:
                if required_role is None:
                    return ALLOW
                return Deny(redirect_to=Destination.HOME)
            case SessionStatus.CLOSED:
                return decide(None, required_role)
            case SessionStatus.READY:
                return decide(self.profile, required_role)

    async def authorize(self, required_role: Role | None) -> Profile | None:
        """
        Enforce access for a request.

        Returns:
            The resolved profile when access is allowed

        Raises:
            RedirectException: If access is denied or cannot be decided
        """
        if self.loading:
            await self.load_profile()

        decision = self.decide(required_role)
        if isinstance(decision, Deny):
            logger.info(
                "access_denied",
                identity_id=self.identity.id if self.identity else None,
                required_role=required_role.value if required_role else None,
                redirect_to=decision.redirect_to.value,
            )
            raise RedirectException(decision.redirect_to)
        if decision is PENDING:
            raise RedirectException(Destination.HOME)

        return self.profile

    async def require_identity(self) -> Identity:
        """
        Return the signed-in identity.

        Raises:
            RedirectException: To the sign-in view when there is none
        """
        if self.identity is None or not self.alive:
            raise RedirectException(Destination.SIGN_IN)
        return self.identity

    def replace_profile(self, profile: Profile) -> None:
        """Adopt a profile written during this session."""
        if self.alive and self.identity is not None and profile.id == self.identity.id:
            self.profile = profile
            self.status = SessionStatus.READY
            self.error = None

    def close(self) -> None:
        """Tear the session down and detach from identity changes."""
        if not self.alive:
            return
        self._generation += 1
        self.status = SessionStatus.CLOSED
        if self._subscription is not None:
            self._subscription.unsubscribe()

    def _is_stale(self, generation: int) -> bool:
        return not self.alive or generation != self._generation

    def _on_identity_change(self, identity: Identity | None) -> None:
        if not self.alive:
            return

        if identity is None:
            self._generation += 1
            self.identity = None
            self.profile = None
            self.error = None
            self.status = SessionStatus.READY
            return

        same_identity = self.identity is not None and self.identity.id == identity.id
        self.identity = identity
        if not same_identity:
            self._generation += 1
            self.profile = None
            self.status = SessionStatus.LOADING
