"""Profile provisioning: resolve an identity to its profile, creating it on first access."""

from datetime import UTC, datetime

import structlog

from app.core.exceptions import ProfileConflictError, ProfileNotFoundError
from app.schemas.profiles import Identity, Profile, ProfileCreate, Role
from app.services.profile_store import ProfileStore

logger = structlog.get_logger(__name__)


def default_profile_for(identity: Identity) -> ProfileCreate:
    """Build the profile a new identity starts with."""
    return ProfileCreate(
        id=identity.id,
        full_name=identity.full_name or "",
        avatar_url=identity.avatar_url or "",
        role=Role.USER,
        updated_at=datetime.now(UTC),
    )


class ProfileResolver:
    """Service resolving identities to profiles."""

    def __init__(self, store: ProfileStore):
        """Initialize resolver with a profile store."""
        self.store = store

    async def resolve(self, identity: Identity) -> Profile:
        """
        Return the identity's profile, provisioning a default one if absent.

        Only a missing row triggers provisioning. Any other store failure
        propagates without an insert attempt. A duplicate-id rejection on
        insert means a concurrent resolution won the race, so the existing
        row is fetched and returned instead.

        Args:
            identity: Currently authenticated identity

        Returns:
            The stored profile

        Raises:
            StoreError: If the store cannot be read or written
        """
        try:
            return await self.store.get_by_id(identity.id)
        except ProfileNotFoundError:
            pass

        try:
            profile = await self.store.insert(default_profile_for(identity))
        except ProfileConflictError:
            logger.info("profile_provision_conflict", profile_id=identity.id)
            return await self.store.get_by_id(identity.id)

        logger.info("profile_provisioned", profile_id=profile.id, role=profile.role.value)
        return profile
