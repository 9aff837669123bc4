"""Profile self-service endpoints."""

import structlog
from fastapi import APIRouter, status

from app.core.exceptions import (
    AuthServiceError,
    ProfileNotFoundError,
    ServiceUnavailableException,
    StoreError,
)
from app.core.routes import Destination
from app.dependencies import CurrentSession, ProfileStoreDep
from app.schemas.profiles import ProfileResponse, ProfileUpdate
from app.services.profile_session import PROFILE_LOAD_ERROR

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/profile", tags=["Profile"])


@router.get(
    "",
    name=Destination.PROFILE.value,
    response_model=ProfileResponse,
    status_code=status.HTTP_200_OK,
    summary="Current user's profile",
)
async def get_profile(session: CurrentSession) -> ProfileResponse:
    """
    Get the current user's profile, provisioning it on first access.

    Anonymous callers are redirected to sign in.
    """
    await session.require_identity()

    if session.profile is None:
        raise ServiceUnavailableException(session.error or PROFILE_LOAD_ERROR)

    return ProfileResponse(profile=session.profile)


@router.put(
    "",
    response_model=ProfileResponse,
    status_code=status.HTTP_200_OK,
    summary="Update current user's profile",
)
async def update_profile(
    profile_data: ProfileUpdate,
    session: CurrentSession,
    store: ProfileStoreDep,
) -> ProfileResponse:
    """
    Update the current user's display name and avatar.

    The fields are written to the profile first, then mirrored into the
    identity provider's metadata.
    """
    identity = await session.require_identity()

    if session.profile is None:
        raise ServiceUnavailableException(session.error or PROFILE_LOAD_ERROR)

    fields = profile_data.model_dump()
    try:
        profile = await store.update(identity.id, fields)
        await session.accessor.update_identity_metadata(fields)
    except (StoreError, AuthServiceError, ProfileNotFoundError) as e:
        logger.error("profile_update_failed", identity_id=identity.id, error=e.message)
        raise ServiceUnavailableException("Failed to update profile") from e

    session.replace_profile(profile)
    logger.info("profile_updated", identity_id=identity.id)

    return ProfileResponse(profile=profile, message="Profile updated successfully")
