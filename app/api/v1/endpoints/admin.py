"""Admin-only endpoints: dashboard, user roles and site settings."""

import structlog
from fastapi import APIRouter, Request, status

from app.core.exceptions import BadRequestException, ServiceUnavailableException, StoreError
from app.core.routes import Destination
from app.dependencies import AdminProfile, ProfileStoreDep, SiteSettingsDep
from app.schemas.admin import (
    AdminDashboardResponse,
    AdminUserListResponse,
    DashboardLink,
    SiteSettings,
    SiteSettingsResponse,
)
from app.schemas.profiles import Profile, RoleUpdate

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get(
    "",
    name=Destination.ADMIN_DASHBOARD.value,
    response_model=AdminDashboardResponse,
    summary="Admin dashboard (admin only)",
)
async def admin_dashboard(
    request: Request,
    admin: AdminProfile,
    store: ProfileStoreDep,
) -> AdminDashboardResponse:
    """
    Dashboard with the user count and links to the admin pages.

    Requires admin role.
    """
    try:
        user_count = await store.count()
    except StoreError as e:
        logger.error("admin_stats_failed", error=e.message)
        raise ServiceUnavailableException("Failed to load admin stats") from e

    return AdminDashboardResponse(
        user_count=user_count,
        links=[
            DashboardLink(
                title="Manage Users",
                description="User administration",
                destination=Destination.ADMIN_USERS.value,
                url=request.url_for(Destination.ADMIN_USERS.value).path,
            ),
            DashboardLink(
                title="Site Settings",
                description="Configure application settings",
                destination=Destination.ADMIN_SETTINGS.value,
                url=request.url_for(Destination.ADMIN_SETTINGS.value).path,
            ),
        ],
    )


@router.get(
    "/users",
    name=Destination.ADMIN_USERS.value,
    response_model=AdminUserListResponse,
    summary="List all users (admin only)",
)
async def list_users(admin: AdminProfile, store: ProfileStoreDep) -> AdminUserListResponse:
    """
    List every profile, most recently updated first.

    Requires admin role.
    """
    try:
        users = await store.list_all(order_by="updated_at", descending=True)
    except StoreError as e:
        logger.error("admin_user_list_failed", error=e.message)
        raise ServiceUnavailableException("Failed to load users") from e

    return AdminUserListResponse(users=users, total=len(users))


@router.patch(
    "/users/{profile_id}/role",
    response_model=Profile,
    summary="Assign a role to a user (admin only)",
)
async def update_user_role(
    profile_id: str,
    role_data: RoleUpdate,
    admin: AdminProfile,
    store: ProfileStoreDep,
) -> Profile:
    """
    Set another user's role.

    Requires admin role. Admins cannot change their own role. Concurrent
    edits of the same user are last write wins.

    Raises:
        BadRequestException: If the admin targets their own profile
        ProfileNotFoundError: If the target profile does not exist
    """
    if profile_id == admin.id:
        raise BadRequestException("Cannot change your own role")

    try:
        profile = await store.update(profile_id, {"role": role_data.role})
    except StoreError as e:
        logger.error("profile_role_update_failed", profile_id=profile_id, error=e.message)
        raise ServiceUnavailableException("Failed to update user role") from e

    logger.info(
        "profile_role_updated",
        profile_id=profile_id,
        role=profile.role.value,
        admin_id=admin.id,
    )
    return profile


@router.get(
    "/settings",
    name=Destination.ADMIN_SETTINGS.value,
    response_model=SiteSettingsResponse,
    summary="Site settings (admin only)",
)
async def get_site_settings(
    admin: AdminProfile,
    site_settings: SiteSettingsDep,
) -> SiteSettingsResponse:
    """Current placeholder site settings."""
    return SiteSettingsResponse(
        settings=site_settings.get(),
        advanced_actions=site_settings.advanced_actions(),
    )


@router.put(
    "/settings",
    response_model=SiteSettingsResponse,
    status_code=status.HTTP_200_OK,
    summary="Save site settings (admin only)",
)
async def save_site_settings(
    settings_data: SiteSettings,
    admin: AdminProfile,
    site_settings: SiteSettingsDep,
) -> SiteSettingsResponse:
    """Save placeholder site settings; nothing is persisted beyond the process."""
    saved = await site_settings.save(settings_data)
    return SiteSettingsResponse(
        settings=saved,
        advanced_actions=site_settings.advanced_actions(),
        message="Settings updated successfully",
    )
