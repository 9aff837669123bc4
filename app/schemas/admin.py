"""Admin-specific schemas."""

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.profiles import Profile


class DashboardLink(BaseModel):
    """Link card shown on the admin dashboard."""

    title: str
    description: str
    destination: str
    url: str


class AdminDashboardResponse(BaseModel):
    """Response schema for the admin dashboard."""

    user_count: int = Field(..., description="Total registered users", examples=[42])
    links: list[DashboardLink]


class AdminUserListResponse(BaseModel):
    """Response schema for admin user listing."""

    users: list[Profile]
    total: int

    model_config = ConfigDict(from_attributes=True)


class AdvancedAction(BaseModel):
    """Placeholder maintenance action."""

    name: str
    label: str
    enabled: bool = False


class SiteSettings(BaseModel):
    """Placeholder site settings."""

    site_title: str = Field(..., min_length=1, max_length=200)


class SiteSettingsResponse(BaseModel):
    """Response schema for the settings page."""

    settings: SiteSettings
    advanced_actions: list[AdvancedAction]
    message: str | None = None
