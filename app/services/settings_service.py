"""Placeholder site settings held in application state."""

import asyncio

import structlog

from app.schemas.admin import AdvancedAction, SiteSettings

logger = structlog.get_logger(__name__)

ADVANCED_ACTIONS = (
    AdvancedAction(name="clear_cache", label="Clear Cache"),
    AdvancedAction(name="update_indexes", label="Update Indexes"),
)


class SiteSettingsService:
    """In-memory settings; there is no settings table yet."""

    def __init__(self, site_title: str):
        """Initialize with the configured site title."""
        self._settings = SiteSettings(site_title=site_title)
        self._lock = asyncio.Lock()

    def get(self) -> SiteSettings:
        """Current settings."""
        return self._settings

    def advanced_actions(self) -> list[AdvancedAction]:
        """Maintenance actions, all disabled for now."""
        return [action.model_copy() for action in ADVANCED_ACTIONS]

    async def save(self, new_settings: SiteSettings) -> SiteSettings:
        """Replace the settings."""
        async with self._lock:
            self._settings = new_settings.model_copy()
        logger.info("site_settings_saved", site_title=new_settings.site_title)
        return self._settings
