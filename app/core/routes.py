"""Named destinations of the routing surface."""

from enum import Enum


class Destination(str, Enum):
    """Route names; endpoints register under these exact names."""

    SIGN_IN = "sign-in"
    HOME = "home"
    ADMIN_DASHBOARD = "admin-dashboard"
    ADMIN_USERS = "admin-users"
    ADMIN_SETTINGS = "admin-settings"
    PROFILE = "profile"
