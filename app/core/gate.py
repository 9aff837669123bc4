"""Authorization gate for protected views.

The gate is a pure function over the resolved profile and the role a view
requires. It performs no I/O; callers must only consult it once profile
resolution has finished (see ``ProfileSession.decide``, which reports
``PENDING`` until then).
"""

from dataclasses import dataclass

from app.core.routes import Destination
from app.schemas.profiles import Profile, Role


@dataclass(frozen=True)
class Allow:
    """Render the view."""


@dataclass(frozen=True)
class Deny:
    """Do not render; redirect silently."""

    redirect_to: Destination


@dataclass(frozen=True)
class Pending:
    """Profile still loading; render neither content nor a redirect."""


ALLOW = Allow()
PENDING = Pending()

Decision = Allow | Deny | Pending


def role_satisfies(role: Role, required_role: Role) -> bool:
    """Exact role match; roles are not hierarchical."""
    match required_role:
        case Role.ADMIN:
            return role is Role.ADMIN
        case Role.MODERATOR:
            return role is Role.MODERATOR
        case Role.USER:
            return role is Role.USER


def decide(profile: Profile | None, required_role: Role | None) -> Allow | Deny:
    """
    Decide whether a view may be rendered.

    Args:
        profile: Resolved profile, or None when there is no session or the
            profile could not be resolved
        required_role: Role the view requires, or None for public views

    Returns:
        ``Allow`` or ``Deny`` carrying the redirect destination
    """
    if required_role is None:
        return ALLOW

    if profile is None:
        return Deny(redirect_to=Destination.SIGN_IN)

    if not role_satisfies(profile.role, required_role):
        return Deny(redirect_to=Destination.HOME)

    return ALLOW
