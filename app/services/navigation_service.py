"""Layout header state derived from the profile session."""

from collections.abc import Callable

from app.core.routes import Destination
from app.schemas.auth import AccountMenu, NavigationResponse, NavLink
from app.services.profile_session import ProfileSession

UrlFor = Callable[[str], str]


def user_initials(email: str | None) -> str:
    """Avatar fallback: first letter of the email, upper-cased."""
    if not email:
        return "?"
    return email[0].upper()


def _link(label: str, destination: Destination, url_for: UrlFor, section: str | None = None) -> NavLink:
    return NavLink(
        label=label,
        destination=destination.value,
        url=url_for(destination.value),
        section=section,
    )


def build_navigation(session: ProfileSession, url_for: UrlFor) -> NavigationResponse:
    """Build the header: loading placeholder, sign-in link, or account menu."""
    if session.loading:
        return NavigationResponse(loading=True)

    identity = session.identity
    if identity is None:
        return NavigationResponse(links=[_link("Login", Destination.SIGN_IN, url_for)])

    profile = session.profile
    avatar_url = identity.avatar_url or (profile.avatar_url if profile else None) or None

    items = [
        _link("Profile", Destination.PROFILE, url_for, section="My Account"),
        NavLink(label="Settings", section="My Account"),
    ]
    if session.is_admin:
        items.append(
            _link("Admin Dashboard", Destination.ADMIN_DASHBOARD, url_for, section="Administration")
        )
    items.append(NavLink(label="Log out", url=url_for("sign-out")))

    return NavigationResponse(
        account=AccountMenu(
            initials=user_initials(identity.email),
            avatar_url=avatar_url,
            items=items,
        )
    )
