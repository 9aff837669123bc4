"""Authentication and navigation schemas."""

from pydantic import BaseModel, Field

from app.schemas.profiles import Identity


class SignInInfo(BaseModel):
    """Instructions for obtaining a session from the identity provider."""

    message: str
    provider: str = "firebase"
    token_type: str = Field(default="bearer", description="Scheme for the ID token header")


class SessionResponse(BaseModel):
    """Current identity, if any."""

    identity: Identity | None = None


class HomeResponse(BaseModel):
    """Landing page greeting."""

    title: str
    message: str
    signed_in: bool


class NavLink(BaseModel):
    """Navigation entry pointing at a named destination."""

    label: str
    destination: str | None = None
    url: str | None = None
    section: str | None = None


class AccountMenu(BaseModel):
    """Signed-in account dropdown."""

    initials: str
    avatar_url: str | None = None
    items: list[NavLink]


class NavigationResponse(BaseModel):
    """Header state for the layout shell."""

    loading: bool = False
    links: list[NavLink] = Field(default_factory=list)
    account: AccountMenu | None = None
