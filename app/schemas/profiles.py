"""Profile and identity schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class Role(str, Enum):
    """Access roles a profile can hold."""

    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"


class Identity(BaseModel):
    """Authenticated principal as reported by the identity provider."""

    id: str = Field(..., min_length=1, description="Identity provider user ID")
    email: EmailStr | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @property
    def full_name(self) -> str | None:
        """Display name carried in the provider metadata."""
        return self.metadata.get("full_name")

    @property
    def avatar_url(self) -> str | None:
        """Avatar URL carried in the provider metadata."""
        return self.metadata.get("avatar_url")


class ProfileBase(BaseModel):
    """Base profile schema with display fields."""

    full_name: str | None = None
    avatar_url: str | None = None


class ProfileCreate(ProfileBase):
    """Schema for provisioning a new profile."""

    id: str = Field(..., min_length=1)
    role: Role = Role.USER
    updated_at: datetime


class ProfileUpdate(BaseModel):
    """Schema for the owner's profile edits."""

    full_name: str = Field("", max_length=200)
    avatar_url: str = Field("", max_length=2048)

    @field_validator("avatar_url")
    @classmethod
    def validate_avatar_url(cls, v: str) -> str:
        """Avatar must be empty or an absolute http(s) URL."""
        if not v:
            return v
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("Avatar URL must be an absolute http or https URL")
        return v


class RoleUpdate(BaseModel):
    """Schema for an admin assigning a role."""

    role: Role


class Profile(ProfileBase):
    """Profile schema as stored in database."""

    id: str
    role: Role
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProfileResponse(BaseModel):
    """Profile page payload."""

    profile: Profile
    message: str | None = None
