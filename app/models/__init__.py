"""Database models."""

from app.models.profiles import metadata, profiles

__all__ = [
    "metadata",
    "profiles",
]
