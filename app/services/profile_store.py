"""Profile store accessor over the profiles table."""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, Protocol

import structlog
from pydantic import ValidationError
from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ProfileConflictError, ProfileNotFoundError, StoreError
from app.models.profiles import profiles
from app.schemas.profiles import Profile, ProfileCreate

logger = structlog.get_logger(__name__)

# Columns an update may touch; id is immutable and updated_at is store-managed
UPDATABLE_FIELDS = frozenset({"full_name", "avatar_url", "role"})
ORDERABLE_FIELDS = frozenset({"id", "full_name", "role", "updated_at"})


class ProfileStore(Protocol):
    """Row-oriented access to profiles."""

    async def get_by_id(self, profile_id: str) -> Profile: ...

    async def insert(self, profile: ProfileCreate) -> Profile: ...

    async def update(self, profile_id: str, fields: Mapping[str, Any]) -> Profile: ...

    async def list_all(self, order_by: str = "updated_at", descending: bool = True) -> list[Profile]: ...

    async def count(self) -> int: ...


def _to_profile(row: Mapping[str, Any]) -> Profile:
    """Validate a database row into a Profile."""
    try:
        return Profile.model_validate(dict(row))
    except ValidationError as e:
        raise StoreError(f"Malformed profile row: {e.error_count()} invalid field(s)") from e


class SqlProfileStore:
    """Profile store backed by a SQLAlchemy async session."""

    def __init__(self, db: AsyncSession):
        """Initialize store with a database session."""
        self.db = db

    async def get_by_id(self, profile_id: str) -> Profile:
        """
        Get a profile by id.

        Raises:
            ProfileNotFoundError: If no row has this id
            StoreError: If the query fails or the row is malformed
        """
        query = select(profiles).where(profiles.c.id == profile_id)
        try:
            result = await self.db.execute(query)
            row = result.mappings().first()
        except SQLAlchemyError as e:
            raise StoreError("Failed to read profile") from e

        if row is None:
            raise ProfileNotFoundError(profile_id)

        return _to_profile(row)

    async def insert(self, profile: ProfileCreate) -> Profile:
        """
        Insert a new profile and return the stored row.

        Raises:
            ProfileConflictError: If a profile with the same id exists
            StoreError: If the insert fails for any other reason
        """
        query = (
            profiles.insert()
            .values(
                id=profile.id,
                full_name=profile.full_name,
                avatar_url=profile.avatar_url,
                role=profile.role.value,
                updated_at=profile.updated_at,
            )
            .returning(profiles)
        )

        try:
            result = await self.db.execute(query)
            row = result.mappings().first()
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ProfileConflictError(profile.id) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError("Failed to create profile") from e

        if row is None:
            raise StoreError("Failed to create profile")

        return _to_profile(row)

    async def update(self, profile_id: str, fields: Mapping[str, Any]) -> Profile:
        """
        Apply a partial update; the last write wins.

        ``updated_at`` is set to the current time unless the stored value is
        already later, so it never moves backwards.

        Raises:
            ProfileNotFoundError: If no row has this id
            StoreError: If the update fails
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update profile fields: {sorted(unknown)}")

        values = {key: getattr(value, "value", value) for key, value in fields.items()}
        now = datetime.now(UTC)
        values["updated_at"] = case(
            (profiles.c.updated_at > now, profiles.c.updated_at),
            else_=now,
        )

        query = (
            update(profiles).where(profiles.c.id == profile_id).values(**values).returning(profiles)
        )

        try:
            result = await self.db.execute(query)
            row = result.mappings().first()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError("Failed to update profile") from e

        if row is None:
            raise ProfileNotFoundError(profile_id)

        return _to_profile(row)

    async def list_all(self, order_by: str = "updated_at", descending: bool = True) -> list[Profile]:
        """List every profile in the given order."""
        if order_by not in ORDERABLE_FIELDS:
            raise ValueError(f"Cannot order profiles by {order_by!r}")

        column = profiles.c[order_by]
        query = select(profiles).order_by(column.desc() if descending else column.asc())

        try:
            result = await self.db.execute(query)
            rows = result.mappings().all()
        except SQLAlchemyError as e:
            raise StoreError("Failed to list profiles") from e

        return [_to_profile(row) for row in rows]

    async def count(self) -> int:
        """Count stored profiles."""
        try:
            result = await self.db.execute(select(func.count()).select_from(profiles))
            return result.scalar_one()
        except SQLAlchemyError as e:
            raise StoreError("Failed to count profiles") from e
