"""Profile model definition using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    MetaData,
    Table,
    Text,
    text,
)

metadata = MetaData()

profiles = Table(
    "profiles",
    metadata,
    # Identity provider uid (SOURCE OF TRUTH for ownership)
    Column("id", Text, primary_key=True),
    # Display metadata (owner editable)
    Column("full_name", Text),
    Column("avatar_url", Text),
    # Access role (admin editable)
    Column("role", Text, nullable=False, server_default=text("'user'")),
    # Audit
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("role IN ('user', 'admin', 'moderator')", name="ck_profiles_role"),
)
