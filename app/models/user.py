"""
User domain model.

Represents an author account persisted in the ``users`` table.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """
    SQLModel / SQLAlchemy table definition for users.

    ``email`` carries a unique index; duplicates are rejected at DB level
    even when two requests race past the service's pre-check.
    """

    __tablename__ = "users"  # type: ignore[assignment]

    __table_args__ = (
        CheckConstraint("length(username) > 0", name="ck_users_username_not_empty"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(max_length=255)
    email: str = Field(unique=True, index=True, max_length=255)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} username='{self.username}'>"
