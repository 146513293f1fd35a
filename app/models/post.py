"""
Post domain model.

Nested post data (tags, SEO metadata, display settings) is stored as a
single JSON document in the ``metadata`` column.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column, DateTime, Text
from sqlmodel import Field, SQLModel


class Post(SQLModel, table=True):
    """
    SQLModel / SQLAlchemy table definition for posts.

    - ``author_id`` references ``users.id`` with ``ON DELETE CASCADE``:
      deleting a user removes their posts.
    - The JSON column is named ``metadata`` in the database but exposed as
      ``post_metadata`` because ``metadata`` is reserved on declarative models.
    """

    __tablename__ = "posts"  # type: ignore[assignment]

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=255)
    content: str = Field(sa_type=Text)  # type: ignore[arg-type]
    author_id: int = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    post_metadata: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column("metadata", JSON, nullable=False),
    )
    published: bool = Field(default=False)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
        index=True,
    )
    updated_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )

    def __repr__(self) -> str:
        return f"<Post id={self.id} title='{self.title}' author={self.author_id}>"
