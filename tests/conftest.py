"""
Shared pytest fixtures.

All tests run with ``USE_SQLITE=true`` (in-memory) and file logging off, so
no real database server or log directory is needed.  Unit tests use mocked
repositories; the end-to-end API tests use the in-memory SQLite engine.
"""

import os

os.environ.setdefault("USE_SQLITE", "true")
os.environ.setdefault("SQLITE_PATH", "")
os.environ.setdefault("LOG_TO_FILE", "false")

from datetime import datetime, timezone  # noqa: E402
from typing import Any, Dict, Optional  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402

from app.core.resilience import db_circuit_breaker  # noqa: E402
from app.models.post import Post  # noqa: E402
from app.models.user import User  # noqa: E402

# ────────────────────────────────────────────────────────────────────────────
# Factory helpers — create domain objects with sensible defaults
# ────────────────────────────────────────────────────────────────────────────

USER_ID = 1
USER_ID_2 = 2
POST_ID = 10

CREATED_AT = datetime(2024, 12, 10, 9, 0, 0, tzinfo=timezone.utc)


def make_user(
    *,
    id: int = USER_ID,
    username: str = "johndoe",
    email: str = "john@example.com",
    created_at: Optional[datetime] = None,
) -> User:
    """Create a User domain object with sensible test defaults."""
    return User(
        id=id,
        username=username,
        email=email,
        created_at=created_at or CREATED_AT,
    )


def make_post(
    *,
    id: int = POST_ID,
    title: str = "A first post",
    content: str = "Some content that is long enough.",
    author_id: int = USER_ID,
    metadata: Optional[Dict[str, Any]] = None,
    published: bool = False,
    created_at: Optional[datetime] = None,
    updated_at: Optional[datetime] = None,
) -> Post:
    """Create a Post domain object with sensible test defaults."""
    return Post(
        id=id,
        title=title,
        content=content,
        author_id=author_id,
        post_metadata=metadata if metadata is not None else {"tags": []},
        published=published,
        created_at=created_at or CREATED_AT,
        updated_at=updated_at,
    )


# ────────────────────────────────────────────────────────────────────────────
# Pytest fixtures
# ────────────────────────────────────────────────────────────────────────────


@pytest.fixture()
def mock_db():
    """A mocked AsyncSession that tracks add/commit/refresh/rollback calls."""
    session = AsyncMock()
    session.add = MagicMock()
    session.commit = AsyncMock()
    session.refresh = AsyncMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.merge = AsyncMock()
    return session


@pytest.fixture(autouse=True)
def _reset_circuit_breaker():
    """The database circuit breaker is process-global; start every test CLOSED."""
    db_circuit_breaker.reset()
    yield
    db_circuit_breaker.reset()
