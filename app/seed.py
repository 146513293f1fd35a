"""
Seed script — populates the database with sample data for development / demo.

Usage:
    python -m app.seed

The script is idempotent: it skips seeding when any user already exists.
"""

import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy import select

from app.core.logging import setup_logging
from app.db.session import AsyncSessionLocal, create_tables
from app.models.post import Post
from app.models.user import User

logger = logging.getLogger(__name__)

# ── Sample data ──

USERS = [
    User(username="user_1", email="user_1@example.com"),
    User(username="user_2", email="user_2@example.com"),
    User(username="user_3", email="user_3@example.com"),
    User(username="admin", email="admin@example.com"),
]

# (author index into USERS, post fields)
POSTS = [
    (
        3,
        dict(
            title="Welcome to the blog",
            content="This is the first post on the platform. Say hello in the comments!",
            published=True,
            post_metadata={
                "tags": [{"name": "announcement", "color": "#FF5733"}],
                "seo": {
                    "meta_title": "Welcome",
                    "meta_description": "The first post on the blog",
                    "keywords": ["welcome", "blog"],
                },
                "settings": {
                    "allow_comments": True,
                    "featured": True,
                    "reading_time_minutes": 1,
                },
            },
            created_at=datetime(2024, 12, 10, 9, 0, 0, tzinfo=timezone.utc),
        ),
    ),
    (
        0,
        dict(
            title="Async Python in practice",
            content=(
                "Coroutines, event loops and structured concurrency: a tour of "
                "what asyncio gives you and where the sharp edges are when you "
                "put an async database driver behind a web framework."
            ),
            published=True,
            post_metadata={
                "tags": [
                    {"name": "python", "color": "#3776AB"},
                    {"name": "asyncio", "color": None},
                ],
                "seo": None,
                "settings": {
                    "allow_comments": True,
                    "featured": False,
                    "reading_time_minutes": 8,
                },
            },
            created_at=datetime(2024, 12, 12, 14, 30, 0, tzinfo=timezone.utc),
        ),
    ),
    (
        1,
        dict(
            title="Draft: notes on pagination",
            content="Offset pagination is simple, but keyset pagination scales better.",
            published=False,
            post_metadata={"tags": [], "seo": None, "settings": None},
            created_at=datetime(2024, 12, 15, 18, 45, 0, tzinfo=timezone.utc),
        ),
    ),
]


async def seed() -> None:
    """Create tables and insert sample data if the database is empty."""
    await create_tables()

    async with AsyncSessionLocal() as session:
        result = await session.execute(select(User).limit(1))
        if result.scalars().first() is not None:
            logger.info("Database already contains data — skipping seed.")
            return

        session.add_all(USERS)
        await session.commit()

        # Posts need the generated user ids.
        for author_index, fields in POSTS:
            session.add(Post(author_id=USERS[author_index].id, **fields))
        await session.commit()

        logger.info("Seeded %d users, %d posts", len(USERS), len(POSTS))


if __name__ == "__main__":
    setup_logging()
    asyncio.run(seed())
