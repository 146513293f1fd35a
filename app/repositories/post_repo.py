"""
Post repository — data-access layer for the ``posts`` table.

Posts are listed newest first; the id breaks ties between posts created
in the same instant so pages never overlap.
"""

from typing import Any, List, Sequence

from app.models.post import Post
from app.repositories.base import BaseRepository


class PostRepository(BaseRepository[Post]):
    """Concrete repository for :class:`Post` entities."""

    def _order_by(self) -> Sequence[Any]:
        return [Post.created_at.desc(), Post.id.desc()]

    async def get_published(self, skip: int = 0, limit: int = 100) -> List[Post]:
        """One page of published posts."""
        return await self.get_all(skip, limit, Post.published.is_(True))

    async def count_published(self) -> int:
        return await self.count(Post.published.is_(True))

    async def get_by_author(self, author_id: int) -> List[Post]:
        """Every post written by ``author_id`` (unpaginated)."""
        return await self.get_all(0, None, Post.author_id == author_id)
