"""
User repository — data-access layer for the ``users`` table.

Adds the e-mail look-up used for duplicate detection and a batch fetch
used to attach authors to a page of posts.
"""

from typing import Dict, Iterable, Optional

from sqlalchemy import select

from app.models.user import User
from app.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Concrete repository for :class:`User` entities."""

    async def get_by_email(self, email: str) -> Optional[User]:
        """Return the user registered with ``email``, or ``None``."""

        async def _get_by_email() -> Optional[User]:
            result = await self.db.execute(select(User).where(User.email == email))
            return result.scalars().first()

        return await self._execute("get_by_email", _get_by_email)

    async def get_many(self, ids: Iterable[int]) -> Dict[int, User]:
        """Fetch several users in one query, keyed by id."""
        wanted = set(ids)
        if not wanted:
            return {}

        async def _get_many() -> Dict[int, User]:
            result = await self.db.execute(select(User).where(User.id.in_(wanted)))
            return {user.id: user for user in result.scalars().all()}

        return await self._execute("get_many", _get_many)
