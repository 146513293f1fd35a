"""
User service — business logic layer for user operations.

Handles duplicate-email detection before hitting the DB unique constraint,
so the common case is answered with a clean 409.

Race condition note:
    The pre-check ``get_by_email()`` followed by ``create()`` is subject to a
    TOCTOU race: two concurrent requests with the same email could both pass
    the check.  The unique index is the true safety net; the resulting
    ``IntegrityError`` is translated to :class:`AlreadyExists` as well.
"""

import logging

from sqlalchemy.exc import IntegrityError

from app.core.exceptions import AlreadyExists, NotFound
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.pagination import Page, PaginationQuery
from app.schemas.user import CreateUserDto, UpdateUserDto

logger = logging.getLogger(__name__)


def _duplicate_email(email: str) -> AlreadyExists:
    return AlreadyExists(f"A user with email '{email}' already exists")


class UserService:
    """Encapsulates CRUD + business rules for :class:`User`."""

    def __init__(self, user_repo: UserRepository):
        self._repo = user_repo

    # ── Queries ──

    async def list_users(self, query: PaginationQuery) -> Page[User]:
        """Return one page of users plus the total count."""
        users = await self._repo.get_all(query.offset(), query.limit())
        total = await self._repo.count()
        return Page(items=users, total=total)

    async def get_user(self, user_id: int) -> User:
        """Fetch a user by id; raises :class:`NotFound` if missing."""
        user = await self._repo.get(user_id)
        if user is None:
            logger.warning("User %s not found", user_id)
            raise NotFound("User", user_id)
        return user

    # ── Commands ──

    async def create_user(self, user_in: CreateUserDto) -> User:
        """
        Create a new user.

        Raises :class:`AlreadyExists` if the email is already registered,
        whether caught by the pre-check or by the unique index.
        """
        if await self._repo.get_by_email(user_in.email):
            raise _duplicate_email(user_in.email)

        user = User(username=user_in.username, email=user_in.email)
        try:
            created = await self._repo.create(user)
        except IntegrityError:
            await self._repo.db.rollback()
            logger.warning(
                "IntegrityError caught for duplicate email '%s' (TOCTOU race)",
                user_in.email,
            )
            raise _duplicate_email(user_in.email)

        logger.info("Created user %s (%s)", created.id, created.username)
        return created

    async def update_user(self, user_id: int, user_in: UpdateUserDto) -> User:
        """
        Apply a partial update.  Fields left ``None`` keep their stored value.

        Changing the email to one owned by another user raises
        :class:`AlreadyExists`.
        """
        user = await self.get_user(user_id)

        if user_in.email is not None and user_in.email != user.email:
            if await self._repo.get_by_email(user_in.email):
                raise _duplicate_email(user_in.email)
            user.email = user_in.email
        if user_in.username is not None:
            user.username = user_in.username

        try:
            updated = await self._repo.update(user)
        except IntegrityError:
            await self._repo.db.rollback()
            raise _duplicate_email(user.email)

        logger.info("Updated user %s", updated.id)
        return updated

    async def delete_user(self, user_id: int) -> None:
        """Delete a user and, through the foreign key cascade, their posts."""
        if not await self._repo.delete(user_id):
            logger.warning("User %s not found for deletion", user_id)
            raise NotFound("User", user_id)
        logger.info("Deleted user %s", user_id)
