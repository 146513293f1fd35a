"""
Post service — business logic layer for post operations.

Every post returned by this service is paired with its author, because
both response shapes embed the author.  Authors for a page of posts are
fetched in a single batch query rather than one query per post.
"""

import logging
from datetime import datetime, timezone
from typing import List, NamedTuple

from sqlalchemy.exc import IntegrityError

from app.core.exceptions import NotFound
from app.models.post import Post
from app.models.user import User
from app.repositories.post_repo import PostRepository
from app.repositories.user_repo import UserRepository
from app.schemas.pagination import Page, PaginationQuery
from app.schemas.post import CreatePostDto, UpdatePostDto, metadata_document

logger = logging.getLogger(__name__)


class PostWithAuthor(NamedTuple):
    post: Post
    author: User


class PostService:
    """
    Encapsulates CRUD + business rules for :class:`Post`.

    Requires the user repository as well: a post can only be written by an
    existing user, and every read attaches the author.
    """

    def __init__(self, post_repo: PostRepository, user_repo: UserRepository):
        self._post_repo = post_repo
        self._user_repo = user_repo

    async def _with_authors(self, posts: List[Post]) -> List[PostWithAuthor]:
        authors = await self._user_repo.get_many(post.author_id for post in posts)
        paired = []
        for post in posts:
            author = authors.get(post.author_id)
            if author is None:
                # Author removed between the two queries; its posts go with it.
                logger.warning("Post %s has no author %s; skipping", post.id, post.author_id)
                continue
            paired.append(PostWithAuthor(post, author))
        return paired

    async def _author(self, author_id: int) -> User:
        author = await self._user_repo.get(author_id)
        if author is None:
            logger.warning("Author %s not found", author_id)
            raise NotFound("User", author_id)
        return author

    # ── Queries ──

    async def list_posts(self, query: PaginationQuery) -> Page[PostWithAuthor]:
        """Return one page of posts (newest first) plus the total count."""
        posts = await self._post_repo.get_all(query.offset(), query.limit())
        total = await self._post_repo.count()
        return Page(items=await self._with_authors(posts), total=total)

    async def list_published(self, query: PaginationQuery) -> Page[PostWithAuthor]:
        """Like :meth:`list_posts`, restricted to published posts."""
        posts = await self._post_repo.get_published(query.offset(), query.limit())
        total = await self._post_repo.count_published()
        return Page(items=await self._with_authors(posts), total=total)

    async def list_by_author(self, author_id: int) -> List[PostWithAuthor]:
        """
        All posts written by ``author_id``.

        The user is validated first so the caller gets a 404 instead of an
        empty list when the user does not exist.
        """
        author = await self._author(author_id)
        posts = await self._post_repo.get_by_author(author_id)
        return [PostWithAuthor(post, author) for post in posts]

    async def get_post(self, post_id: int) -> PostWithAuthor:
        """Fetch a post by id; raises :class:`NotFound` if missing."""
        post = await self._post_repo.get(post_id)
        if post is None:
            logger.warning("Post %s not found", post_id)
            raise NotFound("Post", post_id)
        return PostWithAuthor(post, await self._author(post.author_id))

    # ── Commands ──

    async def create_post(self, post_in: CreatePostDto) -> PostWithAuthor:
        """
        Create a new post.

        The author must exist → :class:`NotFound` if not.  A foreign-key
        violation on insert (author deleted after the check) is reported
        the same way.
        """
        author = await self._author(post_in.author_id)

        post = Post(
            title=post_in.title,
            content=post_in.content,
            author_id=post_in.author_id,
            post_metadata=metadata_document(post_in.metadata),
            published=post_in.published,
        )
        try:
            created = await self._post_repo.create(post)
        except IntegrityError as exc:
            await self._post_repo.db.rollback()
            logger.warning(
                "IntegrityError creating post for author %s: %s", post_in.author_id, exc
            )
            raise NotFound("User", post_in.author_id)

        logger.info("Created post %s by user %s", created.id, created.author_id)
        return PostWithAuthor(created, author)

    async def update_post(self, post_id: int, post_in: UpdatePostDto) -> PostWithAuthor:
        """Apply a partial update.  Fields left ``None`` keep their stored value."""
        post, author = await self.get_post(post_id)

        if post_in.title is not None:
            post.title = post_in.title
        if post_in.content is not None:
            post.content = post_in.content
        if post_in.metadata is not None:
            post.post_metadata = metadata_document(post_in.metadata)
        if post_in.published is not None:
            post.published = post_in.published
        post.updated_at = datetime.now(timezone.utc)

        updated = await self._post_repo.update(post)
        logger.info("Updated post %s", updated.id)
        return PostWithAuthor(updated, author)

    async def delete_post(self, post_id: int) -> None:
        if not await self._post_repo.delete(post_id):
            logger.warning("Post %s not found for deletion", post_id)
            raise NotFound("Post", post_id)
        logger.info("Deleted post %s", post_id)
