"""
Unit tests for PostService — business logic layer.

All repository calls are mocked.  Tests cover:
- listing (all / published / by author) with batch author resolution
- get_post: found / not found
- create_post: success, missing author, FK race
- update_post: partial update, metadata replacement, updated_at
- delete_post: success / not found
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import NotFound
from app.schemas.pagination import PaginationQuery
from app.schemas.post import (
    CreatePostDto,
    CreatePostMetadataDto,
    CreateTagDto,
    UpdatePostDto,
)
from app.services.post_service import PostService, PostWithAuthor

from .conftest import POST_ID, USER_ID, USER_ID_2, make_post, make_user

# ────────────────────────────────────────────────────────────────────────────
# Fixtures
# ────────────────────────────────────────────────────────────────────────────


@pytest.fixture()
def post_repo():
    repo = AsyncMock()
    repo.db = AsyncMock()
    return repo


@pytest.fixture()
def user_repo():
    return AsyncMock()


@pytest.fixture()
def post_service(post_repo, user_repo):
    return PostService(post_repo, user_repo)


def _create_dto(**overrides):
    fields = dict(
        title="A first post",
        content="Some content that is long enough.",
        author_id=USER_ID,
    )
    fields.update(overrides)
    return CreatePostDto.model_validate(fields)


# ────────────────────────────────────────────────────────────────────────────
# Queries
# ────────────────────────────────────────────────────────────────────────────


class TestListPosts:
    @pytest.mark.asyncio
    async def test_attaches_authors_in_one_batch(self, post_service, post_repo, user_repo):
        posts = [
            make_post(id=1, author_id=USER_ID),
            make_post(id=2, author_id=USER_ID_2),
            make_post(id=3, author_id=USER_ID),
        ]
        post_repo.get_all.return_value = posts
        post_repo.count.return_value = 3
        user_repo.get_many.return_value = {
            USER_ID: make_user(),
            USER_ID_2: make_user(id=USER_ID_2, username="jane", email="jane@example.com"),
        }

        page = await post_service.list_posts(PaginationQuery())

        user_repo.get_many.assert_awaited_once()
        assert page.total == 3
        assert [item.author.id for item in page.items] == [USER_ID, USER_ID_2, USER_ID]
        post_repo.get_all.assert_awaited_once_with(0, 10)

    @pytest.mark.asyncio
    async def test_skips_posts_whose_author_vanished(self, post_service, post_repo, user_repo):
        post_repo.get_all.return_value = [make_post(id=1), make_post(id=2, author_id=99)]
        post_repo.count.return_value = 2
        user_repo.get_many.return_value = {USER_ID: make_user()}

        page = await post_service.list_posts(PaginationQuery())

        assert [item.post.id for item in page.items] == [1]

    @pytest.mark.asyncio
    async def test_published_only(self, post_service, post_repo, user_repo):
        post_repo.get_published.return_value = [make_post(published=True)]
        post_repo.count_published.return_value = 1
        user_repo.get_many.return_value = {USER_ID: make_user()}

        page = await post_service.list_published(PaginationQuery(page=3, per_page=2))

        post_repo.get_published.assert_awaited_once_with(4, 2)
        post_repo.get_all.assert_not_awaited()
        assert page.total == 1


class TestListByAuthor:
    @pytest.mark.asyncio
    async def test_returns_posts(self, post_service, post_repo, user_repo):
        user_repo.get.return_value = make_user()
        post_repo.get_by_author.return_value = [make_post(id=1), make_post(id=2)]

        posts = await post_service.list_by_author(USER_ID)

        assert len(posts) == 2
        assert all(isinstance(item, PostWithAuthor) for item in posts)

    @pytest.mark.asyncio
    async def test_unknown_author(self, post_service, post_repo, user_repo):
        user_repo.get.return_value = None
        with pytest.raises(NotFound):
            await post_service.list_by_author(999)
        post_repo.get_by_author.assert_not_awaited()


class TestGetPost:
    @pytest.mark.asyncio
    async def test_found(self, post_service, post_repo, user_repo):
        post_repo.get.return_value = make_post()
        user_repo.get.return_value = make_user()

        post, author = await post_service.get_post(POST_ID)

        assert post.id == POST_ID
        assert author.id == USER_ID

    @pytest.mark.asyncio
    async def test_not_found(self, post_service, post_repo):
        post_repo.get.return_value = None
        with pytest.raises(NotFound):
            await post_service.get_post(999)


# ────────────────────────────────────────────────────────────────────────────
# Commands
# ────────────────────────────────────────────────────────────────────────────


class TestCreatePost:
    @pytest.mark.asyncio
    async def test_success(self, post_service, post_repo, user_repo):
        user_repo.get.return_value = make_user()
        post_repo.create.side_effect = lambda post: post

        dto = _create_dto(
            metadata={"tags": [{"name": "python", "color": "#3776AB"}]}, published=True
        )
        post, author = await post_service.create_post(dto)

        assert author.id == USER_ID
        assert post.published is True
        assert post.post_metadata == {
            "tags": [{"name": "python", "color": "#3776AB"}],
            "seo": None,
            "settings": None,
        }

    @pytest.mark.asyncio
    async def test_missing_author(self, post_service, post_repo, user_repo):
        user_repo.get.return_value = None
        with pytest.raises(NotFound):
            await post_service.create_post(_create_dto(author_id=999))
        post_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_foreign_key_race(self, post_service, post_repo, user_repo):
        user_repo.get.return_value = make_user()
        post_repo.create.side_effect = IntegrityError("INSERT", {}, Exception("fk"))

        with pytest.raises(NotFound):
            await post_service.create_post(_create_dto())

        post_repo.db.rollback.assert_awaited_once()


class TestUpdatePost:
    @pytest.mark.asyncio
    async def test_partial_update(self, post_service, post_repo, user_repo):
        post_repo.get.return_value = make_post(metadata={"tags": [{"name": "old"}]})
        user_repo.get.return_value = make_user()
        post_repo.update.side_effect = lambda post: post

        post, _ = await post_service.update_post(POST_ID, UpdatePostDto(title="New title"))

        assert post.title == "New title"
        assert post.content == "Some content that is long enough."
        assert post.post_metadata == {"tags": [{"name": "old"}]}
        assert post.updated_at is not None

    @pytest.mark.asyncio
    async def test_metadata_replaced(self, post_service, post_repo, user_repo):
        post_repo.get.return_value = make_post(metadata={"tags": [{"name": "old"}]})
        user_repo.get.return_value = make_user()
        post_repo.update.side_effect = lambda post: post

        metadata = CreatePostMetadataDto(tags=[CreateTagDto(name="new")])
        post, _ = await post_service.update_post(POST_ID, UpdatePostDto(metadata=metadata))

        assert post.post_metadata["tags"] == [{"name": "new", "color": None}]

    @pytest.mark.asyncio
    async def test_not_found(self, post_service, post_repo):
        post_repo.get.return_value = None
        with pytest.raises(NotFound):
            await post_service.update_post(999, UpdatePostDto(title="New title"))
        post_repo.update.assert_not_awaited()


class TestDeletePost:
    @pytest.mark.asyncio
    async def test_success(self, post_service, post_repo):
        post_repo.delete.return_value = True
        await post_service.delete_post(POST_ID)
        post_repo.delete.assert_awaited_once_with(POST_ID)

    @pytest.mark.asyncio
    async def test_not_found(self, post_service, post_repo):
        post_repo.delete.return_value = False
        with pytest.raises(NotFound):
            await post_service.delete_post(999)
