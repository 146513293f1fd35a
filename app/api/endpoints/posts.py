"""
Post API endpoints.

- GET     /posts            — List posts, newest first (paginated)
- GET     /posts/published  — List published posts (paginated)
- GET     /posts/{id}       — Fetch one post with its author and metadata
- POST    /posts            — Create a post
- PUT     /posts/{id}       — Partially update a post
- DELETE  /posts/{id}       — Delete a post
"""

from fastapi import APIRouter, Depends
from starlette.responses import Response

from app.api.deps import (
    body_openapi,
    get_post_service,
    path_id,
    query_openapi,
    validated_body,
    validated_query,
)
from app.schemas.common import ErrorResponse, ValidationErrorResponse
from app.schemas.envelope import DataResponse, PaginatedResponse, envelope, no_content, paginated
from app.schemas.pagination import Page, PaginationQuery
from app.schemas.post import (
    CreatePostDto,
    PostListItemResponse,
    PostResponse,
    UpdatePostDto,
    to_post_list_item,
    to_post_response,
)
from app.services.post_service import PostService, PostWithAuthor

router = APIRouter()

NOT_FOUND = {404: {"model": ErrorResponse, "description": "Post not found"}}
BAD_INPUT = {
    400: {"model": ValidationErrorResponse, "description": "Malformed request"},
    422: {"model": ValidationErrorResponse, "description": "Constraint violations"},
}


def _list_page(
    page: Page[PostWithAuthor], query: PaginationQuery
) -> PaginatedResponse[PostListItemResponse]:
    items = [to_post_list_item(post, author) for post, author in page.items]
    return paginated(items, page.total, query.page, query.per_page)


@router.get(
    "",
    response_model=PaginatedResponse[PostListItemResponse],
    summary="List posts",
    description="Returns one page of posts, newest first, with a content excerpt.",
    responses=BAD_INPUT,
    openapi_extra=query_openapi(PaginationQuery),
)
async def list_posts(
    query: PaginationQuery = Depends(validated_query(PaginationQuery)),
    service: PostService = Depends(get_post_service),
) -> PaginatedResponse[PostListItemResponse]:
    return _list_page(await service.list_posts(query), query)


@router.get(
    "/published",
    response_model=PaginatedResponse[PostListItemResponse],
    summary="List published posts",
    responses=BAD_INPUT,
    openapi_extra=query_openapi(PaginationQuery),
)
async def list_published_posts(
    query: PaginationQuery = Depends(validated_query(PaginationQuery)),
    service: PostService = Depends(get_post_service),
) -> PaginatedResponse[PostListItemResponse]:
    return _list_page(await service.list_published(query), query)


@router.get(
    "/{post_id}",
    response_model=DataResponse[PostResponse],
    summary="Get a post",
    responses=NOT_FOUND,
)
async def get_post(
    post_id: int = path_id("Post id"),
    service: PostService = Depends(get_post_service),
) -> DataResponse[PostResponse]:
    post, author = await service.get_post(post_id)
    return envelope(to_post_response(post, author))


@router.post(
    "",
    response_model=DataResponse[PostResponse],
    status_code=201,
    summary="Create a post",
    description=(
        "Creates a post for an existing user.  ``user_id`` is accepted in "
        "place of ``author_id``.  A 404 is returned if the author does not exist."
    ),
    responses={
        **BAD_INPUT,
        404: {"model": ErrorResponse, "description": "Author not found"},
    },
    openapi_extra=body_openapi(CreatePostDto),
)
async def create_post(
    post_in: CreatePostDto = Depends(validated_body(CreatePostDto)),
    service: PostService = Depends(get_post_service),
) -> DataResponse[PostResponse]:
    post, author = await service.create_post(post_in)
    return envelope(to_post_response(post, author))


@router.put(
    "/{post_id}",
    response_model=DataResponse[PostResponse],
    summary="Update a post",
    description="Partial update: omitted fields keep their current value.",
    responses={**NOT_FOUND, **BAD_INPUT},
    openapi_extra=body_openapi(UpdatePostDto),
)
async def update_post(
    post_id: int = path_id("Post id"),
    post_in: UpdatePostDto = Depends(validated_body(UpdatePostDto)),
    service: PostService = Depends(get_post_service),
) -> DataResponse[PostResponse]:
    post, author = await service.update_post(post_id, post_in)
    return envelope(to_post_response(post, author))


@router.delete(
    "/{post_id}",
    status_code=204,
    response_class=Response,
    summary="Delete a post",
    responses=NOT_FOUND,
)
async def delete_post(
    post_id: int = path_id("Post id"),
    service: PostService = Depends(get_post_service),
) -> Response:
    await service.delete_post(post_id)
    return no_content()
