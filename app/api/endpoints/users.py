"""
User API endpoints.

- GET     /users             — List users (paginated)
- GET     /users/{id}        — Fetch one user
- POST    /users             — Create a user
- PUT     /users/{id}        — Partially update a user
- DELETE  /users/{id}        — Delete a user and their posts
- GET     /users/{id}/posts  — List every post written by a user
"""

from typing import List

from fastapi import APIRouter, Depends
from starlette.responses import Response

from app.api.deps import (
    body_openapi,
    get_post_service,
    get_user_service,
    path_id,
    query_openapi,
    validated_body,
    validated_query,
)
from app.schemas.common import ErrorResponse, ValidationErrorResponse
from app.schemas.envelope import DataResponse, PaginatedResponse, envelope, no_content, paginated
from app.schemas.pagination import PaginationQuery
from app.schemas.post import PostListItemResponse, to_post_list_item
from app.schemas.user import CreateUserDto, UpdateUserDto, UserResponse, to_user_response
from app.services.post_service import PostService
from app.services.user_service import UserService

router = APIRouter()

NOT_FOUND = {404: {"model": ErrorResponse, "description": "User not found"}}
BAD_INPUT = {
    400: {"model": ValidationErrorResponse, "description": "Malformed request"},
    422: {"model": ValidationErrorResponse, "description": "Constraint violations"},
}


@router.get(
    "",
    response_model=PaginatedResponse[UserResponse],
    summary="List users",
    description="Returns one page of users ordered by id.",
    responses=BAD_INPUT,
    openapi_extra=query_openapi(PaginationQuery),
)
async def list_users(
    query: PaginationQuery = Depends(validated_query(PaginationQuery)),
    service: UserService = Depends(get_user_service),
) -> PaginatedResponse[UserResponse]:
    page = await service.list_users(query)
    return paginated(
        [to_user_response(user) for user in page.items], page.total, query.page, query.per_page
    )


@router.get(
    "/{user_id}",
    response_model=DataResponse[UserResponse],
    summary="Get a user",
    responses=NOT_FOUND,
)
async def get_user(
    user_id: int = path_id("User id"),
    service: UserService = Depends(get_user_service),
) -> DataResponse[UserResponse]:
    return envelope(to_user_response(await service.get_user(user_id)))


@router.post(
    "",
    response_model=DataResponse[UserResponse],
    status_code=201,
    summary="Create a user",
    description=(
        "Registers a new user.  The email must be unique; a 409 Conflict "
        "is returned if the email is already in use."
    ),
    responses={
        **BAD_INPUT,
        409: {"model": ErrorResponse, "description": "Email already registered"},
    },
    openapi_extra=body_openapi(CreateUserDto),
)
async def create_user(
    user_in: CreateUserDto = Depends(validated_body(CreateUserDto)),
    service: UserService = Depends(get_user_service),
) -> DataResponse[UserResponse]:
    return envelope(to_user_response(await service.create_user(user_in)))


@router.put(
    "/{user_id}",
    response_model=DataResponse[UserResponse],
    summary="Update a user",
    description="Partial update: omitted fields keep their current value.",
    responses={
        **NOT_FOUND,
        **BAD_INPUT,
        409: {"model": ErrorResponse, "description": "Email already registered"},
    },
    openapi_extra=body_openapi(UpdateUserDto),
)
async def update_user(
    user_id: int = path_id("User id"),
    user_in: UpdateUserDto = Depends(validated_body(UpdateUserDto)),
    service: UserService = Depends(get_user_service),
) -> DataResponse[UserResponse]:
    return envelope(to_user_response(await service.update_user(user_id, user_in)))


@router.delete(
    "/{user_id}",
    status_code=204,
    response_class=Response,
    summary="Delete a user",
    description="Deletes the user; their posts are removed with them.",
    responses=NOT_FOUND,
)
async def delete_user(
    user_id: int = path_id("User id"),
    service: UserService = Depends(get_user_service),
) -> Response:
    await service.delete_user(user_id)
    return no_content()


@router.get(
    "/{user_id}/posts",
    response_model=DataResponse[List[PostListItemResponse]],
    summary="List a user's posts",
    responses=NOT_FOUND,
)
async def list_user_posts(
    user_id: int = path_id("User id"),
    service: PostService = Depends(get_post_service),
) -> DataResponse[List[PostListItemResponse]]:
    posts = await service.list_by_author(user_id)
    return envelope([to_post_list_item(post, author) for post, author in posts])
