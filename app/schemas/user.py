"""
User request shapes, response schemas and entity → response mapping.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.user import User
from app.validation import Shape, constraint

USERNAME_LENGTH = "Username must be between 3 and 50 characters"
EMAIL_FORMAT = "Invalid email format"
EMAIL_LENGTH = "Email must not exceed 255 characters"


class CreateUserDto(Shape):
    """Body of ``POST /users``."""

    username: str = Field(..., examples=["johndoe"])
    email: str = Field(..., examples=["john@example.com"])

    __constraints__ = (
        constraint("username", "length", USERNAME_LENGTH, min=3, max=50),
        constraint("email", "email", EMAIL_FORMAT),
        constraint("email", "length", EMAIL_LENGTH, max=255),
    )


class UpdateUserDto(Shape):
    """
    Body of ``PUT /users/{id}``.

    Partial update: omitted (or null) fields keep their stored value and
    are not validated.
    """

    username: Optional[str] = Field(default=None, examples=["johndoe_updated"])
    email: Optional[str] = Field(default=None, examples=["john.updated@example.com"])

    __constraints__ = (
        constraint("username", "length", USERNAME_LENGTH, min=3, max=50),
        constraint("email", "email", EMAIL_FORMAT),
        constraint("email", "length", EMAIL_LENGTH, max=255),
    )


class UserResponse(BaseModel):
    """Schema returned by all user endpoints."""

    id: int = Field(..., examples=[1])
    username: str = Field(..., examples=["johndoe"])
    email: str = Field(..., examples=["john@example.com"])
    created_at: datetime


def to_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        created_at=user.created_at,
    )
