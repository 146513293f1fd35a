"""
Post request shapes, response schemas and entity → response mapping.

A post carries nested input (tags, SEO metadata, display settings).  Nested
shapes are declared with the ``nested`` rule so their violations surface
under dotted paths such as ``metadata.tags[1].color``.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationError

from app.models.post import Post
from app.models.user import User
from app.validation import Int32, Shape, constraint

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 100

TITLE_LENGTH = "Title must be between 3 and 255 characters"
CONTENT_LENGTH = "Content must be at least 10 characters"


# ────────────────────────────────────────────────────────────────────────────
# Input shapes
# ────────────────────────────────────────────────────────────────────────────


class CreateTagDto(Shape):
    name: str = Field(..., examples=["python"])
    color: Optional[str] = Field(default=None, examples=["#3776AB"])

    __constraints__ = (
        constraint("name", "length", "Tag name must be between 1 and 50 characters", min=1, max=50),
        constraint("color", "length", "Color must not exceed 7 characters", max=7),
        constraint(
            "color",
            "pattern",
            "Color must be a hex code (e.g. #FF0000)",
            regex=r"#[0-9A-Fa-f]{6}",
        ),
    )


class CreateSeoMetadataDto(Shape):
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    keywords: Optional[List[str]] = None

    __constraints__ = (
        constraint("meta_title", "length", "Meta title must not exceed 70 characters", max=70),
        constraint(
            "meta_description",
            "length",
            "Meta description must not exceed 160 characters",
            max=160,
        ),
        constraint("keywords", "length", "At most 10 keywords are allowed", max=10),
    )


class CreatePostSettingsDto(Shape):
    allow_comments: bool = False
    featured: bool = False
    reading_time_minutes: Optional[int] = None

    __constraints__ = (
        constraint(
            "reading_time_minutes",
            "range",
            "Reading time must be between 1 and 60 minutes",
            min=1,
            max=60,
        ),
    )


class CreatePostMetadataDto(Shape):
    tags: Optional[List[CreateTagDto]] = None
    seo: Optional[CreateSeoMetadataDto] = None
    settings: Optional[CreatePostSettingsDto] = None

    __constraints__ = (
        constraint("tags", "length", "At most 10 tags are allowed", max=10),
        constraint("tags", "nested", "Invalid tag"),
        constraint("seo", "nested", "Invalid SEO metadata"),
        constraint("settings", "nested", "Invalid settings"),
    )


class CreatePostDto(Shape):
    """Body of ``POST /posts``.  ``user_id`` is accepted as an alias of ``author_id``."""

    title: str = Field(..., examples=["Getting started with FastAPI"])
    content: str = Field(..., examples=["FastAPI builds on Starlette and pydantic..."])
    author_id: Int32 = Field(
        ...,
        validation_alias=AliasChoices("author_id", "user_id"),
        examples=[1],
    )
    metadata: Optional[CreatePostMetadataDto] = None
    published: bool = False

    __constraints__ = (
        constraint("title", "length", TITLE_LENGTH, min=3, max=255),
        constraint("content", "length", CONTENT_LENGTH, min=10),
        constraint("author_id", "range", "Author id must be positive", min=1),
        constraint("metadata", "nested", "Invalid metadata"),
    )


class UpdatePostDto(Shape):
    """
    Body of ``PUT /posts/{id}``.

    Partial update: omitted (or null) fields keep their stored value and
    are not validated.  A supplied ``metadata`` replaces the stored one.
    """

    title: Optional[str] = None
    content: Optional[str] = None
    metadata: Optional[CreatePostMetadataDto] = None
    published: Optional[bool] = None

    __constraints__ = (
        constraint("title", "length", TITLE_LENGTH, min=3, max=255),
        constraint("content", "length", CONTENT_LENGTH, min=10),
        constraint("metadata", "nested", "Invalid metadata"),
    )


# ────────────────────────────────────────────────────────────────────────────
# Response schemas
# ────────────────────────────────────────────────────────────────────────────


class TagResponse(BaseModel):
    name: str
    color: Optional[str] = None


class SeoMetadataResponse(BaseModel):
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)


class PostSettingsResponse(BaseModel):
    allow_comments: bool = False
    featured: bool = False
    reading_time_minutes: Optional[int] = None


class PostMetadataResponse(BaseModel):
    tags: List[TagResponse] = Field(default_factory=list)
    seo: Optional[SeoMetadataResponse] = None
    settings: Optional[PostSettingsResponse] = None


class AuthorResponse(BaseModel):
    id: int
    username: str
    email: str


class PostResponse(BaseModel):
    """Full post, returned by the single-post endpoints."""

    id: int
    title: str
    content: str
    published: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    author: AuthorResponse
    metadata: PostMetadataResponse


class PostListItemResponse(BaseModel):
    """Condensed post used in lists: an excerpt instead of the full content."""

    id: int
    title: str
    excerpt: str
    published: bool
    created_at: datetime
    author: AuthorResponse
    tags: List[TagResponse]


# ────────────────────────────────────────────────────────────────────────────
# Mapping
# ────────────────────────────────────────────────────────────────────────────


def metadata_document(dto: Optional[CreatePostMetadataDto]) -> Dict[str, Any]:
    """Convert validated metadata input into the JSON document stored on the post."""
    if dto is None:
        return {"tags": [], "seo": None, "settings": None}
    seo = None
    if dto.seo is not None:
        seo = {
            "meta_title": dto.seo.meta_title,
            "meta_description": dto.seo.meta_description,
            "keywords": list(dto.seo.keywords or []),
        }
    settings = None
    if dto.settings is not None:
        settings = {
            "allow_comments": dto.settings.allow_comments,
            "featured": dto.settings.featured,
            "reading_time_minutes": dto.settings.reading_time_minutes,
        }
    return {
        "tags": [{"name": tag.name, "color": tag.color} for tag in dto.tags or []],
        "seo": seo,
        "settings": settings,
    }


def read_metadata(post: Post) -> PostMetadataResponse:
    """Parse the stored JSON document; an unreadable document reads as empty."""
    try:
        return PostMetadataResponse.model_validate(post.post_metadata or {})
    except ValidationError:
        logger.warning("Post %s has unreadable metadata; returning empty metadata", post.id)
        return PostMetadataResponse()


def excerpt(content: str) -> str:
    if len(content) > EXCERPT_LENGTH:
        return f"{content[:EXCERPT_LENGTH]}..."
    return content


def to_author_response(user: User) -> AuthorResponse:
    return AuthorResponse(id=user.id, username=user.username, email=user.email)


def to_post_response(post: Post, author: User) -> PostResponse:
    return PostResponse(
        id=post.id,
        title=post.title,
        content=post.content,
        published=post.published,
        created_at=post.created_at,
        updated_at=post.updated_at,
        author=to_author_response(author),
        metadata=read_metadata(post),
    )


def to_post_list_item(post: Post, author: User) -> PostListItemResponse:
    return PostListItemResponse(
        id=post.id,
        title=post.title,
        excerpt=excerpt(post.content),
        published=post.published,
        created_at=post.created_at,
        author=to_author_response(author),
        tags=read_metadata(post).tags,
    )
