"""
Request dependencies shared by the endpoint modules.

- **Validated input**: ``validated_body(Shape)`` / ``validated_query(Shape)``
  run the extractor on the raw request and either hand the route a valid
  shape instance or raise the matching taxonomy error (400 / 422).
  Route handlers therefore only ever see valid input.
- **Services**: one service instance per request, wired to that
  request's database session.
"""

from typing import Any, Awaitable, Callable, Dict, List, Type

from fastapi import Depends, Path, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import MalformedInput, ValidationFailed
from app.db.session import get_db
from app.models.post import Post
from app.models.user import User
from app.repositories.post_repo import PostRepository
from app.repositories.user_repo import UserRepository
from app.services.post_service import PostService
from app.services.user_service import UserService
from app.validation import (
    INT32_MAX,
    INT32_MIN,
    Invalid,
    Malformed,
    Outcome,
    Shape,
    Valid,
    validate,
    validate_query,
)
from app.validation.extractor import ShapeT

SCHEMA_REF = "#/components/schemas/{model}"

# Shapes referenced from route docs; merged into the OpenAPI components.
documented_shapes: Dict[str, Type[Shape]] = {}


def unwrap(outcome: Outcome) -> Any:
    """Return the valid value or raise the taxonomy error for the outcome."""
    if isinstance(outcome, Valid):
        return outcome.value
    if isinstance(outcome, Invalid):
        raise ValidationFailed(outcome.violations)
    if isinstance(outcome, Malformed):
        raise MalformedInput(outcome.source, outcome.message)
    raise TypeError(f"Unexpected outcome {outcome!r}")


# ── Validated input ──


def path_id(description: str) -> Any:
    """Path parameter for an entity id; values outside int32 are malformed (400)."""
    return Path(..., ge=INT32_MIN, le=INT32_MAX, description=description)



def validated_body(shape: Type[ShapeT]) -> Callable[[Request], Awaitable[ShapeT]]:
    """Dependency factory: decode + validate the JSON body against ``shape``."""

    async def dependency(request: Request) -> ShapeT:
        return unwrap(validate(await request.body(), shape))

    return dependency


def validated_query(shape: Type[ShapeT]) -> Callable[[Request], ShapeT]:
    """Dependency factory: decode + validate the query string against ``shape``."""

    def dependency(request: Request) -> ShapeT:
        return unwrap(validate_query(request.query_params, shape))

    return dependency


# ── OpenAPI documentation for extractor-backed input ──


def body_openapi(shape: Type[Shape]) -> Dict[str, Any]:
    """``openapi_extra`` documenting a JSON request body of ``shape``."""
    documented_shapes[shape.__name__] = shape
    return {
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {"schema": {"$ref": SCHEMA_REF.format(model=shape.__name__)}}
            },
        }
    }


def query_openapi(shape: Type[Shape]) -> Dict[str, Any]:
    """``openapi_extra`` documenting each field of ``shape`` as a query parameter."""
    schema = shape.model_json_schema(ref_template=SCHEMA_REF)
    required = set(schema.get("required", []))
    parameters: List[Dict[str, Any]] = [
        {
            "name": name,
            "in": "query",
            "required": name in required,
            "schema": prop,
        }
        for name, prop in schema.get("properties", {}).items()
    ]
    return {"parameters": parameters}


# ── Services ──


def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(UserRepository(User, db))


def get_post_service(db: AsyncSession = Depends(get_db)) -> PostService:
    """Build a PostService; it needs the user repository to resolve authors."""
    return PostService(PostRepository(Post, db), UserRepository(User, db))
