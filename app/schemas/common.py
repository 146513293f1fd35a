"""
Error response schemas.

Used in route ``responses=`` declarations so the OpenAPI document shows
the error payloads alongside the happy path.
"""

from typing import List

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body of every non-validation error (404, 409, 500)."""

    error: str = Field(..., description="Stable error label", examples=["Not Found"])


class ViolationSchema(BaseModel):
    """All failed constraint messages for a single field."""

    field: str = Field(
        ...,
        description="Field path; nested fields are dotted, list items indexed",
        examples=["metadata.tags[0].name"],
    )
    messages: List[str] = Field(
        ...,
        description="Failed constraint messages in declaration order",
        examples=[["Username must be between 3 and 50 characters"]],
    )


class ValidationErrorResponse(BaseModel):
    """Body of 422 (constraint violations) and 400 (malformed input) responses."""

    error: str = Field(default="Validation failed", examples=["Validation failed"])
    violations: List[ViolationSchema] = Field(..., description="Per-field failures")
