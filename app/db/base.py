"""
Database model registry.

Importing this module registers every table with ``SQLModel.metadata``,
which ``create_all()`` needs before it can build the schema.
"""

from sqlmodel import SQLModel

from app.models.post import Post  # noqa: F401
from app.models.user import User  # noqa: F401

metadata = SQLModel.metadata
