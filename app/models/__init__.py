"""SQLModel table models — import here so metadata is populated."""

from app.models.post import Post  # noqa: F401
from app.models.user import User  # noqa: F401
