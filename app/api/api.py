"""
API router aggregation.

``main.py`` mounts this router at ``settings.API_PREFIX`` (the root by
default, so resources live at ``/users`` and ``/posts``).
"""

from fastapi import APIRouter

from app.api.endpoints import posts, users

api_router = APIRouter()

api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(posts.router, prefix="/posts", tags=["Posts"])
