"""
Blog API — Application entry-point.

Initializes the FastAPI application, registers middleware, exception handlers,
routers, and manages the application lifecycle (DB table creation on startup).
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.openapi.docs import get_redoc_html
from fastapi.responses import PlainTextResponse

from app.api.api import api_router
from app.api.openapi import install_openapi
from app.core.config import settings
from app.core.exceptions import add_exception_handlers
from app.core.logging import setup_logging
from app.core.resilience import CONNECTION_ERRORS, db_circuit_breaker
from app.db.session import create_tables, engine, ping_database
from app.middleware import RequestIDMiddleware, RequestTimingMiddleware

setup_logging()
logger = logging.getLogger(__name__)

OPENAPI_URL = "/api-docs/openapi.json"


# ────────────────────────────────────────────────────────────────────────────
# Application lifespan
# ────────────────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: create tables (``create_tables`` retries with backoff).  If the
    database is still unreachable the app starts in degraded mode and the
    health check reports ``database: false``.

    Shutdown: dispose of the connection pool.
    """
    try:
        await create_tables()
    except CONNECTION_ERRORS as exc:
        logger.error(
            "Could not connect to database; starting in DEGRADED mode. "
            "Database-dependent endpoints will return 500 until it is reachable. "
            "Last error: %s",
            exc,
        )

    yield

    logger.info("Shutting down — disposing connection pool")
    await engine.dispose()


# ────────────────────────────────────────────────────────────────────────────
# FastAPI application instance
# ────────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="RESTful API for managing users and their blog posts.",
    openapi_url=OPENAPI_URL,
    docs_url="/swagger-ui",
    redoc_url=None,  # custom route below uses a working CDN
    lifespan=lifespan,
)
install_openapi(app)


@app.get("/redoc", include_in_schema=False)
async def custom_redoc_html():
    """Serve ReDoc from the unpkg CDN."""
    return get_redoc_html(
        openapi_url=OPENAPI_URL,
        title=f"{settings.PROJECT_NAME} — ReDoc",
        redoc_js_url="https://unpkg.com/redoc@latest/bundles/redoc.standalone.js",
    )


# ── Middleware (last added = outermost) ──
app.add_middleware(GZipMiddleware, minimum_size=500)

# Timing sits inside RequestID so its log lines carry the request id.
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Global error handlers ──
add_exception_handlers(app)

# ── API routers ──
app.include_router(api_router, prefix=settings.API_PREFIX)


# ── Service endpoints ──


@app.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def index() -> str:
    return (
        f"{settings.PROJECT_NAME} v{settings.VERSION}\n"
        f"OpenAPI: {OPENAPI_URL}\n"
        "Swagger UI: /swagger-ui\n"
        "ReDoc: /redoc\n"
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Liveness / readiness probe.

    Verifies the database answers a ``SELECT 1`` and reports the circuit
    breaker state.  ``status`` is ``degraded`` when the database is down.
    """
    db_healthy = await ping_database()
    return {
        "status": "ok" if db_healthy else "degraded",
        "version": settings.VERSION,
        "database": db_healthy,
        "circuit_breaker": db_circuit_breaker.get_status(),
    }
