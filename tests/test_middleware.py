"""
Unit tests for middleware and request-scoped logging.

Uses httpx.AsyncClient against a lightweight FastAPI test app to exercise
both middleware classes through their full dispatch cycle, and checks that
log records emitted inside a request carry its id.
"""

import json
import logging
import uuid

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.core.logging import JSONFormatter, RequestIDFilter, request_id_var
from app.middleware import REQUEST_ID_HEADER, RequestIDMiddleware, RequestTimingMiddleware

seen_request_ids = []


def _make_test_app() -> FastAPI:
    """Create a minimal FastAPI app with both middleware classes."""
    app = FastAPI()
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/test")
    async def test_endpoint():
        seen_request_ids.append(request_id_var.get())
        return {"ok": True}

    return app


@pytest.fixture()
def test_app():
    seen_request_ids.clear()
    return _make_test_app()


async def _get(app, **kwargs):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.get("/test", **kwargs)


# ────────────────────────────────────────────────────────────────────────────
# RequestIDMiddleware tests
# ────────────────────────────────────────────────────────────────────────────


class TestRequestIDMiddleware:
    """Tests for X-Request-ID header injection."""

    @pytest.mark.asyncio
    async def test_generates_request_id_when_absent(self, test_app):
        resp = await _get(test_app)

        assert REQUEST_ID_HEADER in resp.headers
        uuid.UUID(resp.headers[REQUEST_ID_HEADER])  # raises if invalid

    @pytest.mark.asyncio
    async def test_honours_existing_request_id(self, test_app):
        custom_id = "my-trace-id-12345"
        resp = await _get(test_app, headers={REQUEST_ID_HEADER: custom_id})

        assert resp.headers[REQUEST_ID_HEADER] == custom_id

    @pytest.mark.asyncio
    async def test_request_id_visible_to_handler_and_reset_after(self, test_app):
        await _get(test_app, headers={REQUEST_ID_HEADER: "trace-1"})

        assert seen_request_ids == ["trace-1"]
        assert request_id_var.get() is None


# ────────────────────────────────────────────────────────────────────────────
# RequestTimingMiddleware tests
# ────────────────────────────────────────────────────────────────────────────


class TestRequestTimingMiddleware:
    """Tests for X-Process-Time header injection."""

    @pytest.mark.asyncio
    async def test_adds_process_time_header(self, test_app):
        resp = await _get(test_app)

        assert resp.headers["X-Process-Time"].endswith("ms")
        assert float(resp.headers["X-Process-Time"].replace("ms", "")) >= 0

    @pytest.mark.asyncio
    async def test_logs_request_line(self, test_app, caplog):
        with caplog.at_level(logging.INFO, logger="app.middleware"):
            await _get(test_app)

        record = next(r for r in caplog.records if r.name == "app.middleware")
        assert record.method == "GET"
        assert record.path == "/test"
        assert record.status_code == 200


# ────────────────────────────────────────────────────────────────────────────
# Log formatting
# ────────────────────────────────────────────────────────────────────────────


class TestLogging:
    def _record(self, **extra):
        record = logging.LogRecord("app.test", logging.ERROR, __file__, 1, "boom", None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_filter_stamps_current_request_id(self):
        token = request_id_var.set("req-42")
        try:
            record = self._record()
            RequestIDFilter().filter(record)
        finally:
            request_id_var.reset(token)
        assert record.request_id == "req-42"

    def test_json_formatter_includes_failure_id(self):
        record = self._record(request_id="req-1", failure_id="abc123", status_code=500)

        entry = json.loads(JSONFormatter().format(record))

        assert entry["message"] == "boom"
        assert entry["level"] == "ERROR"
        assert entry["request_id"] == "req-1"
        assert entry["failure_id"] == "abc123"
        assert entry["status_code"] == 500
        assert "elapsed_ms" not in entry
