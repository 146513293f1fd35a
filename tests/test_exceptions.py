"""
Unit tests for the error taxonomy, the translator and handler registration.

Tests cover:
- Every failure kind has exactly one translation (exhaustiveness)
- Status codes and bodies per kind; no internal detail leaks
- translate() is pure; 500s are logged with a failure id
- add_exception_handlers registration and end-to-end handler behaviour
"""

import logging

import pytest

from app.core.exceptions import (
    TRANSLATIONS,
    AlreadyExists,
    ApiError,
    AppException,
    MalformedInput,
    NotFound,
    StorageFailure,
    ValidationFailed,
    translate,
)
from app.validation import Violation


def _all_kinds():
    return AppException.__subclasses__()


SAMPLES = {
    MalformedInput: lambda: MalformedInput("_json", "could not decode"),
    NotFound: lambda: NotFound("User", 42),
    AlreadyExists: lambda: AlreadyExists("A user with email 'a@b.c' already exists"),
    ValidationFailed: lambda: ValidationFailed([Violation("title", ("too short",))]),
    StorageFailure: lambda: StorageFailure("User.get", RuntimeError("connection reset by peer")),
}


class TestTaxonomy:
    def test_every_kind_has_a_translation(self):
        assert set(_all_kinds()) == set(TRANSLATIONS)

    def test_every_kind_has_a_sample(self):
        assert set(_all_kinds()) == set(SAMPLES)

    def test_unregistered_kind_is_rejected(self):
        class Unregistered(Exception):
            pass

        with pytest.raises(TypeError):
            translate(Unregistered())

    def test_subclass_uses_parent_translation(self):
        class UserNotFound(NotFound):
            pass

        assert translate(UserNotFound("User", 1)).status_code == 404

    def test_not_found_message(self):
        exc = NotFound("Post", 7)
        assert exc.resource == "Post"
        assert "7" in str(exc)

    def test_storage_failure_has_stable_id(self):
        exc = StorageFailure("User.get")
        assert len(exc.failure_id) == 32
        assert exc.failure_id != StorageFailure("User.get").failure_id


class TestTranslate:
    @pytest.mark.parametrize(
        "kind, status_code",
        [
            (MalformedInput, 400),
            (NotFound, 404),
            (AlreadyExists, 409),
            (ValidationFailed, 422),
            (StorageFailure, 500),
        ],
    )
    def test_status_codes(self, kind, status_code):
        assert translate(SAMPLES[kind]()).status_code == status_code

    def test_not_found_body(self):
        assert translate(NotFound("User", 42)).body == {"error": "Not Found"}

    def test_conflict_body(self):
        assert translate(SAMPLES[AlreadyExists]()).body == {"error": "Conflict"}

    def test_validation_body(self):
        error = ValidationFailed(
            [Violation("title", ("too short",)), Violation("content", ("a", "b"))]
        )
        assert translate(error).body == {
            "error": "Validation failed",
            "violations": [
                {"field": "title", "messages": ["too short"]},
                {"field": "content", "messages": ["a", "b"]},
            ],
        }

    def test_malformed_body(self):
        assert translate(MalformedInput("_query", "bad query")).body == {
            "error": "Bad Request",
            "violations": [{"field": "_query", "messages": ["bad query"]}],
        }

    def test_storage_failure_hides_detail(self):
        api_error = translate(SAMPLES[StorageFailure]())
        assert api_error.body == {"error": "Internal Server Error"}
        assert "connection reset" not in str(api_error.body)

    def test_pure(self):
        error = SAMPLES[ValidationFailed]()
        assert translate(error) == translate(error)
        assert isinstance(translate(error), ApiError)

    def test_storage_failure_logged_with_failure_id(self, caplog):
        error = SAMPLES[StorageFailure]()
        with caplog.at_level(logging.ERROR, logger="app.core.exceptions"):
            translate(error)
        records = [r for r in caplog.records if getattr(r, "failure_id", None)]
        assert len(records) == 1
        assert records[0].failure_id == error.failure_id
        assert records[0].status_code == 500

    def test_client_errors_not_logged_as_errors(self, caplog):
        with caplog.at_level(logging.ERROR, logger="app.core.exceptions"):
            translate(NotFound("User", 1))
        assert not caplog.records

    def test_to_response(self):
        response = translate(NotFound("User", 1)).to_response()
        assert response.status_code == 404
        assert response.body == b'{"error":"Not Found"}'


class TestAddExceptionHandlers:
    """Tests that add_exception_handlers registers handlers on the FastAPI app."""

    def test_handlers_registered(self):
        from unittest.mock import MagicMock

        from app.core.exceptions import add_exception_handlers

        mock_app = MagicMock()
        mock_app.exception_handler = MagicMock(return_value=lambda fn: fn)
        add_exception_handlers(mock_app)
        # AppException, StarletteHTTPException, RequestValidationError, Exception
        assert mock_app.exception_handler.call_count == 4


class TestExceptionHandlersIntegration:
    """Invoke the actual exception handlers to cover their response logic."""

    @staticmethod
    def _app():
        from fastapi import FastAPI

        from app.core.exceptions import add_exception_handlers

        # debug=False prevents Starlette's ServerErrorMiddleware from
        # re-raising the exception before our catch-all handler runs.
        app = FastAPI(debug=False)
        add_exception_handlers(app)
        return app

    @staticmethod
    async def _get(app, path):
        from httpx import ASGITransport, AsyncClient

        async with AsyncClient(
            transport=ASGITransport(app=app, raise_app_exceptions=False),
            base_url="http://test",
        ) as client:
            return await client.get(path)

    @pytest.mark.asyncio
    async def test_app_exception_translated(self):
        app = self._app()

        @app.get("/missing")
        async def missing():
            raise NotFound("User", 1)

        resp = await self._get(app, "/missing")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not Found"}

    @pytest.mark.asyncio
    async def test_storage_failure_returns_500(self):
        app = self._app()

        @app.get("/storage")
        async def storage():
            raise StorageFailure("User.get", RuntimeError("password=hunter2"))

        resp = await self._get(app, "/storage")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal Server Error"}
        assert "hunter2" not in resp.text

    @pytest.mark.asyncio
    async def test_global_500_handler(self):
        """Unhandled exception → 500 with generic message."""
        app = self._app()

        @app.get("/crash")
        async def crash():
            raise RuntimeError("unexpected")

        resp = await self._get(app, "/crash")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal Server Error"}

    @pytest.mark.asyncio
    async def test_unknown_route_404(self):
        resp = await self._get(self._app(), "/nonexistent")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not Found"}

    @pytest.mark.asyncio
    async def test_method_not_allowed_keeps_status(self):
        app = self._app()

        @app.get("/only-get")
        async def only_get():
            return {}

        from httpx import ASGITransport, AsyncClient

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            resp = await client.post("/only-get")
        assert resp.status_code == 405
        assert resp.json() == {"error": "Method Not Allowed"}

    @pytest.mark.asyncio
    async def test_path_parameter_decode_failure_is_400(self):
        app = self._app()

        @app.get("/items/{item_id}")
        async def item(item_id: int):
            return {"id": item_id}

        resp = await self._get(app, "/items/abc")
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Bad Request"
        assert body["violations"][0]["field"] == "_path"
