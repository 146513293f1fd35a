"""
OpenAPI document generation.

Request bodies are decoded by the extractor rather than by FastAPI, so
their schemas are not discovered automatically.  Routes reference them by
``$ref`` (see :func:`app.api.deps.body_openapi`); this module adds the
referenced shapes, and any shapes nested inside them, to
``components.schemas``.
"""

from typing import Any, Dict

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

from app.api.deps import SCHEMA_REF, documented_shapes


def install_openapi(app: FastAPI) -> None:
    """Replace ``app.openapi`` with a generator that includes the input shapes."""

    def openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
        )
        components = schema.setdefault("components", {}).setdefault("schemas", {})
        for name, shape in documented_shapes.items():
            shape_schema = shape.model_json_schema(ref_template=SCHEMA_REF)
            for nested_name, nested in shape_schema.pop("$defs", {}).items():
                components.setdefault(nested_name, nested)
            components[name] = shape_schema

        app.openapi_schema = schema
        return schema

    app.openapi = openapi  # type: ignore[method-assign]
