"""Shared fixtures for clientgen tests.

make_context builds a fresh ResolutionContext over an in-memory document;
bookstore_spec loads the sample document under tests/specs/.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from clientgen.config import build_config
from clientgen.loader import SchemaStore
from clientgen.resolver import ResolutionContext

SPECS_DIR = Path(__file__).parent / "specs"


@pytest.fixture
def make_context() -> Callable[..., ResolutionContext]:
    """Return a factory: make_context(spec, **config_values)."""
    def _make(spec: dict[str, Any], **config: Any) -> ResolutionContext:
        return ResolutionContext(SchemaStore(spec), build_config(config))
    return _make


@pytest.fixture
def bookstore_path() -> Path:
    return SPECS_DIR / "bookstore.json"


@pytest.fixture
def bookstore_spec(bookstore_path) -> dict[str, Any]:
    return json.loads(bookstore_path.read_text(encoding="utf-8"))


@pytest.fixture
def racks_spec() -> dict[str, Any]:
    """Racks hold slots; each slot holds one pet and a list of visits."""
    def ref(name: str) -> dict[str, Any]:
        return {"$ref": f"#/components/schemas/{name}"}

    def body(schema: dict[str, Any]) -> dict[str, Any]:
        return {"content": {"application/json": {"schema": schema}}}

    return {
        "openapi": "3.0.3",
        "info": {"version": "1"},
        "paths": {
            "/racks": {
                "get": {
                    "operationId": "listRacks",
                    "tags": ["racks"],
                    "responses": {"200": body({"type": "array", "items": ref("Rack")})},
                },
                "post": {
                    "operationId": "createRack",
                    "tags": ["racks"],
                    "requestBody": body(ref("Rack")),
                },
            },
        },
        "components": {
            "schemas": {
                "Cat": {"type": "object", "properties": {"meows": {"type": "boolean"}}},
                "Dog": {"type": "object", "properties": {"barks": {"type": "boolean"}}},
                "Slot": {
                    "type": "object",
                    "properties": {
                        "pet": {"oneOf": [ref("Cat"), ref("Dog")]},
                        "visits": {
                            "type": "array",
                            "items": {"type": "object", "properties": {"day": {"type": "string"}}},
                        },
                    },
                },
                "Rack": {
                    "type": "object",
                    "properties": {
                        "label": {"type": "string"},
                        "slots": {"type": "array", "items": ref("Slot")},
                    },
                },
            },
        },
    }
