"""Flatten the document's path map into Operation records.

Handles:
- Path-level parameters merged ahead of operation-level ones
- Parameter $refs (#/components/parameters/..., #/parameters/...)
- Swagger 2 inline parameter type/format, `in: body` and `in: formData`
- Swagger 2 response `schema` normalized onto OpenAPI 3 `content`
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .errors import DuplicateNameError
from .loader import SchemaStore
from .naming import operation_method_name

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "post", "put", "patch", "delete", "options", "head")

_JSON_TYPES = ("application/json", "text/json")
_MULTIPART = "multipart/form-data"

# Swagger 2 parameter keys that describe the value schema
_INLINE_SCHEMA_KEYS = (
    "type", "format", "items", "enum", "default", "minimum", "maximum",
    "exclusiveMinimum", "exclusiveMaximum", "minLength", "maxLength",
    "pattern", "minItems", "maxItems", "uniqueItems", "multipleOf",
)

# Query parameter names that signal server-side paging
_PAGE_PARAMS = ("page", "pageSize", "sort", "order")


@dataclass(frozen=True)
class Parameter:
    name: str
    location: str
    required: bool
    schema: dict[str, Any]
    description: str | None = None


@dataclass(frozen=True)
class Operation:
    path: str
    method: str
    operation_id: str | None = None
    summary: str | None = None
    description: str | None = None
    tags: tuple[str, ...] = ()
    parameters: tuple[Parameter, ...] = ()
    request_body: dict[str, Any] | None = None
    responses: dict[str, Any] | None = None

    @property
    def method_name(self) -> str:
        return operation_method_name(self.operation_id, self.method, self.path)

    @property
    def label(self) -> str:
        return f"{self.method.upper()} {self.path}"

    def parameters_in(self, location: str) -> list[Parameter]:
        return [p for p in self.parameters if p.location == location]

    @property
    def body_required(self) -> bool:
        return bool((self.request_body or {}).get("required", False))

    def request_schema(self) -> Any:
        """Request body schema: JSON content first, then multipart."""
        content = (self.request_body or {}).get("content") or {}
        schema = _json_schema(content)
        if schema is None and _MULTIPART in content:
            schema = (content[_MULTIPART] or {}).get("schema")
        return schema

    def response_schemas(self) -> list[tuple[str, Any]]:
        """(status, schema) for every response with a JSON body, in document order."""
        found = []
        for status, response in (self.responses or {}).items():
            if not isinstance(response, dict):
                continue
            schema = _json_schema(response.get("content") or {})
            if schema is not None:
                found.append((str(status), schema))
        return found

    def success_schema(self) -> Any:
        """Schema of the 200 response, else the 201 response."""
        schemas = dict(self.response_schemas())
        for status in ("200", "201"):
            if status in schemas:
                return schemas[status]
        return None

    def response_kind(self, store: SchemaStore) -> str:
        """Classify the success response as array, paging, object or none."""
        schema = self.success_schema()
        if not isinstance(schema, dict):
            return "none"
        if "$ref" in schema:
            schema = store.resolve_reference(schema["$ref"]) or {}
        if schema.get("type") == "array":
            return "array"
        properties = schema.get("properties") or {}
        if properties:
            if ("records" in properties and "totalRecords" in properties) or (
                "items" in properties and "total" in properties
            ):
                return "paging"
            return "object"
        if schema.get("type") == "object":
            return "object"
        return "none"

    def pagination_params(self) -> list[str]:
        """Paging-related query parameter names this operation accepts."""
        names = {p.name for p in self.parameters_in("query")}
        return [n for n in _PAGE_PARAMS if n in names]


def _json_schema(content: dict[str, Any]) -> Any:
    for content_type in _JSON_TYPES:
        if content_type in content:
            return (content[content_type] or {}).get("schema")
    for content_type, media in content.items():
        if content_type.endswith("+json") and isinstance(media, dict):
            return media.get("schema")
    return None


def _inline_schema(param: dict[str, Any]) -> dict[str, Any]:
    """Swagger 2 parameters carry the schema keys on the parameter itself."""
    schema = {k: param[k] for k in _INLINE_SCHEMA_KEYS if k in param}
    if schema.get("type") == "file":
        schema = {"type": "string", "format": "binary"}
    return schema


def _deref(raw: Any, store: SchemaStore | None) -> Any:
    if isinstance(raw, dict) and "$ref" in raw and store is not None:
        target = store.resolve_reference(raw["$ref"])
        if target is None:
            logger.warning("Unresolvable parameter reference %s", raw["$ref"])
        return target
    return raw


def _merge_parameters(
    path_level: list[Any], op_level: list[Any], store: SchemaStore | None
) -> list[dict[str, Any]]:
    merged: dict[tuple[str, str], dict[str, Any]] = {}
    for raw in list(path_level) + list(op_level):
        param = _deref(raw, store)
        if not isinstance(param, dict) or "name" not in param:
            continue
        merged[(str(param["name"]), str(param.get("in", "query")))] = param
    return list(merged.values())


def _build_operation(
    path: str,
    method: str,
    raw: dict[str, Any],
    path_params: list[Any],
    store: SchemaStore | None,
) -> Operation:
    parameters: list[Parameter] = []
    request_body = _deref(raw.get("requestBody"), store)
    form_fields: dict[str, Any] = {}
    form_required: list[str] = []

    for param in _merge_parameters(path_params, raw.get("parameters") or [], store):
        location = param.get("in", "query")
        schema = param.get("schema") if isinstance(param.get("schema"), dict) else _inline_schema(param)
        if location == "body":
            request_body = {
                "required": bool(param.get("required", False)),
                "content": {"application/json": {"schema": schema}},
            }
            continue
        if location == "formData":
            form_fields[param["name"]] = schema
            if param.get("required"):
                form_required.append(param["name"])
            continue
        parameters.append(
            Parameter(
                name=str(param["name"]),
                location=location,
                # Path parameters are always required
                required=location == "path" or bool(param.get("required", False)),
                schema=schema,
                description=param.get("description"),
            )
        )

    if form_fields and request_body is None:
        request_body = {
            "required": bool(form_required),
            "content": {
                _MULTIPART: {
                    "schema": {"type": "object", "properties": form_fields, "required": form_required}
                }
            },
        }

    responses: dict[str, Any] = {}
    for status, response in (raw.get("responses") or {}).items():
        response = _deref(response, store)
        if isinstance(response, dict) and "schema" in response and "content" not in response:
            response = {**response, "content": {"application/json": {"schema": response["schema"]}}}
        responses[str(status)] = response

    tags = raw.get("tags") or []
    return Operation(
        path=path,
        method=method,
        operation_id=raw.get("operationId"),
        summary=raw.get("summary"),
        description=raw.get("description"),
        tags=tuple(str(t) for t in tags),
        parameters=tuple(parameters),
        request_body=request_body if isinstance(request_body, dict) else None,
        responses=responses,
    )


def extract_operations(paths: dict[str, Any], store: SchemaStore | None = None) -> list[Operation]:
    """Flatten a path map into operations, in document order."""
    operations: list[Operation] = []
    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue
        path_params = path_item.get("parameters") or []
        for method in HTTP_METHODS:
            raw = path_item.get(method)
            if not isinstance(raw, dict):
                continue
            operations.append(_build_operation(path, method, raw, path_params, store))
    logger.debug("Extracted %d operations", len(operations))
    return operations


def check_unique_method_names(operations: list[Operation]) -> None:
    """Raise DuplicateNameError when two operations share a client method name."""
    seen: dict[str, Operation] = {}
    for operation in operations:
        name = operation.method_name
        if name in seen:
            raise DuplicateNameError(
                name, "client", f"{seen[name].label} and {operation.label}"
            )
        seen[name] = operation
