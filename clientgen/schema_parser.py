"""Parse raw schema dicts into tagged schema nodes.

Each raw node is classified once, here, into one of:
- RefNode        ($ref)
- EnumNode       (enum)
- CompositeNode  (allOf / oneOf / anyOf)
- StringNode, NumberNode, BooleanNode, NullNode
- ArrayNode      (items, or positional tuple items)
- ObjectNode     (properties and/or additionalProperties)
- AnyNode        (no usable type information)

Shared metadata (nullable, readOnly, default, description, format) lives on
every node. Downstream code dispatches on the node class instead of probing
dict keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class _Missing:
    """Sentinel for "no default declared" (None is a valid default)."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

_COMPOSITION_KEYS = ("allOf", "oneOf", "anyOf")


@dataclass(frozen=True, kw_only=True)
class SchemaNode:
    nullable: bool = False
    read_only: bool = False
    write_only: bool = False
    default: Any = MISSING
    description: str | None = None
    title: str | None = None
    format: str | None = None

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING


@dataclass(frozen=True, kw_only=True)
class RefNode(SchemaNode):
    ref: str

    @property
    def name(self) -> str:
        return self.ref.rsplit("/", 1)[-1]


@dataclass(frozen=True, kw_only=True)
class StringNode(SchemaNode):
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None


@dataclass(frozen=True, kw_only=True)
class NumberNode(SchemaNode):
    integer: bool = False
    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: float | None = None
    exclusive_maximum: float | None = None
    multiple_of: float | None = None


@dataclass(frozen=True, kw_only=True)
class BooleanNode(SchemaNode):
    pass


@dataclass(frozen=True, kw_only=True)
class NullNode(SchemaNode):
    pass


@dataclass(frozen=True, kw_only=True)
class ArrayNode(SchemaNode):
    items: SchemaNode | None = None
    tuple_items: tuple[SchemaNode, ...] | None = None
    min_items: int | None = None
    max_items: int | None = None
    unique_items: bool = False


@dataclass(frozen=True, kw_only=True)
class ObjectNode(SchemaNode):
    properties: tuple[tuple[str, SchemaNode], ...] = ()
    required: frozenset[str] = field(default_factory=frozenset)
    # None: not declared; True/False: explicit flag; SchemaNode: value schema
    additional: bool | SchemaNode | None = None


@dataclass(frozen=True, kw_only=True)
class EnumNode(SchemaNode):
    values: tuple[Any, ...] = ()
    base_type: str | None = None

    @property
    def is_string(self) -> bool:
        return all(isinstance(v, str) for v in self.values)


@dataclass(frozen=True, kw_only=True)
class CompositeNode(SchemaNode):
    operator: str  # "allOf" | "oneOf" | "anyOf"
    members: tuple[SchemaNode, ...] = ()


@dataclass(frozen=True, kw_only=True)
class AnyNode(SchemaNode):
    pass


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _count(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _schema_type(raw: dict[str, Any]) -> tuple[str | None, bool]:
    """Return (type, nullable-from-type-array)."""
    declared = raw.get("type")
    if isinstance(declared, list):
        non_null = [t for t in declared if t != "null"]
        nullable = len(non_null) != len(declared)
        if not non_null:
            return "null", False
        return non_null[0], nullable
    if isinstance(declared, str):
        return declared, False
    return None, False


def _meta(raw: dict[str, Any], type_nullable: bool) -> dict[str, Any]:
    description = raw.get("description")
    title = raw.get("title")
    fmt = raw.get("format")
    return {
        "nullable": bool(raw.get("nullable") or raw.get("x-nullable") or type_nullable),
        "read_only": bool(raw.get("readOnly", False)),
        "write_only": bool(raw.get("writeOnly", False)),
        "default": raw["default"] if "default" in raw else MISSING,
        "description": description if isinstance(description, str) else None,
        "title": title if isinstance(title, str) else None,
        "format": fmt if isinstance(fmt, str) else None,
    }


def _bounds(raw: dict[str, Any]) -> dict[str, float | None]:
    """Numeric bounds with OpenAPI 3.0 boolean exclusive flags normalized."""
    minimum = _number(raw.get("minimum"))
    maximum = _number(raw.get("maximum"))
    exclusive_minimum = raw.get("exclusiveMinimum")
    exclusive_maximum = raw.get("exclusiveMaximum")

    if exclusive_minimum is True:
        exclusive_minimum, minimum = minimum, None
    else:
        exclusive_minimum = _number(exclusive_minimum)
    if exclusive_maximum is True:
        exclusive_maximum, maximum = maximum, None
    else:
        exclusive_maximum = _number(exclusive_maximum)

    return {
        "minimum": minimum,
        "maximum": maximum,
        "exclusive_minimum": exclusive_minimum,
        "exclusive_maximum": exclusive_maximum,
        "multiple_of": _number(raw.get("multipleOf")),
    }


def parse_schema(raw: Any) -> SchemaNode:
    """Classify a raw schema dict into its tagged node."""
    if not isinstance(raw, dict):
        return AnyNode()

    schema_type, type_nullable = _schema_type(raw)
    meta = _meta(raw, type_nullable)

    if isinstance(raw.get("$ref"), str):
        return RefNode(ref=raw["$ref"], **meta)

    if isinstance(raw.get("enum"), list) and raw["enum"]:
        values = tuple(v for v in raw["enum"] if v is not None)
        if len(values) != len(raw["enum"]):
            meta["nullable"] = True
        return EnumNode(values=values, base_type=schema_type, **meta)

    for key in _COMPOSITION_KEYS:
        if isinstance(raw.get(key), list):
            members = tuple(parse_schema(m) for m in raw[key])
            return CompositeNode(operator=key, members=members, **meta)

    if schema_type is None:
        if "properties" in raw or "additionalProperties" in raw:
            schema_type = "object"
        elif "items" in raw:
            schema_type = "array"

    if schema_type == "string":
        return StringNode(
            min_length=_count(raw.get("minLength")),
            max_length=_count(raw.get("maxLength")),
            pattern=raw.get("pattern") if isinstance(raw.get("pattern"), str) else None,
            **meta,
        )
    if schema_type in ("number", "integer"):
        return NumberNode(integer=schema_type == "integer", **_bounds(raw), **meta)
    if schema_type == "boolean":
        return BooleanNode(**meta)
    if schema_type == "null":
        return NullNode(**meta)
    if schema_type == "array":
        return _parse_array(raw, meta)
    if schema_type == "object":
        return _parse_object(raw, meta)
    return AnyNode(**meta)


def _parse_array(raw: dict[str, Any], meta: dict[str, Any]) -> ArrayNode:
    items = raw.get("items")
    single: SchemaNode | None = None
    positional: tuple[SchemaNode, ...] | None = None
    if isinstance(items, list):
        positional = tuple(parse_schema(i) for i in items)
    elif isinstance(items, dict):
        single = parse_schema(items)
    return ArrayNode(
        items=single,
        tuple_items=positional,
        min_items=_count(raw.get("minItems")),
        max_items=_count(raw.get("maxItems")),
        unique_items=bool(raw.get("uniqueItems", False)),
        **meta,
    )


def _parse_object(raw: dict[str, Any], meta: dict[str, Any]) -> ObjectNode:
    properties = raw.get("properties")
    parsed: tuple[tuple[str, SchemaNode], ...] = ()
    if isinstance(properties, dict):
        parsed = tuple((str(name), parse_schema(prop)) for name, prop in properties.items())

    required = raw.get("required")
    required_names = frozenset(required) if isinstance(required, list) else frozenset()

    additional_raw = raw.get("additionalProperties")
    additional: bool | SchemaNode | None
    if isinstance(additional_raw, bool):
        additional = additional_raw
    elif isinstance(additional_raw, dict):
        # {} means "any value", same as true
        additional = parse_schema(additional_raw) if additional_raw else True
    else:
        additional = None

    return ObjectNode(properties=parsed, required=required_names, additional=additional, **meta)
