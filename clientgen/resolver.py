"""Resolve schema nodes into canonical type descriptors.

The resolver is the only place that walks the schema graph. It follows
references through the SchemaStore, registers every named schema it meets
(per direction, dependency first) and guards against reference cycles with
an explicit in-progress marker per name.

Recoverable problems (unresolvable references, unusable enum descriptions)
become warnings on the ResolutionContext; they never raise.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from .config import GeneratorConfig
from .descriptors import (
    ANY,
    DEGENERATE_KINDS,
    UNKNOWN,
    Constraints,
    Direction,
    EnumMember,
    Kind,
    TypeDescriptor,
)
from .errors import DuplicateNameError
from .loader import SchemaStore
from .naming import enum_key, is_identifier, type_name
from .schema_parser import (
    MISSING,
    AnyNode,
    ArrayNode,
    BooleanNode,
    CompositeNode,
    EnumNode,
    NullNode,
    NumberNode,
    ObjectNode,
    RefNode,
    SchemaNode,
    StringNode,
    parse_schema,
)

logger = logging.getLogger(__name__)

_DATE_FORMATS = ("date", "date-time")


@dataclass(frozen=True)
class NamedType:
    """A registered named type: one per (name, direction)."""

    name: str
    schema_name: str
    direction: Direction
    descriptor: TypeDescriptor


@dataclass
class ResolutionContext:
    """Per-run resolver state, passed explicitly through every call."""

    store: SchemaStore
    config: GeneratorConfig
    registry: dict[tuple[str, Direction], NamedType] = field(default_factory=dict)
    in_progress: set[tuple[str, Direction]] = field(default_factory=set)
    recursive: set[str] = field(default_factory=set)
    owners: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        self.warnings.append(message)
        logger.warning(message)

    def named_types(self, direction: Direction) -> list[NamedType]:
        """Registered types for one direction, dependencies first."""
        return [t for (_, d), t in self.registry.items() if d == direction]

    def is_registered(self, name: str, direction: Direction) -> bool:
        return (name, direction) in self.registry


def resolve(
    node: SchemaNode,
    ctx: ResolutionContext,
    direction: Direction = Direction.READ,
    required: bool = False,
    path: str = "#",
) -> TypeDescriptor:
    """Resolve a parsed schema node to its descriptor.

    ``required`` is the requiredness the parent declares for this node;
    ``path`` only feeds diagnostics.
    """
    if isinstance(node, RefNode):
        return _resolve_ref(node, ctx, direction, required, path)

    common: dict[str, Any] = {
        "nullable": node.nullable,
        "description": node.description,
        "required": required,
        "read_only": node.read_only,
        "default": node.default,
        "format": node.format,
    }

    if isinstance(node, EnumNode):
        return _resolve_enum(node, ctx, common, path)
    if isinstance(node, CompositeNode):
        return _resolve_composite(node, ctx, direction, common, path)
    if isinstance(node, StringNode):
        return _resolve_string(node, ctx, common)
    if isinstance(node, NumberNode):
        constraints = Constraints(
            minimum=node.minimum,
            maximum=node.maximum,
            exclusive_minimum=node.exclusive_minimum,
            exclusive_maximum=node.exclusive_maximum,
            multiple_of=node.multiple_of,
        )
        kind = Kind.INTEGER if node.integer else Kind.NUMBER
        return TypeDescriptor(kind=kind, constraints=constraints, **common)
    if isinstance(node, BooleanNode):
        return TypeDescriptor(kind=Kind.BOOLEAN, **common)
    if isinstance(node, NullNode):
        return TypeDescriptor(kind=Kind.NULL, **common)
    if isinstance(node, ArrayNode):
        return _resolve_array(node, ctx, direction, common, path)
    if isinstance(node, ObjectNode):
        return _resolve_object(node, ctx, direction, common, path)
    if isinstance(node, AnyNode):
        return TypeDescriptor(kind=Kind.ANY, **common)
    raise TypeError(f"Unhandled schema node {type(node).__name__}")


def resolve_raw(
    raw: Any,
    ctx: ResolutionContext,
    direction: Direction = Direction.READ,
    required: bool = False,
    path: str = "#",
) -> TypeDescriptor:
    """Parse and resolve a raw schema dict."""
    return resolve(parse_schema(raw), ctx, direction, required, path)


def resolve_named(
    schema_name: str,
    ctx: ResolutionContext,
    direction: Direction = Direction.READ,
) -> TypeDescriptor:
    """Resolve a top-level definition by its schema name; returns a REFERENCE."""
    ref = RefNode(ref=ctx.store.definition_ref(schema_name))
    return _resolve_ref(ref, ctx, direction, True, schema_name)


def resolve_definitions(ctx: ResolutionContext, direction: Direction = Direction.READ) -> None:
    """Register every named definition, in document order."""
    for schema_name in ctx.store.get_definitions():
        resolve_named(str(schema_name), ctx, direction)


def lookup(
    descriptor: TypeDescriptor,
    ctx: ResolutionContext,
    direction: Direction = Direction.READ,
) -> TypeDescriptor | None:
    """Follow REFERENCE descriptors to the registered body.

    Returns the descriptor itself when it is not a reference, and None when
    the referenced name was never registered for this direction.
    """
    seen: set[str] = set()
    current = descriptor
    while current.kind == Kind.REFERENCE:
        if current.ref is None or current.ref in seen:
            return None
        seen.add(current.ref)
        named = ctx.registry.get((current.ref, direction))
        if named is None:
            return None
        current = named.descriptor
    return current


def flatten_object(
    descriptor: TypeDescriptor,
    ctx: ResolutionContext,
    direction: Direction = Direction.READ,
) -> TypeDescriptor | None:
    """Object view of a descriptor, merging allOf members' properties.

    Later members win on property name clashes. Returns None when the
    descriptor is not object-like.
    """
    return _flatten(descriptor, ctx, direction, frozenset())


def _flatten(
    descriptor: TypeDescriptor,
    ctx: ResolutionContext,
    direction: Direction,
    visiting: frozenset[str],
) -> TypeDescriptor | None:
    if descriptor.kind == Kind.REFERENCE:
        if descriptor.ref in visiting:
            return None
        visiting = visiting | {descriptor.ref}
    target = lookup(descriptor, ctx, direction)
    if target is None:
        return None
    if target.kind == Kind.OBJECT:
        return target
    if target.kind != Kind.ALL_OF:
        return None

    merged: dict[str, TypeDescriptor] = {}
    for member in target.members:
        view = _flatten(member, ctx, direction, visiting)
        if view is None:
            continue
        for name, prop in view.properties:
            merged[name] = prop
    return dataclasses.replace(
        target, kind=Kind.OBJECT, members=(), properties=tuple(merged.items())
    )


def _claim_name(ctx: ResolutionContext, name: str, schema_name: str) -> None:
    owner = ctx.owners.setdefault(name, schema_name)
    if owner != schema_name:
        raise DuplicateNameError(
            name, "models", f"schemas {owner!r} and {schema_name!r} share a type name"
        )


def _resolve_ref(
    node: RefNode,
    ctx: ResolutionContext,
    direction: Direction,
    required: bool,
    path: str,
) -> TypeDescriptor:
    target = ctx.store.resolve_reference(node.ref)
    if target is None:
        ctx.warn(f"Unresolvable reference {node.ref!r} at {path}")
        return dataclasses.replace(
            UNKNOWN, required=required, nullable=node.nullable, description=node.description
        )

    name = type_name(node.name)
    _claim_name(ctx, name, node.name)
    key = (name, direction)

    recursive = key in ctx.in_progress
    if recursive:
        ctx.recursive.add(name)
    elif key not in ctx.registry:
        ctx.in_progress.add(key)
        try:
            body = resolve(parse_schema(target), ctx, direction, True, name)
        finally:
            ctx.in_progress.discard(key)
        ctx.registry[key] = NamedType(name, node.name, direction, body)
        logger.debug("Registered %s type %s", direction.value, name)
    return TypeDescriptor(
        kind=Kind.REFERENCE,
        ref=name,
        recursive=recursive,
        nullable=node.nullable,
        description=node.description,
        required=required,
        read_only=node.read_only,
        default=node.default,
    )


def _resolve_string(node: StringNode, ctx: ResolutionContext, common: dict[str, Any]) -> TypeDescriptor:
    constraints = Constraints(
        min_length=node.min_length, max_length=node.max_length, pattern=node.pattern
    )
    if node.format == "binary":
        return TypeDescriptor(kind=Kind.BLOB, **common)
    if node.format in _DATE_FORMATS and ctx.config.date_type == "Date":
        return TypeDescriptor(kind=Kind.DATE, constraints=constraints, **common)
    return TypeDescriptor(kind=Kind.STRING, constraints=constraints, **common)


def _resolve_enum(
    node: EnumNode, ctx: ResolutionContext, common: dict[str, Any], path: str
) -> TypeDescriptor:
    if not node.values:
        # enum: [null]
        return TypeDescriptor(kind=Kind.NULL, **{**common, "nullable": False})
    if node.is_string:
        return TypeDescriptor(kind=Kind.LITERAL_UNION, literals=node.values, **common)

    members = None
    if ctx.config.generate_enum_based_on_description and node.description:
        members = _members_from_description(node, ctx, path)
    if members is not None:
        # The description held the member names, not documentation
        common["description"] = None
    else:
        members = synthesize_members(node.values)
    return TypeDescriptor(kind=Kind.ENUM, enum_members=members, **common)


def synthesize_members(values: tuple[Any, ...]) -> tuple[EnumMember, ...]:
    members: list[EnumMember] = []
    used: set[str] = set()
    for value in values:
        key = enum_key(value)
        candidate, n = key, 2
        while candidate in used:
            candidate, n = f"{key}{n}", n + 1
        used.add(candidate)
        members.append(EnumMember(candidate, value))
    return tuple(members)


def _members_from_description(
    node: EnumNode, ctx: ResolutionContext, path: str
) -> tuple[EnumMember, ...] | None:
    """Member names from a description like '[{"Name": "Active", "Value": 1}]'."""
    try:
        entries = json.loads(node.description or "")
    except json.JSONDecodeError:
        ctx.warn(f"Enum description at {path} is not a JSON name/value list; synthesizing names")
        return None

    if not isinstance(entries, list) or not all(
        isinstance(e, dict) and "Name" in e and "Value" in e for e in entries
    ):
        ctx.warn(f"Enum description at {path} is not a list of Name/Value entries; synthesizing names")
        return None

    names = [str(e["Name"]) for e in entries]
    values = [e["Value"] for e in entries]
    if len(set(names)) != len(names) or not all(is_identifier(n) for n in names):
        ctx.warn(f"Enum description at {path} has duplicate or invalid names; synthesizing names")
        return None
    if sorted(map(repr, values)) != sorted(map(repr, node.values)):
        ctx.warn(f"Enum description at {path} does not match the enum values; synthesizing names")
        return None
    return tuple(EnumMember(n, v) for n, v in zip(names, values))


def _collapse(member: TypeDescriptor, common: dict[str, Any]) -> TypeDescriptor:
    """Replace a single-member composition by its member, keeping outer modifiers."""
    return dataclasses.replace(
        member,
        nullable=member.nullable or common["nullable"],
        description=common["description"] or member.description,
        required=common["required"],
        read_only=member.read_only or common["read_only"],
        default=common["default"] if common["default"] is not MISSING else member.default,
    )


def _resolve_composite(
    node: CompositeNode,
    ctx: ResolutionContext,
    direction: Direction,
    common: dict[str, Any],
    path: str,
) -> TypeDescriptor:
    resolved = [
        resolve(m, ctx, direction, True, f"{path}/{node.operator}[{i}]")
        for i, m in enumerate(node.members)
    ]
    members = [m for m in resolved if m.kind not in DEGENERATE_KINDS]

    if node.operator == "allOf":
        if not members:
            return TypeDescriptor(kind=Kind.MAP, items=UNKNOWN, **common)
        if len(members) == 1:
            return _collapse(members[0], common)
        return TypeDescriptor(kind=Kind.ALL_OF, members=tuple(members), **common)

    unique: list[TypeDescriptor] = []
    for member in members:
        if member not in unique:
            unique.append(member)
    if not unique:
        return TypeDescriptor(kind=Kind.UNKNOWN, **common)
    if len(unique) == 1:
        return _collapse(unique[0], common)
    return TypeDescriptor(kind=Kind.UNION, members=tuple(unique), **common)


def _resolve_array(
    node: ArrayNode,
    ctx: ResolutionContext,
    direction: Direction,
    common: dict[str, Any],
    path: str,
) -> TypeDescriptor:
    constraints = Constraints(
        min_items=node.min_items, max_items=node.max_items, unique_items=node.unique_items
    )
    if node.tuple_items is not None:
        positions = tuple(
            resolve(item, ctx, direction, True, f"{path}[{i}]")
            for i, item in enumerate(node.tuple_items)
        )
        return TypeDescriptor(kind=Kind.TUPLE, members=positions, constraints=constraints, **common)

    items = UNKNOWN
    if node.items is not None:
        items = resolve(node.items, ctx, direction, True, f"{path}[]")
    return TypeDescriptor(kind=Kind.ARRAY, items=items, constraints=constraints, **common)


def _resolve_object(
    node: ObjectNode,
    ctx: ResolutionContext,
    direction: Direction,
    common: dict[str, Any],
    path: str,
) -> TypeDescriptor:
    if node.properties:
        properties: list[tuple[str, TypeDescriptor]] = []
        for name, prop_node in node.properties:
            prop = resolve(prop_node, ctx, direction, name in node.required, f"{path}.{name}")
            if direction == Direction.WRITE and prop.read_only:
                continue
            properties.append((name, prop))
        return TypeDescriptor(kind=Kind.OBJECT, properties=tuple(properties), **common)

    if isinstance(node.additional, SchemaNode):
        values = resolve(node.additional, ctx, direction, True, f"{path}{{}}")
        return TypeDescriptor(kind=Kind.MAP, items=values, **common)
    if node.additional is True:
        return TypeDescriptor(kind=Kind.MAP, items=ANY, **common)
    if node.additional is False:
        return TypeDescriptor(kind=Kind.NO_KEYS, **common)
    return TypeDescriptor(kind=Kind.MAP, items=UNKNOWN, **common)
