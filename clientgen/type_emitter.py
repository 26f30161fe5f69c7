"""Render canonical descriptors as TypeScript declarations.

Decision logic lives here as data (Declaration records); the text layout of
models/index.ts is owned by the models.ts.j2 template.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from .config import GeneratorConfig
from .descriptors import Direction, Kind, TypeDescriptor
from .naming import quote_property
from .resolver import ResolutionContext, resolve_definitions, synthesize_members

_PRIMITIVES: dict[Kind, str] = {
    Kind.STRING: "string",
    Kind.NUMBER: "number",
    Kind.INTEGER: "number",
    Kind.BOOLEAN: "boolean",
    Kind.NULL: "null",
    Kind.DATE: "Date",
    Kind.BLOB: "Blob",
    Kind.ANY: "any",
    Kind.UNKNOWN: "unknown",
    Kind.NO_KEYS: "Record<string, never>",
}


@dataclass(frozen=True)
class PropertyDecl:
    name: str
    type: str
    optional: bool
    readonly: bool
    doc: tuple[str, ...] = ()


@dataclass(frozen=True)
class Declaration:
    """One named TypeScript declaration.

    kind is "interface", "alias", "union" (type alias plus const object) or
    "enum". members holds (key, literal) pairs for union and enum.
    """

    kind: str
    name: str
    doc: tuple[str, ...] = ()
    properties: tuple[PropertyDecl, ...] = ()
    index_signature: str | None = None
    type: str | None = None
    members: tuple[tuple[str, str], ...] = ()


def literal(value: Any) -> str:
    """TypeScript literal text for a JSON scalar."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (int, float)):
        return json.dumps(value)
    return json.dumps(str(value))


def doc_lines(text: str | None) -> tuple[str, ...]:
    """Split a description into JSDoc-safe lines."""
    if not text:
        return ()
    return tuple(line.rstrip().replace("*/", "*\\/") for line in text.strip().splitlines())


def _needs_parens(descriptor: TypeDescriptor) -> bool:
    return descriptor.kind in (Kind.UNION, Kind.ALL_OF, Kind.LITERAL_UNION, Kind.ENUM) or (
        descriptor.nullable and descriptor.kind != Kind.NULL
    )


def _wrapped(descriptor: TypeDescriptor) -> str:
    text = render_type(descriptor)
    return f"({text})" if _needs_parens(descriptor) else text


def _base_type(descriptor: TypeDescriptor) -> str:
    kind = descriptor.kind
    if kind in _PRIMITIVES:
        return _PRIMITIVES[kind]
    if kind == Kind.REFERENCE:
        return descriptor.ref or "unknown"
    if kind == Kind.ARRAY:
        return f"Array<{render_type(descriptor.items) if descriptor.items else 'unknown'}>"
    if kind == Kind.TUPLE:
        return "[" + ", ".join(render_type(m) for m in descriptor.members) + "]"
    if kind == Kind.MAP:
        return f"Record<string, {render_type(descriptor.items) if descriptor.items else 'unknown'}>"
    if kind == Kind.OBJECT:
        if not descriptor.properties:
            return "Record<string, never>"
        fields = []
        for name, prop in descriptor.properties:
            marker = "readonly " if prop.read_only else ""
            optional = "" if prop.required else "?"
            fields.append(f"{marker}{quote_property(name)}{optional}: {render_type(prop)}")
        return "{ " + "; ".join(fields) + " }"
    if kind in (Kind.LITERAL_UNION, Kind.ENUM):
        return " | ".join(literal(v) for v in descriptor.values)
    if kind == Kind.ALL_OF:
        return " & ".join(_wrapped(m) for m in descriptor.members)
    if kind == Kind.UNION:
        return " | ".join(_wrapped(m) for m in descriptor.members)
    raise ValueError(f"Cannot render kind {kind}")


def render_type(descriptor: TypeDescriptor) -> str:
    """TypeScript type expression for a descriptor, with `| null` when nullable."""
    text = _base_type(descriptor)
    if descriptor.nullable and descriptor.kind != Kind.NULL:
        return f"{text} | null"
    return text


def _property_decl(name: str, prop: TypeDescriptor) -> PropertyDecl:
    return PropertyDecl(
        name=quote_property(name),
        type=render_type(prop),
        optional=not prop.required,
        readonly=prop.read_only,
        doc=doc_lines(prop.description),
    )


def declare(name: str, descriptor: TypeDescriptor, config: GeneratorConfig) -> Declaration:
    """Choose the declaration form for one named type."""
    doc = doc_lines(descriptor.description)
    kind = descriptor.kind

    if kind == Kind.OBJECT and not descriptor.nullable:
        properties = tuple(_property_decl(n, p) for n, p in descriptor.properties)
        return Declaration("interface", name, doc, properties=properties)
    if kind == Kind.MAP and not descriptor.nullable:
        value = render_type(descriptor.items) if descriptor.items else "unknown"
        return Declaration("interface", name, doc, index_signature=f"[key: string]: {value}")
    if kind == Kind.NO_KEYS and not descriptor.nullable:
        return Declaration("interface", name, doc, index_signature="[key: string]: never")
    if kind == Kind.LITERAL_UNION:
        members = tuple((m.name, literal(m.value)) for m in synthesize_members(descriptor.literals))
        if config.enum_style == "enum":
            return Declaration("enum", name, doc, members=members)
        return Declaration("union", name, doc, type=render_type(descriptor), members=members)
    if kind == Kind.ENUM:
        members = tuple((m.name, literal(m.value)) for m in descriptor.enum_members)
        return Declaration("enum", name, doc, members=members)
    return Declaration("alias", name, doc, type=render_type(descriptor))


def build_declarations(ctx: ResolutionContext) -> list[Declaration]:
    """Declarations for every READ-direction named type, dependencies first."""
    return [declare(t.name, t.descriptor, ctx.config) for t in ctx.named_types(Direction.READ)]


def emit_models(ctx: ResolutionContext) -> list[Declaration]:
    """Resolve every definition, then declare each named type once."""
    resolve_definitions(ctx, Direction.READ)
    return build_declarations(ctx)
