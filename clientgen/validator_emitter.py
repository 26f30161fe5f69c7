"""Build zod runtime validators from canonical descriptors.

build_check() decides which checks apply and returns a Check tree (plain
data); render_check() prints it as zod source. Named schemas land in
validators/schemas.ts, per-operation validators in one file per group.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, replace
from typing import Any

from .config import GeneratorConfig, validator_location
from .descriptors import Direction, Kind, TypeDescriptor
from .errors import DuplicateNameError
from .naming import kebab_case, pascal_case, quote_property
from .operations import Operation
from .resolver import ResolutionContext, resolve_raw

# String formats with a dedicated zod string check
_STRING_FORMATS: dict[str, str] = {
    "email": "email",
    "uuid": "uuid",
    "uri": "url",
    "url": "url",
    "date": "date",
    "date-time": "datetime",
}

_COERCIBLE = ("number", "boolean", "date")

_UNIQUE_REFINEMENT = (
    '(items) => new Set(items).size === items.length, { message: "Items must be unique" }'
)


@dataclass(frozen=True)
class CheckOptions:
    required: bool = True
    coerce: bool = False
    strict: bool = False
    direction: Direction = Direction.READ


@dataclass(frozen=True)
class Check:
    """One zod expression as data.

    op names the base builder; children are nested checks (array item,
    tuple positions, union/intersection members, record values); fields are
    object properties. refinements and modifiers are (method, argument)
    pairs chained in order.
    """

    op: str
    args: tuple[Any, ...] = ()
    children: tuple[Check, ...] = ()
    fields: tuple[tuple[str, Check], ...] = ()
    coerce: bool = False
    refinements: tuple[tuple[str, str], ...] = ()
    modifiers: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class Statement:
    name: str
    expression: str
    annotation: str | None = None
    doc: str | None = None


@dataclass
class ValidatorFile:
    group: str
    file_name: str
    statements: list[Statement] = field(default_factory=list)
    imports: list[str] = field(default_factory=list)


def schema_const_name(name: str, direction: Direction) -> str:
    return f"{name}WriteSchema" if direction == Direction.WRITE else f"{name}Schema"


def _number_text(value: float) -> str:
    return json.dumps(value)


def _modifiers(descriptor: TypeDescriptor, required: bool) -> tuple[tuple[str, str], ...]:
    modifiers: list[tuple[str, str]] = []
    nullable = descriptor.nullable and descriptor.kind != Kind.NULL
    if descriptor.has_default and not required:
        modifiers.append(("default", json.dumps(descriptor.default, default=str)))
    elif nullable and not required:
        modifiers.append(("nullish", ""))
    elif nullable:
        modifiers.append(("nullable", ""))
    elif not required:
        modifiers.append(("optional", ""))
    if descriptor.description:
        modifiers.append(("describe", json.dumps(descriptor.description)))
    return tuple(modifiers)


def _string_refinements(descriptor: TypeDescriptor) -> list[tuple[str, str]]:
    c = descriptor.constraints
    refinements: list[tuple[str, str]] = []
    if descriptor.format in _STRING_FORMATS:
        refinements.append((_STRING_FORMATS[descriptor.format], ""))
    if c.min_length is not None:
        refinements.append(("min", str(c.min_length)))
    if c.max_length is not None:
        refinements.append(("max", str(c.max_length)))
    if c.pattern:
        refinements.append(("regex", f"new RegExp({json.dumps(c.pattern)})"))
    return refinements


def _number_refinements(descriptor: TypeDescriptor) -> list[tuple[str, str]]:
    c = descriptor.constraints
    refinements: list[tuple[str, str]] = []
    if descriptor.kind == Kind.INTEGER:
        refinements.append(("int", ""))
    if c.minimum is not None:
        refinements.append(("min", _number_text(c.minimum)))
    if c.maximum is not None:
        refinements.append(("max", _number_text(c.maximum)))
    if c.exclusive_minimum is not None:
        refinements.append(("gt", _number_text(c.exclusive_minimum)))
    if c.exclusive_maximum is not None:
        refinements.append(("lt", _number_text(c.exclusive_maximum)))
    if c.multiple_of is not None:
        refinements.append(("multipleOf", _number_text(c.multiple_of)))
    return refinements


def _array_refinements(descriptor: TypeDescriptor) -> list[tuple[str, str]]:
    c = descriptor.constraints
    refinements: list[tuple[str, str]] = []
    if c.min_items is not None:
        refinements.append(("min", str(c.min_items)))
    if c.max_items is not None:
        refinements.append(("max", str(c.max_items)))
    if c.unique_items:
        refinements.append(("refine", _UNIQUE_REFINEMENT))
    return refinements


def _enum_check(values: tuple[Any, ...]) -> Check:
    if len(values) == 1:
        return Check("literal", args=values)
    if all(isinstance(v, str) for v in values):
        return Check("enum", args=values)
    return Check("union", children=tuple(Check("literal", args=(v,)) for v in values))


def _base_check(descriptor: TypeDescriptor, ctx: ResolutionContext, options: CheckOptions) -> Check:
    kind = descriptor.kind
    inner = replace(options, required=True)

    if kind == Kind.STRING:
        return Check("string", refinements=tuple(_string_refinements(descriptor)))
    if kind in (Kind.NUMBER, Kind.INTEGER):
        return Check("number", coerce=options.coerce, refinements=tuple(_number_refinements(descriptor)))
    if kind == Kind.BOOLEAN:
        return Check("boolean", coerce=options.coerce)
    if kind == Kind.DATE:
        return Check("date", coerce=options.coerce)
    if kind == Kind.NULL:
        return Check("null")
    if kind == Kind.BLOB:
        return Check("instanceof", args=("Blob",))
    if kind == Kind.ARRAY:
        item = descriptor.items
        child = build_check(item, ctx, inner) if item is not None else Check("unknown")
        return Check("array", children=(child,), refinements=tuple(_array_refinements(descriptor)))
    if kind == Kind.TUPLE:
        return Check("tuple", children=tuple(build_check(m, ctx, inner) for m in descriptor.members))
    if kind == Kind.OBJECT:
        fields = tuple(
            (name, build_check(prop, ctx, replace(options, required=prop.required)))
            for name, prop in descriptor.properties
        )
        strict = (("strict", ""),) if options.strict else ()
        return Check("object", fields=fields, refinements=strict)
    if kind == Kind.MAP:
        value = build_check(descriptor.items, ctx, inner) if descriptor.items else Check("unknown")
        return Check("record", children=(value,))
    if kind == Kind.NO_KEYS:
        return Check("object", refinements=(("strict", ""),))
    if kind in (Kind.LITERAL_UNION, Kind.ENUM):
        return _enum_check(descriptor.values)
    if kind == Kind.ALL_OF:
        return Check("and", children=tuple(build_check(m, ctx, inner) for m in descriptor.members))
    if kind == Kind.UNION:
        return Check("union", children=tuple(build_check(m, ctx, inner) for m in descriptor.members))
    if kind == Kind.REFERENCE:
        name = schema_const_name(descriptor.ref or "Unknown", options.direction)
        return Check("lazy" if descriptor.recursive else "ref", args=(name,))
    if kind == Kind.ANY:
        return Check("any")
    return Check("unknown")


def build_check(
    descriptor: TypeDescriptor, ctx: ResolutionContext, options: CheckOptions
) -> Check:
    """Decide the checks for a descriptor; no text is produced here."""
    base = _base_check(descriptor, ctx, options)
    return Check(
        base.op,
        args=base.args,
        children=base.children,
        fields=base.fields,
        coerce=base.coerce,
        refinements=base.refinements,
        modifiers=_modifiers(descriptor, options.required),
    )


def _render_base(check: Check, indent: int) -> str:
    op = check.op
    pad = "  " * indent
    z = "z.coerce" if check.coerce and op in _COERCIBLE else "z"

    if op in ("string", "number", "boolean", "date"):
        return f"{z}.{op}()"
    if op in ("null", "any", "unknown"):
        return f"z.{op}()"
    if op == "instanceof":
        return f"z.instanceof({check.args[0]})"
    if op == "literal":
        return f"z.literal({json.dumps(check.args[0])})"
    if op == "enum":
        return "z.enum([" + ", ".join(json.dumps(v) for v in check.args) + "])"
    if op == "array":
        return f"z.array({render_check(check.children[0], indent)})"
    if op == "tuple":
        return "z.tuple([" + ", ".join(render_check(c, indent) for c in check.children) + "])"
    if op == "record":
        return f"z.record(z.string(), {render_check(check.children[0], indent)})"
    if op == "union":
        return "z.union([" + ", ".join(render_check(c, indent) for c in check.children) + "])"
    if op == "and":
        first, *rest = check.children
        return render_check(first, indent) + "".join(
            f".and({render_check(c, indent)})" for c in rest
        )
    if op == "ref":
        return str(check.args[0])
    if op == "lazy":
        return f"z.lazy(() => {check.args[0]})"
    if op == "object":
        if not check.fields:
            return "z.object({})"
        lines = [
            f"{pad}  {quote_property(name)}: {render_check(child, indent + 1)},"
            for name, child in check.fields
        ]
        return "z.object({\n" + "\n".join(lines) + f"\n{pad}}})"
    raise ValueError(f"Unknown check op {op!r}")


def render_check(check: Check, indent: int = 0) -> str:
    """Print a Check tree as a zod expression."""
    text = _render_base(check, indent)
    for method, argument in check.refinements + check.modifiers:
        text += f".{method}({argument})"
    return text


def referenced_schemas(check: Check) -> set[str]:
    """Named schema constants a check refers to."""
    names: set[str] = set()
    if check.op in ("ref", "lazy"):
        names.add(str(check.args[0]))
    for child in check.children:
        names |= referenced_schemas(child)
    for _, child in check.fields:
        names |= referenced_schemas(child)
    return names


def _options_for(location: str, config: GeneratorConfig, direction: Direction, required: bool = True) -> CheckOptions:
    validation = config.validation
    return CheckOptions(
        required=required,
        coerce=validation.coerce_for(location),
        strict=validation.strict_for(location),
        direction=direction,
    )


def build_named_schemas(ctx: ResolutionContext) -> ValidatorFile:
    """Named schema constants for every registered type, both directions."""
    unit = ValidatorFile(group="schemas", file_name="schemas.ts")
    seen: set[str] = set()
    for named in ctx.registry.values():
        location = "body" if named.direction == Direction.WRITE else "response"
        options = _options_for(location, ctx.config, named.direction)
        check = build_check(named.descriptor, ctx, options)
        const = schema_const_name(named.name, named.direction)
        if const in seen:
            raise DuplicateNameError(const, "validators/schemas.ts")
        seen.add(const)
        annotation = "z.ZodType<any>" if named.name in ctx.recursive else None
        unit.statements.append(Statement(const, render_check(check), annotation))
    return unit


def _parameter_object(
    operation: Operation, location: str, ctx: ResolutionContext, options: CheckOptions
) -> Check | None:
    params = operation.parameters_in(location)
    if not params:
        return None
    fields = []
    for param in params:
        desc = resolve_raw(
            param.schema, ctx, Direction.WRITE, param.required, f"{operation.label} {param.name}"
        )
        field_options = replace(options, required=param.required)
        fields.append((param.name, build_check(desc, ctx, field_options)))
    strict = (("strict", ""),) if options.strict else ()
    return Check("object", fields=tuple(fields), refinements=strict)


_PARAM_SUFFIXES = (("path", "Params"), ("query", "QueryParams"), ("header", "Headers"))


def build_operation_validators(operation: Operation, ctx: ResolutionContext) -> list[tuple[str, Check]]:
    """Named validator checks for one operation, gated per location."""
    config = ctx.config
    prefix = operation.method_name
    built: list[tuple[str, Check]] = []

    for location, suffix in _PARAM_SUFFIXES:
        target = validator_location(location)
        if not config.validation.generates(target):
            continue
        check = _parameter_object(operation, location, ctx, _options_for(target, config, Direction.WRITE))
        if check is not None:
            built.append((f"{prefix}{suffix}", check))

    body = operation.request_schema()
    if body is not None and config.validation.generates("body"):
        options = _options_for("body", config, Direction.WRITE, operation.body_required)
        desc = resolve_raw(body, ctx, Direction.WRITE, operation.body_required, f"{operation.label} body")
        built.append((f"{prefix}Body", build_check(desc, ctx, options)))

    if config.validation.generates("response"):
        for status, schema in operation.response_schemas():
            options = _options_for("response", config, Direction.READ)
            desc = resolve_raw(schema, ctx, Direction.READ, True, f"{operation.label} {status}")
            suffix = pascal_case(re.sub(r"[^a-zA-Z0-9]", "_", status))
            built.append((f"{prefix}{suffix}Response", build_check(desc, ctx, options)))

    return built


def group_of(operation: Operation) -> str:
    """Validator file group: first tag, else first path segment."""
    if operation.tags:
        return operation.tags[0]
    for segment in operation.path.split("/"):
        if segment and not segment.startswith("{"):
            return segment
    return "default"


def build_validator_files(operations: list[Operation], ctx: ResolutionContext) -> list[ValidatorFile]:
    """Group operation validators into files; names must be unique per file."""
    files: dict[str, ValidatorFile] = {}
    seen: dict[str, set[str]] = {}
    for operation in operations:
        group = group_of(operation)
        file_name = f"{kebab_case(group)}.validator.ts"
        unit = files.setdefault(file_name, ValidatorFile(group=group, file_name=file_name))
        names = seen.setdefault(file_name, set())
        imports: set[str] = set(unit.imports)
        for name, check in build_operation_validators(operation, ctx):
            if name in names:
                raise DuplicateNameError(name, f"validators/{file_name}", operation.label)
            names.add(name)
            imports |= referenced_schemas(check)
            unit.statements.append(Statement(name, render_check(check), doc=operation.label))
        unit.imports = sorted(imports)
    return list(files.values())
