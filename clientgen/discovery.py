"""Infer CRUD resources from the flat operation list.

Operations are grouped by their first tag. Within a group each role
(create, list, read, update, delete) claims at most one operation; whatever
is left becomes a custom action. A group becomes a resource when it has a
list, create or read operation, or at least one custom action.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from .config import GeneratorConfig
from .descriptors import SCALAR_KINDS, Direction, Kind, TypeDescriptor
from .naming import (
    camel_case,
    kebab_case,
    pascal_case,
    pluralize,
    singularize,
    title_case,
    type_name,
)
from .operations import Operation
from .resolver import ResolutionContext, flatten_object, lookup, resolve_raw

logger = logging.getLogger(__name__)

COLLECTION = "collection"
ITEM = "item"
NESTED = "nested"

# Tags containing these are internal groupings, not resources
_TAG_SEPARATORS = ("_", "/")

# Role -> (accepted methods, path shape), in claim priority order
_ROLES: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("create", ("post",), COLLECTION),
    ("list", ("get",), COLLECTION),
    ("read", ("get",), ITEM),
    ("update", ("put", "patch"), ITEM),
    ("delete", ("delete",), ITEM),
)

_CREATE_PREFIX = "Create"

_MINIMUM_SHAPE = (
    "a tag with GET /things, POST /things or GET /things/{id}"
    " (or any other tagged operation as a custom action)"
)


@dataclass(frozen=True)
class RoleOperation:
    method_name: str
    method: str
    path: str
    id_param_name: str | None = None


@dataclass(frozen=True)
class ResourceAction:
    label: str
    method_name: str
    method: str
    path: str
    level: str
    id_param_name: str | None = None


@dataclass(frozen=True)
class FilterParameter:
    name: str
    label: str
    input_type: str
    options: tuple[Any, ...] = ()


@dataclass
class ResourceModel:
    name: str
    class_name: str
    plural_name: str
    title_name: str
    service_name: str
    tag: str
    model_name: str
    create_model_name: str | None = None
    create_model_ref: str | None = None
    is_editable: bool = False
    operations: dict[str, RoleOperation] = field(default_factory=dict)
    actions: list[ResourceAction] = field(default_factory=list)
    filter_parameters: list[FilterParameter] = field(default_factory=list)
    pagination: list[str] = field(default_factory=list)
    form_properties: list[tuple[str, TypeDescriptor]] = field(default_factory=list)
    view_properties: list[tuple[str, TypeDescriptor]] = field(default_factory=list)
    list_columns: list[str] = field(default_factory=list)

    @property
    def file_name(self) -> str:
        return kebab_case(self.name)

    @property
    def folder_name(self) -> str:
        return kebab_case(self.plural_name)

    def has_role(self, role: str) -> bool:
        return role in self.operations


def path_shape(path: str) -> str:
    """collection: no path parameter; item: trailing parameter; nested: inner parameter only."""
    segments = [s for s in path.split("/") if s]
    if segments and _is_param(segments[-1]):
        return ITEM
    if any(_is_param(s) for s in segments):
        return NESTED
    return COLLECTION


def _is_param(segment: str) -> bool:
    return segment.startswith("{") and segment.endswith("}")


def _id_param(path: str) -> str | None:
    params = [s[1:-1] for s in path.split("/") if _is_param(s)]
    return params[-1] if params else None


def _usable_tag(tag: str) -> bool:
    return bool(tag) and not any(sep in tag for sep in _TAG_SEPARATORS)


def group_by_tag(operations: list[Operation]) -> dict[str, list[Operation]]:
    """Operations keyed by first tag; untagged or separator tags are dropped."""
    groups: dict[str, list[Operation]] = {}
    for operation in operations:
        if not operation.tags or not _usable_tag(operation.tags[0]):
            continue
        groups.setdefault(operation.tags[0], []).append(operation)
    return groups


def _segment_count(operation: Operation) -> int:
    return len([s for s in operation.path.split("/") if s])


def _role_matches(
    role: str, methods: tuple[str, ...], shape: str, operation: Operation,
    ctx: ResolutionContext, config: GeneratorConfig,
) -> bool:
    if operation.method not in methods or path_shape(operation.path) != shape:
        return False
    if role == "list" and config.admin.require_array_list_response:
        return operation.response_kind(ctx.store) in ("array", "paging")
    return True


def claim_roles(
    operations: list[Operation], ctx: ResolutionContext, config: GeneratorConfig
) -> tuple[dict[str, Operation], list[Operation]]:
    """Assign at most one operation per role; return (roles, leftovers).

    Among candidates for a role the shortest path wins, then document order.
    """
    claimed: dict[str, Operation] = {}
    taken: set[int] = set()
    ordered = sorted(enumerate(operations), key=lambda pair: (_segment_count(pair[1]), pair[0]))
    for role, methods, shape in _ROLES:
        for index, operation in ordered:
            if index in taken:
                continue
            if _role_matches(role, methods, shape, operation, ctx, config):
                claimed[role] = operation
                taken.add(index)
                break
    leftovers = [op for i, op in enumerate(operations) if i not in taken]
    return claimed, leftovers


def action_label(operation: Operation) -> str:
    """Summary, else operationId, else the last literal path segment."""
    if operation.summary:
        return title_case(operation.summary)
    if operation.operation_id:
        return title_case(operation.operation_id)
    literal = [s for s in operation.path.split("/") if s and not _is_param(s)]
    return title_case(literal[-1]) if literal else operation.method.upper()


def _to_action(operation: Operation) -> ResourceAction:
    level = COLLECTION if path_shape(operation.path) == COLLECTION else ITEM
    return ResourceAction(
        label=action_label(operation),
        method_name=operation.method_name,
        method=operation.method,
        path=operation.path,
        level=level,
        id_param_name=_id_param(operation.path) if level == ITEM else None,
    )


def _schema_ref(schema: Any) -> str | None:
    """Definition name behind a schema, looking through array items."""
    if not isinstance(schema, dict):
        return None
    if isinstance(schema.get("$ref"), str):
        return schema["$ref"].rsplit("/", 1)[-1]
    items = schema.get("items")
    if schema.get("type") == "array" and isinstance(items, dict) and isinstance(items.get("$ref"), str):
        return items["$ref"].rsplit("/", 1)[-1]
    return None


def _body_ref(body: Any, ctx: ResolutionContext) -> str | None:
    """Definition name of a request body given directly as a resolvable $ref."""
    if not isinstance(body, dict) or not isinstance(body.get("$ref"), str):
        return None
    if ctx.store.resolve_reference(body["$ref"]) is None:
        return None
    return body["$ref"].rsplit("/", 1)[-1]


def _strip_create_prefix(name: str) -> str:
    if name.startswith(_CREATE_PREFIX) and len(name) > len(_CREATE_PREFIX):
        return name[len(_CREATE_PREFIX):]
    return name


def _display_schema(roles: dict[str, Operation]) -> Any:
    """Response schema describing one record: list items, else read response."""
    if "list" in roles:
        schema = roles["list"].success_schema()
        if isinstance(schema, dict) and isinstance(schema.get("items"), dict):
            return schema["items"]
    if "read" in roles:
        return roles["read"].success_schema()
    return None


def _filter_parameters(list_op: Operation, ctx: ResolutionContext) -> list[FilterParameter]:
    paging = set(list_op.pagination_params())
    filters = []
    for param in list_op.parameters_in("query"):
        if param.name in paging:
            continue
        desc = resolve_raw(param.schema, ctx, Direction.READ, param.required, f"{list_op.label} {param.name}")
        desc = lookup(desc, ctx, Direction.READ) or desc
        if desc.kind in (Kind.LITERAL_UNION, Kind.ENUM):
            filters.append(FilterParameter(param.name, title_case(param.name), "select", desc.values))
        elif desc.kind in (Kind.NUMBER, Kind.INTEGER):
            filters.append(FilterParameter(param.name, title_case(param.name), "number"))
        else:
            filters.append(FilterParameter(param.name, title_case(param.name), "text"))
    return filters


def _properties(schema: Any, ctx: ResolutionContext, direction: Direction, path: str) -> list[tuple[str, TypeDescriptor]]:
    if schema is None:
        return []
    view = flatten_object(resolve_raw(schema, ctx, direction, True, path), ctx, direction)
    return list(view.properties) if view is not None else []


def _list_columns(view_properties: list[tuple[str, TypeDescriptor]]) -> list[str]:
    return [name for name, prop in view_properties if prop.kind in SCALAR_KINDS]


def build_resource(
    tag: str, operations: list[Operation], ctx: ResolutionContext, config: GeneratorConfig
) -> ResourceModel | None:
    """Resource model for one tag group, or None when the group is not viable."""
    roles, leftovers = claim_roles(operations, ctx, config)
    actions = [_to_action(op) for op in leftovers]
    if not ({"list", "create", "read"} & roles.keys()) and not actions:
        return None

    singular = singularize(tag)
    name = camel_case(singular)
    class_name = pascal_case(singular)

    writer = roles.get("create") or roles.get("update")
    body = writer.request_schema() if writer is not None else None
    create_ref = _body_ref(body, ctx)
    create_model_name = type_name(create_ref) if create_ref else None

    display_schema = _display_schema(roles)
    display_ref = _schema_ref(display_schema)
    if display_ref:
        model_name = type_name(display_ref)
    elif create_model_name:
        model_name = _strip_create_prefix(create_model_name)
    else:
        model_name = class_name

    form_properties: list[tuple[str, TypeDescriptor]] = []
    if create_ref:
        form_properties = _properties(body, ctx, Direction.WRITE, f"{tag} form")
    # Columns fall back to the create body when no response describes a record
    view_schema = display_schema if display_schema is not None else body
    view_properties = _properties(view_schema, ctx, Direction.READ, f"{tag} view")

    resource = ResourceModel(
        name=name,
        class_name=class_name,
        plural_name=pluralize(name),
        title_name=title_case(singular),
        service_name=pascal_case(re.sub(r"[^a-zA-Z0-9]+", " ", tag)) + "Service",
        tag=tag,
        model_name=model_name,
        create_model_name=create_model_name,
        create_model_ref=create_ref,
        is_editable="create" in roles or "update" in roles,
        operations={
            role: RoleOperation(
                method_name=op.method_name,
                method=op.method,
                path=op.path,
                id_param_name=_id_param(op.path) if path_shape(op.path) == ITEM else None,
            )
            for role, op in roles.items()
        },
        actions=actions,
        form_properties=form_properties,
        view_properties=view_properties,
        list_columns=_list_columns(view_properties),
    )
    if "list" in roles:
        resource.filter_parameters = _filter_parameters(roles["list"], ctx)
        resource.pagination = roles["list"].pagination_params()
    return resource


def discover_resources(
    operations: list[Operation], ctx: ResolutionContext, config: GeneratorConfig
) -> list[ResourceModel]:
    """All viable resources, in first-seen tag order."""
    resources = []
    for tag, group in group_by_tag(operations).items():
        resource = build_resource(tag, group, ctx, config)
        if resource is None:
            logger.debug("Tag %s has no list, create, read or action; skipped", tag)
            continue
        resources.append(resource)

    if not resources:
        ctx.warn(f"No resources discovered; admin UI needs at least {_MINIMUM_SHAPE}")
    return resources
