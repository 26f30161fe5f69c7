"""Tests for schema resolution into type descriptors."""

import pytest

from clientgen.descriptors import Direction, Kind
from clientgen.errors import DuplicateNameError
from clientgen.resolver import flatten_object, lookup, resolve_definitions, resolve_named, resolve_raw


def _doc(schemas: dict) -> dict:
    return {"openapi": "3.0.3", "info": {"version": "1"}, "paths": {}, "components": {"schemas": schemas}}


_NODE = _doc({
    "Node": {
        "type": "object",
        "properties": {
            "value": {"type": "string"},
            "children": {"type": "array", "items": {"$ref": "#/components/schemas/Node"}},
        },
    },
})

_POST = _doc({
    "Post": {
        "type": "object",
        "required": ["title"],
        "properties": {
            "id": {"type": "integer", "readOnly": True},
            "title": {"type": "string", "minLength": 5},
            "status": {"type": "string", "enum": ["draft", "published", "archived"]},
        },
    },
})


_EXPR = _doc({
    "Expr": {"oneOf": [{"$ref": "#/components/schemas/Not"}, {"type": "string"}]},
    "Not": {
        "allOf": [
            {"$ref": "#/components/schemas/Expr"},
            {"type": "object", "properties": {"op": {"type": "string"}}},
        ],
    },
})


class TestReferences:
    """Test named registration and cycle handling."""

    def test_self_reference_terminates(self, make_context):
        ctx = make_context(_NODE)
        ref = resolve_named("Node", ctx)
        assert ref.kind == Kind.REFERENCE
        assert ref.ref == "Node"
        assert "Node" in ctx.recursive

        body = ctx.registry[("Node", Direction.READ)].descriptor
        children = body.get_property("children")
        assert children.kind == Kind.ARRAY
        assert children.items.kind == Kind.REFERENCE
        assert children.items.ref == "Node"
        assert children.items.recursive

    def test_cycle_through_compositions_terminates(self, make_context):
        ctx = make_context(_EXPR)
        resolve_named("Expr", ctx)
        assert "Expr" in ctx.recursive
        assert [t.name for t in ctx.named_types(Direction.READ)] == ["Not", "Expr"]

        expr = ctx.registry[("Expr", Direction.READ)].descriptor
        assert expr.kind == Kind.UNION
        assert expr.members[0].ref == "Not"

        not_ = ctx.registry[("Not", Direction.READ)].descriptor
        assert not_.kind == Kind.ALL_OF
        assert not_.members[0].kind == Kind.REFERENCE
        assert not_.members[0].ref == "Expr"
        assert not_.members[0].recursive

    def test_registration_is_idempotent(self, make_context):
        ctx = make_context(_NODE)
        resolve_definitions(ctx)
        resolve_definitions(ctx)
        assert [t.name for t in ctx.named_types(Direction.READ)] == ["Node"]

    def test_dependencies_register_first(self, make_context):
        ctx = make_context(_doc({
            "Order": {"type": "object", "properties": {"customer": {"$ref": "#/components/schemas/Customer"}}},
            "Customer": {"type": "object", "properties": {"name": {"type": "string"}}},
        }))
        resolve_definitions(ctx)
        assert [t.name for t in ctx.named_types(Direction.READ)] == ["Customer", "Order"]

    def test_unresolvable_reference_warns(self, make_context):
        ctx = make_context(_doc({}))
        desc = resolve_raw({"$ref": "#/components/schemas/Ghost"}, ctx, path="#/paths/x")
        assert desc.kind == Kind.UNKNOWN
        assert len(ctx.warnings) == 1
        assert "Ghost" in ctx.warnings[0]
        assert "#/paths/x" in ctx.warnings[0]

    def test_colliding_type_names_raise(self, make_context):
        ctx = make_context(_doc({
            "user_profile": {"type": "object"},
            "UserProfile": {"type": "object"},
        }))
        with pytest.raises(DuplicateNameError, match="UserProfile"):
            resolve_definitions(ctx)

    def test_lookup_follows_reference(self, make_context):
        ctx = make_context(_POST)
        ref = resolve_named("Post", ctx)
        assert lookup(ref, ctx).kind == Kind.OBJECT
        assert lookup(ref, ctx, Direction.WRITE) is None


class TestDirection:
    """Test read/write views of the same schema."""

    def test_read_keeps_read_only(self, make_context):
        ctx = make_context(_POST)
        body = lookup(resolve_named("Post", ctx), ctx)
        assert [name for name, _ in body.properties] == ["id", "title", "status"]
        assert body.get_property("id").read_only

    def test_write_drops_read_only(self, make_context):
        ctx = make_context(_POST)
        body = lookup(resolve_named("Post", ctx, Direction.WRITE), ctx, Direction.WRITE)
        assert [name for name, _ in body.properties] == ["title", "status"]

    def test_directions_register_separately(self, make_context):
        ctx = make_context(_POST)
        resolve_named("Post", ctx, Direction.READ)
        resolve_named("Post", ctx, Direction.WRITE)
        assert ctx.is_registered("Post", Direction.READ)
        assert ctx.is_registered("Post", Direction.WRITE)


class TestCompositions:
    def test_single_allof_collapses_with_outer_modifiers(self, make_context):
        ctx = make_context(_doc({}))
        desc = resolve_raw({"allOf": [{"type": "string"}], "nullable": True, "description": "Name"}, ctx)
        assert desc.kind == Kind.STRING
        assert desc.nullable
        assert desc.description == "Name"

    def test_empty_allof_is_open_map(self, make_context):
        ctx = make_context(_doc({}))
        desc = resolve_raw({"allOf": []}, ctx)
        assert desc.kind == Kind.MAP
        assert desc.items.kind == Kind.UNKNOWN

    def test_oneof_dedupes_members(self, make_context):
        ctx = make_context(_doc({}))
        desc = resolve_raw({"oneOf": [{"type": "string"}, {"type": "string"}, {"type": "integer"}]}, ctx)
        assert desc.kind == Kind.UNION
        assert [m.kind for m in desc.members] == [Kind.STRING, Kind.INTEGER]

    def test_oneof_of_duplicates_collapses(self, make_context):
        ctx = make_context(_doc({}))
        assert resolve_raw({"anyOf": [{"type": "boolean"}, {"type": "boolean"}]}, ctx).kind == Kind.BOOLEAN

    def test_empty_oneof_is_unknown(self, make_context):
        ctx = make_context(_doc({}))
        assert resolve_raw({"oneOf": []}, ctx).kind == Kind.UNKNOWN

    def test_flatten_allof(self, make_context):
        ctx = make_context(_doc({
            "Base": {"type": "object", "properties": {"id": {"type": "string"}, "kind": {"type": "string"}}},
            "Extended": {
                "allOf": [
                    {"$ref": "#/components/schemas/Base"},
                    {"type": "object", "properties": {"kind": {"type": "integer"}, "extra": {"type": "boolean"}}},
                ],
            },
        }))
        view = flatten_object(resolve_named("Extended", ctx), ctx)
        assert [name for name, _ in view.properties] == ["id", "kind", "extra"]
        assert view.get_property("kind").kind == Kind.INTEGER

    def test_flatten_non_object_is_none(self, make_context):
        ctx = make_context(_doc({}))
        assert flatten_object(resolve_raw({"type": "string"}, ctx), ctx) is None


class TestShapes:
    def test_additional_properties(self, make_context):
        ctx = make_context(_doc({}))
        assert resolve_raw({"type": "object", "additionalProperties": False}, ctx).kind == Kind.NO_KEYS
        mapped = resolve_raw({"type": "object", "additionalProperties": {"type": "integer"}}, ctx)
        assert mapped.kind == Kind.MAP
        assert mapped.items.kind == Kind.INTEGER
        assert resolve_raw({"type": "object", "additionalProperties": True}, ctx).items.kind == Kind.ANY
        assert resolve_raw({"type": "object"}, ctx).items.kind == Kind.UNKNOWN

    def test_tuple(self, make_context):
        ctx = make_context(_doc({}))
        desc = resolve_raw({"type": "array", "items": [{"type": "string"}, {"type": "number"}]}, ctx)
        assert desc.kind == Kind.TUPLE
        assert [m.kind for m in desc.members] == [Kind.STRING, Kind.NUMBER]

    def test_array_without_items(self, make_context):
        ctx = make_context(_doc({}))
        assert resolve_raw({"type": "array"}, ctx).items.kind == Kind.UNKNOWN

    def test_dates_follow_config(self, make_context):
        schema = {"type": "string", "format": "date-time"}
        assert resolve_raw(schema, make_context(_doc({}))).kind == Kind.STRING
        assert resolve_raw(schema, make_context(_doc({}), date_type="Date")).kind == Kind.DATE

    def test_binary_is_blob(self, make_context):
        assert resolve_raw({"type": "string", "format": "binary"}, make_context(_doc({}))).kind == Kind.BLOB

    def test_required_comes_from_parent(self, make_context):
        ctx = make_context(_POST)
        body = lookup(resolve_named("Post", ctx), ctx)
        assert body.get_property("title").required
        assert not body.get_property("status").required


class TestEnums:
    def test_string_enum_is_literal_union(self, make_context):
        desc = resolve_raw({"type": "string", "enum": ["a", "b"]}, make_context(_doc({})))
        assert desc.kind == Kind.LITERAL_UNION
        assert desc.values == ("a", "b")

    def test_integer_enum_synthesizes_names(self, make_context):
        desc = resolve_raw({"type": "integer", "enum": [1, 2]}, make_context(_doc({})))
        assert desc.kind == Kind.ENUM
        assert [(m.name, m.value) for m in desc.enum_members] == [("_1", 1), ("_2", 2)]

    def test_null_only_enum(self, make_context):
        desc = resolve_raw({"enum": [None]}, make_context(_doc({})))
        assert desc.kind == Kind.NULL

    def test_names_from_description(self, make_context):
        ctx = make_context(_doc({}), generate_enum_based_on_description=True)
        schema = {
            "type": "integer",
            "enum": [1, 2],
            "description": '[{"Name": "Active", "Value": 1}, {"Name": "Inactive", "Value": 2}]',
        }
        desc = resolve_raw(schema, ctx)
        assert [(m.name, m.value) for m in desc.enum_members] == [("Active", 1), ("Inactive", 2)]
        assert desc.description is None
        assert ctx.warnings == []

    def test_unusable_description_warns(self, make_context):
        ctx = make_context(_doc({}), generate_enum_based_on_description=True)
        desc = resolve_raw({"type": "integer", "enum": [1, 2], "description": "Status code"}, ctx)
        assert [m.name for m in desc.enum_members] == ["_1", "_2"]
        assert desc.description == "Status code"
        assert len(ctx.warnings) == 1

    def test_mismatched_description_values_warn(self, make_context):
        ctx = make_context(_doc({}), generate_enum_based_on_description=True)
        schema = {"type": "integer", "enum": [1, 2], "description": '[{"Name": "Active", "Value": 1}]'}
        resolve_raw(schema, ctx)
        assert "does not match" in ctx.warnings[0]
