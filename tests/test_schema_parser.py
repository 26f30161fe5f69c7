"""Tests for the schema_parser module."""

from clientgen.schema_parser import (
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
    StringNode,
    parse_schema,
)


class TestClassification:
    """Test raw schema → node classification."""

    def test_ref_wins_over_type(self):
        node = parse_schema({"$ref": "#/components/schemas/Pet", "type": "object"})
        assert isinstance(node, RefNode)
        assert node.name == "Pet"

    def test_enum(self):
        node = parse_schema({"type": "string", "enum": ["a", "b"]})
        assert isinstance(node, EnumNode)
        assert node.values == ("a", "b")
        assert node.is_string

    def test_enum_with_null_is_nullable(self):
        node = parse_schema({"enum": [1, 2, None]})
        assert node.values == (1, 2)
        assert node.nullable
        assert not node.is_string

    def test_composites(self):
        node = parse_schema({"oneOf": [{"type": "string"}, {"type": "integer"}]})
        assert isinstance(node, CompositeNode)
        assert node.operator == "oneOf"
        assert [type(m) for m in node.members] == [StringNode, NumberNode]

    def test_scalars(self):
        assert isinstance(parse_schema({"type": "string"}), StringNode)
        assert parse_schema({"type": "integer"}).integer
        assert not parse_schema({"type": "number"}).integer
        assert isinstance(parse_schema({"type": "boolean"}), BooleanNode)
        assert isinstance(parse_schema({"type": "null"}), NullNode)

    def test_untyped_is_any(self):
        assert isinstance(parse_schema({}), AnyNode)
        assert isinstance(parse_schema("not a schema"), AnyNode)

    def test_inferred_object_and_array(self):
        assert isinstance(parse_schema({"properties": {}}), ObjectNode)
        assert isinstance(parse_schema({"items": {"type": "string"}}), ArrayNode)


class TestMetadata:
    """Test shared metadata on every node."""

    def test_type_array_nullable(self):
        node = parse_schema({"type": ["string", "null"]})
        assert isinstance(node, StringNode)
        assert node.nullable

    def test_nullable_flags(self):
        assert parse_schema({"type": "string", "nullable": True}).nullable
        assert parse_schema({"type": "string", "x-nullable": True}).nullable

    def test_default_none_is_distinct_from_missing(self):
        assert parse_schema({"type": "string"}).default is MISSING
        node = parse_schema({"type": "string", "default": None})
        assert node.has_default
        assert node.default is None

    def test_read_only_and_format(self):
        node = parse_schema({"type": "string", "readOnly": True, "format": "uuid", "description": "Id"})
        assert node.read_only
        assert node.format == "uuid"
        assert node.description == "Id"


class TestConstraints:
    def test_string_constraints(self):
        node = parse_schema({"type": "string", "minLength": 5, "maxLength": 10, "pattern": "^a"})
        assert (node.min_length, node.max_length, node.pattern) == (5, 10, "^a")

    def test_boolean_exclusive_flags_are_normalized(self):
        node = parse_schema({"type": "number", "minimum": 0, "exclusiveMinimum": True, "maximum": 9})
        assert node.minimum is None
        assert node.exclusive_minimum == 0
        assert node.maximum == 9

    def test_numeric_exclusive_bounds(self):
        node = parse_schema({"type": "integer", "exclusiveMaximum": 100, "multipleOf": 5})
        assert node.exclusive_maximum == 100
        assert node.multiple_of == 5

    def test_array_constraints(self):
        node = parse_schema({"type": "array", "items": {"type": "string"}, "minItems": 1, "uniqueItems": True})
        assert isinstance(node.items, StringNode)
        assert node.min_items == 1
        assert node.unique_items

    def test_tuple_items(self):
        node = parse_schema({"type": "array", "items": [{"type": "string"}, {"type": "integer"}]})
        assert node.items is None
        assert len(node.tuple_items) == 2


class TestObjects:
    def test_properties_keep_order(self):
        node = parse_schema({
            "type": "object",
            "properties": {"b": {"type": "string"}, "a": {"type": "integer"}},
            "required": ["a"],
        })
        assert [name for name, _ in node.properties] == ["b", "a"]
        assert node.required == frozenset({"a"})
        assert node.additional is None

    def test_additional_properties(self):
        assert parse_schema({"type": "object", "additionalProperties": False}).additional is False
        assert parse_schema({"type": "object", "additionalProperties": {}}).additional is True
        node = parse_schema({"type": "object", "additionalProperties": {"type": "integer"}})
        assert isinstance(node.additional, NumberNode)
