"""Canonical, target-agnostic type descriptors produced by the resolver."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .schema_parser import MISSING


class Kind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    NULL = "null"
    DATE = "date"
    BLOB = "blob"
    ARRAY = "array"
    TUPLE = "tuple"
    OBJECT = "object"
    MAP = "map"
    NO_KEYS = "no_keys"
    LITERAL_UNION = "literal_union"
    ENUM = "enum"
    ALL_OF = "all_of"
    UNION = "union"
    REFERENCE = "reference"
    ANY = "any"
    UNKNOWN = "unknown"


class Direction(str, Enum):
    """READ keeps readOnly properties, WRITE drops them."""

    READ = "read"
    WRITE = "write"


SCALAR_KINDS = frozenset(
    {Kind.STRING, Kind.NUMBER, Kind.INTEGER, Kind.BOOLEAN, Kind.DATE, Kind.LITERAL_UNION, Kind.ENUM}
)

# Members dropped from compositions
DEGENERATE_KINDS = frozenset({Kind.ANY, Kind.UNKNOWN})


@dataclass(frozen=True)
class Constraints:
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: float | None = None
    exclusive_maximum: float | None = None
    multiple_of: float | None = None
    min_items: int | None = None
    max_items: int | None = None
    unique_items: bool = False

    @property
    def bounded(self) -> bool:
        """Both an inclusive lower and upper bound are declared."""
        return self.minimum is not None and self.maximum is not None


NO_CONSTRAINTS = Constraints()


@dataclass(frozen=True)
class EnumMember:
    name: str
    value: Any


@dataclass(frozen=True)
class TypeDescriptor:
    kind: Kind
    nullable: bool = False
    format: str | None = None
    constraints: Constraints = NO_CONSTRAINTS
    default: Any = MISSING
    description: str | None = None
    required: bool = False
    read_only: bool = False
    # OBJECT
    properties: tuple[tuple[str, TypeDescriptor], ...] = ()
    # ARRAY element, MAP value
    items: TypeDescriptor | None = None
    # TUPLE positions, ALL_OF / UNION members
    members: tuple[TypeDescriptor, ...] = ()
    # LITERAL_UNION values
    literals: tuple[Any, ...] = ()
    # ENUM members
    enum_members: tuple[EnumMember, ...] = ()
    # REFERENCE target (canonical type name) and whether it closes a cycle
    ref: str | None = None
    recursive: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING

    @property
    def values(self) -> tuple[Any, ...]:
        """Literal values of an enumerated descriptor."""
        if self.kind == Kind.LITERAL_UNION:
            return self.literals
        if self.kind == Kind.ENUM:
            return tuple(m.value for m in self.enum_members)
        return ()

    def get_property(self, name: str) -> TypeDescriptor | None:
        for prop_name, prop in self.properties:
            if prop_name == name:
                return prop
        return None


UNKNOWN = TypeDescriptor(kind=Kind.UNKNOWN)
ANY = TypeDescriptor(kind=Kind.ANY)
