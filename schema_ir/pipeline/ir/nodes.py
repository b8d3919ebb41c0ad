"""
Schema IR node definitions.

The IR is a closed set of node variants. Every consumer dispatches on them with
a ``match`` statement whose last arm raises, so adding a variant surfaces in
every emitter and parser at once. Named types live in a SchemaDocument and are
pointed at by ReferenceNode, which keeps cyclic graphs finite.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar

from ...errors import ParseError, StructuralError, UnsupportedTypeError


class NodeKind(Enum):
    """Tag of an IR node variant."""

    PRIMITIVE = "primitive"  # string, number, boolean (+ format)
    LITERAL = "literal"  # a single literal value
    ENUM = "enum"  # homogeneous set of literals
    ARRAY = "array"  # list of element
    MAP = "map"  # string-keyed dictionary
    OBJECT = "object"  # property list (+ index signature)
    UNION = "union"  # A | B | ...
    INTERSECTION = "intersection"  # A & B & ...
    REFERENCE = "reference"  # pointer to a document entry


class ScalarKind(str, Enum):
    """Base kind of primitives, literals and enums."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"

    @staticmethod
    def of_value(value: Any) -> ScalarKind | None:
        """Return the scalar kind of a Python literal value, or None."""
        # bool is an int subclass, check it first
        if isinstance(value, bool):
            return ScalarKind.BOOLEAN
        if isinstance(value, (int, float)):
            return ScalarKind.NUMBER
        if isinstance(value, str):
            return ScalarKind.STRING
        return None


# Metadata attribute name -> schema keyword, in rendering order
CONSTRAINT_KEYWORDS: dict[str, str] = {
    "minimum": "minimum",
    "maximum": "maximum",
    "exclusive_minimum": "exclusiveMinimum",
    "exclusive_maximum": "exclusiveMaximum",
    "multiple_of": "multipleOf",
    "min_length": "minLength",
    "max_length": "maxLength",
    "pattern": "pattern",
    "format": "format",
    "min_items": "minItems",
    "max_items": "maxItems",
    "unique_items": "uniqueItems",
}


@dataclass
class Metadata:
    """Descriptive metadata attached to a node or a property."""

    title: str | None = None
    description: str | None = None

    # None is a valid default or example, presence is tracked separately
    default: Any = None
    has_default: bool = False
    example: Any = None
    has_example: bool = False

    deprecated: bool = False

    # Numeric constraints
    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: float | None = None
    exclusive_maximum: float | None = None
    multiple_of: float | None = None

    # String constraints
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    format: str | None = None

    # Array constraints
    min_items: int | None = None
    max_items: int | None = None
    unique_items: bool | None = None

    # Custom tags (e.g. ("private", ""), ("since", "2.0")), order preserved
    tags: list[tuple[str, Any]] = field(default_factory=list)

    def is_empty(self) -> bool:
        return self == Metadata()

    def has_tag(self, name: str) -> bool:
        return any(tag == name for tag, _ in self.tags)

    def constraints(self) -> list[tuple[str, Any]]:
        """Return the set constraints as (schema keyword, value) pairs."""
        items = []
        for attr, keyword in CONSTRAINT_KEYWORDS.items():
            value = getattr(self, attr)
            if value is not None:
                items.append((keyword, value))
        return items

    def doc_tags(self) -> list[tuple[str, Any]]:
        """Return constraints followed by custom tags, as rendered in doc comments."""
        items = self.constraints()
        if self.deprecated:
            items.append(("deprecated", ""))
        if self.has_default:
            items.append(("default", self.default))
        if self.has_example:
            items.append(("example", self.example))
        return items + list(self.tags)

    def merged(self, other: Metadata | None) -> Metadata:
        """Return a copy where every field set in ``other`` wins over ``self``."""
        if other is None:
            return Metadata(**{f.name: getattr(self, f.name) for f in fields(self)})
        result = Metadata()
        for f in fields(self):
            mine, theirs = getattr(self, f.name), getattr(other, f.name)
            if f.name == "tags":
                continue
            elif f.name in ("deprecated", "has_default", "has_example"):
                setattr(result, f.name, mine or theirs)
            elif f.name == "default":
                result.default = theirs if other.has_default else mine
            elif f.name == "example":
                result.example = theirs if other.has_example else mine
            else:
                setattr(result, f.name, theirs if theirs is not None else mine)
        result.tags = list(self.tags) + [t for t in other.tags if t not in self.tags]
        return result


@dataclass(kw_only=True)
class SchemaNode:
    """Base of all IR variants."""

    KIND: ClassVar[NodeKind]

    # Whether null is an accepted value
    nullable: bool = False
    metadata: Metadata | None = None

    @property
    def kind_tag(self) -> NodeKind:
        return self.KIND


@dataclass
class PrimitiveNode(SchemaNode):
    """A scalar; ``format`` is a secondary tag such as int64, uuid or date-time."""

    KIND: ClassVar[NodeKind] = NodeKind.PRIMITIVE

    kind: ScalarKind
    format: str | None = None


@dataclass
class LiteralNode(SchemaNode):
    KIND: ClassVar[NodeKind] = NodeKind.LITERAL

    kind: ScalarKind
    value: Any


@dataclass
class EnumNode(SchemaNode):
    """A homogeneous, ordered set of literal values."""

    KIND: ClassVar[NodeKind] = NodeKind.ENUM

    kind: ScalarKind
    values: list[Any] = field(default_factory=list)


@dataclass
class ArrayNode(SchemaNode):
    KIND: ClassVar[NodeKind] = NodeKind.ARRAY

    element: SchemaIR


@dataclass
class MapNode(SchemaNode):
    """A dictionary with string keys."""

    KIND: ClassVar[NodeKind] = NodeKind.MAP

    value_type: SchemaIR


@dataclass
class Property:
    name: str
    schema: SchemaIR
    required: bool = True
    metadata: Metadata | None = None


@dataclass
class ObjectNode(SchemaNode):
    """A fixed property list with an optional index signature.

    ``extra`` is None (closed), True (any extra keys) or the IR of extra values.
    """

    KIND: ClassVar[NodeKind] = NodeKind.OBJECT

    properties: list[Property] = field(default_factory=list)
    extra: bool | SchemaIR | None = None

    @property
    def required(self) -> list[str]:
        return [p.name for p in self.properties if p.required]

    def get_property(self, name: str) -> Property | None:
        return next((p for p in self.properties if p.name == name), None)


@dataclass
class Discriminator:
    property_name: str
    # literal value -> document name; only set when every member is named
    mapping: dict[Any, str] | None = None


@dataclass
class UnionNode(SchemaNode):
    """A union without members accepts only null."""

    KIND: ClassVar[NodeKind] = NodeKind.UNION

    members: list[SchemaIR] = field(default_factory=list)
    discriminator: Discriminator | None = None

    def is_null(self) -> bool:
        return not self.members


@dataclass
class IntersectionNode(SchemaNode):
    """Members are kept unmerged; each target decides how to combine them."""

    KIND: ClassVar[NodeKind] = NodeKind.INTERSECTION

    members: list[SchemaIR] = field(default_factory=list)


@dataclass
class ReferenceNode(SchemaNode):
    """Points at a document entry by name, never owns it."""

    KIND: ClassVar[NodeKind] = NodeKind.REFERENCE

    name: str


SchemaIR = (
    PrimitiveNode
    | LiteralNode
    | EnumNode
    | ArrayNode
    | MapNode
    | ObjectNode
    | UnionNode
    | IntersectionNode
    | ReferenceNode
)


def child_nodes(node: SchemaIR) -> list[SchemaIR]:
    """Return the direct children of a node, without following references."""
    match node:
        case PrimitiveNode() | LiteralNode() | EnumNode() | ReferenceNode():
            return []
        case ArrayNode(element=element):
            return [element]
        case MapNode(value_type=value_type):
            return [value_type]
        case ObjectNode(properties=properties, extra=extra):
            children = [p.schema for p in properties]
            if isinstance(extra, SchemaNode):
                children.append(extra)
            return children
        case UnionNode(members=members) | IntersectionNode(members=members):
            return list(members)
        case _:
            raise UnsupportedTypeError(f"Unsupported type: {node!r}")


def referenced_names(node: SchemaIR) -> list[str]:
    """Names of every ReferenceNode reachable from node, first-seen order."""
    names: list[str] = []
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, ReferenceNode):
            if current.name not in names:
                names.append(current.name)
            continue
        stack.extend(reversed(child_nodes(current)))
    return names


class SchemaDocument:
    """Ordered, name-unique collection of top-level IR entries."""

    def __init__(self, entries: Iterable[tuple[str, SchemaIR]] = ()):
        self._schemas: dict[str, SchemaIR] = {}
        for name, node in entries:
            self.add(name, node)

    def add(self, name: str, node: SchemaIR) -> None:
        if name in self._schemas:
            raise StructuralError(
                f"Duplicate type name '{name}' detected. Each type in the document must have a unique name."
            )
        self._schemas[name] = node

    def get(self, name: str) -> SchemaIR | None:
        return self._schemas.get(name)

    def __getitem__(self, name: str) -> SchemaIR:
        return self._schemas[name]

    def __contains__(self, name: object) -> bool:
        return name in self._schemas

    def __iter__(self) -> Iterator[str]:
        return iter(self._schemas)

    def __len__(self) -> int:
        return len(self._schemas)

    def names(self) -> list[str]:
        return list(self._schemas)

    def items(self) -> list[tuple[str, SchemaIR]]:
        return list(self._schemas.items())

    def resolve(self, node: SchemaIR) -> SchemaIR:
        """Follow references until a non-reference node (or an unknown name) is reached."""
        seen: set[str] = set()
        while isinstance(node, ReferenceNode) and node.name in self._schemas and node.name not in seen:
            seen.add(node.name)
            node = self._schemas[node.name]
        return node

    def validate_references(self) -> None:
        """Raise ParseError if any reference points outside the document."""
        for name, node in self._schemas.items():
            for target in referenced_names(node):
                if target not in self._schemas:
                    raise ParseError(f"Schema '{name}' references unknown type '{target}'")

    def find_cycles(self) -> list[str]:
        """Return the names that take part in a reference cycle, in document order."""
        graph = {name: [t for t in referenced_names(node) if t in self._schemas] for name, node in self._schemas.items()}
        cyclic: set[str] = set()
        for start in graph:
            # DFS from each neighbour of start looking for a path back to start
            stack = list(graph[start])
            visited: set[str] = set()
            while stack:
                current = stack.pop()
                if current == start:
                    cyclic.add(start)
                    break
                if current in visited:
                    continue
                visited.add(current)
                stack.extend(graph[current])
        return [name for name in self._schemas if name in cyclic]

    def __repr__(self) -> str:
        return f"SchemaDocument({self.names()!r})"
