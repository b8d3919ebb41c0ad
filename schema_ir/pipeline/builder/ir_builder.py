"""
IR builder: TypeDescriptor -> Schema IR.

Normalizes unions, intersections, enums, format-tagged scalars, maps and
cyclic type graphs into IR nodes. A named type that belongs to the document
is emitted as a ReferenceNode everywhere except at its own root.
"""

from __future__ import annotations

import datetime
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from ...errors import ConfigurationError, StructuralError, UnsupportedTypeError
from ...tags import EXCLUDED_TAGS, FORMAT_TAGS
from ..config import ConversionConfig
from ..descriptors.base import PropertyDescriptor, TypeDescriptor
from ..ir.nodes import (
    ArrayNode,
    Discriminator,
    EnumNode,
    IntersectionNode,
    LiteralNode,
    MapNode,
    ObjectNode,
    PrimitiveNode,
    Property,
    ReferenceNode,
    ScalarKind,
    SchemaDocument,
    SchemaIR,
    UnionNode,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildContext:
    """State threaded through recursive build calls."""

    # Names of the document-level types
    available_names: frozenset[str] = frozenset()

    # Named types currently being expanded, outermost first
    in_progress: tuple[str, ...] = ()

    # 0 while expanding a document root
    depth: int = 0

    def descend(self) -> BuildContext:
        return BuildContext(self.available_names, self.in_progress, self.depth + 1)

    def entering(self, name: str) -> BuildContext:
        return BuildContext(self.available_names, self.in_progress + (name,), self.depth)


class IRBuilder:
    """Builds IR nodes from TypeDescriptors."""

    def __init__(self, config: ConversionConfig | None = None):
        self.config = config or ConversionConfig()

    def build_document(self, descriptors: Iterable[TypeDescriptor]) -> SchemaDocument:
        """Build one document entry per named descriptor, in the given order."""
        named: list[tuple[str, TypeDescriptor]] = []
        seen: set[str] = set()
        for descriptor in descriptors:
            name = descriptor.declared_name()
            if name is None:
                raise StructuralError(f"Document types must be named. Received: {descriptor.text()}")
            if name in seen:
                raise StructuralError(
                    f"Duplicate type name '{name}' detected. Each type in the document must have a unique name."
                )
            seen.add(name)
            named.append((name, descriptor))

        ctx = BuildContext(available_names=frozenset(seen))
        document = SchemaDocument()
        for name, descriptor in named:
            logger.debug("Building schema for %s", name)
            document.add(name, self.build(descriptor, ctx))
        return document

    def build(self, descriptor: TypeDescriptor, ctx: BuildContext) -> SchemaIR:
        """Build the IR of a descriptor."""
        name = descriptor.declared_name()
        if name is not None and name in ctx.available_names:
            if name in ctx.in_progress:
                logger.debug("Circular reference to %s", name)
                return ReferenceNode(name=name)
            if ctx.depth > 0:
                return ReferenceNode(name=name)
        if name is not None:
            if name in ctx.in_progress:
                raise StructuralError(
                    f"Recursive type '{name}' must be a document-level type to be referenced. "
                    f"Received: {descriptor.text()}"
                )
            ctx = ctx.entering(name)

        node = self._build_shape(descriptor, ctx)
        metadata = descriptor.metadata()
        if not metadata.is_empty():
            node.metadata = metadata if node.metadata is None else node.metadata.merged(metadata)
        return node

    def _build_shape(self, descriptor: TypeDescriptor, ctx: BuildContext) -> SchemaIR:
        text = descriptor.text()

        if descriptor.is_symbol():
            if not self.config.coerce_symbols_to_strings:
                raise ConfigurationError(
                    f"Symbol types require 'coerce_symbols_to_strings' to be enabled. Received: {text}"
                )
            return PrimitiveNode(kind=ScalarKind.STRING)

        global_name = descriptor.global_name()
        if global_name is not None:
            raise UnsupportedTypeError(f"Unsupported global type '{global_name}' in: {text}")

        if descriptor.is_nullish():
            return UnionNode(nullable=True)

        if descriptor.is_any():
            return ObjectNode(extra=True)

        if descriptor.format_tag() is not None:
            return self._build_formatted(descriptor)

        if descriptor.is_date():
            return self._build_date(descriptor)

        is_literal, value = descriptor.literal_value()
        if is_literal:
            kind = ScalarKind.of_value(value)
            if kind is None:
                raise UnsupportedTypeError(f"Unsupported type: {text}")
            return LiteralNode(kind=kind, value=value)

        if descriptor.enum_members() is not None:
            return self._build_enum(descriptor)

        members = descriptor.union_members()
        if members is not None:
            return self._build_union(descriptor, members, ctx)

        members = descriptor.intersection_members()
        if members is not None:
            child = ctx.descend()
            return IntersectionNode(members=[self.build(m, child) for m in members])

        element = descriptor.array_element()
        if element is not None:
            return ArrayNode(element=self.build(element, ctx.descend()))

        kind = descriptor.primitive_kind()
        if kind is not None:
            return PrimitiveNode(kind=kind, format=descriptor.primitive_format())

        if descriptor.is_object_like():
            return self._build_object(descriptor, ctx)

        raise UnsupportedTypeError(f"Unsupported type: {text}")

    # Scalars

    def _build_formatted(self, descriptor: TypeDescriptor) -> SchemaIR:
        tag = descriptor.format_tag()
        text = descriptor.text()
        fmt = descriptor.format_argument()
        if fmt is None:
            # generic argument lost, recover it from the text
            match = re.search(rf"\b{tag}\s*[\[<]\s*[\"']([^\"']+)[\"']", text)
            fmt = match.group(1) if match else None
        if fmt is None:
            raise StructuralError(f"{tag} requires a format. Received: {text}")

        allowed = FORMAT_TAGS.get(tag)
        if allowed is not None and fmt not in allowed:
            raise StructuralError(f"{tag} does not support format '{fmt}'. Received: {text}")

        if tag == "StrFormat":
            return PrimitiveNode(kind=ScalarKind.STRING, format=fmt)
        if fmt == "string":
            return PrimitiveNode(kind=ScalarKind.STRING)
        if tag == "DateFormat":
            if fmt in ("unix-s", "unix-ms"):
                return PrimitiveNode(kind=ScalarKind.NUMBER, format="int64")
            return PrimitiveNode(kind=ScalarKind.STRING, format=fmt)
        return PrimitiveNode(kind=ScalarKind.NUMBER, format=fmt)

    def _build_date(self, descriptor: TypeDescriptor) -> SchemaIR:
        host = descriptor.host_type()
        if self.config.transform_date is not None:
            return self.config.transform_date(host)
        if isinstance(host, type) and issubclass(host, datetime.datetime):
            return PrimitiveNode(kind=ScalarKind.STRING, format="date-time")
        return PrimitiveNode(kind=ScalarKind.STRING, format="date")

    def _build_enum(self, descriptor: TypeDescriptor) -> EnumNode:
        text = descriptor.text()
        members = descriptor.enum_members()
        if not members:
            raise StructuralError(f"Enum has no members: {text}")

        values = []
        next_value = 0
        for member in members:
            value = member.value if member.has_value else next_value
            kind = ScalarKind.of_value(value)
            if kind not in (ScalarKind.STRING, ScalarKind.NUMBER):
                raise StructuralError(
                    f"Enum member '{member.name}' of {text} does not have a string or number value: {value!r}"
                )
            if isinstance(value, int):
                next_value = value + 1
            values.append(value)

        kinds = {ScalarKind.of_value(v) for v in values}
        if len(kinds) > 1:
            raise StructuralError(f"Mixed enum types are not supported: {text}")
        return EnumNode(kind=kinds.pop(), values=values)

    # Unions

    def _build_union(self, descriptor: TypeDescriptor, members: list[TypeDescriptor], ctx: BuildContext) -> SchemaIR:
        nullish = [m for m in members if m.is_nullish()]
        rest = [m for m in members if not m.is_nullish()]
        if not rest:
            return UnionNode(nullable=True)
        child = ctx.descend()

        if len(rest) == 1:
            node = self.build(rest[0], child)
            node.nullable = node.nullable or bool(nullish)
            return node

        literals = [m.literal_value() for m in rest]
        if all(is_literal for is_literal, _ in literals):
            values = [value for _, value in literals]
            kinds = {ScalarKind.of_value(v) for v in values}
            if kinds == {ScalarKind.BOOLEAN} and set(values) == {True, False}:
                return PrimitiveNode(kind=ScalarKind.BOOLEAN, nullable=bool(nullish))
            if kinds == {ScalarKind.STRING} or kinds == {ScalarKind.NUMBER}:
                return EnumNode(kind=kinds.pop(), values=values, nullable=bool(nullish))

        nodes = _collapse_booleans([self.build(m, child) for m in rest])
        return UnionNode(
            members=nodes,
            nullable=bool(nullish),
            discriminator=self._detect_discriminator(rest, ctx),
        )

    def _detect_discriminator(self, members: list[TypeDescriptor], ctx: BuildContext) -> Discriminator | None:
        if len(members) < 2 or not all(m.is_object_like() for m in members):
            return None
        member_props = [{p.name: p for p in _visible_properties(m)} for m in members]

        for prop_name in member_props[0]:
            values = []
            for props in member_props:
                prop = props.get(prop_name)
                if prop is None:
                    break
                is_literal, value = prop.descriptor.literal_value()
                if not is_literal or ScalarKind.of_value(value) not in (ScalarKind.STRING, ScalarKind.NUMBER):
                    break
                values.append(value)
            else:
                if len(set(values)) != len(values):
                    continue
                names = [m.declared_name() for m in members]
                mapping = None
                if all(name is not None and name in ctx.available_names for name in names):
                    mapping = dict(zip(values, names))
                return Discriminator(property_name=prop_name, mapping=mapping)
        return None

    # Objects

    def _build_object(self, descriptor: TypeDescriptor, ctx: BuildContext) -> SchemaIR:
        child = ctx.descend()
        props = _visible_properties(descriptor)
        index = descriptor.index_value()

        if not props and index is not None:
            return MapNode(value_type=self.build(index, child))

        properties = [
            Property(
                name=p.name,
                schema=self.build(p.descriptor, child),
                required=not p.optional,
                metadata=None if p.metadata.is_empty() else p.metadata,
            )
            for p in props
        ]
        extra = None
        if index is not None:
            extra = True if index.is_any() else self.build(index, child)
        return ObjectNode(properties=properties, extra=extra)


def _visible_properties(descriptor: TypeDescriptor) -> list[PropertyDescriptor]:
    """Properties that are not tagged private, ignored or package-scoped."""
    return [p for p in descriptor.properties() if not any(p.metadata.has_tag(tag) for tag in EXCLUDED_TAGS)]


def _collapse_booleans(nodes: list[SchemaIR]) -> list[SchemaIR]:
    """Replace a true/false literal pair by a single boolean primitive."""
    flags = {n.value for n in nodes if isinstance(n, LiteralNode) and n.kind == ScalarKind.BOOLEAN}
    if flags != {True, False}:
        return nodes
    result: list[SchemaIR] = []
    collapsed = False
    for node in nodes:
        if isinstance(node, LiteralNode) and node.kind == ScalarKind.BOOLEAN:
            if not collapsed:
                result.append(PrimitiveNode(kind=ScalarKind.BOOLEAN))
                collapsed = True
            continue
        result.append(node)
    return result


def build_document(descriptors: Iterable[TypeDescriptor], config: ConversionConfig | None = None) -> SchemaDocument:
    """Build a SchemaDocument from named descriptors."""
    return IRBuilder(config).build_document(descriptors)


