"""
OpenAPI parser: ``components.schemas`` -> SchemaDocument.

Accepts both nullable conventions (3.0 ``nullable: true`` and 3.1 ``"null"``
types or branches). ``$ref`` only resolves against the document being parsed.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from ...errors import ParseError
from ..ir.nodes import (
    CONSTRAINT_KEYWORDS,
    ArrayNode,
    Discriminator,
    EnumNode,
    IntersectionNode,
    LiteralNode,
    MapNode,
    Metadata,
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

# schema keyword -> Metadata attribute
_KEYWORD_ATTRIBUTES = {keyword: attr for attr, keyword in CONSTRAINT_KEYWORDS.items()}

_PRIMITIVE_KINDS = {
    "string": ScalarKind.STRING,
    "number": ScalarKind.NUMBER,
    "integer": ScalarKind.NUMBER,
    "boolean": ScalarKind.BOOLEAN,
}


class OpenApiParser:
    """Parses OpenAPI schema objects into IR."""

    REF_PATTERN = re.compile(r"^#/components/schemas/(.+)$")

    def parse(self, spec: dict[str, Any]) -> SchemaDocument:
        """
        Parse an OpenAPI document.

        Args:
            spec: A full OpenAPI document, or a bare ``components.schemas`` mapping

        Returns:
            SchemaDocument with one entry per schema, in document order
        """
        if not isinstance(spec, dict):
            raise ParseError(f"Expected an OpenAPI document object, got {type(spec).__name__}")
        if "openapi" in spec or "components" in spec:
            schemas = spec.get("components", {}).get("schemas", {})
        else:
            schemas = spec
        if not isinstance(schemas, dict):
            raise ParseError("components.schemas must be an object")

        document = SchemaDocument()
        for name, schema in schemas.items():
            logger.debug("Parsing schema %s", name)
            node = self._parse_schema(schema, f"#/components/schemas/{name}")
            # roots get their name as title when emitted
            if node.metadata is not None and node.metadata.title == name:
                node.metadata.title = None
                if node.metadata.is_empty():
                    node.metadata = None
            document.add(name, node)

        document.validate_references()
        return document

    def _parse_schema(self, schema: Any, path: str) -> SchemaIR:
        if schema is True or schema == {}:
            return ObjectNode(extra=True)
        if not isinstance(schema, dict):
            raise ParseError(f"Invalid schema at {path}: expected an object, got {schema!r}")

        node = self._parse_shape(schema, path)
        if schema.get("nullable") is True:
            node.nullable = True
        metadata = self._parse_metadata(schema, node)
        if not metadata.is_empty():
            node.metadata = metadata if node.metadata is None else node.metadata.merged(metadata)
        return node

    def _parse_shape(self, schema: dict[str, Any], path: str) -> SchemaIR:
        if "$ref" in schema:
            return ReferenceNode(name=self._ref_name(schema["$ref"], path))

        if "allOf" in schema:
            members = [self._parse_schema(s, f"{path}/allOf/{i}") for i, s in enumerate(schema["allOf"])]
            if len(members) == 1 and schema.get("nullable") is True:
                # 3.0 nullable $ref wrapper
                return members[0]
            return IntersectionNode(members=members)

        for key in ("oneOf", "anyOf"):
            if key in schema:
                return self._parse_union(schema, schema[key], f"{path}/{key}")

        if "const" in schema:
            return self._literal(schema["const"], path)

        types = schema.get("type")
        nullable = False
        if isinstance(types, list):
            nullable = "null" in types
            types = [t for t in types if t != "null"]
            if len(types) > 1:
                members = [self._parse_schema({**schema, "type": t}, path) for t in types]
                return UnionNode(members=members, nullable=nullable)
            if not types and nullable and "enum" not in schema:
                return UnionNode(nullable=True)
            types = types[0] if types else None

        if types == "null":
            return UnionNode(nullable=True)
        if "enum" in schema:
            node = self._parse_enum(schema["enum"], path)
        elif types == "array" or "items" in schema:
            node = ArrayNode(element=self._parse_schema(schema.get("items", True), f"{path}/items"))
        elif types == "object" or "properties" in schema or "additionalProperties" in schema:
            node = self._parse_object(schema, path)
        elif types in _PRIMITIVE_KINDS:
            fmt = schema.get("format")
            if types == "integer" and fmt is None:
                fmt = "int64"
            node = PrimitiveNode(kind=_PRIMITIVE_KINDS[types], format=fmt)
        elif types is None:
            node = ObjectNode(extra=True)
        else:
            raise ParseError(f"Unsupported type {types!r} at {path}")

        node.nullable = node.nullable or nullable
        return node

    def _ref_name(self, ref: Any, path: str) -> str:
        match = self.REF_PATTERN.match(ref) if isinstance(ref, str) else None
        if match is None:
            raise ParseError(f"Unsupported $ref {ref!r} at {path}: only #/components/schemas/ references resolve")
        return match.group(1)

    def _parse_union(self, schema: dict[str, Any], branches: Any, path: str) -> SchemaIR:
        if not isinstance(branches, list) or not branches:
            raise ParseError(f"Expected a non-empty list at {path}")
        nullable = any(b == {"type": "null"} for b in branches)
        members = [self._parse_schema(b, f"{path}/{i}") for i, b in enumerate(branches) if b != {"type": "null"}]
        if len(members) == 1:
            node = members[0]
            node.nullable = node.nullable or nullable
            return node

        discriminator = None
        if "discriminator" in schema:
            spec = schema["discriminator"]
            if not isinstance(spec, dict) or "propertyName" not in spec:
                raise ParseError(f"Invalid discriminator at {path}: propertyName is required")
            mapping = None
            if spec.get("mapping"):
                mapping = {value: self._ref_name(ref, f"{path}/discriminator") for value, ref in spec["mapping"].items()}
            discriminator = Discriminator(property_name=spec["propertyName"], mapping=mapping)
        return UnionNode(members=members, nullable=nullable, discriminator=discriminator)

    def _literal(self, value: Any, path: str) -> LiteralNode:
        kind = ScalarKind.of_value(value)
        if kind is None:
            raise ParseError(f"Unsupported literal {value!r} at {path}")
        return LiteralNode(kind=kind, value=value)

    def _parse_enum(self, values: Any, path: str) -> SchemaIR:
        if not isinstance(values, list) or not values:
            raise ParseError(f"Enum at {path} must be a non-empty list")
        nullable = None in values
        values = [v for v in values if v is not None]
        if not values:
            return UnionNode(nullable=True)
        kinds = {ScalarKind.of_value(v) for v in values}
        if len(values) == 1:
            node = self._literal(values[0], path)
        elif kinds == {ScalarKind.BOOLEAN}:
            node = PrimitiveNode(kind=ScalarKind.BOOLEAN)
        elif len(kinds) != 1 or None in kinds:
            raise ParseError(f"Mixed enum types are not supported: {path}")
        else:
            node = EnumNode(kind=kinds.pop(), values=values)
        node.nullable = nullable
        return node

    def _parse_object(self, schema: dict[str, Any], path: str) -> SchemaIR:
        properties = schema.get("properties") or {}
        required = set(schema.get("required", []))
        additional = schema.get("additionalProperties")

        if not properties and isinstance(additional, dict) and additional:
            return MapNode(value_type=self._parse_schema(additional, f"{path}/additionalProperties"))

        props = [
            Property(name=name, schema=self._parse_schema(sub, f"{path}/properties/{name}"), required=name in required)
            for name, sub in properties.items()
        ]
        unknown = required - set(properties)
        if unknown:
            raise ParseError(f"Required properties {sorted(unknown)} are not declared at {path}")

        extra = None
        if additional is True or additional == {}:
            extra = True
        elif isinstance(additional, dict):
            extra = self._parse_schema(additional, f"{path}/additionalProperties")
        return ObjectNode(properties=props, extra=extra)

    def _parse_metadata(self, schema: dict[str, Any], node: SchemaIR) -> Metadata:
        metadata = Metadata(
            title=schema.get("title"),
            description=schema.get("description"),
            deprecated=schema.get("deprecated") is True,
        )
        if "default" in schema:
            metadata.default, metadata.has_default = schema["default"], True
        if "example" in schema:
            metadata.example, metadata.has_example = schema["example"], True
        for keyword, attr in _KEYWORD_ATTRIBUTES.items():
            if keyword not in schema:
                continue
            # format of a primitive is structural
            if keyword == "format" and isinstance(node, PrimitiveNode):
                continue
            setattr(metadata, attr, schema[keyword])
        for key, value in schema.items():
            if key.startswith("x-"):
                metadata.tags.append((key[2:], "" if value is True else value))
        return metadata


def parse_openapi(spec: dict[str, Any]) -> SchemaDocument:
    """Parse an OpenAPI document or ``components.schemas`` mapping."""
    return OpenApiParser().parse(spec)
