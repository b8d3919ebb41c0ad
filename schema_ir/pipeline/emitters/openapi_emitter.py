"""
OpenAPI emitter: Schema IR -> ``components.schemas``.

Nullable values are projected per version: 3.0 adds ``nullable: true``,
3.1 widens ``type`` to ``[T, "null"]`` or appends a ``{type: "null"}`` branch.
"""

from __future__ import annotations

from typing import Any

from ...errors import UnsupportedTypeError
from ..config import ConversionConfig, OpenApiVersion, UnionStyle, coerce_option
from ..ir.nodes import (
    ArrayNode,
    EnumNode,
    IntersectionNode,
    LiteralNode,
    MapNode,
    Metadata,
    ObjectNode,
    PrimitiveNode,
    ReferenceNode,
    ScalarKind,
    SchemaDocument,
    SchemaIR,
    UnionNode,
)

REF_PREFIX = "#/components/schemas/"

# Full document version strings
DOCUMENT_VERSIONS = {
    OpenApiVersion.V3_0: "3.0.3",
    OpenApiVersion.V3_1: "3.1.0",
}

DEFAULT_INFO = {"title": "API", "version": "1.0.0"}

INTEGER_FORMATS = ("int32", "int64")


def _scalar_type(kind: ScalarKind, values: list[Any]) -> str:
    """OpenAPI type of literal values; whole numbers render as integer."""
    if kind == ScalarKind.NUMBER and values and all(isinstance(v, int) and not isinstance(v, bool) for v in values):
        return "integer"
    return kind.value


class OpenApiEmitter:
    """Renders a SchemaDocument as OpenAPI schema objects."""

    def __init__(self, config: ConversionConfig | None = None):
        self.config = config or ConversionConfig()

    def emit(
        self,
        document: SchemaDocument,
        version: OpenApiVersion | str | None = None,
        union_style: UnionStyle | str | None = None,
    ) -> dict[str, dict]:
        """
        Render every document entry.

        Args:
            document: The document to render
            version: "3.0" or "3.1", defaults to the configured version
            union_style: "oneOf" or "anyOf", defaults to the configured style

        Returns:
            The ``components.schemas`` mapping, in document order
        """
        version = coerce_option(OpenApiVersion, version or self.config.openapi_version, "openapi_version")
        union_style = coerce_option(UnionStyle, union_style or self.config.union_style, "union_style")
        renderer = _Renderer(version, union_style)

        schemas = {}
        for name, node in document.items():
            schema = renderer.render(node)
            if "title" not in schema:
                schema = {"title": name, **schema}
            schemas[name] = schema
        return schemas

    def build_document(
        self,
        document: SchemaDocument,
        version: OpenApiVersion | str | None = None,
        union_style: UnionStyle | str | None = None,
        info: dict | None = None,
    ) -> dict:
        """Wrap the rendered schemas in a complete OpenAPI document."""
        version = coerce_option(OpenApiVersion, version or self.config.openapi_version, "openapi_version")
        return {
            "openapi": DOCUMENT_VERSIONS[version],
            "info": dict(info or DEFAULT_INFO),
            "paths": {},
            "components": {"schemas": self.emit(document, version, union_style)},
        }


class _Renderer:
    def __init__(self, version: OpenApiVersion, union_style: UnionStyle):
        self.version = version
        self.union_key = union_style.value

    def render(self, node: SchemaIR) -> dict:
        if isinstance(node, UnionNode) and node.is_null():
            return _merge_metadata(self._null_schema(), node.metadata)
        schema = self._render_shape(node)
        if node.nullable:
            schema = self._project_nullable(schema)
        return _merge_metadata(schema, node.metadata)

    def _render_shape(self, node: SchemaIR) -> dict:
        match node:
            case PrimitiveNode(kind=kind, format=fmt):
                if kind == ScalarKind.NUMBER and fmt in INTEGER_FORMATS:
                    schema = {"type": "integer"}
                else:
                    schema = {"type": kind.value}
                if fmt:
                    schema["format"] = fmt
                return schema
            case LiteralNode(kind=kind, value=value):
                return {"type": _scalar_type(kind, [value]), "enum": [value]}
            case EnumNode(kind=kind, values=values):
                return {"type": _scalar_type(kind, values), "enum": list(values)}
            case ArrayNode(element=element):
                return {"type": "array", "items": self.render(element)}
            case MapNode(value_type=value_type):
                return {"type": "object", "additionalProperties": self.render(value_type)}
            case ObjectNode():
                return self._render_object(node)
            case UnionNode(members=members, discriminator=discriminator):
                schema: dict[str, Any] = {self.union_key: [self.render(m) for m in members]}
                if discriminator is not None:
                    schema["discriminator"] = {"propertyName": discriminator.property_name}
                    if discriminator.mapping:
                        schema["discriminator"]["mapping"] = {
                            str(value): REF_PREFIX + name for value, name in discriminator.mapping.items()
                        }
                return schema
            case IntersectionNode(members=members):
                return {"allOf": [self.render(m) for m in members]}
            case ReferenceNode(name=name):
                return {"$ref": REF_PREFIX + name}
            case _:
                raise UnsupportedTypeError(f"Unsupported type: {node!r}")

    def _render_object(self, node: ObjectNode) -> dict:
        schema: dict[str, Any] = {"type": "object"}
        if node.properties:
            schema["properties"] = {p.name: _merge_metadata(self.render(p.schema), p.metadata) for p in node.properties}
            required = node.required
            if required:
                schema["required"] = required
        if node.extra is True:
            schema["additionalProperties"] = True
        elif node.extra is not None:
            schema["additionalProperties"] = self.render(node.extra)
        return schema

    def _null_schema(self) -> dict:
        if self.version == OpenApiVersion.V3_0:
            # 3.0 has no null type
            return {"enum": [None], "nullable": True}
        return {"type": "null"}

    def _project_nullable(self, schema: dict) -> dict:
        if self.version == OpenApiVersion.V3_0:
            if "$ref" in schema:
                # $ref siblings are ignored in 3.0
                return {"allOf": [schema], "nullable": True}
            schema["nullable"] = True
            return schema

        for key in ("oneOf", "anyOf"):
            if key in schema:
                schema[key].append({"type": "null"})
                return schema
        if "type" not in schema:
            return {self.union_key: [schema, {"type": "null"}]}
        schema["type"] = [schema["type"], "null"]
        if "enum" in schema:
            schema["enum"].append(None)
        return schema


def _merge_metadata(schema: dict, metadata: Metadata | None) -> dict:
    """Add descriptive keywords without overwriting structural ones."""
    if metadata is None:
        return schema
    items: list[tuple[str, Any]] = []
    if metadata.title is not None:
        items.append(("title", metadata.title))
    if metadata.description is not None:
        items.append(("description", metadata.description))
    if metadata.has_default:
        items.append(("default", metadata.default))
    if metadata.has_example:
        items.append(("example", metadata.example))
    if metadata.deprecated:
        items.append(("deprecated", True))
    items.extend(metadata.constraints())
    items.extend((f"x-{name}", True if value == "" else value) for name, value in metadata.tags)
    for key, value in items:
        schema.setdefault(key, value)
    return schema


def emit_openapi(
    document: SchemaDocument,
    version: OpenApiVersion | str = OpenApiVersion.V3_0,
    union_style: UnionStyle | str = UnionStyle.ONE_OF,
) -> dict[str, dict]:
    """Render ``components.schemas`` for a document."""
    return OpenApiEmitter().emit(document, version, union_style)
