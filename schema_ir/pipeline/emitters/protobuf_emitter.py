"""
Protobuf emitter: Schema IR -> ProtoModel.

Objects become messages, enums become proto enums, inline objects and enums
are hoisted as ``<Parent><Field>`` declarations. Field numbers come from a
counter local to each message, assigned in declaration order.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import Any

from ...errors import StructuralError, UnsupportedTypeError
from ...tags import RpcMethod
from ...utils import snake_to_pascal_case, to_upper_snake_case
from ..config import ConversionConfig
from ..ir.nodes import (
    ArrayNode,
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
from ..protobuf_model import (
    EMPTY_IMPORT,
    EMPTY_MESSAGE,
    ProtoComment,
    ProtoEnum,
    ProtoEnumValue,
    ProtoField,
    ProtoMessage,
    ProtoMethod,
    ProtoModel,
    ProtoService,
)

logger = logging.getLogger(__name__)

NUMBER_FORMATS = ("int32", "int64", "float", "double")

# Referenced names with no Protobuf representation
UNSUPPORTED_GLOBALS = frozenset(
    {
        "Callable",
        "Function",
        "Awaitable",
        "Coroutine",
        "Promise",
        "Generator",
        "AsyncGenerator",
        "Iterator",
        "AsyncIterator",
        "Iterable",
        "Symbol",
        "WeakMap",
        "WeakSet",
    }
)

# Name of the single field of wrapper messages emitted for non-object roots
WRAPPER_FIELD = "value"


def _field_name(name: str) -> str:
    return re.sub(r"\W", "_", name)


def _enum_value_suffix(value: Any, index: int) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value < 0:
        return f"NEG_{to_upper_snake_case(-value)}"
    return to_upper_snake_case(value) or f"VALUE_{index}"


def comment_from_metadata(metadata: Metadata | None) -> ProtoComment | None:
    """Description lines followed by @tag lines."""
    if metadata is None:
        return None
    comment = ProtoComment(
        lines=metadata.description.splitlines() if metadata.description else [],
        tags=metadata.doc_tags(),
    )
    return None if comment.is_empty() else comment


class _MessageBuilder:
    """Per-emit state: the model being filled and the names already taken."""

    def __init__(self, document: SchemaDocument, model: ProtoModel):
        self.document = document
        self.model = model
        self.taken = set(document.names())

    def unique_name(self, name: str) -> str:
        candidate, suffix = name, 2
        while candidate in self.taken:
            candidate = f"{name}{suffix}"
            suffix += 1
        self.taken.add(candidate)
        return candidate

    def add_enum(self, name: str, node: EnumNode) -> None:
        ints = [v for v in node.values if isinstance(v, int) and not isinstance(v, bool)]
        use_values = len(ints) == len(node.values) and node.values and node.values[0] == 0
        prefix = to_upper_snake_case(name)
        values = []
        used: set[str] = set()
        for index, value in enumerate(node.values):
            value_name = f"{prefix}_{_enum_value_suffix(value, index)}"
            candidate, counter = value_name, 2
            # value names share one namespace per enum
            while candidate in used:
                candidate = f"{value_name}_{counter}"
                counter += 1
            used.add(candidate)
            values.append(ProtoEnumValue(name=candidate, number=value if use_values else index))
        self.model.enums.append(ProtoEnum(name=name, values=values, comment=comment_from_metadata(node.metadata)))

    def add_message(self, name: str, properties: list[Property], metadata: Metadata | None) -> None:
        # counter local to this message
        number = 0
        fields = []
        for prop in properties:
            number += 1
            fields.append(self.field(name, prop, number))
        self.model.messages.append(ProtoMessage(name=name, fields=fields, comment=comment_from_metadata(metadata)))

    def add_wrapper(self, name: str, node: SchemaIR) -> None:
        prop = Property(name=WRAPPER_FIELD, schema=node, required=not node.nullable)
        self.add_message(name, [prop], node.metadata)

    def flatten(self, node: SchemaIR, seen: frozenset[str] = frozenset()) -> list[Property]:
        """Properties of an intersection member, following references."""
        match node:
            case ObjectNode(properties=properties):
                return list(properties)
            case IntersectionNode(members=members):
                merged: dict[str, Property] = {}
                for member in members:
                    for prop in self.flatten(member, seen):
                        merged[prop.name] = prop
                return list(merged.values())
            case ReferenceNode(name=name) if name in self.document and name not in seen:
                return self.flatten(self.document[name], seen | {name})
            case _:
                raise UnsupportedTypeError(f"Unsupported type in intersection: {node!r}")

    def field(self, parent: str, prop: Property, number: int) -> ProtoField:
        schema = prop.schema
        name = _field_name(prop.name)
        hoist_name = parent + snake_to_pascal_case(prop.name)
        metadata = prop.metadata
        if schema.metadata is not None and not isinstance(schema, ReferenceNode):
            metadata = schema.metadata.merged(metadata)
        comment = comment_from_metadata(metadata)

        if isinstance(schema, MapNode):
            return ProtoField(
                name=name,
                type=self.type_name(schema.value_type, hoist_name),
                number=number,
                map_key="string",
                comment=comment,
            )
        if isinstance(schema, ArrayNode):
            return ProtoField(
                name=name,
                type=self.type_name(schema.element, hoist_name),
                number=number,
                repeated=True,
                comment=comment,
            )
        return ProtoField(
            name=name,
            type=self.type_name(schema, hoist_name),
            number=number,
            optional=schema.nullable or not prop.required,
            comment=comment,
        )

    def type_name(self, node: SchemaIR, hoist_name: str) -> str:
        """Proto type of a value, hoisting inline objects and enums."""
        match node:
            case PrimitiveNode(kind=ScalarKind.STRING, format=fmt):
                return "bytes" if fmt in ("binary", "byte") else "string"
            case PrimitiveNode(kind=ScalarKind.NUMBER, format=fmt):
                return fmt if fmt in NUMBER_FORMATS else "int32"
            case PrimitiveNode(kind=ScalarKind.BOOLEAN):
                return "bool"
            case LiteralNode(kind=kind, value=value):
                return _literal_type(kind, value)
            case EnumNode():
                name = self.unique_name(hoist_name)
                self.add_enum(name, node)
                return name
            case ObjectNode(properties=properties, extra=extra):
                if not properties and extra is not None:
                    return self.opaque(node, "free-form object")
                name = self.unique_name(hoist_name)
                self.add_message(name, properties, node.metadata)
                return name
            case IntersectionNode():
                name = self.unique_name(hoist_name)
                self.add_message(name, self.flatten(node), node.metadata)
                return name
            case ReferenceNode(name=name):
                return self.reference_type(name)
            case UnionNode(members=members):
                scalars = {self.scalar_type(m) for m in members}
                if len(scalars) == 1 and None not in scalars:
                    return scalars.pop()
                return self.opaque(node, "union")
            case ArrayNode() | MapNode():
                return self.opaque(node, "nested collection")
            case _:
                raise UnsupportedTypeError(f"Unsupported type: {node!r}")

    def scalar_type(self, node: SchemaIR) -> str | None:
        match node:
            case PrimitiveNode() | LiteralNode():
                return self.type_name(node, "")
            case ReferenceNode(name=name) if isinstance(self.document.get(name), (PrimitiveNode, LiteralNode)):
                return self.type_name(self.document[name], "")
            case _:
                return None

    def reference_type(self, name: str) -> str:
        target = self.document.get(name)
        if target is None:
            if name in UNSUPPORTED_GLOBALS:
                raise UnsupportedTypeError(f"Unsupported global type '{name}' cannot be represented in Protobuf")
            logger.warning("Unknown type %s mapped to bytes", name)
            return "bytes"
        if isinstance(target, (PrimitiveNode, LiteralNode)):
            return self.type_name(target, name)
        return name

    def opaque(self, node: SchemaIR, what: str) -> str:
        logger.warning("No Protobuf mapping for %s %r, using bytes", what, node)
        return "bytes"


def _literal_type(kind: ScalarKind, value) -> str:
    if kind == ScalarKind.STRING:
        return "string"
    if kind == ScalarKind.BOOLEAN:
        return "bool"
    return "int32" if isinstance(value, int) else "double"


class ProtobufEmitter:
    """Builds a ProtoModel from a SchemaDocument."""

    def __init__(self, config: ConversionConfig | None = None):
        self.config = config or ConversionConfig()

    def emit(
        self,
        document: SchemaDocument,
        package_name: str | None = None,
        services: list[ProtoService] | None = None,
    ) -> ProtoModel:
        """
        Build the Protobuf model of a document.

        Args:
            document: The document to convert
            package_name: Proto package, defaults to the configured package
            services: Services to include, see ``assemble_services``

        Returns:
            ProtoModel with enums and messages in document order
        """
        model = ProtoModel(package=package_name or self.config.protobuf_package)
        builder = _MessageBuilder(document, model)

        for name, node in document.items():
            match node:
                case EnumNode():
                    builder.add_enum(name, node)
                case ObjectNode(properties=properties) if properties or node.extra is None:
                    builder.add_message(name, properties, node.metadata)
                case IntersectionNode():
                    builder.add_message(name, builder.flatten(node), node.metadata)
                case _:
                    logger.debug("Wrapping non-object root %s in a message", name)
                    builder.add_wrapper(name, node)

        if services:
            model.services = list(services)
        if model.uses_empty():
            model.imports.append(EMPTY_IMPORT)
        return model


def assemble_services(methods: Iterable[RpcMethod], default_service: str = "DefaultService") -> list[ProtoService]:
    """Group rpc methods by service, in first-seen order."""
    services: dict[str, ProtoService] = {}
    for method in methods:
        service_name = method.service or default_service
        service = services.setdefault(service_name, ProtoService(name=service_name))
        if any(m.name == method.name for m in service.methods):
            raise StructuralError(f"Duplicate rpc method '{method.name}' in service '{service_name}'")
        service.methods.append(
            ProtoMethod(
                name=method.name,
                request_type=method.request_name or EMPTY_MESSAGE,
                response_type=method.response_name or EMPTY_MESSAGE,
            )
        )
    return list(services.values())
