"""
Conversion pipelines.

Forward: Python types -> IR -> OpenAPI / Protobuf.
Reverse: OpenAPI / Protobuf -> IR -> Python declarations.

Every step returns fresh structures; a document is never modified once built.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import types
import typing
from collections.abc import Iterable
from typing import Any

from ..tags import RpcMethod, collect_rpc_methods
from .builder import IRBuilder
from .config import ConversionConfig, OpenApiVersion, UnionStyle
from .descriptors import describe
from .emitters import DeclarationEmitter, OpenApiEmitter, ProtobufEmitter, ProtoSerializer, assemble_services
from .ir.nodes import SchemaDocument
from .parsers import OpenApiParser, ProtoParser, proto_to_document
from .protobuf_model import ProtoModel

logger = logging.getLogger(__name__)


def _is_declaration(value: Any) -> bool:
    if isinstance(value, (typing.TypeAliasType, typing.NewType)):
        return True
    if not isinstance(value, type):
        return False
    return (
        dataclasses.is_dataclass(value)
        or typing.is_typeddict(value)
        or issubclass(value, enum.Enum)
        or (issubclass(value, tuple) and hasattr(value, "_fields"))
    )


def collect_types(module: types.ModuleType, names: Iterable[str] | None = None) -> list[Any]:
    """
    Return the type declarations of a module, in definition order.

    Args:
        module: Module to scan
        names: Only these names, in this order; all public declarations when omitted

    Returns:
        Dataclasses, TypedDicts, NamedTuples, enums, ``type`` aliases and NewTypes
    """
    namespace = vars(module)
    if names is not None:
        missing = [name for name in names if name not in namespace]
        if missing:
            raise KeyError(f"{module.__name__} has no type named {', '.join(missing)}")
        return [namespace[name] for name in names]
    return [
        value
        for name, value in namespace.items()
        if not name.startswith("_") and _is_declaration(value) and getattr(value, "__module__", None) == module.__name__
    ]


class SchemaConverter:
    """Entry point running the forward and reverse pipelines with one configuration."""

    def __init__(self, config: ConversionConfig | None = None):
        self.config = config or ConversionConfig()

    # Forward path

    def build(self, type_list: Iterable[Any], localns: dict[str, Any] | None = None) -> SchemaDocument:
        """Build a document from Python types; each type becomes one named entry."""
        descriptors = [describe(tp, localns) for tp in type_list]
        document = IRBuilder(self.config).build_document(descriptors)
        cycles = document.find_cycles()
        if cycles:
            logger.debug("Recursive types: %s", ", ".join(cycles))
        return document

    def to_openapi(
        self,
        document: SchemaDocument,
        version: OpenApiVersion | str | None = None,
        union_style: UnionStyle | str | None = None,
        full_document: bool = False,
    ) -> dict:
        emitter = OpenApiEmitter(self.config)
        if full_document:
            return emitter.build_document(document, version, union_style)
        return emitter.emit(document, version, union_style)

    def to_protobuf(
        self,
        document: SchemaDocument,
        package_name: str | None = None,
        methods: Iterable[RpcMethod] = (),
    ) -> ProtoModel:
        services = assemble_services(methods, self.config.default_service_name)
        return ProtobufEmitter(self.config).emit(document, package_name, services)

    def to_proto_text(
        self,
        document: SchemaDocument,
        package_name: str | None = None,
        methods: Iterable[RpcMethod] = (),
    ) -> str:
        return ProtoSerializer().to_text(self.to_protobuf(document, package_name, methods))

    def module_to_proto_text(self, module: types.ModuleType, package_name: str | None = None) -> str:
        """Convert every declaration and rpc method of a module to .proto text."""
        document = self.build(collect_types(module))
        return self.to_proto_text(document, package_name, collect_rpc_methods(module))

    # Reverse path

    def from_openapi(self, spec: dict) -> SchemaDocument:
        return OpenApiParser().parse(spec)

    def from_proto(self, text: str) -> SchemaDocument:
        return proto_to_document(ProtoParser().parse(text))

    def to_declarations(self, document: SchemaDocument) -> dict[str, str]:
        return DeclarationEmitter(self.config).emit(document)

    def to_module(self, document: SchemaDocument, generation_comment: str | None = None) -> str:
        return DeclarationEmitter(self.config).emit_module(document, generation_comment)
