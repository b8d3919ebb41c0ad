from .declaration_emitter import DeclarationEmitter
from .openapi_emitter import OpenApiEmitter, emit_openapi
from .proto_serializer import ProtoSerializer, proto_to_text
from .protobuf_emitter import ProtobufEmitter, assemble_services

__all__ = [
    "DeclarationEmitter",
    "OpenApiEmitter",
    "ProtoSerializer",
    "ProtobufEmitter",
    "assemble_services",
    "emit_openapi",
    "proto_to_text",
]
