from .openapi_parser import OpenApiParser, parse_openapi
from .proto_parser import ProtoParser, parse_proto, proto_to_document

__all__ = ["OpenApiParser", "ProtoParser", "parse_openapi", "parse_proto", "proto_to_document"]
