"""
Schema IR pipeline.

1. Descriptors: query Python types through the TypeDescriptor interface
2. Builder: normalize descriptors into Schema IR
3. Emitters: render IR as OpenAPI, Protobuf or Python declarations
4. Parsers: read OpenAPI or Protobuf back into IR
"""

from __future__ import annotations

from .config import ConversionConfig, FormatterConfig, OpenApiVersion, UnionStyle
from .generator import SchemaConverter, collect_types

__all__ = [
    "ConversionConfig",
    "FormatterConfig",
    "OpenApiVersion",
    "SchemaConverter",
    "UnionStyle",
    "collect_types",
]
