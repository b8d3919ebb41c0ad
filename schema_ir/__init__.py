"""Schema IR

Converts between Python type declarations, OpenAPI 3.0/3.1 schemas and
Protobuf definitions through a shared intermediate representation.
"""

__version__ = "0.1.0"

from .errors import ConfigurationError, ParseError, SchemaIRError, StructuralError, UnsupportedTypeError
from .pipeline import (
    ConversionConfig,
    FormatterConfig,
    OpenApiVersion,
    SchemaConverter,
    UnionStyle,
    collect_types,
)
from .pipeline.ir import Metadata, SchemaDocument
from .tags import (
    AllOf,
    BigIntFormat,
    DateFormat,
    Ignore,
    NumFormat,
    Package,
    Private,
    StrFormat,
    Symbol,
    Tag,
    collect_rpc_methods,
    rpc,
)

__all__ = [
    "AllOf",
    "BigIntFormat",
    "ConfigurationError",
    "ConversionConfig",
    "DateFormat",
    "FormatterConfig",
    "Ignore",
    "Metadata",
    "NumFormat",
    "OpenApiVersion",
    "Package",
    "ParseError",
    "Private",
    "SchemaConverter",
    "SchemaDocument",
    "SchemaIRError",
    "StrFormat",
    "StructuralError",
    "Symbol",
    "Tag",
    "UnionStyle",
    "UnsupportedTypeError",
    "collect_rpc_methods",
    "collect_types",
    "rpc",
]
