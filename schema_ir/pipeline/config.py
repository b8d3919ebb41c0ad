"""
Configuration for the conversion pipeline.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..errors import ConfigurationError

if TYPE_CHECKING:
    from .ir.nodes import SchemaIR


class UnionStyle(str, Enum):
    """OpenAPI keyword used for unions."""

    ONE_OF = "oneOf"
    ANY_OF = "anyOf"


class OpenApiVersion(str, Enum):
    """Decides how nullable values are projected."""

    V3_0 = "3.0"  # nullable: true
    V3_1 = "3.1"  # type: [T, "null"]


@dataclass
class FormatterConfig:
    """Configuration for post-processing of emitted declarations."""

    # Whether formatting is enabled
    enabled: bool = False

    # Line length for the formatter
    line_length: int = 100

    # Python version target (e.g., "py312", "py313")
    target_version: str = "py312"

    # Whether to use string normalization (convert single quotes to double)
    string_normalization: bool = True


@dataclass
class ConversionConfig:
    """Configuration options for building and emitting schemas."""

    # Keyword used to render unions in OpenAPI
    union_style: UnionStyle = UnionStyle.ONE_OF

    # Nullable convention of the emitted OpenAPI document
    openapi_version: OpenApiVersion = OpenApiVersion.V3_0

    # Turn symbol-like types into plain strings instead of failing
    coerce_symbols_to_strings: bool = False

    # Custom mapping of date/datetime types; receives the Python type, returns IR.
    # Not serialised by to_dict.
    transform_date: Callable[[type], SchemaIR] | None = None

    # Package name of the emitted .proto file
    protobuf_package: str = "api"

    # Service used for rpc methods that do not name one
    default_service_name: str = "DefaultService"

    # Add generation comment at top of emitted files
    add_generation_comment: bool = True

    # Formatter configuration for emitted Python declarations
    formatter: FormatterConfig = field(default_factory=FormatterConfig)

    def __post_init__(self):
        self.union_style = coerce_option(UnionStyle, self.union_style, "union_style")
        self.openapi_version = coerce_option(OpenApiVersion, self.openapi_version, "openapi_version")
        if not self.protobuf_package:
            raise ConfigurationError("protobuf_package must not be empty")

    @staticmethod
    def from_dict(d: dict) -> ConversionConfig:
        """Create a config from a dictionary."""
        kwargs: dict[str, Any] = {}
        for k, v in d.items():
            if k == "formatter" and isinstance(v, dict):
                kwargs["formatter"] = FormatterConfig(**v)
            elif k in ConversionConfig.__dataclass_fields__ and k != "transform_date":
                kwargs[k] = v
            else:
                raise ConfigurationError(f"Unknown configuration key: {k}")
        return ConversionConfig(**kwargs)

    def to_dict(self) -> dict:
        """Convert config to a dictionary."""
        return {
            "union_style": self.union_style.value,
            "openapi_version": self.openapi_version.value,
            "coerce_symbols_to_strings": self.coerce_symbols_to_strings,
            "protobuf_package": self.protobuf_package,
            "default_service_name": self.default_service_name,
            "add_generation_comment": self.add_generation_comment,
            "formatter": {
                "enabled": self.formatter.enabled,
                "line_length": self.formatter.line_length,
                "target_version": self.formatter.target_version,
                "string_normalization": self.formatter.string_normalization,
            },
        }


def coerce_option(enum_cls: type[Enum], value: Any, name: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(repr(m.value) for m in enum_cls)
        raise ConfigurationError(f"Invalid {name} {value!r}, expected one of {allowed}") from None
