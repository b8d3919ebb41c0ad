"""
Error hierarchy for schema conversion.

Every error is raised synchronously and aborts the whole document; nothing in
the conversion core catches and recovers from these.
"""

from __future__ import annotations


class SchemaIRError(Exception):
    """Base class for all conversion errors."""


class StructuralError(SchemaIRError):
    """The input type graph is malformed.

    Examples:
        - Two document entries share the same name
        - A format-tagged scalar without a format argument
        - An enum mixing string and number members, or with no members
    """


class UnsupportedTypeError(SchemaIRError):
    """A type has no mapping in the target representation.

    The message always carries the offending type's textual form.
    """


class ConfigurationError(SchemaIRError):
    """The input needs a configuration flag that is not set, or a config value is invalid."""


class ParseError(SchemaIRError):
    """Malformed OpenAPI or Protobuf input on the reverse path."""
