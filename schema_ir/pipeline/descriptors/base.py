"""
TypeDescriptor capability interface.

The IR builder never looks at host types directly; it asks a TypeDescriptor.
Each query answers one question about one unit of static type information and
returns None / an empty list when it does not apply.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from ..ir.nodes import Metadata, ScalarKind


@dataclass
class PropertyDescriptor:
    """A declared property of an object-like descriptor."""

    name: str
    descriptor: TypeDescriptor
    optional: bool = False
    metadata: Metadata = field(default_factory=Metadata)


@dataclass
class EnumMemberDescriptor:
    """An enumeration member; ``has_value`` is False when no value could be resolved."""

    name: str
    value: Any = None
    has_value: bool = True


class TypeDescriptor(ABC):
    """Abstract capability interface over one host type."""

    @abstractmethod
    def text(self) -> str:
        """Free-form textual form, used in error messages and format fallback."""

    @abstractmethod
    def declared_name(self) -> str | None:
        """Declared class or alias name, if the type is named."""

    @abstractmethod
    def primitive_kind(self) -> ScalarKind | None:
        """Kind of a plain scalar (str, int, float, bool...)."""

    def primitive_format(self) -> str | None:
        """Format implied by the scalar itself (e.g. int64 for int)."""
        return None

    @abstractmethod
    def literal_value(self) -> tuple[bool, Any]:
        """Return (True, value) for a single-literal type, else (False, None)."""

    @abstractmethod
    def array_element(self) -> TypeDescriptor | None:
        """Element descriptor of a list-like type."""

    @abstractmethod
    def union_members(self) -> list[TypeDescriptor] | None:
        """Members of a union type, in declaration order."""

    @abstractmethod
    def intersection_members(self) -> list[TypeDescriptor] | None:
        """Members of an intersection type."""

    @abstractmethod
    def is_object_like(self) -> bool:
        """Whether the type has a property list and/or an index signature."""

    @abstractmethod
    def properties(self) -> list[PropertyDescriptor]:
        """Declared properties of an object-like type, in declaration order."""

    @abstractmethod
    def index_value(self) -> TypeDescriptor | None:
        """Value descriptor of the index signature (string keys)."""

    @abstractmethod
    def enum_members(self) -> list[EnumMemberDescriptor] | None:
        """Members of an enumeration, or None if the type is not one."""

    def is_nullish(self) -> bool:
        return False

    def is_any(self) -> bool:
        return False

    def is_symbol(self) -> bool:
        return False

    def is_date(self) -> bool:
        return False

    def global_name(self) -> str | None:
        """Name of a known host global the converters cannot represent."""
        return None

    def format_tag(self) -> str | None:
        """Name of the format tag wrapping this scalar (e.g. "NumFormat")."""
        return None

    def format_argument(self) -> str | None:
        """Format argument recovered structurally from the tag."""
        return None

    def metadata(self) -> Metadata:
        """Metadata attached to the type itself."""
        return Metadata()

    def host_type(self) -> Any:
        """The underlying host object, for hooks that need it."""
        return None
