"""
TypeDescriptor implementation over Python typing objects.

Supported declarations: dataclasses, TypedDicts, NamedTuples, plain annotated
classes, Enum subclasses, ``type X = ...`` aliases, NewTypes, and the typing
constructs Union/Optional/``X | Y``, Literal, Annotated, list/set/tuple and
dict/Mapping. Markers from ``schema_ir.tags`` are read from Annotated extras.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import datetime
import decimal
import enum
import inspect
import logging
import re
import types
import typing
import uuid
from typing import Annotated, Any, NotRequired, Required, TypeAliasType

from ...tags import FORMAT_TAGS, FormatTag, IntersectionOf, Symbol, Tag, _FormatAlias
from ..ir.nodes import Metadata, ScalarKind
from .base import EnumMemberDescriptor, PropertyDescriptor, TypeDescriptor

logger = logging.getLogger(__name__)

# Host type -> (kind, implied format)
_SCALARS: dict[Any, tuple[ScalarKind, str | None]] = {
    str: (ScalarKind.STRING, None),
    bool: (ScalarKind.BOOLEAN, None),
    int: (ScalarKind.NUMBER, "int64"),
    float: (ScalarKind.NUMBER, "double"),
    decimal.Decimal: (ScalarKind.NUMBER, "double"),
    bytes: (ScalarKind.STRING, "binary"),
    uuid.UUID: (ScalarKind.STRING, "uuid"),
}

_DATES = (datetime.datetime, datetime.date)

_ARRAY_ORIGINS = {
    list,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
}

_MAPPING_ORIGINS = {dict, collections.abc.Mapping, collections.abc.MutableMapping}

# Host globals that have no schema representation
_UNSUPPORTED_GLOBALS = {
    collections.abc.Callable: "Callable",
    collections.abc.Awaitable: "Awaitable",
    collections.abc.Coroutine: "Coroutine",
    collections.abc.Generator: "Generator",
    collections.abc.AsyncGenerator: "AsyncGenerator",
    collections.abc.Iterator: "Iterator",
    collections.abc.AsyncIterator: "AsyncIterator",
    collections.abc.Iterable: "Iterable",
    type: "type",
    types.FunctionType: "FunctionType",
    types.ModuleType: "ModuleType",
}

# Keys of dataclass field metadata copied onto property Metadata
_FIELD_METADATA_KEYS = {f.name for f in dataclasses.fields(Metadata)} - {"tags", "default", "example", "has_default", "has_example"}

_FORMAT_TEXT_PATTERN = re.compile(r"\b(" + "|".join(FORMAT_TAGS) + r")\b")


def _is_class(tp: Any) -> bool:
    # list[int] and friends are not classes
    return isinstance(tp, type) and typing.get_origin(tp) is None


def _type_text(tp: Any) -> str:
    if isinstance(tp, str):
        return tp
    if isinstance(tp, typing.ForwardRef):
        return tp.__forward_arg__
    if tp is type(None):
        return "None"
    if _is_class(tp) and not typing.get_args(tp):
        return tp.__qualname__
    return repr(tp).replace("typing.", "")


def _class_doc(cls: type) -> str | None:
    doc = cls.__dict__.get("__doc__")
    if not doc:
        return None
    doc = inspect.cleandoc(doc)
    # dataclass and NamedTuple generate a signature docstring
    if doc.startswith(f"{cls.__name__}(") or doc == "An enumeration.":
        return None
    return doc


def _is_typed_dict(tp: Any) -> bool:
    return _is_class(tp) and typing.is_typeddict(tp)


def _is_named_tuple(tp: Any) -> bool:
    return _is_class(tp) and issubclass(tp, tuple) and hasattr(tp, "_fields")


def _is_annotated_class(tp: Any) -> bool:
    if not _is_class(tp) or tp in _SCALARS or tp.__module__ == "builtins":
        return False
    if issubclass(tp, enum.Enum) or tp is Symbol:
        return False
    return bool(tp.__dict__.get("__annotations__"))


def _resolve_annotation(owner: type, name: str, annotation: Any, localns: dict[str, Any]) -> Any:
    """Resolve a single class annotation, returning it unchanged if a name is undefined."""
    holder = type(owner.__name__, (), {"__annotations__": {name: annotation}, "__module__": owner.__module__})
    try:
        return typing.get_type_hints(holder, localns=localns, include_extras=True)[name]
    except NameError as e:
        logger.debug("Keeping annotation %s.%s as text: %s", owner.__qualname__, name, e)
        return annotation


class PythonTypeDescriptor(TypeDescriptor):
    """Describes one Python type annotation.

    Args:
        tp: The annotation (a class, typing construct or unresolved string)
        localns: Extra names used to resolve string annotations
    """

    def __init__(self, tp: Any, localns: dict[str, Any] | None = None):
        self._raw = tp
        self._localns = localns or {}
        self._alias_name: str | None = None
        self._format: FormatTag | None = None
        self._intersection: IntersectionOf | None = None
        self._annotated = Metadata()

        tp = self._unwrap(tp)
        while isinstance(tp, (TypeAliasType, typing.NewType)):
            # the outermost alias gives the name
            self._alias_name = self._alias_name or tp.__name__
            tp = self._unwrap(tp.__value__ if isinstance(tp, TypeAliasType) else tp.__supertype__)
        self.tp = tp

    def _unwrap(self, tp: Any) -> Any:
        """Strip Annotated and TypedDict qualifiers, collecting markers."""
        while True:
            origin = typing.get_origin(tp)
            if origin is Annotated:
                for extra in tp.__metadata__:
                    self._collect_marker(extra)
                tp = tp.__origin__
            elif origin in (Required, NotRequired):
                tp = typing.get_args(tp)[0]
            else:
                return tp

    def _collect_marker(self, extra: Any) -> None:
        if isinstance(extra, FormatTag):
            self._format = extra
        elif isinstance(extra, IntersectionOf):
            self._intersection = extra
        elif isinstance(extra, Metadata):
            self._annotated = self._annotated.merged(extra)
        elif isinstance(extra, Tag):
            self._annotated.tags.append((extra.name, extra.value))

    def _child(self, tp: Any) -> PythonTypeDescriptor:
        return PythonTypeDescriptor(tp, self._localns)

    def host_type(self) -> Any:
        return self.tp

    def text(self) -> str:
        return _type_text(self._raw)

    def declared_name(self) -> str | None:
        if self._alias_name:
            return self._alias_name
        if self._intersection is not None:
            return None
        tp = self.tp
        if _is_class(tp) and (
            dataclasses.is_dataclass(tp)
            or _is_typed_dict(tp)
            or _is_named_tuple(tp)
            or issubclass(tp, enum.Enum)
            or _is_annotated_class(tp)
        ):
            return tp.__name__
        return None

    def primitive_kind(self) -> ScalarKind | None:
        if self._format is not None:
            return None
        scalar = _SCALARS.get(self.tp)
        if scalar is None and _is_class(self.tp) and not issubclass(self.tp, enum.Enum):
            # str/int subclasses that are not enums
            scalar = next((v for k, v in _SCALARS.items() if issubclass(self.tp, k)), None)
        return scalar[0] if scalar else None

    def primitive_format(self) -> str | None:
        scalar = _SCALARS.get(self.tp)
        return scalar[1] if scalar else None

    def literal_value(self) -> tuple[bool, Any]:
        if typing.get_origin(self.tp) is typing.Literal:
            args = typing.get_args(self.tp)
            if len(args) == 1:
                value = args[0]
                return True, value.value if isinstance(value, enum.Enum) else value
        return False, None

    def array_element(self) -> PythonTypeDescriptor | None:
        tp = self.tp
        if tp in _ARRAY_ORIGINS or tp is tuple:
            return self._child(Any)
        origin = typing.get_origin(tp)
        args = typing.get_args(tp)
        if origin in _ARRAY_ORIGINS:
            return self._child(args[0] if args else Any)
        if origin is tuple:
            if len(args) == 2 and args[1] is Ellipsis:
                return self._child(args[0])
            if not args:
                return self._child(Any)
            # fixed-length tuple: array of the union of its element types
            return self._child(typing.Union[tuple(args)])
        return None

    def union_members(self) -> list[PythonTypeDescriptor] | None:
        origin = typing.get_origin(self.tp)
        if origin is typing.Union or origin is types.UnionType:
            return [self._child(arg) for arg in typing.get_args(self.tp)]
        if origin is typing.Literal and len(typing.get_args(self.tp)) > 1:
            return [self._child(typing.Literal[arg]) for arg in typing.get_args(self.tp)]
        return None

    def intersection_members(self) -> list[PythonTypeDescriptor] | None:
        if self._intersection is None:
            return None
        return [self._child(member) for member in self._intersection.members]

    def is_object_like(self) -> bool:
        tp = self.tp
        if self._intersection is not None:
            return False
        if tp in _MAPPING_ORIGINS or typing.get_origin(tp) in _MAPPING_ORIGINS:
            return True
        return _is_class(tp) and (
            dataclasses.is_dataclass(tp) or _is_typed_dict(tp) or _is_named_tuple(tp) or _is_annotated_class(tp)
        )

    def _type_hints(self, cls: type) -> dict[str, Any]:
        localns = {cls.__name__: cls, **self._localns}
        try:
            return typing.get_type_hints(cls, localns=localns, include_extras=True)
        except NameError:
            # unresolvable annotations are kept as text
            hints = {}
            for klass in reversed(cls.__mro__):
                for name, annotation in klass.__dict__.get("__annotations__", {}).items():
                    hints[name] = _resolve_annotation(klass, name, annotation, localns)
            return hints

    def properties(self) -> list[PropertyDescriptor]:
        tp = self.tp
        if not _is_class(tp) or not self.is_object_like():
            return []
        hints = self._type_hints(tp)

        if dataclasses.is_dataclass(tp):
            declared = []
            for f in dataclasses.fields(tp):
                optional = f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING
                declared.append((f.name, hints.get(f.name, f.type), optional, f.metadata))
        elif _is_typed_dict(tp):
            optional_keys = tp.__optional_keys__
            declared = [(name, hint, name in optional_keys, {}) for name, hint in hints.items()]
        elif _is_named_tuple(tp):
            declared = [(name, hints.get(name, Any), name in tp._field_defaults, {}) for name in tp._fields]
        else:
            declared = []
            for name, hint in hints.items():
                if typing.get_origin(hint) is typing.ClassVar or hint is typing.ClassVar:
                    continue
                declared.append((name, hint, hasattr(tp, name), {}))

        props = []
        for name, hint, optional, field_metadata in declared:
            child = self._child(hint)
            metadata = _metadata_from_mapping(field_metadata).merged(child._annotated)
            child._annotated = Metadata()
            if name.startswith("_") and not metadata.has_tag("private"):
                metadata.tags.append(("private", ""))
            props.append(PropertyDescriptor(name=name, descriptor=child, optional=optional, metadata=metadata))
        return props

    def index_value(self) -> PythonTypeDescriptor | None:
        tp = self.tp
        if tp in _MAPPING_ORIGINS:
            return self._child(Any)
        if typing.get_origin(tp) in _MAPPING_ORIGINS:
            args = typing.get_args(tp)
            return self._child(args[1] if len(args) == 2 else Any)
        if _is_typed_dict(tp):
            extra = getattr(tp, "__extra_items__", None)
            # typing_extensions uses a NoExtraItems sentinel for "not given"
            if extra is not None and _type_text(extra) != "NoExtraItems":
                return self._child(extra)
        return None

    def enum_members(self) -> list[EnumMemberDescriptor] | None:
        tp = self.tp
        if not (_is_class(tp) and issubclass(tp, enum.Enum)):
            return None
        return [EnumMemberDescriptor(name=member.name, value=member.value) for member in tp]

    def is_nullish(self) -> bool:
        return self.tp is None or self.tp is type(None)

    def is_any(self) -> bool:
        return self.tp is Any or self.tp is object

    def is_symbol(self) -> bool:
        return self.tp is Symbol

    def is_date(self) -> bool:
        return self._format is None and _is_class(self.tp) and issubclass(self.tp, _DATES)

    def global_name(self) -> str | None:
        tp = self.tp
        origin = typing.get_origin(tp) or tp
        try:
            return _UNSUPPORTED_GLOBALS.get(origin)
        except TypeError:
            # unhashable annotation objects
            return None

    def format_tag(self) -> str | None:
        if self._format is not None:
            return self._format.tag
        if isinstance(self.tp, _FormatAlias):
            return self.tp.tag
        if isinstance(self.tp, (str, typing.ForwardRef)):
            match = _FORMAT_TEXT_PATTERN.search(_type_text(self.tp))
            if match:
                return match.group(1)
        return None

    def format_argument(self) -> str | None:
        return self._format.format if self._format is not None else None

    def metadata(self) -> Metadata:
        metadata = Metadata()
        if _is_class(self.tp) and self._alias_name is None and self.declared_name():
            metadata.description = _class_doc(self.tp)
        return metadata.merged(self._annotated)


def _metadata_from_mapping(mapping: collections.abc.Mapping) -> Metadata:
    """Build Metadata from dataclass ``field(metadata=...)``."""
    metadata = Metadata()
    for key, value in mapping.items():
        if key in _FIELD_METADATA_KEYS:
            setattr(metadata, key, value)
        elif key == "default":
            metadata.default, metadata.has_default = value, True
        elif key == "example":
            metadata.example, metadata.has_example = value, True
        elif key == "tags":
            metadata.tags.extend((t.name, t.value) if isinstance(t, Tag) else tuple(t) for t in value)
    return metadata


def describe(tp: Any, localns: dict[str, Any] | None = None) -> PythonTypeDescriptor:
    """Return a descriptor for a Python type annotation."""
    return PythonTypeDescriptor(tp, localns)
