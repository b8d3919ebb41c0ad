"""
Annotation markers used in Python type declarations.

These carry the information plain typing cannot express: secondary formats
(``NumFormat["int64"]``), intersections (``AllOf[A, B]``), custom doc tags and
rpc methods to be assembled into Protobuf services.

Example:
    @dataclass
    class Order:
        id: StrFormat["uuid"]
        total: NumFormat["double"]
        internal_note: Annotated[str, Private]
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated, Any, NamedTuple

from .utils import snake_to_pascal_case

# Formats accepted by each tag; None means any string
FORMAT_TAGS: dict[str, tuple[str, ...] | None] = {
    "StrFormat": None,
    "NumFormat": ("int32", "int64", "float", "double", "string"),
    "BigIntFormat": ("int64", "string"),
    "DateFormat": ("date", "date-time", "unix-s", "unix-ms"),
}


@dataclass(frozen=True)
class FormatTag:
    """Annotated metadata carrying a secondary format for a scalar."""

    tag: str
    format: str | None = None


class _FormatAlias:
    """Subscriptable alias producing ``Annotated[base, FormatTag(...)]``."""

    def __init__(self, tag: str, base: Callable[[str], type]):
        self.tag = tag
        self._base = base
        self.__name__ = tag

    def __getitem__(self, fmt: str) -> Any:
        return Annotated[self._base(fmt), FormatTag(self.tag, fmt)]

    def __call__(self, *args, **kwargs):
        raise TypeError(f"{self.tag} is an annotation, subscript it with a format instead")

    def __repr__(self) -> str:
        return self.tag


StrFormat = _FormatAlias("StrFormat", lambda fmt: str)
NumFormat = _FormatAlias("NumFormat", lambda fmt: int if fmt.startswith("int") else str if fmt == "string" else float)
BigIntFormat = _FormatAlias("BigIntFormat", lambda fmt: str if fmt == "string" else int)
DateFormat = _FormatAlias("DateFormat", lambda fmt: int if fmt.startswith("unix") else str)


@dataclass(frozen=True)
class IntersectionOf:
    """Annotated metadata listing the members of an intersection."""

    members: tuple[Any, ...]


class AllOf:
    """``AllOf[A, B]`` declares a value satisfying every member."""

    def __class_getitem__(cls, items: Any) -> Any:
        if not isinstance(items, tuple):
            items = (items,)
        return Annotated[items[0], IntersectionOf(tuple(items))]


class Symbol:
    """Marker for opaque unique-token values.

    Only representable as a string when ``coerce_symbols_to_strings`` is set.
    """


class Tag(NamedTuple):
    """A custom doc tag attached with ``Annotated``, rendered as ``@name value``."""

    name: str
    value: Any = ""


# Properties carrying one of these are dropped from objects
Private = Tag("private")
Ignore = Tag("ignore")
Package = Tag("package")

EXCLUDED_TAGS = frozenset({Private.name, Ignore.name, Package.name})


@dataclass(frozen=True)
class RpcMethod:
    """An rpc call site. Missing request/response become the empty message."""

    name: str
    request: Any = None
    response: Any = None
    service: str | None = None

    @property
    def request_name(self) -> str | None:
        return _type_name(self.request)

    @property
    def response_name(self) -> str | None:
        return _type_name(self.response)


def _type_name(tp: Any) -> str | None:
    if tp is None:
        return None
    if isinstance(tp, str):
        return tp
    return getattr(tp, "__name__", None) or str(tp)


def rpc(request: Any = None, response: Any = None, service: str | None = None, name: str | None = None):
    """Mark a function as an rpc method.

    Example:
        @rpc(request=GetUser, response=User, service="UserService")
        def get_user(req): ...
    """

    def decorator(fn):
        fn.__rpc__ = RpcMethod(name or snake_to_pascal_case(fn.__name__), request, response, service)
        return fn

    return decorator


def collect_rpc_methods(namespace: Any) -> list[RpcMethod]:
    """Return the rpc methods declared on a module or class, in definition order."""
    methods = []
    for value in vars(namespace).values():
        if isinstance(value, (staticmethod, classmethod)):
            value = value.__func__
        method = getattr(value, "__rpc__", None)
        if isinstance(method, RpcMethod):
            methods.append(method)
        elif isinstance(value, type) and value.__module__ == getattr(namespace, "__name__", None):
            methods.extend(collect_rpc_methods(value))
    return methods
