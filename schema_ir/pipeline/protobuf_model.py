"""
Protobuf model shared by the Protobuf emitter, serializer and parser.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Sentinel type used for rpc methods without a request or response
EMPTY_MESSAGE = "google.protobuf.Empty"
EMPTY_IMPORT = "google/protobuf/empty.proto"

SCALAR_TYPES = {
    "double",
    "float",
    "int32",
    "int64",
    "uint32",
    "uint64",
    "sint32",
    "sint64",
    "fixed32",
    "fixed64",
    "sfixed32",
    "sfixed64",
    "bool",
    "string",
    "bytes",
}


@dataclass
class ProtoComment:
    """Comment lines rendered above a message, enum or field."""

    # Description, one entry per source line
    lines: list[str] = field(default_factory=list)

    # (name, value) tags rendered as "@name value"
    tags: list[tuple[str, Any]] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.lines and not self.tags

    def render(self) -> list[str]:
        rendered = [f"// {line}".rstrip() for line in self.lines]
        for name, value in self.tags:
            rendered.append(f"// @{name} {_tag_text(value)}".rstrip())
        return rendered

    def to_dict(self) -> dict:
        return {"lines": list(self.lines), "tags": [[name, value] for name, value in self.tags]}


def _tag_text(value: Any) -> str:
    if value is True:
        return "true"
    if value is False:
        return "false"
    return "" if value is None else str(value)


@dataclass
class ProtoField:
    name: str
    type: str
    number: int
    repeated: bool = False
    optional: bool = False

    # Key type when the field is a map<key, type>
    map_key: str | None = None
    comment: ProtoComment | None = None

    @property
    def is_map(self) -> bool:
        return self.map_key is not None

    def declaration(self) -> str:
        if self.is_map:
            return f"map<{self.map_key}, {self.type}> {self.name} = {self.number};"
        prefix = "repeated " if self.repeated else "optional " if self.optional else ""
        return f"{prefix}{self.type} {self.name} = {self.number};"

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"name": self.name, "type": self.type, "number": self.number}
        if self.repeated:
            d["repeated"] = True
        if self.optional:
            d["optional"] = True
        if self.is_map:
            d["map"] = {"key": self.map_key, "value": self.type}
        if self.comment is not None:
            d["comment"] = self.comment.to_dict()
        return d


@dataclass
class ProtoMessage:
    name: str
    fields: list[ProtoField] = field(default_factory=list)
    comment: ProtoComment | None = None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"name": self.name, "fields": [f.to_dict() for f in self.fields]}
        if self.comment is not None:
            d["comment"] = self.comment.to_dict()
        return d


@dataclass
class ProtoEnumValue:
    name: str
    number: int

    def to_dict(self) -> dict:
        return {"name": self.name, "number": self.number}


@dataclass
class ProtoEnum:
    name: str
    values: list[ProtoEnumValue] = field(default_factory=list)
    comment: ProtoComment | None = None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"name": self.name, "values": [v.to_dict() for v in self.values]}
        if self.comment is not None:
            d["comment"] = self.comment.to_dict()
        return d


@dataclass
class ProtoMethod:
    name: str
    request_type: str = EMPTY_MESSAGE
    response_type: str = EMPTY_MESSAGE

    def to_dict(self) -> dict:
        return {"name": self.name, "requestType": self.request_type, "responseType": self.response_type}


@dataclass
class ProtoService:
    name: str
    methods: list[ProtoMethod] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"name": self.name, "methods": [m.to_dict() for m in self.methods]}


@dataclass
class ProtoModel:
    """A proto3 file: package, imports, enums, messages and services."""

    package: str = "api"
    syntax: str = "proto3"
    imports: list[str] = field(default_factory=list)
    enums: list[ProtoEnum] = field(default_factory=list)
    messages: list[ProtoMessage] = field(default_factory=list)
    services: list[ProtoService] = field(default_factory=list)

    def find_message(self, name: str) -> ProtoMessage | None:
        return next((m for m in self.messages if m.name == name), None)

    def find_enum(self, name: str) -> ProtoEnum | None:
        return next((e for e in self.enums if e.name == name), None)

    def uses_empty(self) -> bool:
        return any(
            EMPTY_MESSAGE in (method.request_type, method.response_type)
            for service in self.services
            for method in service.methods
        )

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "syntax": self.syntax,
            "package": self.package,
            "imports": list(self.imports),
            "enums": [e.to_dict() for e in self.enums],
            "messages": [m.to_dict() for m in self.messages],
        }
        if self.services:
            d["services"] = [s.to_dict() for s in self.services]
        return d
