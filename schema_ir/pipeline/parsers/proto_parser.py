"""
Protobuf parser: proto3 text -> ProtoModel -> SchemaDocument.

The tokenizer keeps line numbers so errors can point at the offending
message and field. Nested messages and enums are lifted to the top level
under their parent-qualified name (`Order.Item` becomes `OrderItem`), and
field types are resolved against the enclosing message scope first.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from ...errors import ParseError
from ...utils import to_upper_snake_case
from ..ir.nodes import (
    CONSTRAINT_KEYWORDS,
    ArrayNode,
    EnumNode,
    MapNode,
    Metadata,
    ObjectNode,
    PrimitiveNode,
    Property,
    ReferenceNode,
    ScalarKind,
    SchemaDocument,
    SchemaIR,
)
from ..protobuf_model import (
    ProtoComment,
    ProtoEnum,
    ProtoEnumValue,
    ProtoField,
    ProtoMessage,
    ProtoMethod,
    ProtoModel,
    ProtoService,
)

logger = logging.getLogger(__name__)

_TOKEN_PATTERN = re.compile(
    r"""
    (?P<comment>//[^\n]*)
  | (?P<block>/\*.*?\*/)
  | (?P<string>"[^"\n]*"|'[^'\n]*')
  | (?P<number>-?(?:0x[0-9A-Fa-f]+|\d+(?:\.\d+)?))
  | (?P<ident>\.?[A-Za-z_][A-Za-z0-9_.]*)
  | (?P<symbol>[{};=<>,()\[\]])
  | (?P<newline>\n)
  | (?P<space>[ \t\r]+)
  | (?P<error>.)
    """,
    re.VERBOSE | re.DOTALL,
)

# proto scalar -> IR primitive
SCALAR_PRIMITIVES: dict[str, tuple[ScalarKind, str | None]] = {
    "double": (ScalarKind.NUMBER, "double"),
    "float": (ScalarKind.NUMBER, "float"),
    "int32": (ScalarKind.NUMBER, "int32"),
    "uint32": (ScalarKind.NUMBER, "int32"),
    "sint32": (ScalarKind.NUMBER, "int32"),
    "fixed32": (ScalarKind.NUMBER, "int32"),
    "sfixed32": (ScalarKind.NUMBER, "int32"),
    "int64": (ScalarKind.NUMBER, "int64"),
    "uint64": (ScalarKind.NUMBER, "int64"),
    "sint64": (ScalarKind.NUMBER, "int64"),
    "fixed64": (ScalarKind.NUMBER, "int64"),
    "sfixed64": (ScalarKind.NUMBER, "int64"),
    "bool": (ScalarKind.BOOLEAN, None),
    "string": (ScalarKind.STRING, None),
    "bytes": (ScalarKind.STRING, "binary"),
    "google.protobuf.Timestamp": (ScalarKind.STRING, "date-time"),
}

# Well-known types holding arbitrary JSON
OPAQUE_TYPES = {"google.protobuf.Any", "google.protobuf.Struct", "google.protobuf.Value"}

_KEYWORD_ATTRIBUTES = {keyword: attr for attr, keyword in CONSTRAINT_KEYWORDS.items()}


@dataclass
class Token:
    kind: str
    value: str
    line: int


class ProtoParser:
    """Parses proto3 source text into a ProtoModel."""

    def parse(self, text: str) -> ProtoModel:
        self._tokens = self._tokenize(text)
        self._pos = 0
        self._last_line = 0
        # proto path -> lifted name, e.g. "Order.Item" -> "OrderItem"
        self._lifted: dict[str, str] = {}
        self._scopes: list[tuple[ProtoMessage, str]] = []
        model = ProtoModel(package="")

        while not self._at_end():
            comment = self._comments()
            if self._at_end():
                break
            token = self._next()
            match token.value:
                case "syntax":
                    self._expect("=")
                    model.syntax = self._string()
                    self._expect(";")
                    if model.syntax != "proto3":
                        raise ParseError(f"Only proto3 is supported, got '{model.syntax}' at line {token.line}")
                case "package":
                    model.package = self._ident()
                    self._expect(";")
                case "import":
                    if self._peek().value in ("public", "weak"):
                        self._next()
                    model.imports.append(self._string())
                    self._expect(";")
                case "option":
                    self._skip_statement()
                case "message":
                    self._parse_message(model, comment)
                case "enum":
                    model.enums.append(self._parse_enum(comment))
                case "service":
                    model.services.append(self._parse_service())
                case _:
                    raise ParseError(f"Unexpected '{token.value}' at line {token.line}")
        self._resolve_types(model)
        return model

    # Tokens

    def _tokenize(self, text: str) -> list[Token]:
        tokens = []
        line = 1
        for match in _TOKEN_PATTERN.finditer(text):
            kind, value = match.lastgroup, match.group()
            if kind == "error":
                raise ParseError(f"Unexpected character {value!r} at line {line}")
            if kind == "comment":
                tokens.append(Token("comment", value[2:].strip(), line))
            elif kind not in ("newline", "space", "block"):
                tokens.append(Token(kind, value, line))
            line += value.count("\n")
        return tokens

    def _at_end(self) -> bool:
        return self._pos >= len(self._tokens)

    def _peek(self) -> Token:
        if self._at_end():
            last_line = self._tokens[-1].line if self._tokens else 1
            return Token("eof", "", last_line)
        return self._tokens[self._pos]

    def _next(self) -> Token:
        token = self._peek()
        if token.kind == "eof":
            raise ParseError(f"Unexpected end of input at line {token.line}")
        self._pos += 1
        if token.kind != "comment":
            self._last_line = token.line
        return token

    def _expect(self, value: str, context: str = "") -> Token:
        token = self._next()
        if token.value != value:
            where = f" in {context}" if context else ""
            raise ParseError(f"Expected '{value}'{where} at line {token.line}, got '{token.value}'")
        return token

    def _ident(self, context: str = "") -> str:
        token = self._next()
        if token.kind != "ident":
            where = f" in {context}" if context else ""
            raise ParseError(f"Expected a name{where} at line {token.line}, got '{token.value}'")
        return token.value

    def _string(self) -> str:
        token = self._next()
        if token.kind != "string":
            raise ParseError(f"Expected a string at line {token.line}, got '{token.value}'")
        return token.value[1:-1]

    def _number(self, context: str) -> int:
        token = self._next()
        if token.kind != "number":
            raise ParseError(f"Expected a number in {context} at line {token.line}, got '{token.value}'")
        try:
            return int(token.value, 0)
        except ValueError:
            raise ParseError(f"Expected an integer in {context} at line {token.line}, got '{token.value}'") from None

    def _comments(self) -> ProtoComment | None:
        """Consume leading comment lines; trailing same-line comments are dropped."""
        comment = ProtoComment()
        while self._peek().kind == "comment":
            token = self._next()
            if token.line == self._last_line:
                continue
            if token.value.startswith("@"):
                name, _, value = token.value[1:].partition(" ")
                comment.tags.append((name, value.strip()))
            else:
                comment.lines.append(token.value)
        return None if comment.is_empty() else comment

    def _skip_statement(self) -> None:
        while self._next().value != ";":
            pass

    def _skip_options(self) -> None:
        if self._peek().value == "[":
            while self._next().value != "]":
                pass

    # Declarations

    def _declare(self, name: str, parent: tuple[ProtoMessage, str] | None) -> tuple[str, str]:
        """Register a declaration, returning its proto path and lifted name."""
        if parent is None:
            path, lifted = name, name
        else:
            path, lifted = f"{parent[1]}.{name}", parent[0].name + name
            logger.debug("Lifting nested %s out of %s as %s", name, parent[1], lifted)
        self._lifted[path] = lifted
        return path, lifted

    def _parse_message(
        self, model: ProtoModel, comment: ProtoComment | None, parent: tuple[ProtoMessage, str] | None = None
    ) -> None:
        path, name = self._declare(self._ident("message"), parent)
        message = ProtoMessage(name=name, comment=comment)
        self._scopes.append((message, path))
        self._expect("{", f"message {path}")
        self._parse_fields(model, message, path, in_oneof=False)
        model.messages.append(message)

    def _parse_fields(self, model: ProtoModel, message: ProtoMessage, path: str, in_oneof: bool) -> None:
        context = f"message {path}"
        while True:
            comment = self._comments()
            token = self._next()
            match token.value:
                case "}":
                    return
                case "message":
                    self._parse_message(model, comment, (message, path))
                case "enum":
                    model.enums.append(self._parse_enum(comment, (message, path)))
                case "option" | "reserved" | "extensions":
                    self._skip_statement()
                case "oneof":
                    self._ident(context)
                    self._expect("{", context)
                    self._parse_fields(model, message, path, in_oneof=True)
                case "map":
                    self._expect("<", context)
                    key = self._ident(context)
                    self._expect(",", context)
                    value = self._ident(context)
                    self._expect(">", context)
                    message.fields.append(self._field_tail(value, context, comment, map_key=key))
                case "repeated":
                    message.fields.append(self._field_tail(self._ident(context), context, comment, repeated=True))
                case "optional":
                    message.fields.append(self._field_tail(self._ident(context), context, comment, optional=True))
                case _ if token.kind == "ident":
                    message.fields.append(self._field_tail(token.value, context, comment, optional=in_oneof))
                case _:
                    raise ParseError(f"Unexpected '{token.value}' in {context} at line {token.line}")

    def _field_tail(
        self,
        type_name: str,
        context: str,
        comment: ProtoComment | None,
        repeated: bool = False,
        optional: bool = False,
        map_key: str | None = None,
    ) -> ProtoField:
        name = self._ident(context)
        field_context = f"{context}, field {name}"
        self._expect("=", field_context)
        number = self._number(field_context)
        self._skip_options()
        self._expect(";", field_context)
        return ProtoField(
            name=name,
            type=type_name.lstrip("."),
            number=number,
            repeated=repeated,
            optional=optional,
            map_key=map_key,
            comment=comment,
        )

    def _parse_enum(self, comment: ProtoComment | None, parent: tuple[ProtoMessage, str] | None = None) -> ProtoEnum:
        path, name = self._declare(self._ident("enum"), parent)
        context = f"enum {path}"
        enum = ProtoEnum(name=name, comment=comment)
        self._expect("{", context)
        while True:
            self._comments()
            token = self._next()
            if token.value == "}":
                return enum
            if token.value in ("option", "reserved"):
                self._skip_statement()
                continue
            if token.kind != "ident":
                raise ParseError(f"Unexpected '{token.value}' in {context} at line {token.line}")
            self._expect("=", context)
            number = self._number(f"{context}, value {token.value}")
            self._skip_options()
            self._expect(";", context)
            enum.values.append(ProtoEnumValue(name=token.value, number=number))

    def _parse_service(self) -> ProtoService:
        name = self._ident("service")
        context = f"service {name}"
        service = ProtoService(name=name)
        self._expect("{", context)
        while True:
            self._comments()
            token = self._next()
            if token.value == "}":
                return service
            if token.value == "option":
                self._skip_statement()
                continue
            if token.value != "rpc":
                raise ParseError(f"Unexpected '{token.value}' in {context} at line {token.line}")
            method = self._ident(context)
            request = self._rpc_type(context)
            if self._ident(context) != "returns":
                raise ParseError(f"Expected 'returns' in {context}, rpc {method}")
            response = self._rpc_type(context)
            if self._peek().value == "{":
                while self._next().value != "}":
                    pass
            else:
                self._expect(";", context)
            service.methods.append(ProtoMethod(name=method, request_type=request, response_type=response))

    def _rpc_type(self, context: str) -> str:
        self._expect("(", context)
        type_name = self._ident(context)
        if type_name == "stream":
            type_name = self._ident(context)
        self._expect(")", context)
        return type_name.lstrip(".")

    # Scopes

    def _resolve_types(self, model: ProtoModel) -> None:
        """Rewrite field and rpc type names to the lifted declaration names."""
        for message, path in self._scopes:
            for f in message.fields:
                f.type = self._resolve_name(f.type, path, model.package)
        for service in model.services:
            for method in service.methods:
                method.request_type = self._resolve_name(method.request_type, "", model.package)
                method.response_type = self._resolve_name(method.response_type, "", model.package)

    def _resolve_name(self, type_name: str, scope: str, package: str) -> str:
        if type_name in SCALAR_PRIMITIVES or type_name in OPAQUE_TYPES:
            return type_name
        relative = type_name[len(package) + 1 :] if package and type_name.startswith(f"{package}.") else type_name
        # innermost scope wins, as in protoc
        parts = scope.split(".") if scope else []
        for depth in range(len(parts), -1, -1):
            candidate = ".".join([*parts[:depth], relative])
            if candidate in self._lifted:
                return self._lifted[candidate]
        return type_name


def _metadata_from_comment(comment: ProtoComment | None) -> Metadata | None:
    if comment is None:
        return None
    metadata = Metadata(description="\n".join(comment.lines) or None)
    for name, value in comment.tags:
        attr = _KEYWORD_ATTRIBUTES.get(name)
        if attr is not None:
            setattr(metadata, attr, _tag_value(value))
        elif name == "deprecated":
            metadata.deprecated = True
        elif name == "default":
            metadata.default, metadata.has_default = _tag_value(value), True
        elif name == "example":
            metadata.example, metadata.has_example = _tag_value(value), True
        else:
            metadata.tags.append((name, value))
    return None if metadata.is_empty() else metadata


def _tag_value(value: str):
    for convert in (int, float):
        try:
            return convert(value)
        except ValueError:
            pass
    if value in ("true", "false"):
        return value == "true"
    return value


def _strip_value_prefix(enum_name: str, names: list[str]) -> list[str]:
    """Drop the prefix shared by every value name.

    Candidates are the trailing words of the enum name, longest first, so a
    lifted ``OrderKind`` accepts both ``ORDER_KIND_`` and ``KIND_``.
    """
    words = to_upper_snake_case(enum_name).split("_")
    for i in range(len(words)):
        prefix = "_".join(words[i:]) + "_"
        if all(n.startswith(prefix) and len(n) > len(prefix) for n in names):
            return [n[len(prefix) :] for n in names]
    return names


def proto_to_document(model: ProtoModel) -> SchemaDocument:
    """Convert a parsed ProtoModel to IR; services are not part of the document."""
    declared = {m.name for m in model.messages} | {e.name for e in model.enums}
    package_prefix = f"{model.package}." if model.package else None

    def resolve(type_name: str, context: str) -> SchemaIR:
        if type_name in SCALAR_PRIMITIVES:
            kind, fmt = SCALAR_PRIMITIVES[type_name]
            return PrimitiveNode(kind=kind, format=fmt)
        if type_name in OPAQUE_TYPES:
            return ObjectNode(extra=True)
        if package_prefix and type_name.startswith(package_prefix):
            type_name = type_name[len(package_prefix) :]
        if type_name in declared:
            return ReferenceNode(name=type_name)
        short = type_name.rsplit(".", 1)[-1]
        if short in declared:
            return ReferenceNode(name=short)
        raise ParseError(f"Unknown type '{type_name}' in {context}")

    document = SchemaDocument()
    for enum in model.enums:
        values = _strip_value_prefix(enum.name, [v.name for v in enum.values])
        document.add(enum.name, EnumNode(kind=ScalarKind.STRING, values=values, metadata=_metadata_from_comment(enum.comment)))

    for message in model.messages:
        properties = []
        for f in message.fields:
            context = f"message {message.name}, field {f.name}"
            node = resolve(f.type, context)
            if f.is_map:
                node = MapNode(value_type=node)
            elif f.repeated:
                node = ArrayNode(element=node)
            properties.append(
                Property(name=f.name, schema=node, required=not f.optional, metadata=_metadata_from_comment(f.comment))
            )
        document.add(
            message.name, ObjectNode(properties=properties, metadata=_metadata_from_comment(message.comment))
        )
    return document


def parse_proto(text: str) -> SchemaDocument:
    """Parse proto3 text straight into a SchemaDocument."""
    return proto_to_document(ProtoParser().parse(text))
