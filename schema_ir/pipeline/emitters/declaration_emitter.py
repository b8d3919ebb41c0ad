"""
Declaration emitter: Schema IR -> Python type declarations.

Objects become TypedDicts, everything else a ``type X = ...`` alias. Inline
objects are hoisted as ``<Parent><Field>`` classes placed before their parent.
Metadata is rendered as comments above fields and as class docstrings.
"""

from __future__ import annotations

import json
import keyword
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jinja2

from ...errors import UnsupportedTypeError
from ...utils import is_identifier, snake_to_pascal_case
from ..config import ConversionConfig
from ..formatters import BlackFormatter
from ..ir.nodes import (
    ArrayNode,
    EnumNode,
    IntersectionNode,
    LiteralNode,
    MapNode,
    Metadata,
    ObjectNode,
    PrimitiveNode,
    Property,
    ReferenceNode,
    ScalarKind,
    SchemaDocument,
    SchemaIR,
    UnionNode,
)

TEMPLATES_DIR = Path(__file__).parent.parent.parent.resolve() / "templates"

# Import module for each name the declarations may use, in import order
IMPORT_SOURCES = {
    "date": "datetime",
    "datetime": "datetime",
    "Any": "typing",
    "Literal": "typing",
    "NotRequired": "typing",
    "TypedDict": "typing",
    "ExtraTypedDict": "typing_extensions",
    "NumFormat": "schema_ir",
    "StrFormat": "schema_ir",
}

# String formats with a native Python type
STRING_FORMAT_TYPES = {"date-time": "datetime", "date": "date"}

# Number formats with a native Python type
NUMBER_FORMAT_TYPES = {None: "float", "int64": "int", "double": "float"}


def _py_literal(value: Any) -> str:
    if isinstance(value, bool) or value is None:
        return repr(value)
    if isinstance(value, str):
        return json.dumps(value)
    return repr(value)


def comment_lines(metadata: Metadata | None) -> list[str]:
    """Description lines followed by ``@tag value`` lines."""
    if metadata is None:
        return []
    lines = metadata.description.splitlines() if metadata.description else []
    for name, value in metadata.doc_tags():
        lines.append(f"@{name} {_tag_text(value)}".rstrip())
    return lines


def _tag_text(value: Any) -> str:
    if isinstance(value, (bool, list, dict)) or value is None:
        return json.dumps(value)
    return str(value)


def _is_class_declaration(node: SchemaIR | None) -> bool:
    """True for document entries declared as a TypedDict class rather than a type alias."""
    if node is None or node.nullable:
        return False
    if isinstance(node, IntersectionNode):
        return True
    return _is_plain_object(node) or (isinstance(node, ObjectNode) and bool(node.properties))


def _is_plain_object(node: SchemaIR | None) -> bool:
    return isinstance(node, ObjectNode) and node.extra is None


@dataclass
class _FieldDecl:
    name: str
    type: str
    comments: list[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return json.dumps(self.name)


class _RenderState:
    """Names used by the declarations and classes hoisted so far."""

    def __init__(self, document: SchemaDocument):
        self.document = document
        self.used: set[str] = set()
        self.taken = set(document.names())

    def use(self, name: str) -> str:
        self.used.add(name)
        return name

    def unique_name(self, name: str) -> str:
        candidate, suffix = name, 2
        while candidate in self.taken:
            candidate = f"{name}{suffix}"
            suffix += 1
        self.taken.add(candidate)
        return candidate

    def imports(self) -> list[tuple[str, list[str]]]:
        grouped: dict[str, list[str]] = defaultdict(list)
        for name, module in IMPORT_SOURCES.items():
            if name in self.used:
                if name == "ExtraTypedDict":
                    grouped[module].append("TypedDict")
                elif not (name == "TypedDict" and "ExtraTypedDict" in self.used):
                    grouped[module].append(name)
        return list(grouped.items())


class DeclarationEmitter:
    """Renders Python declarations for each document entry."""

    def __init__(self, config: ConversionConfig | None = None):
        self.config = config or ConversionConfig()
        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(TEMPLATES_DIR / "python"),
            lstrip_blocks=True,
            trim_blocks=True,
        )
        self.prefix = self.jinja_env.get_template("prefix.py.jinja2")
        self.class_model = self.jinja_env.get_template("class.py.jinja2")
        self.typed_dict_model = self.jinja_env.get_template("typed_dict.py.jinja2")
        self.alias_model = self.jinja_env.get_template("alias.py.jinja2")

    def emit(self, document: SchemaDocument) -> dict[str, str]:
        """Return name -> declaration text, in document order."""
        declarations, _ = self._render_all(document)
        return declarations

    def emit_module(self, document: SchemaDocument, generation_comment: str | None = None) -> str:
        """Render a complete Python module declaring every document entry."""
        declarations, state = self._render_all(document)
        if not self.config.add_generation_comment:
            generation_comment = None
        prefix = self.prefix.render(generation_comment=generation_comment, imports=state.imports()).strip()
        code = "\n\n\n".join([prefix, *declarations.values()]) + "\n"
        if self.config.formatter.enabled:
            code = BlackFormatter().format(code, self.config.formatter)
        return code

    def _render_all(self, document: SchemaDocument) -> tuple[dict[str, str], _RenderState]:
        state = _RenderState(document)
        declarations = {}
        for name, node in document.items():
            hoisted: list[str] = []
            text = self._declare(name, node, state, hoisted)
            declarations[name] = "\n\n\n".join([*hoisted, text])
        return declarations, state

    def _declare(self, name: str, node: SchemaIR, state: _RenderState, hoisted: list[str]) -> str:
        if not _is_class_declaration(node):
            return self._alias(name, node, state, hoisted)
        match node:
            case ObjectNode(properties=properties, extra=extra):
                return self._class(name, [], properties, extra, node.metadata, state, hoisted)
            case IntersectionNode(members=members):
                bases, properties = self._split_intersection(name, members, state, hoisted)
                return self._class(name, bases, properties, None, node.metadata, state, hoisted)
            case _:
                return self._alias(name, node, state, hoisted)

    def _alias(self, name: str, node: SchemaIR, state: _RenderState, hoisted: list[str]) -> str:
        expr = self._type_expr(node, name, state, hoisted)
        return self.alias_model.render(name=name, expr=expr, comments=comment_lines(node.metadata)).strip()

    def _split_intersection(
        self, name: str, members: list[SchemaIR], state: _RenderState, hoisted: list[str]
    ) -> tuple[list[str], list[Property]]:
        bases: list[str] = []
        properties: list[Property] = []
        for member in members:
            match member:
                case ReferenceNode(name=ref) if _is_class_declaration(state.document.get(ref)):
                    bases.append(ref)
                case ReferenceNode(name=ref) if _is_plain_object(state.document.get(ref)):
                    # nullable objects are aliases, copy their fields instead
                    properties.extend(state.document[ref].properties)
                case ObjectNode(properties=member_props, extra=None):
                    properties.extend(member_props)
                case _:
                    raise UnsupportedTypeError(f"Cannot declare intersection member of {name}: {member!r}")
        return bases, properties

    def _class(
        self,
        name: str,
        bases: list[str],
        properties: list[Property],
        extra: bool | SchemaIR | None,
        metadata: Metadata | None,
        state: _RenderState,
        hoisted: list[str],
    ) -> str:
        fields = []
        for prop in properties:
            type_expr = self._type_expr(prop.schema, name + snake_to_pascal_case(prop.name), state, hoisted)
            if not prop.required:
                type_expr = f"{state.use('NotRequired')}[{type_expr}]"
            prop_metadata = prop.metadata
            if prop.schema.metadata is not None and not isinstance(prop.schema, ReferenceNode):
                prop_metadata = prop.schema.metadata.merged(prop_metadata)
            fields.append(_FieldDecl(prop.name, type_expr, comment_lines(prop_metadata)))

        extra_items = None
        if extra is not None:
            state.use("ExtraTypedDict")
            extra_items = state.use("Any") if extra is True else self._type_expr(extra, name + "Extra", state, hoisted)
        elif not bases:
            state.use("TypedDict")

        if all(is_identifier(f.name) and not keyword.iskeyword(f.name) for f in fields):
            docstring = "\n".join(comment_lines(metadata)) or None
            if docstring:
                docstring = docstring.replace('"""', '\\"\\"\\"').replace("\n", "\n    ")
            return self.class_model.render(
                name=name,
                bases=bases or ["TypedDict"],
                extra_items=extra_items,
                docstring=docstring,
                fields=fields,
            ).strip()

        # functional syntax evaluates types eagerly, quote them
        state.use("TypedDict")
        for f in fields:
            f.type = json.dumps(f.type)
        if extra_items is not None:
            extra_items = json.dumps(extra_items)
        return self.typed_dict_model.render(
            name=name,
            fields=fields,
            extra_items=extra_items,
            comments=comment_lines(metadata),
        ).strip()

    def _type_expr(self, node: SchemaIR, hoist_name: str, state: _RenderState, hoisted: list[str]) -> str:
        expr = self._type_shape(node, hoist_name, state, hoisted)
        if node.nullable and expr != "None":
            expr = f"{expr} | None"
        return expr

    def _type_shape(self, node: SchemaIR, hoist_name: str, state: _RenderState, hoisted: list[str]) -> str:
        match node:
            case PrimitiveNode(kind=ScalarKind.STRING, format=fmt):
                if fmt is None:
                    return "str"
                if fmt in STRING_FORMAT_TYPES:
                    return state.use(STRING_FORMAT_TYPES[fmt])
                return f"{state.use('StrFormat')}[{json.dumps(fmt)}]"
            case PrimitiveNode(kind=ScalarKind.NUMBER, format=fmt):
                if fmt in NUMBER_FORMAT_TYPES:
                    return NUMBER_FORMAT_TYPES[fmt]
                return f"{state.use('NumFormat')}[{json.dumps(fmt)}]"
            case PrimitiveNode(kind=ScalarKind.BOOLEAN):
                return "bool"
            case LiteralNode(value=value):
                return f"{state.use('Literal')}[{_py_literal(value)}]"
            case EnumNode(values=values):
                return f"{state.use('Literal')}[{', '.join(_py_literal(v) for v in values)}]"
            case ArrayNode(element=element):
                return f"list[{self._type_expr(element, hoist_name + 'Item', state, hoisted)}]"
            case MapNode(value_type=value_type):
                return f"dict[str, {self._type_expr(value_type, hoist_name + 'Value', state, hoisted)}]"
            case ObjectNode(properties=properties, extra=extra):
                if not properties and extra is True:
                    return f"dict[str, {state.use('Any')}]"
                if not properties and extra is not None:
                    return f"dict[str, {self._type_expr(extra, hoist_name + 'Value', state, hoisted)}]"
                name = state.unique_name(hoist_name)
                hoisted.append(self._class(name, [], properties, extra, node.metadata, state, hoisted))
                return name
            case IntersectionNode(members=members):
                name = state.unique_name(hoist_name)
                bases, properties = self._split_intersection(name, members, state, hoisted)
                hoisted.append(self._class(name, bases, properties, None, node.metadata, state, hoisted))
                return name
            case UnionNode(members=[]):
                return "None"
            case UnionNode(members=members):
                return " | ".join(
                    self._type_expr(m, f"{hoist_name}Option{i + 1}", state, hoisted) for i, m in enumerate(members)
                )
            case ReferenceNode(name=name):
                return name
            case _:
                raise UnsupportedTypeError(f"Unsupported type: {node!r}")
