#!/usr/bin/env python3

import json
from pathlib import Path

import pytest

from schema_ir import ConversionConfig, SchemaConverter
from schema_ir.errors import UnsupportedTypeError
from schema_ir.pipeline.emitters import DeclarationEmitter
from schema_ir.pipeline.emitters.declaration_emitter import comment_lines
from schema_ir.pipeline.ir import (
    IntersectionNode,
    Metadata,
    ObjectNode,
    PrimitiveNode,
    Property,
    ReferenceNode,
    ScalarKind,
    SchemaDocument,
)

TEST_DATA = Path(__file__).parent / "test_data" / "declaration_cases.json"


def load_test_cases():
    with open(TEST_DATA) as f:
        return json.load(f)


@pytest.mark.parametrize("test_case", load_test_cases(), ids=lambda tc: tc["name"])
def test_declaration_cases(test_case):
    """Generate a module from OpenAPI schemas and check its contents"""
    converter = SchemaConverter()
    code = converter.to_module(converter.from_openapi(test_case["schemas"]))

    for expected in test_case["expected_contains"]:
        assert expected in code, f"Expected '{expected}' not found in generated code:\n{code}"
    for not_expected in test_case["expected_not_contains"]:
        assert not_expected not in code, f"Unwanted '{not_expected}' found in generated code:\n{code}"


class TestDeclarationEmitter:
    def test_module_layout(self):
        document = SchemaDocument(
            [
                ("Name", PrimitiveNode(kind=ScalarKind.STRING)),
                (
                    "Person",
                    ObjectNode(properties=[Property(name="name", schema=PrimitiveNode(kind=ScalarKind.STRING))]),
                ),
            ]
        )
        code = DeclarationEmitter().emit_module(document, "Generated by schema_ir")
        assert code == (
            "# Generated by schema_ir\n"
            "\n"
            "from __future__ import annotations\n"
            "\n"
            "from typing import TypedDict\n"
            "\n"
            "\n"
            "type Name = str\n"
            "\n"
            "\n"
            "class Person(TypedDict):\n"
            "    name: str\n"
        )

    def test_generation_comment_disabled(self):
        config = ConversionConfig(add_generation_comment=False)
        code = DeclarationEmitter(config).emit_module(SchemaDocument([("Name", PrimitiveNode(kind=ScalarKind.STRING))]), "ignored")
        assert code.startswith("from __future__ import annotations\n")

    def test_empty_object(self):
        declarations = DeclarationEmitter().emit(SchemaDocument([("Nothing", ObjectNode())]))
        assert declarations["Nothing"] == "class Nothing(TypedDict):\n    pass"

    def test_hoisted_classes_come_first(self):
        inner = ObjectNode(properties=[Property(name="x", schema=PrimitiveNode(kind=ScalarKind.NUMBER))])
        document = SchemaDocument([("Outer", ObjectNode(properties=[Property(name="inner", schema=inner)]))])
        text = DeclarationEmitter().emit(document)["Outer"]
        assert text.index("class OuterInner(TypedDict):") < text.index("class Outer(TypedDict):")

    def test_hoisted_name_does_not_shadow_document_entry(self):
        inner = ObjectNode(properties=[Property(name="x", schema=PrimitiveNode(kind=ScalarKind.NUMBER))])
        document = SchemaDocument(
            [
                ("OuterInner", PrimitiveNode(kind=ScalarKind.STRING)),
                ("Outer", ObjectNode(properties=[Property(name="inner", schema=inner)])),
            ]
        )
        text = DeclarationEmitter().emit(document)["Outer"]
        assert "class OuterInner2(TypedDict):" in text
        assert "    inner: OuterInner2" in text

    def test_multiline_docstring(self):
        node = ObjectNode(
            properties=[Property(name="id", schema=PrimitiveNode(kind=ScalarKind.STRING))],
            metadata=Metadata(description="First line\nSecond line", deprecated=True),
        )
        text = DeclarationEmitter().emit(SchemaDocument([("Item", node)]))["Item"]
        assert '    """First line\n    Second line\n    @deprecated"""' in text

    def test_intersection_bases_are_classes_only(self):
        def name_property(name):
            return Property(name=name, schema=PrimitiveNode(kind=ScalarKind.STRING))

        document = SchemaDocument(
            [
                ("Base", ObjectNode(properties=[name_property("a")])),
                ("MaybeBase", ObjectNode(properties=[name_property("b")], nullable=True)),
                (
                    "Combined",
                    IntersectionNode(members=[ReferenceNode(name="Base"), ReferenceNode(name="MaybeBase")]),
                ),
            ]
        )
        declarations = DeclarationEmitter().emit(document)
        assert declarations["MaybeBase"].endswith("type MaybeBase = MaybeBase2 | None")
        assert declarations["Combined"] == "class Combined(Base):\n    b: str"

    def test_free_form_intersection_member_is_rejected(self):
        document = SchemaDocument(
            [
                ("Loose", ObjectNode(extra=True)),
                ("Combined", IntersectionNode(members=[ReferenceNode(name="Loose"), ObjectNode()])),
            ]
        )
        with pytest.raises(UnsupportedTypeError) as exc_info:
            DeclarationEmitter().emit(document)
        assert "Cannot declare intersection member of Combined" in str(exc_info.value)

    def test_null_only_schemas(self):
        converter = SchemaConverter()
        document = converter.from_openapi(
            {
                "Nothing": {"type": "null"},
                "Holder": {"type": "object", "properties": {"gone": {"type": "null"}}, "required": ["gone"]},
            }
        )
        declarations = converter.to_declarations(document)
        assert declarations["Nothing"] == "type Nothing = None"
        assert declarations["Holder"] == "class Holder(TypedDict):\n    gone: None"


class TestCommentLines:
    def test_none(self):
        assert comment_lines(None) == []

    def test_values(self):
        metadata = Metadata(default=None, has_default=True, example=[1, 2], has_example=True, tags=[("flag", "")])
        assert comment_lines(metadata) == ["@default null", "@example [1, 2]", "@flag"]


if __name__ == "__main__":
    pytest.main([__file__])
