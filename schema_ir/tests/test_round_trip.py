#!/usr/bin/env python3

import enum
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import pytest

from schema_ir import SchemaConverter

TEST_DATA = Path(__file__).parent / "test_data" / "round_trip_schemas.json"


class Status(enum.Enum):
    ACTIVE = "active"
    DISABLED = "disabled"


@dataclass
class User:
    """A registered user."""

    id: int
    name: str
    status: Status
    tags: list[str]
    scores: dict[str, float]
    nickname: str | None = None


@dataclass
class Circle:
    kind: Literal["circle"]
    radius: float


@dataclass
class Square:
    kind: Literal["square"]
    side: float


type Shape = Circle | Square


@dataclass
class Node:
    value: str
    next: "Node | None" = None


def load_test_cases():
    with open(TEST_DATA) as f:
        return json.load(f)


@pytest.mark.parametrize("test_case", load_test_cases(), ids=lambda tc: tc["name"])
@pytest.mark.parametrize("version", ["3.0", "3.1"])
def test_openapi_round_trip(test_case, version):
    """Parsing emitted schemas and emitting again gives the same schemas"""
    converter = SchemaConverter()
    first = converter.to_openapi(converter.from_openapi(test_case["schemas"]), version)
    second = converter.to_openapi(converter.from_openapi(first), version)
    assert first == second


class TestForwardAndBack:
    """Python types -> target -> IR -> target"""

    @pytest.mark.parametrize("version", ["3.0", "3.1"])
    def test_openapi(self, version):
        converter = SchemaConverter()
        schemas = converter.to_openapi(converter.build([Status, User, Circle, Square, Shape, Node]), version)
        assert converter.to_openapi(converter.from_openapi(schemas), version) == schemas

    def test_openapi_preserves_names_and_nullability(self):
        converter = SchemaConverter()
        schemas = converter.to_openapi(converter.build([Node]), "3.1")
        document = converter.from_openapi(schemas)
        next_schema = document["Node"].get_property("next").schema
        assert next_schema.name == "Node"
        assert next_schema.nullable
        assert document.find_cycles() == ["Node"]

    def test_proto(self):
        converter = SchemaConverter()
        text = converter.to_proto_text(converter.build([Status, User]))
        document = converter.from_proto(text)
        assert document.names() == ["Status", "User"]
        assert converter.to_proto_text(document) == text

    def test_proto_to_declarations(self):
        converter = SchemaConverter()
        document = converter.from_proto(converter.to_proto_text(converter.build([Status, User])))
        code = converter.to_module(document)
        assert code == (
            "from __future__ import annotations\n"
            "\n"
            "from typing import Literal, NotRequired, TypedDict\n"
            "\n"
            "\n"
            'type Status = Literal["ACTIVE", "DISABLED"]\n'
            "\n"
            "\n"
            "class User(TypedDict):\n"
            '    """A registered user."""\n'
            "\n"
            "    id: int\n"
            "    name: str\n"
            "    status: Status\n"
            "    tags: list[str]\n"
            "    scores: dict[str, float]\n"
            "    nickname: NotRequired[str]\n"
        )


if __name__ == "__main__":
    pytest.main([__file__])
