#!/usr/bin/env python3

import sys
import typing
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, NamedTuple, NewType, TypedDict

import pytest

from schema_ir import AllOf, NumFormat, Private, SchemaConverter, StrFormat, Tag, collect_types, rpc
from schema_ir.tags import EXCLUDED_TAGS, FormatTag, IntersectionOf, RpcMethod, collect_rpc_methods
from schema_ir.utils import is_identifier, snake_to_pascal_case, to_upper_snake_case


class Color(Enum):
    RED = "red"


@dataclass
class Point:
    x: float
    y: float


class Movie(TypedDict):
    title: str


class Pair(NamedTuple):
    left: str
    right: str


UserId = NewType("UserId", str)

type Points = list[Point]


class _Hidden(Enum):
    A = "a"


@rpc(request=Point, response=Point)
def move_point(point): ...


class TestFormatTags:
    def test_subscript_produces_annotated(self):
        alias = NumFormat["int32"]
        assert typing.get_origin(alias) is Annotated
        assert typing.get_args(alias) == (int, FormatTag("NumFormat", "int32"))

    def test_base_types(self):
        assert typing.get_args(NumFormat["double"])[0] is float
        assert typing.get_args(NumFormat["string"])[0] is str
        assert typing.get_args(StrFormat["email"])[0] is str

    def test_not_callable(self):
        with pytest.raises(TypeError):
            NumFormat("int32")

    def test_all_of(self):
        alias = AllOf[Point, Movie]
        assert typing.get_args(alias) == (Point, IntersectionOf((Point, Movie)))


class TestDocTags:
    def test_excluded(self):
        assert Private.name in EXCLUDED_TAGS
        assert Tag("since", "2.0").name not in EXCLUDED_TAGS

    def test_rpc_defaults(self):
        method = move_point.__rpc__
        assert method == RpcMethod("MovePoint", Point, Point, None)
        assert method.request_name == "Point"
        assert RpcMethod("Ping").request_name is None

    def test_rpc_explicit_name(self):
        @rpc(name="Custom", service="Svc")
        def handler(): ...

        assert handler.__rpc__ == RpcMethod("Custom", None, None, "Svc")

    def test_collect_from_module(self):
        methods = collect_rpc_methods(sys.modules[__name__])
        assert [m.name for m in methods] == ["MovePoint"]


class TestCollectTypes:
    def test_definition_order(self):
        types = collect_types(sys.modules[__name__])
        assert types == [Color, Point, Movie, Pair, UserId, Points]

    def test_requested_names(self):
        assert collect_types(sys.modules[__name__], ["Pair", "Color"]) == [Pair, Color]

    def test_missing_name(self):
        with pytest.raises(KeyError):
            collect_types(sys.modules[__name__], ["Nope"])

    def test_module_to_proto_text(self):
        text = SchemaConverter().module_to_proto_text(sys.modules[__name__], "geo")
        assert "package geo;" in text
        assert "message Points {\n  repeated Point value = 1;\n}" in text
        assert "message UserId {\n  string value = 1;\n}" in text
        assert "rpc MovePoint(Point) returns (Point);" in text


class TestNaming:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("billing_address", "BillingAddress"),
            ("shippingAddress", "ShippingAddress"),
            ("line 2", "Line2"),
            ("FIRST_NAME", "FirstName"),
            ("", ""),
        ],
    )
    def test_snake_to_pascal_case(self, text, expected):
        assert snake_to_pascal_case(text) == expected

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("in-progress", "IN_PROGRESS"),
            ("OrderStatus", "ORDER_STATUS"),
            ("ACTIVE", "ACTIVE"),
            ("HTTPServer", "HTTP_SERVER"),
            (42, "42"),
        ],
    )
    def test_to_upper_snake_case(self, text, expected):
        assert to_upper_snake_case(text) == expected

    def test_is_identifier(self):
        assert is_identifier("user_id")
        assert not is_identifier("content-type")
        assert not is_identifier("2fa")


if __name__ == "__main__":
    pytest.main([__file__])
