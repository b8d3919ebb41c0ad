#!/usr/bin/env python3

import pytest

from schema_ir.errors import ParseError
from schema_ir.pipeline.emitters import proto_to_text
from schema_ir.pipeline.ir import ArrayNode, EnumNode, MapNode, ObjectNode, PrimitiveNode, ReferenceNode, ScalarKind
from schema_ir.pipeline.parsers import ProtoParser, parse_proto, proto_to_document

SHOP_PROTO = """\
syntax = "proto3";

package shop.v1;

import "google/protobuf/timestamp.proto";

option java_package = "com.example.shop";

// Lifecycle of an order.
enum OrderStatus {
  ORDER_STATUS_PENDING = 0;
  ORDER_STATUS_IN_PROGRESS = 1;
  ORDER_STATUS_SHIPPED = 2 [deprecated = true];
}

/* Block comments are ignored */
message Order {
  // Order identifier.
  // @minLength 1
  string id = 1;
  OrderStatus status = 2; // trailing comments are dropped
  repeated LineItem items = 3;
  map<string, string> labels = 4;
  optional string note = 5;
  google.protobuf.Timestamp created_at = 6;
  shop.v1.Customer customer = 7;
  reserved 8, 9;

  message LineItem {
    string sku = 1;
    int32 quantity = 2 [packed = true];
  }

  oneof payment {
    string card = 10;
    string voucher = 11;
  }
}

message Customer {
  string name = 1;
  bytes avatar = 2;
}

service OrderService {
  rpc GetOrder(Order) returns (Order);
  rpc WatchOrders(stream Order) returns (stream Order) {}
}
"""


class TestProtoParser:
    """Parsing proto3 text into the Protobuf model"""

    def setup_method(self):
        self.model = ProtoParser().parse(SHOP_PROTO)

    def test_header(self):
        assert self.model.syntax == "proto3"
        assert self.model.package == "shop.v1"
        assert self.model.imports == ["google/protobuf/timestamp.proto"]

    def test_enum(self):
        status = self.model.find_enum("OrderStatus")
        assert [(v.name, v.number) for v in status.values] == [
            ("ORDER_STATUS_PENDING", 0),
            ("ORDER_STATUS_IN_PROGRESS", 1),
            ("ORDER_STATUS_SHIPPED", 2),
        ]
        assert status.comment.lines == ["Lifecycle of an order."]

    def test_nested_message_is_lifted(self):
        assert [m.name for m in self.model.messages] == ["OrderLineItem", "Order", "Customer"]

    def test_fields(self):
        order = self.model.find_message("Order")
        assert [f.name for f in order.fields] == [
            "id",
            "status",
            "items",
            "labels",
            "note",
            "created_at",
            "customer",
            "card",
            "voucher",
        ]
        fields = {f.name: f for f in order.fields}
        assert fields["items"].repeated
        assert fields["labels"].map_key == "string"
        assert fields["note"].optional
        assert fields["card"].optional and fields["voucher"].optional
        assert fields["id"].comment.lines == ["Order identifier."]
        assert fields["id"].comment.tags == [("minLength", "1")]
        assert fields["status"].comment is None
        assert fields["items"].comment is None
        assert fields["items"].type == "OrderLineItem"
        assert fields["customer"].type == "Customer"

    def test_service(self):
        service = self.model.services[0]
        assert service.name == "OrderService"
        assert [(m.name, m.request_type, m.response_type) for m in service.methods] == [
            ("GetOrder", "Order", "Order"),
            ("WatchOrders", "Order", "Order"),
        ]


class TestProtoToDocument:
    """Converting the Protobuf model into IR"""

    def setup_method(self):
        self.document = parse_proto(SHOP_PROTO)

    def test_order(self):
        assert self.document.names() == ["OrderStatus", "OrderLineItem", "Order", "Customer"]

    def test_enum_values_lose_prefix(self):
        assert self.document["OrderStatus"].values == ["PENDING", "IN_PROGRESS", "SHIPPED"]
        assert self.document["OrderStatus"].metadata.description == "Lifecycle of an order."

    def test_fields(self):
        order = self.document["Order"]
        assert isinstance(order, ObjectNode)
        assert order.get_property("id").schema == PrimitiveNode(kind=ScalarKind.STRING)
        assert order.get_property("id").metadata.min_length == 1
        assert order.get_property("status").schema == ReferenceNode(name="OrderStatus")
        assert order.get_property("items").schema == ArrayNode(element=ReferenceNode(name="OrderLineItem"))
        assert order.get_property("labels").schema == MapNode(value_type=PrimitiveNode(kind=ScalarKind.STRING))
        assert order.get_property("created_at").schema == PrimitiveNode(kind=ScalarKind.STRING, format="date-time")
        assert order.get_property("customer").schema == ReferenceNode(name="Customer")
        assert order.required == ["id", "status", "items", "labels", "created_at", "customer"]

    def test_scalars(self):
        customer = self.document["Customer"]
        assert customer.get_property("avatar").schema == PrimitiveNode(kind=ScalarKind.STRING, format="binary")
        quantity = self.document["OrderLineItem"].get_property("quantity").schema
        assert quantity == PrimitiveNode(kind=ScalarKind.NUMBER, format="int32")

    def test_reserialized_model_parses_the_same(self):
        model = ProtoParser().parse(SHOP_PROTO)
        again = ProtoParser().parse(proto_to_text(model))
        assert proto_to_document(again).names() == self.document.names()
        assert proto_to_text(again) == proto_to_text(model)


NESTED_PROTO = """\
syntax = "proto3";

message Order {
  message Item {
    string sku = 1;
  }
  enum Kind {
    KIND_RETAIL = 0;
    KIND_WHOLESALE = 1;
  }
  repeated Item items = 1;
  Kind kind = 2;
}

message Cart {
  message Item {
    int32 quantity = 1;
  }
  repeated Item items = 1;
  Order.Item last_ordered = 2;
}

message Item {
  string label = 1;
}

message Shelf {
  repeated Item items = 1;
}
"""


class TestNestedDeclarations:
    """Nested messages with the same name in different parents"""

    def setup_method(self):
        self.document = parse_proto(NESTED_PROTO)

    def test_lifted_names_are_qualified(self):
        assert self.document.names() == ["OrderKind", "OrderItem", "Order", "CartItem", "Cart", "Item", "Shelf"]

    def test_fields_resolve_in_enclosing_scope(self):
        assert self.document["Order"].get_property("items").schema == ArrayNode(element=ReferenceNode(name="OrderItem"))
        assert self.document["Order"].get_property("kind").schema == ReferenceNode(name="OrderKind")
        assert self.document["Cart"].get_property("items").schema == ArrayNode(element=ReferenceNode(name="CartItem"))
        assert self.document["Shelf"].get_property("items").schema == ArrayNode(element=ReferenceNode(name="Item"))

    def test_qualified_reference_to_another_scope(self):
        assert self.document["Cart"].get_property("last_ordered").schema == ReferenceNode(name="OrderItem")

    def test_nested_enum_values_lose_short_prefix(self):
        assert self.document["OrderKind"].values == ["RETAIL", "WHOLESALE"]

    def test_reserialized_document_is_the_same(self):
        again = parse_proto(proto_to_text(ProtoParser().parse(NESTED_PROTO)))
        assert again.names() == self.document.names()
        assert [again[name] for name in again.names()] == [self.document[name] for name in self.document.names()]


class TestProtoParserErrors:
    @pytest.mark.parametrize(
        "text,message",
        [
            ('syntax = "proto2";', "Only proto3 is supported"),
            ("message A {\n  string id = one;\n}", "Expected a number in message A, field id at line 2"),
            ("message A {\n  string id 1;\n}", "Expected '=' in message A, field id at line 2"),
            ("message A {\n  string id = 1;\n", "Unexpected end of input"),
            ("message A {\n  string id = 1.5;\n}", "Expected an integer in message A, field id at line 2"),
            ("message A {\n  string id = 1;\n} $", "Unexpected character '$' at line 3"),
            ("enum E {\n  A = x;\n}", "Expected a number in enum E, value A at line 2"),
            ("service S {\n  rpc Get(A) gives (B);\n}", "Expected 'returns'"),
            ("extend Foo {}", "Unexpected 'extend' at line 1"),
        ],
    )
    def test_errors(self, text, message):
        with pytest.raises(ParseError) as exc_info:
            ProtoParser().parse(text)
        assert message in str(exc_info.value)

    def test_unknown_field_type(self):
        with pytest.raises(ParseError) as exc_info:
            parse_proto('syntax = "proto3";\nmessage A {\n  Missing value = 1;\n}\n')
        assert "Unknown type 'Missing' in message A, field value" in str(exc_info.value)

    def test_opaque_well_known_types(self):
        document = parse_proto("message A {\n  google.protobuf.Struct data = 1;\n}\n")
        assert document["A"].get_property("data").schema == ObjectNode(extra=True)

    def test_integer_enum_document(self):
        document = parse_proto("enum Level {\n  LOW = 0;\n  HIGH = 1;\n}\n")
        assert document["Level"] == EnumNode(kind=ScalarKind.STRING, values=["LOW", "HIGH"])


if __name__ == "__main__":
    pytest.main([__file__])
