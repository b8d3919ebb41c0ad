from .nodes import (
    ArrayNode,
    Discriminator,
    EnumNode,
    IntersectionNode,
    LiteralNode,
    MapNode,
    Metadata,
    NodeKind,
    ObjectNode,
    PrimitiveNode,
    Property,
    ReferenceNode,
    ScalarKind,
    SchemaDocument,
    SchemaIR,
    SchemaNode,
    UnionNode,
    child_nodes,
    referenced_names,
)

__all__ = [
    "ArrayNode",
    "Discriminator",
    "EnumNode",
    "IntersectionNode",
    "LiteralNode",
    "MapNode",
    "Metadata",
    "NodeKind",
    "ObjectNode",
    "PrimitiveNode",
    "Property",
    "ReferenceNode",
    "ScalarKind",
    "SchemaDocument",
    "SchemaIR",
    "SchemaNode",
    "UnionNode",
    "child_nodes",
    "referenced_names",
]
