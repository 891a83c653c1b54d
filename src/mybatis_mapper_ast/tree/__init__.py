"""Mapper AST construction.

Key Components:
    MapperASTBuilder: Non-recursive dual-stack builder consuming XML events
    Node, RootNode, DataNode: AST node types tagged by NodeKind
    render_statements: Flattens query nodes into SQL text
"""

from .builder import MapperASTBuilder
from .nodes import (
    ELEMENT_NODE_KINDS,
    DataNode,
    Node,
    NodeKind,
    QueryOperation,
    RootNode,
    new_node,
)
from .render import MappedStatement, render_query, render_statements

__all__ = [
    "ELEMENT_NODE_KINDS",
    "DataNode",
    "MappedStatement",
    "MapperASTBuilder",
    "Node",
    "NodeKind",
    "QueryOperation",
    "RootNode",
    "new_node",
    "render_query",
    "render_statements",
]
