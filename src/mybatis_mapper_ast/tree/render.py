"""Flatten query nodes into SQL text.

Rendering produces one representative SQL string per statement, suitable for
linting and lineage tools that need plain SQL:

- ``#{...}`` bind parameters become ``?``
- ``${...}`` substitutions are kept verbatim, since their value is inlined
- every ``<if>`` body is included
- of a ``<choose>``, only the first ``<when>`` is included, or the
  ``<otherwise>`` when there is no ``<when>``

Text of consecutive data nodes is joined with single spaces.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from mybatis_mapper_ast.tokenization.segments import Literal, Placeholder
from mybatis_mapper_ast.tree.nodes import DataNode, Node, NodeKind, QueryOperation

BIND_MARKER = "?"


@dataclass
class MappedStatement:
    """SQL statement extracted from a query node."""

    namespace: Optional[str]
    statement_id: Optional[str]
    operation: QueryOperation
    line: int
    sql: str
    parameters: List[str] = field(default_factory=list)
    substitutions: List[str] = field(default_factory=list)
    result_type: Optional[str] = None
    parameter_type: Optional[str] = None

    @property
    def qualified_id(self) -> str:
        """``namespace.id`` as MyBatis addresses the statement."""
        if self.namespace:
            return f"{self.namespace}.{self.statement_id}"
        return self.statement_id or ""

    @property
    def has_substitutions(self) -> bool:
        """True when the statement inlines ``${...}`` text."""
        return bool(self.substitutions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "namespace": self.namespace,
            "id": self.statement_id,
            "operation": self.operation.value,
            "line": self.line,
            "sql": self.sql,
            "parameters": list(self.parameters),
            "substitutions": list(self.substitutions),
            "result_type": self.result_type,
            "parameter_type": self.parameter_type,
        }


def _choose_branch(choose: Node) -> Optional[Node]:
    otherwise = None
    for child in choose.children:
        if child.kind is NodeKind.WHEN:
            return child
        if child.kind is NodeKind.OTHERWISE and otherwise is None:
            otherwise = child
    return otherwise


def _render_data(data: DataNode, parameters: List[str], substitutions: List[str]) -> str:
    pieces = []
    for segment in data.segments:
        if isinstance(segment, Literal):
            pieces.append(segment.text)
        elif isinstance(segment, Placeholder) and segment.is_bind:
            pieces.append(BIND_MARKER)
            parameters.append(segment.name)
        else:
            pieces.append(segment.raw)
            substitutions.append(segment.name)
    return "".join(pieces)


def render_query(query: Node) -> Tuple[str, List[str], List[str]]:
    """Render a query node.

    Returns:
        ``(sql, parameters, substitutions)`` where parameters and
        substitutions list placeholder names in SQL order
    """
    if query.kind is not NodeKind.QUERY:
        raise ValueError(f"expected a QUERY node, got {query.kind.name}")

    parts: List[str] = []
    parameters: List[str] = []
    substitutions: List[str] = []
    stack: List[Node] = list(reversed(query.children))

    while stack:
        node = stack.pop()
        if isinstance(node, DataNode):
            parts.append(_render_data(node, parameters, substitutions))
        elif node.kind is NodeKind.CHOOSE:
            branch = _choose_branch(node)
            if branch is not None:
                stack.append(branch)
        elif node.kind in (NodeKind.QUERY, NodeKind.MAPPER):
            # Statements do not nest
            continue
        else:
            stack.extend(reversed(node.children))

    return " ".join(part for part in parts if part), parameters, substitutions


def render_statements(root: Node) -> List[MappedStatement]:
    """Render every query below ``root`` in document order."""
    statements: List[MappedStatement] = []
    stack: List[Tuple[Node, Optional[str]]] = [(root, None)]

    while stack:
        node, namespace = stack.pop()
        if node.kind is NodeKind.MAPPER:
            namespace = node.namespace
        if node.kind is NodeKind.QUERY:
            sql, parameters, substitutions = render_query(node)
            statements.append(
                MappedStatement(
                    namespace=namespace,
                    statement_id=node.statement_id,
                    operation=node.operation,
                    line=node.line,
                    sql=sql,
                    parameters=parameters,
                    substitutions=substitutions,
                    result_type=node.result_type,
                    parameter_type=node.parameter_type,
                )
            )
            continue
        for child in reversed(node.children):
            stack.append((child, namespace))

    return statements
