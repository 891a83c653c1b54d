"""Node types of the mapper AST.

Nodes form a tagged union: one ``Node`` dataclass carries a ``NodeKind`` tag,
while ``RootNode`` and ``DataNode`` add the fields only those kinds need. The
element-name dispatch table ``ELEMENT_NODE_KINDS`` is the single place where
XML element names map to node kinds.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Iterator, List, Optional, Tuple

from mybatis_mapper_ast.tokenization.segments import Placeholder, Segment, scan_segments
from mybatis_mapper_ast.tokenization.tokenizer import StartElement


class NodeKind(Enum):
    """Kinds of AST nodes."""

    ROOT = auto()
    MAPPER = auto()
    QUERY = auto()
    IF = auto()
    CHOOSE = auto()
    WHEN = auto()
    OTHERWISE = auto()
    EMPTY = auto()
    DATA = auto()


class QueryOperation(Enum):
    """SQL operation of a query node, valued by its element name."""

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


# Element local name -> node kind. Names not listed build EMPTY nodes.
ELEMENT_NODE_KINDS: Dict[str, NodeKind] = {
    "mapper": NodeKind.MAPPER,
    "select": NodeKind.QUERY,
    "insert": NodeKind.QUERY,
    "update": NodeKind.QUERY,
    "delete": NodeKind.QUERY,
    "if": NodeKind.IF,
    "choose": NodeKind.CHOOSE,
    "when": NodeKind.WHEN,
    "otherwise": NodeKind.OTHERWISE,
}

# Kinds that can never be attached below another node
_UNATTACHABLE_KINDS = (NodeKind.ROOT, NodeKind.EMPTY)


@dataclass(eq=False)
class Node:
    """A node of the mapper AST.

    Attributes:
        kind: Node kind tag
        name: Local name of the source element (empty for root and data)
        attributes: Element attributes in source order
        children: Child nodes in document order; append-only
        line: Parser line counter when the node was created
    """

    kind: NodeKind
    name: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["Node"] = field(default_factory=list)
    line: int = 1

    def __post_init__(self) -> None:
        """Validate node values."""
        if not isinstance(self.kind, NodeKind):
            raise TypeError("Node kind must be a NodeKind")
        if self.line < 1:
            raise ValueError("Node line must be >= 1")

    @property
    def is_empty(self) -> bool:
        """True for placeholder nodes of unrecognized elements."""
        return self.kind is NodeKind.EMPTY

    def add_child(self, child: "Node") -> None:
        """Append ``child`` as the last child of this node."""
        if not isinstance(child, Node):
            raise TypeError("Child must be a Node instance")
        if child.kind in _UNATTACHABLE_KINDS:
            raise ValueError(f"{child.kind.name} nodes cannot be attached as children")
        if child is self:
            raise ValueError("A node cannot be its own child")
        self.children.append(child)

    def get_attribute(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get attribute value with optional default."""
        return self.attributes.get(name, default)

    @property
    def namespace(self) -> Optional[str]:
        """Namespace of a mapper node."""
        if self.kind is not NodeKind.MAPPER:
            return None
        return self.attributes.get("namespace")

    @property
    def statement_id(self) -> Optional[str]:
        """Statement id of a query node."""
        if self.kind is not NodeKind.QUERY:
            return None
        return self.attributes.get("id")

    @property
    def operation(self) -> Optional[QueryOperation]:
        """SQL operation of a query node."""
        if self.kind is not NodeKind.QUERY:
            return None
        return QueryOperation(self.name)

    @property
    def result_type(self) -> Optional[str]:
        if self.kind is not NodeKind.QUERY:
            return None
        return self.attributes.get("resultType")

    @property
    def parameter_type(self) -> Optional[str]:
        if self.kind is not NodeKind.QUERY:
            return None
        return self.attributes.get("parameterType")

    @property
    def test(self) -> Optional[str]:
        """Raw test expression of an if or when node; never evaluated."""
        if self.kind not in (NodeKind.IF, NodeKind.WHEN):
            return None
        return self.attributes.get("test")

    def iter_nodes(self) -> Iterator["Node"]:
        """Iterate over this node and its descendants in document order."""
        stack: List["Node"] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find_all(self, kind: NodeKind) -> List["Node"]:
        """Find this node and all descendants of the given kind."""
        return [node for node in self.iter_nodes() if node.kind is kind]

    def iter_placeholders(self) -> Iterator[Tuple["DataNode", Placeholder]]:
        """Yield every placeholder below this node with its data node."""
        for node in self.iter_nodes():
            if isinstance(node, DataNode):
                for placeholder in node.placeholders:
                    yield node, placeholder

    def _own_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"kind": self.kind.name.lower(), "line": self.line}
        if self.name:
            result["name"] = self.name
        if self.attributes:
            result["attributes"] = dict(self.attributes)
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert the subtree to nested dictionaries.

        Built iteratively so arbitrarily deep trees do not hit the recursion
        limit.
        """
        root_dict = self._own_dict()
        stack: List[Tuple["Node", Dict[str, Any]]] = [(self, root_dict)]
        while stack:
            node, node_dict = stack.pop()
            if not node.children:
                continue
            child_dicts = []
            for child in node.children:
                child_dict = child._own_dict()  # noqa: SLF001
                child_dicts.append(child_dict)
                stack.append((child, child_dict))
            node_dict["children"] = child_dicts
        return root_dict


@dataclass(eq=False)
class RootNode(Node):
    """Synthetic top-level container; one per parse, never attached."""

    kind: NodeKind = NodeKind.ROOT

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.kind is not NodeKind.ROOT:
            raise ValueError("RootNode kind must be ROOT")
        if self.attributes:
            raise ValueError("RootNode cannot have attributes")

    @property
    def mappers(self) -> List[Node]:
        """Mapper nodes directly below the root."""
        return [child for child in self.children if child.kind is NodeKind.MAPPER]

    def queries(self) -> List[Node]:
        """All query nodes in document order."""
        return self.find_all(NodeKind.QUERY)


@dataclass(eq=False)
class DataNode(Node):
    """Leaf holding trimmed SQL text and its scanned segments."""

    kind: NodeKind = NodeKind.DATA
    text: str = ""
    segments: List[Segment] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.kind is not NodeKind.DATA:
            raise ValueError("DataNode kind must be DATA")

    def add_child(self, child: Node) -> None:
        raise ValueError("Data nodes are leaves and cannot have children")

    def scan(self) -> List[Segment]:
        """Tokenize ``text`` into segments.

        Raises:
            UnterminatedPlaceholderError: A placeholder is not closed
        """
        self.segments = scan_segments(self.text)
        return self.segments

    @property
    def placeholders(self) -> List[Placeholder]:
        return [segment for segment in self.segments if isinstance(segment, Placeholder)]

    def _own_dict(self) -> Dict[str, Any]:
        result = super()._own_dict()
        result["text"] = self.text
        result["segments"] = [segment.to_dict() for segment in self.segments]
        return result


def new_node(start: StartElement, line: int) -> Node:
    """Build the node for a start element using ``ELEMENT_NODE_KINDS``.

    Unknown element names produce an EMPTY node, which the builder discards
    when the element closes.
    """
    kind = ELEMENT_NODE_KINDS.get(start.local_name, NodeKind.EMPTY)
    if kind is NodeKind.EMPTY:
        return Node(kind=kind, name=start.local_name, line=line)
    return Node(
        kind=kind,
        name=start.local_name,
        attributes=start.attribute_map(),
        line=line,
    )
