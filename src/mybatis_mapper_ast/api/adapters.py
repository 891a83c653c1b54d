"""Adapters exporting the mapper AST to other libraries.

- ``LxmlAdapter`` builds an ``lxml.etree`` tree so downstream tools can run
  XPath over the AST (``//substitution`` finds every ``${...}``)
- ``PandasAdapter`` builds a statement table for lint and lineage reports

Third-party modules are imported when an adapter is used, keeping
``import mybatis_mapper_ast`` light.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Tuple, Type

from mybatis_mapper_ast.shared import get_logger
from mybatis_mapper_ast.tokenization import Literal, Placeholder, PlaceholderStyle
from mybatis_mapper_ast.tree import DataNode, Node, NodeKind, RootNode, render_statements

# Element names for nodes without a source element
_KIND_ELEMENT_NAMES = {NodeKind.ROOT: "root", NodeKind.DATA: "data"}
_PLACEHOLDER_ELEMENT_NAMES = {
    PlaceholderStyle.BIND: "bind",
    PlaceholderStyle.SUBSTITUTION: "substitution",
}


class AdapterError(Exception):
    """The target library rejected the converted AST."""

    def __init__(self, adapter: str, cause: Exception) -> None:
        self.adapter = adapter
        self.cause = cause
        super().__init__(f"failed to convert to {adapter}: {cause}")


class AstAdapter(ABC):
    """Base class for AST export adapters."""

    name: ClassVar[str] = ""
    target_library: ClassVar[str] = ""

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        self.correlation_id = correlation_id
        self._logger = get_logger(__name__, correlation_id, self.__class__.__name__)

    @abstractmethod
    def convert(self, root: RootNode) -> Any:
        """Convert the AST to the target library's representation."""

    @abstractmethod
    def render(self, root: RootNode) -> str:
        """Convert the AST and serialize it to text."""

    def _log_conversion(self, start_time: float, **details: Any) -> None:
        details["conversion_time_ms"] = (time.time() - start_time) * 1000
        self._logger.debug(f"Converted AST with {self.name} adapter", extra=details)


class LxmlAdapter(AstAdapter):
    """Export the AST as an ``lxml.etree`` element tree.

    Each node becomes an element named after its source element (``root`` and
    ``data`` for synthetic nodes) carrying the original attributes; the node's
    line is stored in ``sourceline``. Inside ``data`` elements literal text is
    kept as element text and tails, and placeholders become ``bind`` or
    ``substitution`` children whose text is the raw expression.
    """

    name = "lxml"
    target_library = "lxml"

    def convert(self, root: RootNode) -> Any:
        """Build the element tree.

        Raises:
            AdapterError: lxml rejected a name, attribute or text value
        """
        from lxml import etree

        start_time = time.time()
        try:
            tree_root = self._new_element(etree, root)
            stack: List[Tuple[Node, Any]] = [(root, tree_root)]
            element_count = 1

            while stack:
                node, element = stack.pop()
                if isinstance(node, DataNode):
                    self._fill_data_element(etree, node, element)
                    continue
                for child in node.children:
                    child_element = self._new_element(etree, child)
                    element.append(child_element)
                    stack.append((child, child_element))
                    element_count += 1
        except ValueError as e:
            self._logger.warning(
                "lxml conversion failed", extra={"error": str(e)}
            )
            raise AdapterError(self.name, e) from e

        self._log_conversion(start_time, element_count=element_count)
        return tree_root

    def render(self, root: RootNode) -> str:
        from lxml import etree

        return etree.tostring(self.convert(root), pretty_print=True, encoding="unicode")

    @staticmethod
    def _new_element(etree: Any, node: Node) -> Any:
        tag = _KIND_ELEMENT_NAMES.get(node.kind, node.name)
        # Prefixed attributes are dropped: the AST keeps no namespace bindings
        attributes = {
            name: value for name, value in node.attributes.items() if ":" not in name
        }
        element = etree.Element(tag, attrib=attributes)
        element.sourceline = node.line
        return element

    @staticmethod
    def _fill_data_element(etree: Any, data: DataNode, element: Any) -> None:
        last = None
        for segment in data.segments:
            if isinstance(segment, Literal):
                if last is None:
                    element.text = (element.text or "") + segment.text
                else:
                    last.tail = (last.tail or "") + segment.text
            elif isinstance(segment, Placeholder):
                last = etree.SubElement(element, _PLACEHOLDER_ELEMENT_NAMES[segment.style])
                last.text = segment.expression


class PandasAdapter(AstAdapter):
    """Export rendered statements as a ``pandas.DataFrame``."""

    name = "pandas"
    target_library = "pandas"

    STATEMENT_COLUMNS = [
        "namespace",
        "id",
        "operation",
        "line",
        "sql",
        "parameter_count",
        "substitution_count",
        "result_type",
        "parameter_type",
    ]
    PLACEHOLDER_COLUMNS = ["line", "style", "name", "expression", "statement_id"]

    def convert(self, root: RootNode) -> Any:
        """One row per statement."""
        import pandas as pd

        start_time = time.time()
        frame = pd.DataFrame(self._statement_rows(root), columns=self.STATEMENT_COLUMNS)
        self._log_conversion(start_time, row_count=len(frame))
        return frame

    def convert_sources(self, sources: Iterable[Tuple[str, RootNode]]) -> Any:
        """One table for several documents, with a leading ``source`` column.

        Args:
            sources: ``(source name, root)`` pairs, typically one per file
        """
        import pandas as pd

        start_time = time.time()
        rows: List[Dict[str, Any]] = []
        document_count = 0
        for source, root in sources:
            document_count += 1
            for row in self._statement_rows(root):
                rows.append({"source": source, **row})

        frame = pd.DataFrame(rows, columns=["source"] + self.STATEMENT_COLUMNS)
        self._log_conversion(
            start_time, row_count=len(frame), document_count=document_count
        )
        return frame

    def _statement_rows(self, root: RootNode) -> List[Dict[str, Any]]:
        rows = []
        for statement in render_statements(root):
            row = statement.to_dict()
            row["parameter_count"] = len(statement.parameters)
            row["substitution_count"] = len(statement.substitutions)
            rows.append({column: row[column] for column in self.STATEMENT_COLUMNS})
        return rows

    def placeholders(self, root: RootNode) -> Any:
        """One row per placeholder, attributed to its enclosing statement."""
        import pandas as pd

        rows: List[Dict[str, Any]] = []
        for query in root.find_all(NodeKind.QUERY):
            for data, placeholder in query.iter_placeholders():
                rows.append(
                    {
                        "line": data.line,
                        "style": placeholder.style.name.lower(),
                        "name": placeholder.name,
                        "expression": placeholder.expression,
                        "statement_id": query.statement_id,
                    }
                )
        return pd.DataFrame(rows, columns=self.PLACEHOLDER_COLUMNS)

    def render(self, root: RootNode) -> str:
        return self.convert(root).to_csv(index=False)

    def render_sources(self, sources: Iterable[Tuple[str, RootNode]]) -> str:
        """Single CSV document covering every source."""
        return self.convert_sources(sources).to_csv(index=False)


_ADAPTERS: Dict[str, Type[AstAdapter]] = {
    LxmlAdapter.name: LxmlAdapter,
    PandasAdapter.name: PandasAdapter,
}


def list_adapters() -> List[str]:
    """Names of the registered adapters."""
    return sorted(_ADAPTERS)


def get_adapter(name: str, correlation_id: Optional[str] = None) -> AstAdapter:
    """Instantiate a registered adapter by name.

    Raises:
        ValueError: No adapter has that name
    """
    try:
        adapter_class = _ADAPTERS[name]
    except KeyError:
        raise ValueError(
            f"unknown adapter {name!r}; available: {', '.join(list_adapters())}"
        ) from None
    return adapter_class(correlation_id)


def to_lxml(root: RootNode) -> Any:
    """Convert the AST to an ``lxml.etree`` element."""
    return LxmlAdapter().convert(root)


def statements_to_dataframe(root: RootNode) -> Any:
    """Rendered statements as a ``pandas.DataFrame``."""
    return PandasAdapter().convert(root)


def placeholders_to_dataframe(root: RootNode) -> Any:
    """Placeholders of all statements as a ``pandas.DataFrame``."""
    return PandasAdapter().placeholders(root)
