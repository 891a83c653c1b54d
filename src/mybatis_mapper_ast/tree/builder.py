"""Stack-based AST builder for mapper XML.

The builder never recurses. Two parallel stacks stand in for the call stack of
a recursive-descent parser: ``element_stack`` holds the open start elements and
``node_stack`` the nodes under construction, with the root permanently at the
bottom. After every event ``len(node_stack) == len(element_stack) + 1``.
"""

import logging
import time
from typing import Iterable, List, Optional

from mybatis_mapper_ast.shared import (
    DataScanError,
    MalformedXMLError,
    MapperParseError,
    ParseLimitExceededError,
    ParseMetrics,
    ParserConfig,
    SegmentScanError,
    TagMismatchError,
    UnexpectedEndElementError,
    UnterminatedElementError,
    get_logger,
)
from mybatis_mapper_ast.tokenization import (
    CharData,
    Comment,
    EndElement,
    EventType,
    StartElement,
    XMLEvent,
    XMLSyntaxError,
)
from mybatis_mapper_ast.tree.nodes import DataNode, Node, RootNode, new_node


class MapperASTBuilder:
    """Builds a mapper AST from a stream of XML events.

    Events can be pushed one at a time with ``feed`` and finished with
    ``close``, or consumed from an iterable with ``build``. A builder holds the
    state of one parse; create a new one (or call ``build`` again) per document.
    """

    def __init__(
        self,
        config: Optional[ParserConfig] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Initialize tree builder.

        Args:
            config: Parser configuration, defaults to ``ParserConfig()``
            correlation_id: Optional correlation ID for request tracking
        """
        self.config = config or ParserConfig()
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "mapper_ast_builder")
        self._reset_state()

    def _reset_state(self) -> None:
        """Reset internal state for a new document."""
        self.root = RootNode()
        self.element_stack: List[StartElement] = []
        self.node_stack: List[Node] = [self.root]
        self.current_line = 1
        self.metrics = ParseMetrics()
        self.closed = False

    @property
    def depth(self) -> int:
        """Number of currently open elements."""
        return len(self.element_stack)

    def build(self, events: Iterable[XMLEvent]) -> RootNode:
        """Consume ``events`` and return the finished root node.

        Raises:
            MalformedXMLError: The event source raised ``XMLSyntaxError``
            MapperParseError: Any structural error found by the builder
        """
        self._reset_state()
        start_time = time.time()
        iterator = iter(events)

        while True:
            try:
                event = next(iterator)
            except StopIteration:
                break
            except XMLSyntaxError as e:
                raise self._fail(MalformedXMLError(e, self.current_line)) from e
            self.feed(event)

        root = self.close()
        self.metrics.processing_time_ms = (time.time() - start_time) * 1000
        return root

    def feed(self, event: XMLEvent) -> None:
        """Process a single event."""
        if self.closed:
            raise RuntimeError("builder is closed; create a new builder per document")

        self.metrics.events_processed += 1
        event_type = getattr(event, "type", None)
        if event_type is EventType.START_ELEMENT:
            self._start_element(event)
        elif event_type is EventType.END_ELEMENT:
            self._end_element(event)
        elif event_type is EventType.CHAR_DATA:
            self._char_data(event)
        elif event_type is EventType.COMMENT:
            self._comment(event)
        else:
            raise TypeError(f"unsupported event: {event!r}")

    def close(self) -> RootNode:
        """Finish the document at end of input.

        Raises:
            UnterminatedElementError: Elements are still open
        """
        if self.element_stack:
            innermost = self.element_stack[-1].local_name
            raise self._fail(UnterminatedElementError(innermost, self.current_line))

        self.closed = True
        self.metrics.lines = self.current_line
        self.logger.debug(
            "Mapper AST completed",
            extra={
                "nodes_created": self.metrics.nodes_created,
                "elements_pruned": self.metrics.elements_pruned,
                "max_depth": self.metrics.max_depth,
            },
        )
        return self.root

    def _start_element(self, event: StartElement) -> None:
        max_depth = self.config.max_depth
        if max_depth is not None and len(self.element_stack) >= max_depth:
            raise self._fail(
                ParseLimitExceededError(
                    "max_depth", max_depth, len(self.element_stack) + 1, self.current_line
                )
            )

        node = new_node(event, self.current_line)
        self.element_stack.append(event)
        self.node_stack.append(node)

        self.metrics.nodes_created += 1
        self.metrics.max_depth = max(self.metrics.max_depth, len(self.element_stack))

    def _end_element(self, event: EndElement) -> None:
        if not self.element_stack:
            raise self._fail(UnexpectedEndElementError(event.local_name, self.current_line))

        expected = self.element_stack[-1].local_name
        if event.local_name != expected:
            raise self._fail(
                TagMismatchError(expected, event.local_name, self.current_line)
            )

        self.element_stack.pop()
        node = self.node_stack.pop()
        if node.is_empty:
            self.metrics.elements_pruned += 1
            if self.logger.is_enabled_for(logging.DEBUG):
                self.logger.debug(
                    "Pruned unrecognized element",
                    extra={"element": node.name, "line": node.line},
                )
            return
        self.node_stack[-1].add_child(node)

    def _char_data(self, event: CharData) -> None:
        text = event.text
        # Count before trimming so the counter reflects the document position
        line_before = self.current_line
        self.current_line += text.count("\n")

        trimmed = text.strip()
        if not trimmed:
            return

        leading = len(text) - len(text.lstrip())
        line = line_before + text[:leading].count("\n")
        data = DataNode(text=trimmed, line=line)
        try:
            data.scan()
        except SegmentScanError as e:
            offset = getattr(e, "offset", 0)
            raise self._fail(
                DataScanError(e, line + trimmed[:offset].count("\n"))
            ) from e

        self.node_stack[-1].add_child(data)
        self.metrics.nodes_created += 1
        self.metrics.data_nodes += 1
        self.metrics.placeholders += len(data.placeholders)

    def _comment(self, event: Comment) -> None:
        self.current_line += event.text.count("\n")

    def _fail(self, error: MapperParseError) -> MapperParseError:
        """Attach the partial tree when configured and log the failure."""
        if self.config.keep_partial_tree:
            error.partial_root = self.root
        self.logger.debug(
            "Mapper AST building failed",
            extra={
                "error_type": type(error).__name__,
                "line": error.line,
                "depth": len(self.element_stack),
            },
        )
        return error
