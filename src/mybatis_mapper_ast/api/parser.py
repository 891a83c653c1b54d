"""Public parsing API.

Progressive API disclosure:

- ``parse(text)`` returns the ``RootNode`` or raises a ``MapperParseError``
- ``try_parse(text)`` never raises for parse failures and returns a
  ``ParseResult`` carrying either the root or the error, plus diagnostics and
  metrics
- ``MapperParser`` binds a ``ParserConfig`` and correlation ID for repeated use

Each call creates its own tokenizer and builder, so one ``MapperParser`` may be
shared by several threads.
"""

import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import psutil

from mybatis_mapper_ast.shared import (
    DiagnosticEntry,
    DiagnosticSeverity,
    MalformedXMLError,
    MapperParseError,
    ParseLimitExceededError,
    ParseMetrics,
    ParserConfig,
    get_logger,
)
from mybatis_mapper_ast.tokenization import XMLEventTokenizer
from mybatis_mapper_ast.tree import MappedStatement, MapperASTBuilder, RootNode, render_statements

XMLInput = Union[str, bytes]

BYTE_ORDER_MARK = "\ufeff"
PREVIEW_LENGTH = 80


@dataclass
class ParseResult:
    """Outcome of a parse: the root node on success, the error otherwise."""

    root: Optional[RootNode] = None
    error: Optional[MapperParseError] = None
    diagnostics: List[DiagnosticEntry] = field(default_factory=list)
    metrics: ParseMetrics = field(default_factory=ParseMetrics)
    source: Optional[str] = None
    correlation_id: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and self.root is not None

    def unwrap(self) -> RootNode:
        """Return the root node or raise the stored error."""
        if self.error is not None:
            raise self.error
        if self.root is None:
            raise ValueError("ParseResult holds neither a root nor an error")
        return self.root

    def statements(self) -> List[MappedStatement]:
        """Rendered statements, empty when parsing failed."""
        if self.root is None:
            return []
        return render_statements(self.root)

    def add_diagnostic(
        self,
        severity: DiagnosticSeverity,
        message: str,
        component: str,
        line: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Add diagnostic entry to result."""
        self.diagnostics.append(
            DiagnosticEntry(
                severity=severity,
                message=message,
                component=component,
                line=line,
                details=details,
                correlation_id=self.correlation_id,
            )
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to a JSON-friendly dictionary."""
        result: Dict[str, Any] = {
            "success": self.success,
            "metrics": self.metrics.to_dict(),
            "diagnostics": [entry.to_dict() for entry in self.diagnostics],
        }
        if self.source is not None:
            result["source"] = self.source
        if self.root is not None:
            result["root"] = self.root.to_dict()
        if self.error is not None:
            result["error"] = {
                "type": type(self.error).__name__,
                "message": str(self.error),
                "line": self.error.line,
            }
        return result


class MapperParser:
    """Configured mapper XML parser."""

    def __init__(
        self,
        config: Optional[ParserConfig] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Initialize the parser.

        Args:
            config: Parser configuration, defaults to ``ParserConfig()``
            correlation_id: Optional correlation ID for request tracking
        """
        self.config = config or ParserConfig()
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "mapper_parser")

    def parse(self, xml_input: XMLInput) -> RootNode:
        """Parse a mapper document.

        Args:
            xml_input: Document as text, or bytes in ``config.encoding``

        Returns:
            Root node of the AST

        Raises:
            MapperParseError: On any malformed or structurally invalid input

        Examples:
            >>> root = parse('<mapper namespace="m"><select id="s">SELECT 1</select></mapper>')
            >>> root.children[0].namespace
            'm'
        """
        root, _ = self._parse(xml_input)
        return root

    def parse_file(self, path: Union[str, Path]) -> RootNode:
        """Read and parse a mapper file.

        Raises:
            OSError: The file cannot be read
            MapperParseError: On any malformed or structurally invalid input
        """
        path = Path(path)
        root, _ = self._parse(path.read_bytes(), source=str(path))
        return root

    def try_parse(
        self, xml_input: XMLInput, source: Optional[str] = None
    ) -> ParseResult:
        """Parse without raising for parse failures.

        Returns:
            ParseResult holding the root or the error
        """
        result = ParseResult(source=source, correlation_id=self.correlation_id)
        try:
            result.root, result.metrics = self._parse(xml_input, source)
        except MapperParseError as e:
            result.error = e
            result.add_diagnostic(
                DiagnosticSeverity.ERROR,
                str(e),
                "mapper_parser",
                line=e.line,
                details={"error_type": type(e).__name__},
            )
            self.logger.warning(
                "Mapper parse failed",
                extra={"source": source, "error_type": type(e).__name__, "line": e.line},
            )
            return result

        if result.metrics.elements_pruned:
            result.add_diagnostic(
                DiagnosticSeverity.INFO,
                f"Pruned {result.metrics.elements_pruned} unrecognized elements",
                "mapper_ast_builder",
                details={"elements_pruned": result.metrics.elements_pruned},
            )
        for data, placeholder in result.root.iter_placeholders():
            if not placeholder.is_bind:
                result.add_diagnostic(
                    DiagnosticSeverity.WARNING,
                    f"String substitution {placeholder.raw} is inlined without escaping",
                    "segment_scanner",
                    line=data.line,
                    details={"expression": placeholder.expression},
                )
        return result

    def _decode(self, xml_input: XMLInput) -> str:
        if isinstance(xml_input, bytes):
            try:
                text = xml_input.decode(self.config.encoding)
            except UnicodeDecodeError as e:
                raise MalformedXMLError(e) from e
        elif isinstance(xml_input, str):
            text = xml_input
        else:
            raise TypeError(f"expected str or bytes, got {type(xml_input).__name__}")

        if text.startswith(BYTE_ORDER_MARK):
            text = text[len(BYTE_ORDER_MARK):]
        return text

    def _parse(
        self, xml_input: XMLInput, source: Optional[str] = None
    ) -> Tuple[RootNode, ParseMetrics]:
        start_time = time.time()
        logger = self.logger.bind(source=source) if source else self.logger
        memory_before = self._memory_usage()

        text = self._decode(xml_input)
        limit = self.config.max_input_size
        if limit is not None and len(text) > limit:
            raise ParseLimitExceededError("max_input_size", limit, len(text))

        logger.info(
            "Starting mapper parse",
            extra={
                "content_length": len(text),
                "preview": (
                    text[:PREVIEW_LENGTH] + "..." if len(text) > PREVIEW_LENGTH else text
                ),
            },
        )

        builder = MapperASTBuilder(self.config, self.correlation_id)
        tokenizer = XMLEventTokenizer(text, self.correlation_id)
        root = builder.build(tokenizer.events())

        metrics = builder.metrics
        metrics.characters_processed = len(text)
        metrics.processing_time_ms = (time.time() - start_time) * 1000
        if memory_before is not None:
            metrics.memory_used_bytes = max(0, self._memory_usage() - memory_before)

        logger.info(
            "Mapper parse completed",
            extra={
                "nodes_created": metrics.nodes_created,
                "elements_pruned": metrics.elements_pruned,
                "processing_time_ms": metrics.processing_time_ms,
            },
        )
        return root, metrics

    def _memory_usage(self) -> Optional[int]:
        """Resident set size of this process, when memory metrics are enabled."""
        if not self.config.collect_memory_metrics:
            return None
        return psutil.Process(os.getpid()).memory_info().rss


def parse(
    xml_input: XMLInput,
    config: Optional[ParserConfig] = None,
    correlation_id: Optional[str] = None,
) -> RootNode:
    """Parse a mapper document and return the root node.

    Raises:
        MapperParseError: On any malformed or structurally invalid input
    """
    return MapperParser(config, correlation_id).parse(xml_input)


def parse_file(
    path: Union[str, Path],
    config: Optional[ParserConfig] = None,
    correlation_id: Optional[str] = None,
) -> RootNode:
    """Read and parse a mapper file using ``config.encoding``."""
    return MapperParser(config, correlation_id).parse_file(path)


def try_parse(
    xml_input: XMLInput,
    config: Optional[ParserConfig] = None,
    correlation_id: Optional[str] = None,
    source: Optional[str] = None,
) -> ParseResult:
    """Parse without raising for parse failures."""
    return MapperParser(config, correlation_id).try_parse(xml_input, source)
