"""Error taxonomy for mapper XML parsing.

Every error raised by the AST builder derives from ``MapperParseError`` and is
terminal for the current parse. Segment scanning errors form a separate
hierarchy (``SegmentScanError``) because the segment scanner can be used on its
own; the builder wraps them in ``DataScanError``.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from mybatis_mapper_ast.tree.nodes import RootNode


class MapperParseError(Exception):
    """Base class for all mapper XML parse failures."""

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        self.message = message
        self.line = line
        # Filled by the builder when ParserConfig.keep_partial_tree is enabled
        self.partial_root: Optional["RootNode"] = None
        super().__init__(self._format())

    def _format(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} (line {self.line})"


class MalformedXMLError(MapperParseError):
    """The XML tokenizer could not produce a well-formed event stream."""

    def __init__(self, cause: Exception, line: Optional[int] = None) -> None:
        self.cause = cause
        super().__init__(f"malformed XML: {cause}", line)


class UnexpectedEndElementError(MapperParseError):
    """An end tag appeared while no element was open."""

    def __init__(self, name: str, line: Optional[int] = None) -> None:
        self.name = name
        super().__init__(f"unexpected end element </{name}>", line)


class TagMismatchError(MapperParseError):
    """An end tag does not match the innermost open start tag."""

    def __init__(self, expected: str, actual: str, line: Optional[int] = None) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"expected end element </{expected}>, but got </{actual}>", line
        )


class UnterminatedElementError(MapperParseError):
    """Input ended while elements were still open."""

    def __init__(self, name: str, line: Optional[int] = None) -> None:
        self.name = name
        super().__init__(
            f"expected end element </{name}>, but reached end of input", line
        )


class DataScanError(MapperParseError):
    """Scanning a character-data chunk into segments failed."""

    def __init__(self, cause: "SegmentScanError", line: Optional[int] = None) -> None:
        self.cause = cause
        super().__init__(f"cannot scan data node: {cause}", line)


class ParseLimitExceededError(MapperParseError):
    """A configured parse limit (depth or input size) was exceeded."""

    def __init__(
        self, limit_name: str, limit: int, value: int, line: Optional[int] = None
    ) -> None:
        self.limit_name = limit_name
        self.limit = limit
        self.value = value
        super().__init__(f"{limit_name} limit of {limit} exceeded ({value})", line)


class SegmentScanError(Exception):
    """Base class for data-segment scanning failures."""


class UnterminatedPlaceholderError(SegmentScanError):
    """A ``#{`` or ``${`` opener has no closing ``}``."""

    def __init__(self, opener: str, offset: int) -> None:
        self.opener = opener
        self.offset = offset
        super().__init__(
            f"placeholder opened with {opener!r} at offset {offset} is not terminated"
        )
