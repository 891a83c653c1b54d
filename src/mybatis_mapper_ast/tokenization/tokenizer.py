"""Streaming XML event tokenizer built on a character state machine.

The tokenizer turns mapper XML text into start-element, end-element,
character-data and comment events. It checks lexical well-formedness (names,
quoting, entity references, unterminated constructs) but deliberately leaves
tag balancing to the AST builder, which reports mismatches with mapper-level
context.
"""

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, ClassVar, Dict, Iterator, List, Optional, Set, Tuple, Union

from mybatis_mapper_ast.shared.logging import get_logger

UNICODE_START_OFFSET = 0x80
MAX_CODE_POINT = 0x10FFFF

XML_WHITESPACE = " \t\n\r"
# Anything outside the XML 1.0 Char production
_ILLEGAL_CHAR_PATTERN = re.compile(r"[^\t\n\r\u0020-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")

PREDEFINED_ENTITIES = {
    "lt": "<",
    "gt": ">",
    "amp": "&",
    "quot": '"',
    "apos": "'",
}

COMMENT_OPENER = "--"
CDATA_OPENER = "[CDATA["
DOCTYPE_OPENER = "DOCTYPE"
MARKUP_OPENERS = (COMMENT_OPENER, CDATA_OPENER, DOCTYPE_OPENER)
CDATA_CLOSER = "]]>"
PI_CLOSER = "?>"


class EventType(Enum):
    """Kinds of events produced by the tokenizer."""

    START_ELEMENT = auto()
    END_ELEMENT = auto()
    CHAR_DATA = auto()
    COMMENT = auto()


class TokenizerState(Enum):
    """State machine states for event tokenization."""

    TEXT = auto()                   # Character data between tags
    TAG_OPEN = auto()               # After <
    START_TAG_NAME = auto()         # Reading a start tag name
    BEFORE_ATTR_NAME = auto()       # Whitespace inside a start tag
    ATTR_NAME = auto()              # Reading an attribute name
    AFTER_ATTR_NAME = auto()        # Whitespace between name and =
    BEFORE_ATTR_VALUE = auto()      # After =
    ATTR_VALUE = auto()             # Inside a quoted attribute value
    AFTER_ATTR_VALUE = auto()       # After the closing quote
    SELF_CLOSING = auto()           # After / in a start tag
    END_TAG_NAME = auto()           # After </
    AFTER_END_TAG_NAME = auto()     # Whitespace after an end tag name
    MARKUP_DECLARATION = auto()     # After <!
    COMMENT = auto()                # Inside <!-- ... -->
    COMMENT_END = auto()            # After -- inside a comment
    CDATA = auto()                  # Inside <![CDATA[ ... ]]>
    DOCTYPE = auto()                # Inside <!DOCTYPE ... >
    PROCESSING_INSTRUCTION = auto() # Inside <? ... ?>


# Human-readable construct names for end-of-input errors
_STATE_DESCRIPTIONS = {
    TokenizerState.TAG_OPEN: "tag",
    TokenizerState.START_TAG_NAME: "start tag",
    TokenizerState.BEFORE_ATTR_NAME: "start tag",
    TokenizerState.ATTR_NAME: "attribute name",
    TokenizerState.AFTER_ATTR_NAME: "attribute",
    TokenizerState.BEFORE_ATTR_VALUE: "attribute",
    TokenizerState.ATTR_VALUE: "attribute value",
    TokenizerState.AFTER_ATTR_VALUE: "start tag",
    TokenizerState.SELF_CLOSING: "start tag",
    TokenizerState.END_TAG_NAME: "end tag",
    TokenizerState.AFTER_END_TAG_NAME: "end tag",
    TokenizerState.MARKUP_DECLARATION: "markup declaration",
    TokenizerState.COMMENT: "comment",
    TokenizerState.COMMENT_END: "comment",
    TokenizerState.CDATA: "CDATA section",
    TokenizerState.DOCTYPE: "DOCTYPE declaration",
    TokenizerState.PROCESSING_INSTRUCTION: "processing instruction",
}


@dataclass(frozen=True)
class TokenPosition:
    """Position information for tokenizer events (1-based line and column)."""

    line: int
    column: int
    offset: int

    def __post_init__(self) -> None:
        """Validate position values."""
        if self.line < 1:
            raise ValueError("Line number must be >= 1")
        if self.column < 1:
            raise ValueError("Column number must be >= 1")
        if self.offset < 0:
            raise ValueError("Offset must be >= 0")

    def __str__(self) -> str:
        return f"line {self.line}, column {self.column}"


START_POSITION = TokenPosition(1, 1, 0)


class XMLSyntaxError(Exception):
    """Raised when the input is not lexically well-formed XML."""

    def __init__(self, message: str, position: TokenPosition) -> None:
        self.message = message
        self.position = position
        super().__init__(f"{message} at {position}")


@dataclass(frozen=True)
class Attribute:
    """Single attribute of a start tag, in source order."""

    name: str
    value: str


def local_name_of(name: str) -> str:
    """Strip a namespace prefix from a qualified XML name."""
    return name.rsplit(":", 1)[-1]


@dataclass(frozen=True)
class StartElement:
    """Start tag event (also produced for self-closing tags)."""

    type: ClassVar[EventType] = EventType.START_ELEMENT

    name: str
    attributes: Tuple[Attribute, ...] = ()
    position: TokenPosition = START_POSITION

    @property
    def local_name(self) -> str:
        return local_name_of(self.name)

    def attribute_map(self) -> Dict[str, str]:
        """Attributes as an insertion-ordered dictionary."""
        return {attribute.name: attribute.value for attribute in self.attributes}


@dataclass(frozen=True)
class EndElement:
    """End tag event (also produced after a self-closing start tag)."""

    type: ClassVar[EventType] = EventType.END_ELEMENT

    name: str
    position: TokenPosition = START_POSITION

    @property
    def local_name(self) -> str:
        return local_name_of(self.name)


@dataclass(frozen=True)
class CharData:
    """Character data event, entity references already decoded."""

    type: ClassVar[EventType] = EventType.CHAR_DATA

    text: str
    position: TokenPosition = START_POSITION


@dataclass(frozen=True)
class Comment:
    """Comment event with the text between ``<!--`` and ``-->``."""

    type: ClassVar[EventType] = EventType.COMMENT

    text: str
    position: TokenPosition = START_POSITION


XMLEvent = Union[StartElement, EndElement, CharData, Comment]


def _is_name_start_char(char: str) -> bool:
    return char.isalpha() or char in "_:" or ord(char) >= UNICODE_START_OFFSET


def _is_name_char(char: str) -> bool:
    return _is_name_start_char(char) or char.isdigit() or char in "-."


def is_xml_char(code_point: int) -> bool:
    """Check a code point against the XML 1.0 ``Char`` production."""
    return (
        code_point in (0x9, 0xA, 0xD)
        or 0x20 <= code_point <= 0xD7FF
        or 0xE000 <= code_point <= 0xFFFD
        or 0x10000 <= code_point <= MAX_CODE_POINT
    )


def _resolve_reference(reference: str, position: TokenPosition) -> str:
    if reference in PREDEFINED_ENTITIES:
        return PREDEFINED_ENTITIES[reference]
    if not reference.startswith("#"):
        raise XMLSyntaxError(f"unknown entity reference &{reference};", position)

    try:
        if reference[1:2] in ("x", "X"):
            code_point = int(reference[2:], 16)
        else:
            code_point = int(reference[1:], 10)
    except ValueError as e:
        raise XMLSyntaxError(
            f"invalid character reference &{reference};", position
        ) from e

    if not is_xml_char(code_point):
        raise XMLSyntaxError(
            f"character reference &{reference}; is not a legal XML character",
            position,
        )
    return chr(code_point)


def decode_entities(raw: str, position: TokenPosition) -> str:
    """Replace entity and character references in ``raw``.

    Args:
        raw: Text or attribute value as written in the source
        position: Position reported if a reference is invalid

    Raises:
        XMLSyntaxError: Unknown, unterminated or illegal references
    """
    if "&" not in raw:
        return raw

    parts: List[str] = []
    index = 0
    while True:
        ampersand = raw.find("&", index)
        if ampersand == -1:
            parts.append(raw[index:])
            break
        parts.append(raw[index:ampersand])
        semicolon = raw.find(";", ampersand + 1)
        if semicolon == -1:
            raise XMLSyntaxError("unterminated entity reference", position)
        parts.append(_resolve_reference(raw[ampersand + 1:semicolon], position))
        index = semicolon + 1

    return "".join(parts)


class XMLEventTokenizer:
    """Character-level XML tokenizer producing a lazy stream of events.

    Events are yielded as soon as the construct that produces them is complete,
    so a consumer can stop at the first structural error without reading the
    rest of the document. The input is read exactly once, front to back.

    Markup is fed to the state handlers one character at a time. Runs of
    character data, attribute values, names, comments, CDATA sections and
    processing instructions are consumed as whole slices by the scanners, so
    tokenizing stays linear in the input length.
    """

    def __init__(self, text: str, correlation_id: Optional[str] = None) -> None:
        """Initialize the tokenizer.

        Args:
            text: Complete XML document
            correlation_id: Optional correlation ID for tracking requests
        """
        # XML end-of-line handling: \r\n and lone \r become \n
        self.text = text.replace("\r\n", "\n").replace("\r", "\n")
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "xml_event_tokenizer")
        self._handlers: Dict[TokenizerState, Callable[[str], None]] = {
            TokenizerState.TEXT: self._process_text,
            TokenizerState.TAG_OPEN: self._process_tag_open,
            TokenizerState.START_TAG_NAME: self._process_start_tag_name,
            TokenizerState.BEFORE_ATTR_NAME: self._process_before_attr_name,
            TokenizerState.ATTR_NAME: self._process_attr_name,
            TokenizerState.AFTER_ATTR_NAME: self._process_after_attr_name,
            TokenizerState.BEFORE_ATTR_VALUE: self._process_before_attr_value,
            TokenizerState.ATTR_VALUE: self._process_attr_value,
            TokenizerState.AFTER_ATTR_VALUE: self._process_after_attr_value,
            TokenizerState.SELF_CLOSING: self._process_self_closing,
            TokenizerState.END_TAG_NAME: self._process_end_tag_name,
            TokenizerState.AFTER_END_TAG_NAME: self._process_after_end_tag_name,
            TokenizerState.MARKUP_DECLARATION: self._process_markup_declaration,
            TokenizerState.COMMENT_END: self._process_comment_end,
            TokenizerState.DOCTYPE: self._process_doctype,
        }
        # Scanners take the index of the next unread character and return the
        # index after everything they consumed, always making progress
        self._scanners: Dict[TokenizerState, Callable[[int], int]] = {
            TokenizerState.TEXT: self._scan_text,
            TokenizerState.START_TAG_NAME: self._scan_start_tag_name,
            TokenizerState.ATTR_NAME: self._scan_attr_name,
            TokenizerState.ATTR_VALUE: self._scan_attr_value,
            TokenizerState.END_TAG_NAME: self._scan_end_tag_name,
            TokenizerState.COMMENT: self._scan_comment,
            TokenizerState.CDATA: self._scan_cdata,
            TokenizerState.PROCESSING_INSTRUCTION: self._scan_pi,
        }
        self._reset_state()

    def _reset_state(self) -> None:
        """Reset tokenizer state for new processing."""
        self.state = TokenizerState.TEXT
        self.current_position = START_POSITION
        self.token_start = START_POSITION
        self.buffer: List[str] = []
        self.declaration = ""
        self.tag_name = ""
        self.attr_name = ""
        self.attr_start = START_POSITION
        self.attributes: List[Attribute] = []
        self.attribute_names: Set[str] = set()
        self.quote_char: Optional[str] = None
        self.doctype_depth = 0
        self.pending: List[XMLEvent] = []
        self.event_count = 0

    def events(self) -> Iterator[XMLEvent]:
        """Yield events for the whole document.

        Raises:
            XMLSyntaxError: When the input is lexically malformed
        """
        self._reset_state()
        self.logger.debug(
            "Starting event tokenization", extra={"char_count": len(self.text)}
        )

        index = 0
        length = len(self.text)
        while index < length:
            scanner = self._scanners.get(self.state)
            if scanner is not None:
                index = scanner(index)
            else:
                index = self._step(index)
            if self.pending:
                yield from self._drain()

        self._finish()
        yield from self._drain()

        self.logger.debug(
            "Event tokenization completed",
            extra={
                "event_count": self.event_count,
                "line_count": self.current_position.line,
            },
        )

    def _drain(self) -> Iterator[XMLEvent]:
        events, self.pending = self.pending, []
        self.event_count += len(events)
        return iter(events)

    def _step(self, index: int) -> int:
        """Feed the character at ``index`` to the current state handler."""
        char = self.text[index]
        if _ILLEGAL_CHAR_PATTERN.match(char):
            raise self._error(f"illegal character {char!r}")
        self._handlers[self.state](char)
        self._update_position(char)
        return index + 1

    def _consume(self, start: int, end: int) -> str:
        """Return ``text[start:end]`` and move the position past it."""
        chunk = self.text[start:end]
        illegal = _ILLEGAL_CHAR_PATTERN.search(chunk)
        if illegal:
            self._update_position(chunk[:illegal.start()])
            raise self._error(f"illegal character {illegal.group()!r}")
        self._update_position(chunk)
        return chunk

    def _find(self, terminator: str, start: int, end: Optional[int] = None) -> int:
        """Index of ``terminator`` in ``text[start:end]``, or ``end`` if absent."""
        if end is None:
            end = len(self.text)
        found = self.text.find(terminator, start, end)
        return end if found == -1 else found

    def _update_position(self, chunk: str) -> None:
        """Advance line, column and offset past ``chunk``."""
        if not chunk:
            return
        position = self.current_position
        offset = position.offset + len(chunk)
        newlines = chunk.count("\n")
        if newlines:
            column = len(chunk) - chunk.rfind("\n")
            self.current_position = TokenPosition(position.line + newlines, column, offset)
        else:
            self.current_position = TokenPosition(
                position.line, position.column + len(chunk), offset
            )

    def _error(self, message: str, position: Optional[TokenPosition] = None) -> XMLSyntaxError:
        return XMLSyntaxError(message, position or self.current_position)

    def _finish(self) -> None:
        """Handle end of input."""
        if self.state is TokenizerState.TEXT:
            self._flush_text()
            return
        description = _STATE_DESCRIPTIONS.get(self.state, self.state.name.lower())
        raise self._error(
            f"unexpected end of input inside {description}", self.token_start
        )

    # Character data

    def _flush_text(self) -> None:
        if self.buffer:
            text = decode_entities("".join(self.buffer), self.token_start)
            self.pending.append(CharData(text, self.token_start))
        self.buffer = []

    def _scan_text(self, index: int) -> int:
        end = self._find("<", index)
        if end > index:
            if not self.buffer:
                self.token_start = self.current_position
            self.buffer.append(self._consume(index, end))
        if end < len(self.text):
            end = self._step(end)
        return end

    def _process_text(self, char: str) -> None:
        # Text runs are consumed by _scan_text, only '<' reaches here
        self._flush_text()
        self.token_start = self.current_position
        self.state = TokenizerState.TAG_OPEN

    # Tags

    def _scan_name(self, index: int) -> int:
        """Append the run of name characters at ``index`` to the current name."""
        end = index
        length = len(self.text)
        while end < length and _is_name_char(self.text[end]):
            end += 1
        name = self._consume(index, end)
        if self.state is TokenizerState.ATTR_NAME:
            self.attr_name += name
        else:
            self.tag_name += name
        if end < length:
            end = self._step(end)
        return end

    def _scan_start_tag_name(self, index: int) -> int:
        return self._scan_name(index)

    def _scan_attr_name(self, index: int) -> int:
        return self._scan_name(index)

    def _scan_end_tag_name(self, index: int) -> int:
        if not self.tag_name:
            # The first character must be a name start character
            return self._step(index)
        return self._scan_name(index)

    def _process_tag_open(self, char: str) -> None:
        if char == "/":
            self.tag_name = ""
            self.state = TokenizerState.END_TAG_NAME
        elif char == "!":
            self.declaration = ""
            self.state = TokenizerState.MARKUP_DECLARATION
        elif char == "?":
            self.state = TokenizerState.PROCESSING_INSTRUCTION
        elif _is_name_start_char(char):
            self.tag_name = char
            self.attributes = []
            self.attribute_names = set()
            self.state = TokenizerState.START_TAG_NAME
        else:
            raise self._error(f"invalid character {char!r} after '<'")

    def _process_start_tag_name(self, char: str) -> None:
        if char in XML_WHITESPACE:
            self.state = TokenizerState.BEFORE_ATTR_NAME
        elif char == ">":
            self._emit_start_element()
        elif char == "/":
            self.state = TokenizerState.SELF_CLOSING
        else:
            raise self._error(f"invalid character {char!r} in element name")

    def _process_before_attr_name(self, char: str) -> None:
        if char in XML_WHITESPACE:
            return
        if char == ">":
            self._emit_start_element()
        elif char == "/":
            self.state = TokenizerState.SELF_CLOSING
        elif _is_name_start_char(char):
            self.attr_name = char
            self.attr_start = self.current_position
            self.state = TokenizerState.ATTR_NAME
        else:
            raise self._error(f"invalid character {char!r} in start tag <{self.tag_name}>")

    def _process_attr_name(self, char: str) -> None:
        if char == "=":
            self.state = TokenizerState.BEFORE_ATTR_VALUE
        elif char in XML_WHITESPACE:
            self.state = TokenizerState.AFTER_ATTR_NAME
        else:
            raise self._error(f"attribute {self.attr_name!r} has no value")

    def _process_after_attr_name(self, char: str) -> None:
        if char in XML_WHITESPACE:
            return
        if char != "=":
            raise self._error(f"attribute {self.attr_name!r} has no value")
        self.state = TokenizerState.BEFORE_ATTR_VALUE

    def _process_before_attr_value(self, char: str) -> None:
        if char in XML_WHITESPACE:
            return
        if char not in "\"'":
            raise self._error(f"unquoted value for attribute {self.attr_name!r}")
        self.quote_char = char
        self.buffer = []
        self.state = TokenizerState.ATTR_VALUE

    def _scan_attr_value(self, index: int) -> int:
        end = self._find(self.quote_char, index)
        less_than = self.text.find("<", index, end)
        if less_than != -1:
            self._consume(index, less_than)
            raise self._error(f"'<' in value of attribute {self.attr_name!r}")
        self.buffer.append(self._consume(index, end))
        if end < len(self.text):
            end = self._step(end)
        return end

    def _process_attr_value(self, char: str) -> None:
        # Only the closing quote reaches here
        self._finish_attribute()
        self.state = TokenizerState.AFTER_ATTR_VALUE

    def _finish_attribute(self) -> None:
        if self.attr_name in self.attribute_names:
            raise self._error(
                f"duplicate attribute {self.attr_name!r} in <{self.tag_name}>",
                self.attr_start,
            )
        value = decode_entities("".join(self.buffer), self.attr_start)
        self.attributes.append(Attribute(self.attr_name, value))
        self.attribute_names.add(self.attr_name)
        self.buffer = []
        self.quote_char = None

    def _process_after_attr_value(self, char: str) -> None:
        if char in XML_WHITESPACE:
            self.state = TokenizerState.BEFORE_ATTR_NAME
        elif char == ">":
            self._emit_start_element()
        elif char == "/":
            self.state = TokenizerState.SELF_CLOSING
        else:
            raise self._error(f"expected whitespace between attributes, got {char!r}")

    def _process_self_closing(self, char: str) -> None:
        if char != ">":
            raise self._error(f"expected '>' after '/' in <{self.tag_name}>")
        self._emit_start_element()
        self.pending.append(EndElement(self.tag_name, self.token_start))

    def _emit_start_element(self) -> None:
        self.pending.append(
            StartElement(self.tag_name, tuple(self.attributes), self.token_start)
        )
        self.attributes = []
        self.state = TokenizerState.TEXT

    def _process_end_tag_name(self, char: str) -> None:
        if not self.tag_name:
            if not _is_name_start_char(char):
                raise self._error(f"invalid character {char!r} after '</'")
            self.tag_name = char
        elif char in XML_WHITESPACE:
            self.state = TokenizerState.AFTER_END_TAG_NAME
        elif char == ">":
            self._emit_end_element()
        else:
            raise self._error(f"invalid character {char!r} in end tag </{self.tag_name}>")

    def _process_after_end_tag_name(self, char: str) -> None:
        if char in XML_WHITESPACE:
            return
        if char != ">":
            raise self._error(f"invalid character {char!r} in end tag </{self.tag_name}>")
        self._emit_end_element()

    def _emit_end_element(self) -> None:
        self.pending.append(EndElement(self.tag_name, self.token_start))
        self.state = TokenizerState.TEXT

    # Comments, CDATA and declarations

    def _process_markup_declaration(self, char: str) -> None:
        self.declaration += char
        if self.declaration == COMMENT_OPENER:
            self.buffer = []
            self.state = TokenizerState.COMMENT
        elif self.declaration == CDATA_OPENER:
            self.buffer = []
            self.state = TokenizerState.CDATA
        elif self.declaration == DOCTYPE_OPENER:
            self.doctype_depth = 0
            self.quote_char = None
            self.state = TokenizerState.DOCTYPE
        elif not any(opener.startswith(self.declaration) for opener in MARKUP_OPENERS):
            raise self._error(f"unsupported markup declaration <!{self.declaration}")

    def _scan_comment(self, index: int) -> int:
        end = self._find(COMMENT_OPENER, index)
        self.buffer.append(self._consume(index, end))
        if end < len(self.text):
            end += len(COMMENT_OPENER)
            self._update_position(COMMENT_OPENER)
            self.state = TokenizerState.COMMENT_END
        return end

    def _process_comment_end(self, char: str) -> None:
        if char != ">":
            raise self._error("'--' is not allowed inside a comment")
        self.pending.append(Comment("".join(self.buffer), self.token_start))
        self.buffer = []
        self.state = TokenizerState.TEXT

    def _scan_cdata(self, index: int) -> int:
        end = self._find(CDATA_CLOSER, index)
        self.buffer.append(self._consume(index, end))
        if end < len(self.text):
            end += len(CDATA_CLOSER)
            self._update_position(CDATA_CLOSER)
            self.pending.append(CharData("".join(self.buffer), self.token_start))
            self.buffer = []
            self.state = TokenizerState.TEXT
        return end

    def _process_doctype(self, char: str) -> None:
        if self.quote_char:
            if char == self.quote_char:
                self.quote_char = None
        elif char in "\"'":
            self.quote_char = char
        elif char == "[":
            self.doctype_depth += 1
        elif char == "]":
            self.doctype_depth -= 1
        elif char == ">" and self.doctype_depth <= 0:
            self.state = TokenizerState.TEXT

    def _scan_pi(self, index: int) -> int:
        end = self._find(PI_CLOSER, index)
        self._consume(index, end)
        if end < len(self.text):
            end += len(PI_CLOSER)
            self._update_position(PI_CLOSER)
            self.state = TokenizerState.TEXT
        return end


def tokenize(text: str, correlation_id: Optional[str] = None) -> Iterator[XMLEvent]:
    """Convenience wrapper returning the event iterator for ``text``."""
    return XMLEventTokenizer(text, correlation_id).events()
