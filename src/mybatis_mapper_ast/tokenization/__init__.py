"""Tokenization layer for mapper XML parsing.

Key Components:
    XMLEventTokenizer: Streaming state-machine tokenizer producing XML events
    StartElement, EndElement, CharData, Comment: Event types
    scan_segments: Splits SQL text into literals and MyBatis placeholders
"""

from .segments import Literal, Placeholder, PlaceholderStyle, Segment, scan_segments
from .tokenizer import (
    Attribute,
    CharData,
    Comment,
    EndElement,
    EventType,
    StartElement,
    TokenizerState,
    TokenPosition,
    XMLEvent,
    XMLEventTokenizer,
    XMLSyntaxError,
    decode_entities,
    is_xml_char,
    local_name_of,
    tokenize,
)

__all__ = [
    "Attribute",
    "CharData",
    "Comment",
    "EndElement",
    "EventType",
    "Literal",
    "Placeholder",
    "PlaceholderStyle",
    "Segment",
    "StartElement",
    "TokenPosition",
    "TokenizerState",
    "XMLEvent",
    "XMLEventTokenizer",
    "XMLSyntaxError",
    "decode_entities",
    "is_xml_char",
    "local_name_of",
    "scan_segments",
    "tokenize",
]
