"""Segment scanning for SQL text found between mapper XML tags.

A trimmed text chunk is split into literal SQL runs and MyBatis placeholders.
``#{...}`` is a bind parameter that the driver escapes; ``${...}`` is inlined
into the SQL text before execution.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Union

from mybatis_mapper_ast.shared.errors import UnterminatedPlaceholderError

PLACEHOLDER_CLOSE = "}"


class PlaceholderStyle(Enum):
    """Placeholder opener styles, valued by their prefix character."""

    BIND = "#"
    SUBSTITUTION = "$"

    @property
    def opener(self) -> str:
        """Two-character opener, e.g. ``#{``."""
        return self.value + "{"


@dataclass(frozen=True)
class Literal:
    """Run of plain SQL text."""

    text: str

    def to_dict(self) -> Dict[str, str]:
        return {"type": "literal", "text": self.text}


@dataclass(frozen=True)
class Placeholder:
    """A ``#{...}`` or ``${...}`` placeholder.

    ``expression`` is the raw text between the braces. MyBatis allows options
    after the property name (``#{id,jdbcType=INTEGER}``); ``name`` and
    ``options`` expose that split without changing ``expression``.
    """

    expression: str
    style: PlaceholderStyle

    @property
    def is_bind(self) -> bool:
        return self.style is PlaceholderStyle.BIND

    @property
    def raw(self) -> str:
        """Placeholder as written in the source."""
        return f"{self.style.opener}{self.expression}{PLACEHOLDER_CLOSE}"

    @property
    def name(self) -> str:
        """Property name, without options."""
        return self.expression.split(",", 1)[0].strip()

    @property
    def options(self) -> Dict[str, str]:
        """Options following the property name, e.g. ``{"jdbcType": "INTEGER"}``."""
        parts = self.expression.split(",")[1:]
        options: Dict[str, str] = {}
        for part in parts:
            key, _, value = part.partition("=")
            key = key.strip()
            if key:
                options[key] = value.strip()
        return options

    def to_dict(self) -> Dict[str, str]:
        return {
            "type": "placeholder",
            "style": self.style.name.lower(),
            "expression": self.expression,
        }


Segment = Union[Literal, Placeholder]


def scan_segments(text: str) -> List[Segment]:
    """Split text into literal and placeholder segments.

    Args:
        text: Trimmed character data from a mapper element

    Returns:
        Segments in source order. Empty input yields an empty list; input
        without placeholders yields a single ``Literal``.

    Raises:
        UnterminatedPlaceholderError: An opener has no closing brace
    """
    segments: List[Segment] = []
    literal_start = 0
    position = 0
    length = len(text)

    while position < length - 1:
        char = text[position]
        if char in "#$" and text[position + 1] == "{":
            if position > literal_start:
                segments.append(Literal(text[literal_start:position]))

            close = text.find(PLACEHOLDER_CLOSE, position + 2)
            if close == -1:
                raise UnterminatedPlaceholderError(char + "{", position)

            segments.append(
                Placeholder(text[position + 2:close], PlaceholderStyle(char))
            )
            position = close + 1
            literal_start = position
            continue
        position += 1

    if literal_start < length:
        segments.append(Literal(text[literal_start:]))

    return segments
