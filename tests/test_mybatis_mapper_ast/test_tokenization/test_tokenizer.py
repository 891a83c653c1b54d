"""Tests for the XML event tokenizer."""

import time
from typing import List

import pytest

from mybatis_mapper_ast.tokenization import (
    Attribute,
    CharData,
    Comment,
    EndElement,
    EventType,
    StartElement,
    TokenPosition,
    XMLEvent,
    XMLEventTokenizer,
    XMLSyntaxError,
    decode_entities,
    is_xml_char,
    local_name_of,
    tokenize,
)
from mybatis_mapper_ast.tokenization.tokenizer import START_POSITION


def event_summary(events: List[XMLEvent]) -> List[tuple]:
    summary = []
    for event in events:
        if isinstance(event, StartElement):
            summary.append(("start", event.name, event.attribute_map()))
        elif isinstance(event, EndElement):
            summary.append(("end", event.name))
        elif isinstance(event, CharData):
            summary.append(("text", event.text))
        else:
            summary.append(("comment", event.text))
    return summary


class TestTokenPosition:
    """Test TokenPosition validation."""

    def test_valid_position(self) -> None:
        """Test creating a position and its string form."""
        position = TokenPosition(line=2, column=5, offset=10)

        assert str(position) == "line 2, column 5"

    @pytest.mark.parametrize("line, column, offset", [(0, 1, 0), (1, 0, 0), (1, 1, -1)])
    def test_invalid_position(self, line: int, column: int, offset: int) -> None:
        """Test invalid positions raise ValueError."""
        with pytest.raises(ValueError):
            TokenPosition(line, column, offset)


class TestXMLEventTokenizer:
    """Test event production for well-formed input."""

    def test_element_with_text(self) -> None:
        """Test start, text and end events with positions."""
        events = list(tokenize('<a x="1">hi</a>'))

        assert event_summary(events) == [
            ("start", "a", {"x": "1"}),
            ("text", "hi"),
            ("end", "a"),
        ]
        assert events[0].position == TokenPosition(1, 1, 0)
        assert events[1].position == TokenPosition(1, 10, 9)
        assert events[2].position == TokenPosition(1, 12, 11)

    def test_event_types(self) -> None:
        """Test each event class exposes its type tag."""
        assert StartElement("a").type is EventType.START_ELEMENT
        assert EndElement("a").type is EventType.END_ELEMENT
        assert CharData("t").type is EventType.CHAR_DATA
        assert Comment("c").type is EventType.COMMENT

    def test_attributes_keep_source_order(self) -> None:
        """Test attribute order and both quote styles."""
        events = list(tokenize("<select id='s' resultType=\"User\" a = 'x'>"
                               "</select>"))

        assert events[0].attributes == (
            Attribute("id", "s"),
            Attribute("resultType", "User"),
            Attribute("a", "x"),
        )

    def test_self_closing_element(self) -> None:
        """Test a self-closing tag produces start and end events."""
        events = list(tokenize('<if test="x"/>'))

        assert event_summary(events) == [("start", "if", {"test": "x"}), ("end", "if")]

    def test_entities_decoded(self) -> None:
        """Test predefined and numeric references in text and attributes."""
        events = list(tokenize('<if test="a &gt; 1">a &lt; b &amp;&#65;&#x42;</if>'))

        assert events[0].attribute_map() == {"test": "a > 1"}
        assert events[1].text == "a < b &AB"

    def test_cdata_is_character_data(self) -> None:
        """Test CDATA content is passed through undecoded."""
        events = list(tokenize("<a><![CDATA[x < y &amp; z]]></a>"))

        assert event_summary(events) == [
            ("start", "a", {}),
            ("text", "x < y &amp; z"),
            ("end", "a"),
        ]

    def test_comment_event(self) -> None:
        """Test comment text excludes the delimiters."""
        events = list(tokenize("<!-- line one\nline two -->"))

        assert event_summary(events) == [("comment", " line one\nline two ")]

    def test_declaration_and_doctype_skipped(self) -> None:
        """Test the XML declaration and DOCTYPE produce no events."""
        xml = (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<!DOCTYPE mapper PUBLIC "-//mybatis.org//DTD Mapper 3.0//EN" '
            '"http://mybatis.org/dtd/mybatis-3-mapper.dtd">'
            '<mapper namespace="m"/>'
        )

        assert event_summary(list(tokenize(xml))) == [
            ("start", "mapper", {"namespace": "m"}),
            ("end", "mapper"),
        ]

    def test_doctype_internal_subset(self) -> None:
        """Test a DOCTYPE with an internal subset is skipped."""
        xml = '<!DOCTYPE m [<!ENTITY e "v">]><m/>'

        assert event_summary(list(tokenize(xml))) == [("start", "m", {}), ("end", "m")]

    def test_whitespace_text_is_reported(self) -> None:
        """Test whitespace between tags is still an event."""
        events = list(tokenize("<a>\n  <b/>\n</a>"))

        assert ("text", "\n  ") in event_summary(events)

    def test_line_endings_normalized(self) -> None:
        """Test CRLF and CR become LF."""
        events = list(tokenize("<a>x\r\ny\rz</a>"))

        assert events[1].text == "x\ny\nz"

    def test_nesting_is_not_checked(self) -> None:
        """Test unbalanced tags are left to the builder."""
        assert event_summary(list(tokenize("<a></b>"))) == [
            ("start", "a", {}),
            ("end", "b"),
        ]

    def test_prefixed_names(self) -> None:
        """Test local names strip the namespace prefix."""
        events = list(tokenize("<x:select></x:select>"))

        assert events[0].name == "x:select"
        assert events[0].local_name == "select"
        assert events[1].local_name == "select"
        assert local_name_of("plain") == "plain"

    def test_events_are_lazy(self) -> None:
        """Test events before a syntax error are delivered first."""
        received = []

        with pytest.raises(XMLSyntaxError):
            for event in tokenize("<a>ok</a><"):
                received.append(event)

        assert len(received) == 3

    def test_event_count(self) -> None:
        """Test the tokenizer counts delivered events."""
        tokenizer = XMLEventTokenizer("<a>t</a><!--c-->")

        list(tokenizer.events())

        assert tokenizer.event_count == 4


class TestXMLSyntaxErrors:
    """Test lexical error detection."""

    @pytest.mark.parametrize(
        "xml, message",
        [
            ("<a x=1></a>", "unquoted value for attribute 'x'"),
            ('<a x="1" x="2"></a>', "duplicate attribute 'x'"),
            ("<a x></a>", "attribute 'x' has no value"),
            ('<a x="<"></a>', "'<' in value of attribute 'x'"),
            ('<a x="1"y="2"></a>', "expected whitespace between attributes"),
            ("<a/ >", "expected '>' after '/'"),
            ("< a>", "invalid character ' ' after '<'"),
            ("<a></ a>", "invalid character ' ' after '</'"),
            ("<!FOO>", "unsupported markup declaration"),
            ("<!-- a -- b -->", "'--' is not allowed inside a comment"),
            ("<a>&foo;</a>", "unknown entity reference &foo;"),
            ("<a>&amp</a>", "unterminated entity reference"),
            ("<a>x\x01y</a>", "illegal character"),
            ('<a x="\x0b"/>', "illegal character"),
            ("<!-- \x1f -->", "illegal character"),
            ("<a><![CDATA[\ufffe]]></a>", "illegal character"),
            ("<a\x0c/>", "illegal character"),
            ("<a>&#1;</a>", "not a legal XML character"),
            ('<a x="&#xFFFF;"/>', "not a legal XML character"),
        ],
    )
    def test_malformed_input(self, xml: str, message: str) -> None:
        """Test malformed constructs raise XMLSyntaxError."""
        with pytest.raises(XMLSyntaxError, match=message):
            list(tokenize(xml))

    @pytest.mark.parametrize(
        "xml, construct",
        [
            ("<a", "start tag"),
            ('<a x="1', "attribute value"),
            ("</a", "end tag"),
            ("<!-- open", "comment"),
            ("<![CDATA[ open", "CDATA section"),
            ("<?xml", "processing instruction"),
        ],
    )
    def test_unexpected_end_of_input(self, xml: str, construct: str) -> None:
        """Test truncated constructs name what was left open."""
        with pytest.raises(XMLSyntaxError, match=f"end of input inside {construct}"):
            list(tokenize(xml))

    def test_error_position(self) -> None:
        """Test errors report the offending position."""
        with pytest.raises(XMLSyntaxError) as excinfo:
            list(tokenize("<a>\n<b x=1/>"))

        assert excinfo.value.position.line == 2
        assert excinfo.value.position.column == 6
        assert str(excinfo.value).endswith("at line 2, column 6")

    def test_error_position_after_multiline_text(self) -> None:
        """Test positions stay exact after a text run spanning lines."""
        with pytest.raises(XMLSyntaxError) as excinfo:
            list(tokenize("<a>ab\ncd</a><b x=1/>"))

        assert excinfo.value.position == TokenPosition(2, 12, 17)

    def test_illegal_character_position(self) -> None:
        """Test an illegal character inside a text run is located exactly."""
        with pytest.raises(XMLSyntaxError) as excinfo:
            list(tokenize("<a>line\nab\x02</a>"))

        assert excinfo.value.position == TokenPosition(2, 3, 10)


class TestLongRuns:
    """Test tokenizing long runs of text, comments and CDATA."""

    @staticmethod
    def _best_time(xml: str, repeat: int = 3) -> float:
        best = float("inf")
        for _ in range(repeat):
            start = time.perf_counter()
            list(tokenize(xml))
            best = min(best, time.perf_counter() - start)
        return best

    def test_long_runs_are_intact(self) -> None:
        """Test long runs come through as single events."""
        body = "a" * 100_000
        xml = (
            f'<select id="{body}">{body}<!--{body}--><![CDATA[{body}]]></select>'
        )

        events = list(tokenize(xml))

        assert events[0].attribute_map() == {"id": body}
        assert event_summary(events[1:]) == [
            ("text", body),
            ("comment", body),
            ("text", body),
            ("end", "select"),
        ]

    def test_text_run_time_is_linear(self) -> None:
        """Test a four times longer text body takes about four times as long."""
        def document(size: int) -> str:
            return "<select>" + "a" * size + "</select>"

        small = self._best_time(document(250_000))
        large = self._best_time(document(1_000_000))

        # Quadratic growth would make this ratio about 16
        assert large < small * 8 + 0.05

    @pytest.mark.parametrize(
        "opener, closer",
        [("<!--", "-->"), ("<![CDATA[", "]]>"), ("<?pi ", "?>")],
    )
    def test_markup_run_time_is_linear(self, opener: str, closer: str) -> None:
        """Test comment, CDATA and processing instruction bodies scale linearly."""
        def document(size: int) -> str:
            return f"<a>{opener}{'b' * size}{closer}</a>"

        small = self._best_time(document(250_000))
        large = self._best_time(document(1_000_000))

        assert large < small * 8 + 0.05


class TestDecodeEntities:
    """Test entity reference decoding."""

    def test_plain_text_unchanged(self) -> None:
        """Test text without references is returned as is."""
        assert decode_entities("a > b", START_POSITION) == "a > b"

    def test_all_predefined(self) -> None:
        """Test the five predefined entities."""
        assert decode_entities("&lt;&gt;&amp;&quot;&apos;", START_POSITION) == "<>&\"'"

    @pytest.mark.parametrize(
        "reference",
        [
            "&#0;",
            "&#1;",
            "&#8;",
            "&#xB;",
            "&#xC;",
            "&#x1F;",
            "&#xD800;",
            "&#xFFFE;",
            "&#xFFFF;",
            "&#x110000;",
        ],
    )
    def test_illegal_code_points(self, reference: str) -> None:
        """Test references to characters outside the XML Char production."""
        with pytest.raises(XMLSyntaxError, match="not a legal XML character"):
            decode_entities(reference, START_POSITION)

    def test_legal_control_references(self) -> None:
        """Test tab, newline and carriage return references are allowed."""
        assert decode_entities("&#9;&#xA;&#13;", START_POSITION) == "\t\n\r"

    @pytest.mark.parametrize(
        "code_point, legal",
        [
            (0x9, True),
            (0x20, True),
            (0xE000, True),
            (0x10FFFF, True),
            (0x0, False),
            (0x1B, False),
            (0xDFFF, False),
            (0xFFFE, False),
        ],
    )
    def test_is_xml_char(self, code_point: int, legal: bool) -> None:
        """Test the XML Char production boundaries."""
        assert is_xml_char(code_point) is legal

    def test_invalid_number(self) -> None:
        """Test a non-numeric character reference."""
        with pytest.raises(XMLSyntaxError, match="invalid character reference"):
            decode_entities("&#xZZ;", START_POSITION)
