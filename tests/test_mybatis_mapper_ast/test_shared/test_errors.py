"""Tests for the mapper parse error taxonomy."""

import pytest

from mybatis_mapper_ast.shared import (
    DataScanError,
    MalformedXMLError,
    MapperParseError,
    ParseLimitExceededError,
    SegmentScanError,
    TagMismatchError,
    UnexpectedEndElementError,
    UnterminatedElementError,
    UnterminatedPlaceholderError,
)


class TestMapperParseErrors:
    """Test error messages and payloads."""

    def test_message_includes_line(self) -> None:
        """Test the line number is appended to the message."""
        error = MapperParseError("broken", line=7)

        assert str(error) == "broken (line 7)"
        assert error.message == "broken"
        assert error.partial_root is None

    def test_message_without_line(self) -> None:
        """Test errors without a line keep the bare message."""
        assert str(MapperParseError("broken")) == "broken"

    def test_tag_mismatch_names_both_tags(self) -> None:
        """Test the mismatch message names expected and actual tags."""
        error = TagMismatchError("select", "update", line=3)

        assert error.expected == "select"
        assert error.actual == "update"
        assert "</select>" in str(error)
        assert "</update>" in str(error)

    def test_unterminated_element_names_tag(self) -> None:
        """Test the unterminated message names the open tag."""
        error = UnterminatedElementError("select", line=1)

        assert error.name == "select"
        assert "</select>" in str(error)
        assert "end of input" in str(error)

    def test_unexpected_end_element(self) -> None:
        """Test the unexpected end element message."""
        error = UnexpectedEndElementError("mapper", line=2)

        assert str(error) == "unexpected end element </mapper> (line 2)"

    def test_wrapping_errors_keep_cause(self) -> None:
        """Test MalformedXMLError and DataScanError expose their cause."""
        scan_error = UnterminatedPlaceholderError("#{", 4)
        data_error = DataScanError(scan_error, line=5)
        xml_error = MalformedXMLError(ValueError("bad byte"), line=1)

        assert data_error.cause is scan_error
        assert "offset 4" in str(data_error)
        assert xml_error.cause.args == ("bad byte",)
        assert str(xml_error).startswith("malformed XML: bad byte")

    def test_limit_error_payload(self) -> None:
        """Test the limit error records limit and value."""
        error = ParseLimitExceededError("max_depth", 2, 3, line=1)

        assert error.limit_name == "max_depth"
        assert error.limit == 2
        assert error.value == 3
        assert "max_depth limit of 2 exceeded" in str(error)

    @pytest.mark.parametrize(
        "error_class",
        [
            MalformedXMLError,
            UnexpectedEndElementError,
            TagMismatchError,
            UnterminatedElementError,
            DataScanError,
            ParseLimitExceededError,
        ],
    )
    def test_builder_errors_share_base(self, error_class) -> None:
        """Test every builder error derives from MapperParseError."""
        assert issubclass(error_class, MapperParseError)

    def test_segment_errors_are_separate(self) -> None:
        """Test segment scanning errors are not parse errors."""
        assert issubclass(UnterminatedPlaceholderError, SegmentScanError)
        assert not issubclass(SegmentScanError, MapperParseError)
