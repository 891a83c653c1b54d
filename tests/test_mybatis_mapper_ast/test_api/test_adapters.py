"""Tests for AST export adapters."""

import pytest

from mybatis_mapper_ast.api import (
    AdapterError,
    AstAdapter,
    LxmlAdapter,
    PandasAdapter,
    get_adapter,
    list_adapters,
    parse,
    placeholders_to_dataframe,
    statements_to_dataframe,
    to_lxml,
)

MAPPER_XML = (
    '<mapper namespace="m" xmlns:x="urn:x">\n'
    '  <select id="find" resultType="User" x:flag="1">\n'
    "    SELECT * FROM t WHERE id = #{id} ORDER BY ${col} DESC\n"
    '    <if test="name != null">AND name = #{name}</if>\n'
    "  </select>\n"
    '  <delete id="remove">DELETE FROM t</delete>\n'
    "</mapper>\n"
)


@pytest.fixture
def root():
    return parse(MAPPER_XML)


class TestAdapterRegistry:
    """Test adapter lookup."""

    def test_list_adapters(self) -> None:
        """Test registered adapter names."""
        assert list_adapters() == ["lxml", "pandas"]

    def test_get_adapter(self) -> None:
        """Test instantiating adapters by name."""
        adapter = get_adapter("lxml", correlation_id="req-1")

        assert isinstance(adapter, LxmlAdapter)
        assert isinstance(adapter, AstAdapter)
        assert adapter.correlation_id == "req-1"
        assert adapter.target_library == "lxml"

    def test_unknown_adapter(self) -> None:
        """Test unknown names list the available adapters."""
        with pytest.raises(ValueError, match="available: lxml, pandas"):
            get_adapter("bs4")


class TestLxmlAdapter:
    """Test conversion to lxml element trees."""

    def test_element_structure(self, root) -> None:
        """Test elements mirror AST nodes."""
        element = to_lxml(root)

        assert element.tag == "root"
        mapper = element[0]
        assert mapper.tag == "mapper"
        assert mapper.get("namespace") == "m"
        select = mapper[0]
        assert select.tag == "select"
        assert select.get("resultType") == "User"
        assert [child.tag for child in select] == ["data", "if"]

    def test_prefixed_attributes_dropped(self, root) -> None:
        """Test attributes with namespace prefixes are not exported."""
        select = to_lxml(root)[0][0]

        assert "x:flag" not in select.attrib
        assert "xmlns:x" not in to_lxml(root)[0].attrib

    def test_source_lines(self, root) -> None:
        """Test node lines are kept in sourceline."""
        select = to_lxml(root)[0][0]

        assert select.sourceline == 2
        assert select[0].sourceline == 3

    def test_placeholders_as_elements(self, root) -> None:
        """Test placeholders become queryable child elements."""
        element = to_lxml(root)
        data = element[0][0][0]

        assert data.text == "SELECT * FROM t WHERE id = "
        assert [(child.tag, child.text, child.tail) for child in data] == [
            ("bind", "id", " ORDER BY "),
            ("substitution", "col", " DESC"),
        ]
        assert element.xpath("//substitution/text()") == ["col"]
        assert element.xpath("//bind/text()") == ["id", "name"]

    def test_render(self, root) -> None:
        """Test serialized output."""
        text = LxmlAdapter().render(root)

        assert text.startswith("<root>")
        assert '<delete id="remove">' in text
        assert "<substitution>col</substitution>" in text

    def test_invalid_name_raises_adapter_error(self) -> None:
        """Test names lxml rejects surface as AdapterError."""
        odd = parse('<mapper namespace="m"><select id="s" \u00d7="1">x</select></mapper>')

        with pytest.raises(AdapterError, match="failed to convert to lxml") as excinfo:
            LxmlAdapter().convert(odd)

        assert isinstance(excinfo.value.cause, ValueError)


class TestPandasAdapter:
    """Test conversion to pandas data frames."""

    def test_statements_frame(self, root) -> None:
        """Test one row per statement."""
        frame = statements_to_dataframe(root)

        assert list(frame.columns) == PandasAdapter.STATEMENT_COLUMNS
        assert list(frame["id"]) == ["find", "remove"]
        assert list(frame["operation"]) == ["select", "delete"]
        assert list(frame["parameter_count"]) == [2, 0]
        assert list(frame["substitution_count"]) == [1, 0]
        assert frame.loc[0, "sql"] == (
            "SELECT * FROM t WHERE id = ? ORDER BY ${col} DESC AND name = ?"
        )

    def test_placeholders_frame(self, root) -> None:
        """Test one row per placeholder with its statement."""
        frame = placeholders_to_dataframe(root)

        assert list(frame.columns) == PandasAdapter.PLACEHOLDER_COLUMNS
        assert list(frame["style"]) == ["bind", "substitution", "bind"]
        assert list(frame["name"]) == ["id", "col", "name"]
        assert set(frame["statement_id"]) == {"find"}
        assert list(frame["line"]) == [3, 3, 4]

    def test_empty_tree(self) -> None:
        """Test a tree without statements gives empty frames with columns."""
        empty = parse("<mapper/>")

        assert statements_to_dataframe(empty).empty
        assert list(placeholders_to_dataframe(empty).columns) == (
            PandasAdapter.PLACEHOLDER_COLUMNS
        )

    def test_render_csv(self, root) -> None:
        """Test CSV output has a header and one line per statement."""
        lines = PandasAdapter().render(root).strip().splitlines()

        assert lines[0].startswith("namespace,id,operation,line,sql")
        assert len(lines) == 3

    def test_sources_frame(self, root) -> None:
        """Test several documents share one frame with a source column."""
        other = parse('<mapper namespace="o"><update id="u">UPDATE o SET a = 1</update></mapper>')

        frame = PandasAdapter().convert_sources([("A.xml", root), ("B.xml", other)])

        assert list(frame.columns) == ["source"] + PandasAdapter.STATEMENT_COLUMNS
        assert list(frame["source"]) == ["A.xml", "A.xml", "B.xml"]
        assert list(frame["namespace"]) == ["m", "m", "o"]

    def test_render_sources_single_header(self, root) -> None:
        """Test the combined CSV has exactly one header line."""
        text = PandasAdapter().render_sources([("A.xml", root), ("B.xml", root)])

        lines = text.strip().splitlines()
        assert len(lines) == 5
        assert sum(line.startswith("source,") for line in lines) == 1

    def test_render_sources_empty(self) -> None:
        """Test no sources give a header-only table."""
        text = PandasAdapter().render_sources([])

        assert text.strip() == ",".join(["source"] + PandasAdapter.STATEMENT_COLUMNS)
