"""Public API for mapper XML parsing."""

from .adapters import (
    AdapterError,
    AstAdapter,
    LxmlAdapter,
    PandasAdapter,
    get_adapter,
    list_adapters,
    placeholders_to_dataframe,
    statements_to_dataframe,
    to_lxml,
)
from .parser import MapperParser, ParseResult, parse, parse_file, try_parse

__all__ = [
    "AdapterError",
    "AstAdapter",
    "LxmlAdapter",
    "MapperParser",
    "PandasAdapter",
    "ParseResult",
    "get_adapter",
    "list_adapters",
    "parse",
    "parse_file",
    "placeholders_to_dataframe",
    "statements_to_dataframe",
    "to_lxml",
    "try_parse",
]
