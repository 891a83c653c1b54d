"""MyBatis mapper XML parser.

Converts a mapper XML document into an AST of mappers, SQL statements and
dynamic-SQL constructs, with SQL text split into literals and ``#{}`` / ``${}``
placeholders.

Progressive API Disclosure:
- Level 1: Simple functions - parse(), parse_file(), try_parse()
- Level 2: Configured parser - MapperParser class with ParserConfig
- Level 3: Event-level building - MapperASTBuilder fed from XMLEventTokenizer
"""

__version__ = "0.1.0"
__author__ = "MyBatis Mapper AST Team"

# Level 1 and 2
from .api import MapperParser, ParseResult, parse, parse_file, try_parse

# Errors raised by parse() and parse_file()
from .shared.config import ParserConfig
from .shared.errors import (
    DataScanError,
    MalformedXMLError,
    MapperParseError,
    ParseLimitExceededError,
    TagMismatchError,
    UnexpectedEndElementError,
    UnterminatedElementError,
    UnterminatedPlaceholderError,
)
from .tokenization import Literal, Placeholder, PlaceholderStyle, scan_segments

# Level 3 and AST types
from .tree import (
    DataNode,
    MappedStatement,
    MapperASTBuilder,
    Node,
    NodeKind,
    QueryOperation,
    RootNode,
    render_statements,
)

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Simple parsing functions
    "parse",
    "parse_file",
    "try_parse",

    # Level 2: Configured parser
    "MapperParser",
    "ParseResult",
    "ParserConfig",

    # Level 3: Builder
    "MapperASTBuilder",

    # AST
    "DataNode",
    "Node",
    "NodeKind",
    "QueryOperation",
    "RootNode",
    "Literal",
    "Placeholder",
    "PlaceholderStyle",
    "scan_segments",
    "MappedStatement",
    "render_statements",

    # Errors
    "DataScanError",
    "MalformedXMLError",
    "MapperParseError",
    "ParseLimitExceededError",
    "TagMismatchError",
    "UnexpectedEndElementError",
    "UnterminatedElementError",
    "UnterminatedPlaceholderError",
]
