"""Command-line interface for mapper XML parsing."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from mybatis_mapper_ast import __version__
from mybatis_mapper_ast.api import (
    AdapterError,
    MapperParser,
    PandasAdapter,
    ParseResult,
    get_adapter,
)
from mybatis_mapper_ast.shared import ConfigError, ParserConfig, get_logger
from mybatis_mapper_ast.tree import DataNode, Node, RootNode

FORMATS = ["json", "tree", "statements", "xml", "csv"]
# Formats produced by an export adapter
ADAPTER_FORMATS = {"xml": "lxml", "csv": "pandas"}

logger = get_logger(__name__, component="cli")


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="mybatis-ast",
        description="Parse MyBatis mapper XML files into a SQL statement AST",
    )

    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Mapper XML files to parse",
    )
    parser.add_argument(
        "--format", "-f",
        choices=FORMATS,
        default="tree",
        help="Output format (default: tree)",
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file (default: stdout)",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Configuration file path (JSON)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Use the strict preset (depth and input size limits)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet output",
    )

    return parser


def load_config(args: argparse.Namespace) -> ParserConfig:
    """Build the parser configuration from command-line arguments.

    Raises:
        ConfigError: The configuration file is invalid
        OSError: The configuration file cannot be read
    """
    config = ParserConfig.strict() if args.strict else ParserConfig.default()
    if args.config:
        file_config = ParserConfig.from_json_file(args.config)
        if args.strict:
            # --strict only tightens limits the file leaves open
            overrides = {
                key: getattr(config, key)
                for key in ("max_depth", "max_input_size")
                if getattr(file_config, key) is None
            }
            file_config = file_config.override(**overrides)
        config = file_config
    return config


def format_tree(root: RootNode) -> str:
    """Indented outline of the AST, one node per line."""
    lines: List[str] = []
    stack = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        lines.append("  " * depth + _describe_node(node))
        for child in reversed(node.children):
            stack.append((child, depth + 1))
    return "\n".join(lines)


def _describe_node(node: Node) -> str:
    label = node.kind.name
    if isinstance(node, DataNode):
        return f"{label} (line {node.line}): {node.text!r}"
    if node.name:
        label = f"{label} <{node.name}>"
    attributes = " ".join(f'{key}="{value}"' for key, value in node.attributes.items())
    if attributes:
        label = f"{label} {attributes}"
    return f"{label} (line {node.line})"


def format_statements(result: ParseResult) -> str:
    lines = []
    for statement in result.statements():
        lines.append(
            f"{statement.qualified_id} [{statement.operation.value}] "
            f"(line {statement.line})"
        )
        lines.append(f"   {statement.sql}")
        if statement.parameters:
            lines.append(f"   parameters: {', '.join(statement.parameters)}")
        if statement.substitutions:
            lines.append(f"   substitutions: {', '.join(statement.substitutions)}")
    return "\n".join(lines)


def format_result(result: ParseResult, format_type: str) -> str:
    """Format a successful parse for output."""
    if format_type == "json":
        return json.dumps(result.to_dict(), indent=2)
    if format_type == "statements":
        return format_statements(result)
    if format_type in ADAPTER_FORMATS:
        adapter = get_adapter(ADAPTER_FORMATS[format_type], result.correlation_id)
        return adapter.render(result.root)
    return format_tree(result.root)


def parse_path(parser: MapperParser, path: Path) -> ParseResult:
    """Parse one file.

    Raises:
        OSError: The file cannot be read
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        logger.warning("Cannot read file", extra={"path": str(path), "error": str(e)})
        raise
    return parser.try_parse(data, source=str(path))


def report_export_failure(path: Path, format_type: str, error: AdapterError) -> None:
    logger.error(
        "Cannot export AST",
        extra={"path": str(path), "format": format_type, "error": str(error)},
        exc_info=False,
    )
    print(f"Error: {path}: cannot export as {format_type}: {error}", file=sys.stderr)


def cmd_parse(args: argparse.Namespace) -> int:
    """Parse every path and write the formatted results."""
    try:
        config = load_config(args)
    except (ConfigError, OSError) as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1

    if not (args.verbose or args.quiet):
        logging.getLogger().setLevel(config.logging_level)

    parser = MapperParser(config)
    outputs: List[str] = []
    json_results: List[Dict[str, Any]] = []
    csv_sources: List[Tuple[str, RootNode]] = []
    failures = 0

    for path in args.paths:
        try:
            result = parse_path(parser, path)
        except OSError as e:
            failures += 1
            print(f"Error: {path}: {e.strerror or e}", file=sys.stderr)
            continue

        if not result.success:
            failures += 1
            print(f"Error: {path}: {result.error}", file=sys.stderr)
            continue

        if not args.quiet:
            for entry in result.diagnostics:
                if entry.severity.name == "WARNING":
                    location = f":{entry.line}" if entry.line else ""
                    print(f"Warning: {path}{location}: {entry.message}", file=sys.stderr)

        if args.format == "json":
            json_results.append(result.to_dict())
        elif args.format == "csv":
            csv_sources.append((str(path), result.root))
        else:
            try:
                formatted = format_result(result, args.format)
            except AdapterError as e:
                failures += 1
                report_export_failure(path, args.format, e)
                continue
            if len(args.paths) > 1 and args.format in ("tree", "statements"):
                outputs.append(f"== {path} ==")
            outputs.append(formatted)

    if args.format == "json":
        output = json.dumps(json_results, indent=2)
    elif args.format == "csv":
        # One table for all files; rows carry their source path
        output = ""
        if csv_sources:
            output = PandasAdapter().render_sources(csv_sources).rstrip("\n")
    else:
        output = "\n".join(outputs)

    if args.output:
        args.output.write_text(output + "\n", encoding="utf-8")
        if not args.quiet:
            print(f"Results written to {args.output}")
    elif output:
        print(output)

    return 1 if failures else 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    elif args.quiet:
        logging.basicConfig(level=logging.ERROR)
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        return cmd_parse(args)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
