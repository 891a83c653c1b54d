"""Command-line interface for parsing mapper XML files.

Prints the AST, rendered statements, JSON results, or adapter exports
(lxml XML, pandas CSV) for one or more files.
"""

from .main import main

__all__ = ["main"]
