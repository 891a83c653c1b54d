"""Shared utilities for mapper XML parsing.

This module provides the error taxonomy, configuration, diagnostic and metric
types, and logging helpers used across all processing layers.
"""

from .config import ConfigError, ConfigValidationError, ParserConfig
from .errors import (
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
from .logging import CorrelationLogger, get_logger
from .result import DiagnosticEntry, DiagnosticSeverity, ParseMetrics

__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "CorrelationLogger",
    "DataScanError",
    "DiagnosticEntry",
    "DiagnosticSeverity",
    "MalformedXMLError",
    "MapperParseError",
    "ParseLimitExceededError",
    "ParseMetrics",
    "ParserConfig",
    "SegmentScanError",
    "TagMismatchError",
    "UnexpectedEndElementError",
    "UnterminatedElementError",
    "UnterminatedPlaceholderError",
    "get_logger",
]
