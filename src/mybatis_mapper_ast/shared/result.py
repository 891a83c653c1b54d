"""Diagnostic and metric types shared by the parsing layers."""

import time
from dataclasses import asdict, dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Optional


class DiagnosticSeverity(Enum):
    """Severity levels for diagnostic entries."""

    DEBUG = auto()
    INFO = auto()
    WARNING = auto()
    ERROR = auto()


@dataclass
class DiagnosticEntry:
    """Single diagnostic entry with context information."""

    severity: DiagnosticSeverity
    message: str
    component: str
    line: Optional[int] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate diagnostic entry."""
        if not self.message:
            raise ValueError("Diagnostic message cannot be empty")
        if not self.component:
            raise ValueError("Diagnostic component cannot be empty")
        if self.line is not None and self.line < 1:
            raise ValueError("Diagnostic line must be >= 1")

    def to_dict(self) -> Dict[str, Any]:
        """Convert entry to a JSON-friendly dictionary."""
        result: Dict[str, Any] = {
            "severity": self.severity.name,
            "message": self.message,
            "component": self.component,
        }
        if self.line is not None:
            result["line"] = self.line
        if self.details:
            result["details"] = dict(self.details)
        return result


@dataclass
class ParseMetrics:
    """Counters collected while building a mapper AST."""

    processing_time_ms: float = 0.0
    memory_used_bytes: int = 0
    characters_processed: int = 0
    events_processed: int = 0
    nodes_created: int = 0
    elements_pruned: int = 0
    data_nodes: int = 0
    placeholders: int = 0
    max_depth: int = 0
    lines: int = 0

    @property
    def characters_per_second(self) -> float:
        """Calculate characters processed per second."""
        if self.processing_time_ms <= 0:
            return 0.0
        return (self.characters_processed * 1000.0) / self.processing_time_ms

    @property
    def events_per_second(self) -> float:
        """Calculate tokenizer events consumed per second."""
        if self.processing_time_ms <= 0:
            return 0.0
        return (self.events_processed * 1000.0) / self.processing_time_ms

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to a dictionary including derived rates."""
        result = asdict(self)
        result["characters_per_second"] = self.characters_per_second
        result["events_per_second"] = self.events_per_second
        return result
