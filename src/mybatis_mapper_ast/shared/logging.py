"""Structured logging utilities for mapper XML parsing.

Wraps the standard library logger so every record carries the component name,
the correlation ID of the parse request and any document context bound to it
(for example the source path of the mapper file).
"""

import logging
from typing import Any, Dict, Optional


class CorrelationLogger:
    """Logger that attaches correlation and document context to each record."""

    def __init__(
        self,
        name: str,
        correlation_id: Optional[str] = None,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize correlation logger.

        Args:
            name: Logger name (typically __name__)
            correlation_id: Optional correlation ID for request tracking
            component: Component name, defaults to the last part of ``name``
            context: Extra fields attached to every record
        """
        self.logger = logging.getLogger(name)
        self.correlation_id = correlation_id
        self.component = component or name.rsplit(".", 1)[-1]
        self.context: Dict[str, Any] = dict(context or {})

    def bind(self, **context: Any) -> "CorrelationLogger":
        """Return a logger sharing this one's identity with extra context."""
        merged = dict(self.context)
        merged.update(context)
        return CorrelationLogger(
            self.logger.name, self.correlation_id, self.component, merged
        )

    def is_enabled_for(self, level: int) -> bool:
        """Check whether records at ``level`` would be emitted."""
        return self.logger.isEnabledFor(level)

    def _extra(self, extra: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        combined = {
            "component": self.component,
            "correlation_id": self.correlation_id,
        }
        combined.update(self.context)
        if extra:
            combined.update(extra)
        return combined

    def debug(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        """Log debug message with correlation info."""
        self.logger.debug(message, extra=self._extra(extra))

    def info(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        """Log info message with correlation info."""
        self.logger.info(message, extra=self._extra(extra))

    def warning(
        self,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
    ) -> None:
        """Log warning message with correlation info."""
        self.logger.warning(message, extra=self._extra(extra), exc_info=exc_info)

    def error(
        self,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = True,
    ) -> None:
        """Log error message with correlation info."""
        self.logger.error(message, extra=self._extra(extra), exc_info=exc_info)


def get_logger(
    name: str,
    correlation_id: Optional[str] = None,
    component: Optional[str] = None,
) -> CorrelationLogger:
    """Get a correlation-aware logger instance.

    Args:
        name: Logger name (typically __name__)
        correlation_id: Optional correlation ID for request tracking
        component: Component name for structured logging

    Returns:
        CorrelationLogger instance
    """
    return CorrelationLogger(name, correlation_id, component)
