"""Configuration for mapper XML parsing.

``ParserConfig`` is an immutable dataclass validated on construction. Presets
cover the common cases; ``override`` derives variants without mutating the
original, which keeps a single config object safe to share across threads.
"""

import json
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

VALID_LOGGING_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        suggestions: Optional[List[str]] = None,
    ) -> None:
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


@dataclass(frozen=True)
class ParserConfig:
    """Settings controlling a single parse.

    Attributes:
        max_depth: Maximum number of simultaneously open elements, or None
        max_input_size: Maximum input length in characters, or None
        keep_partial_tree: Attach the partially built tree to parse errors
        encoding: Encoding used to decode ``bytes`` input and files
        logging_level: Level applied by the CLI when configuring logging
        collect_memory_metrics: Sample process RSS around each parse
        name: Optional label for presets and diagnostics
    """

    max_depth: Optional[int] = None
    max_input_size: Optional[int] = None
    keep_partial_tree: bool = False
    encoding: str = "utf-8"
    logging_level: str = "WARNING"
    collect_memory_metrics: bool = False
    name: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_depth is not None and self.max_depth <= 0:
            raise ConfigValidationError(
                "max_depth must be > 0 or None", field_name="max_depth"
            )
        if self.max_input_size is not None and self.max_input_size <= 0:
            raise ConfigValidationError(
                "max_input_size must be > 0 or None", field_name="max_input_size"
            )
        if self.logging_level not in VALID_LOGGING_LEVELS:
            raise ConfigValidationError(
                f"logging_level must be one of {list(VALID_LOGGING_LEVELS)}",
                field_name="logging_level",
                suggestions=list(VALID_LOGGING_LEVELS),
            )
        try:
            "".encode(self.encoding)
        except LookupError as e:
            raise ConfigValidationError(
                f"unknown encoding: {self.encoding}", field_name="encoding"
            ) from e

    @classmethod
    def default(cls) -> "ParserConfig":
        """Unbounded parsing without partial trees."""
        return cls(name="default")

    @classmethod
    def strict(cls) -> "ParserConfig":
        """Bounded parsing for untrusted input."""
        return cls(
            max_depth=256,
            max_input_size=10 * 1024 * 1024,
            name="strict",
        )

    @classmethod
    def diagnostic(cls) -> "ParserConfig":
        """Keep partial trees, collect memory metrics and log verbosely."""
        return cls(
            keep_partial_tree=True,
            logging_level="DEBUG",
            collect_memory_metrics=True,
            name="diagnostic",
        )

    def override(self, **kwargs: Any) -> "ParserConfig":
        """Create a new configuration with specific overrides.

        Example:
            >>> ParserConfig.strict().override(max_depth=32).max_depth
            32
        """
        self._check_field_names(kwargs)
        return replace(self, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParserConfig":
        """Create configuration from dictionary.

        Raises:
            ConfigValidationError: On unknown keys or invalid values
        """
        cls._check_field_names(data)
        return cls(**data)

    @classmethod
    def from_json(cls, json_str: str) -> "ParserConfig":
        """Create configuration from JSON string."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"invalid configuration JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigValidationError("configuration JSON must be an object")
        return cls.from_dict(data)

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "ParserConfig":
        """Load configuration from a JSON file."""
        return cls.from_json(Path(path).read_text(encoding="utf-8"))

    @classmethod
    def _check_field_names(cls, data: Dict[str, Any]) -> None:
        known = {f.name for f in fields(cls)}
        for key in data:
            if key not in known:
                raise ConfigValidationError(
                    f"unknown configuration field: {key}",
                    field_name=key,
                    suggestions=sorted(known),
                )
