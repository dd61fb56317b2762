"""Logging section of the configuration file."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass
class LoggingConfig:
    """Log level and output format."""

    level: str = ""
    log_format: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"level": self.level, "format": self.log_format}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "LoggingConfig":
        data = data or {}
        values = {}
        for key in ("level", "format"):
            value = data.get(key)
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise TypeError(f"logging {key} must be a string, got {type(value).__name__}")
            values[key] = value
        return cls(level=values["level"], log_format=values["format"])


def default_logging_config() -> LoggingConfig:
    return LoggingConfig(level="debug", log_format="text")