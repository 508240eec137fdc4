"""
Log record shape consumed and produced by the engine.

The host logging framework is expected to convert its own record type into a
Record and back. The engine always returns a new Record.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Union


class Level(IntEnum):
    """Ordered severity levels, numerically aligned with the logging module."""

    DEBUG = 10
    INFO = 20
    NOTICE = 25
    WARNING = 30
    ERROR = 40
    CRITICAL = 50
    ALERT = 60
    EMERGENCY = 70

    @classmethod
    def parse(cls, level: Union["Level", int, str]) -> "Level":
        """
        Accept a Level, a numeric level or a (case-insensitive) level name.

        Numeric levels that fall between two members round down, so any
        custom logging level maps onto the nearest lower severity.
        """
        if isinstance(level, Level):
            return level
        if isinstance(level, str):
            name = level.strip().upper()
            if name == "WARN":
                name = "WARNING"
            try:
                return cls[name]
            except KeyError:
                raise ValueError(f"Unknown log level: {level!r}") from None
        if isinstance(level, int):
            candidates = [member for member in cls if member <= level]
            return max(candidates) if candidates else cls.DEBUG
        raise ValueError(f"Unknown log level: {level!r}")


@dataclass(frozen=True)
class Record:
    """A single log record: message plus ordered context data."""

    message: str
    context: dict[str, Any] = field(default_factory=dict)
    channel: str = "app"
    level: Level = Level.INFO
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    extra: dict[str, Any] = field(default_factory=dict)

    def with_(self, **changes: Any) -> "Record":
        """Return a copy of this record with the given fields replaced."""
        return replace(self, **changes)
