"""Logging for PyReach.
Every solve stage reports through one process-wide PyReachLogger. Lines go
to stderr, so the result printed on stdout stays machine-readable, and to
an optional log file. Every entry is also kept in memory, tagged with the
stage that produced it, so tests and callers can inspect a run afterwards.
"""

from __future__ import annotations

import sys
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import TextIO

RESET = "\033[0m"
GRAY = "\033[90m"
CYAN = "\033[36m"
YELLOW = "\033[33m"


class LogLevel(IntEnum):
    """Verbosity of the solver log; each ``-v`` on the command line adds one."""

    QUIET = 0
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3
    TRACE = 4


# Marker and ANSI color printed before an entry of each level.
_MARKERS: dict[LogLevel, tuple[str, str]] = {
    LogLevel.NORMAL: ("•", "\033[37m"),
    LogLevel.VERBOSE: ("→", "\033[34m"),
    LogLevel.DEBUG: ("⚙", "\033[35m"),
    LogLevel.TRACE: ("⋯", GRAY),
}
_WARNING_MARKER = ("⚠", YELLOW)


def supports_color(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


@dataclass
class LogEntry:
    """One message from a solve stage."""

    level: LogLevel
    message: str
    category: str = "general"
    warning: bool = False
    timestamp: float = field(default_factory=time.time)

    def render(self, color: bool) -> str:
        marker, ansi = _WARNING_MARKER if self.warning else _MARKERS.get(self.level, ("", ""))
        clock = time.strftime("%H:%M:%S", time.localtime(self.timestamp))
        tag = f"[{self.category}]" if self.category != "general" else ""
        if color:
            clock = f"{GRAY}{clock}{RESET}"
            marker = f"{ansi}{marker}{RESET}" if marker else ""
            tag = f"{CYAN}{tag}{RESET}" if tag else ""
        return " ".join(part for part in (clock, marker, tag, self.message) if part)


class PyReachLogger:
    """
    Thread-safe solver log.
    Args:
        level: Highest level written out; every entry is recorded regardless
        color: Use ANSI colors when the stream is a terminal
        stream: Destination for rendered lines, stderr by default
        file_path: Also write uncolored lines to this file
    """

    def __init__(
        self,
        level: LogLevel = LogLevel.NORMAL,
        color: bool = True,
        stream: TextIO | None = None,
        file_path: Path | None = None,
    ):
        self.level = level
        self._stream = stream or sys.stderr
        self._color = color and supports_color(self._stream)
        self._file: TextIO | None = None
        self._entries: list[LogEntry] = []
        self._counters: dict[str, int] = {}
        self._lock = threading.Lock()
        if file_path is not None:
            self.open_file(file_path)

    def set_level(self, level: LogLevel) -> None:
        self.level = level

    def log(self, level: LogLevel, message: str, category: str = "general") -> None:
        self._record(LogEntry(level, message, category))

    def verbose(self, message: str, category: str = "general") -> None:
        self.log(LogLevel.VERBOSE, message, category)

    def debug(self, message: str, category: str = "general") -> None:
        self.log(LogLevel.DEBUG, message, category)

    def trace(self, message: str, category: str = "general") -> None:
        self.log(LogLevel.TRACE, message, category)

    def warning(self, message: str, category: str = "solver") -> None:
        """Record a warning; shown at every level except QUIET."""
        self._record(LogEntry(LogLevel.NORMAL, message, category, warning=True))

    def _record(self, entry: LogEntry) -> None:
        with self._lock:
            self._entries.append(entry)
            if entry.level > self.level:
                return
            self._stream.write(entry.render(self._color) + "\n")
            self._stream.flush()
            if self._file is not None:
                self._file.write(entry.render(False) + "\n")
                self._file.flush()

    @contextmanager
    def timer(self, stage: str, category: str = "timing") -> Iterator[None]:
        """Log how long the ``with`` body took, at VERBOSE."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.verbose(f"{stage}: {time.perf_counter() - start:.3f}s", category)

    def count(self, name: str, increment: int = 1) -> int:
        """Add ``increment`` to the named counter and return its total."""
        with self._lock:
            total = self._counters.get(name, 0) + increment
            self._counters[name] = total
            return total

    def get_entries(
        self,
        level: LogLevel | None = None,
        category: str | None = None,
    ) -> list[LogEntry]:
        with self._lock:
            return [
                entry
                for entry in self._entries
                if (level is None or entry.level == level)
                and (category is None or entry.category == category)
            ]

    def open_file(self, path: Path) -> None:
        """Start copying rendered lines to ``path``, replacing any open file."""
        self.close()
        self._file = open(path, "w", encoding="utf-8")

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None


_logger: PyReachLogger | None = None


def get_logger() -> PyReachLogger:
    """The process-wide logger, created on first use."""
    global _logger
    if _logger is None:
        _logger = PyReachLogger()
    return _logger


def set_logger(logger: PyReachLogger) -> None:
    global _logger
    _logger = logger


def configure_logging(
    level: LogLevel = LogLevel.NORMAL,
    color: bool = True,
    file_path: Path | None = None,
    stream: TextIO | None = None,
) -> PyReachLogger:
    """Replace the process-wide logger, closing the log file of the old one."""
    if _logger is not None:
        _logger.close()
    logger = PyReachLogger(level=level, color=color, stream=stream, file_path=file_path)
    set_logger(logger)
    return logger


__all__ = [
    "LogEntry",
    "LogLevel",
    "PyReachLogger",
    "configure_logging",
    "get_logger",
    "set_logger",
    "supports_color",
]
