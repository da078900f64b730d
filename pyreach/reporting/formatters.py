"""Output formatters for PyReach results."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pyreach.solver import SolveResult

TOOL_NAME = "PyReach"


def render_value(value: Any) -> str:
    """Display form of one return value; strings keep their quotes."""
    if isinstance(value, str):
        return repr(value)
    return str(value)


def render_values(values: list[Any]) -> str:
    """The ``[v1, v2, ...].`` line printed for a successful solve."""
    return "[" + ", ".join(render_value(v) for v in values) + "]."


class Formatter(ABC):
    """Base class for output formatters."""

    name: str = "base"

    @abstractmethod
    def format(self, result: SolveResult) -> str:
        """Format the solve result."""


class TextFormatter(Formatter):
    """
    Plain text formatter.
    A success is the single values line. A compilation failure lists one
    diagnostic per line; any other failure is one ``analysis fails`` line.
    """

    name = "text"

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def format(self, result: SolveResult) -> str:
        if result.success:
            lines = [render_values(result.sorted_values())]
            if self.verbose and result.strategy_used is not None:
                lines.append(f"strategy: {result.strategy_used.value}")
            return "\n".join(lines)
        if result.compilation_failures:
            return "\n".join(result.compilation_failures)
        return f"analysis fails: {result.message}" if result.message else "analysis fails"


class JSONFormatter(Formatter):
    """JSON formatter for machine-readable output."""

    name = "json"

    def __init__(self, indent: int = 2):
        self.indent = indent

    def format(self, result: SolveResult) -> str:
        from pyreach import __version__

        data = {
            "meta": {
                "tool": TOOL_NAME,
                "version": __version__,
                "timestamp": datetime.now().isoformat(),
            },
            **result.to_dict(),
        }
        return json.dumps(data, indent=self.indent, default=str)


FORMATTERS: dict[str, type[Formatter]] = {
    "text": TextFormatter,
    "json": JSONFormatter,
}


def format_result(
    result: SolveResult,
    format_type: str = "text",
    **kwargs,
) -> str:
    """
    Format a solve result.
    Args:
        result: The result to format
        format_type: One of "text", "json"
        **kwargs: Additional formatter options
    Returns:
        Formatted string
    """
    formatter_class = FORMATTERS.get(format_type.lower())
    if formatter_class is None:
        raise ValueError(f"Unknown format: {format_type}. Available: {', '.join(FORMATTERS)}")
    return formatter_class(**kwargs).format(result)


__all__ = [
    "Formatter",
    "TextFormatter",
    "JSONFormatter",
    "format_result",
    "render_value",
    "render_values",
]
