"""Reporting module for PyReach."""

from pyreach.reporting.formatters import (
    Formatter,
    JSONFormatter,
    TextFormatter,
    format_result,
)

__all__ = ["Formatter", "TextFormatter", "JSONFormatter", "format_result"]
