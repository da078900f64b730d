"""Public API for PyReach."""

from __future__ import annotations

from pathlib import Path

from pyreach.analysis.strategy import Strategy
from pyreach.config import SolverConfig
from pyreach.reporting.formatters import format_result
from pyreach.solver import ReachabilitySolver, SolveResult


def solve(
    source: str,
    forced_strategy: Strategy | str | None = None,
    dry_run: bool = False,
    *,
    config: SolverConfig | None = None,
    filename: str = "<decision>",
) -> SolveResult:
    """
    Compute the set of values a decision program can return.
    This is the main entry point for PyReach. The source must define a
    top-level ``evaluate(parameters)`` function (the name is configurable)
    whose only parameter is a vector of booleans.
    Args:
        source: Python source text of the decision program
        forced_strategy: ``"static"``, ``"dynamic"`` or a Strategy to skip
            automatic selection; None or ``"auto"`` selects automatically
        dry_run: Only select the strategy; the value set stays empty
        config: Analysis and executor settings
        filename: Name used in compilation messages
    Returns:
        SolveResult with the strategy used and the reachable values
    Example:
        >>> result = solve('''
        ... def evaluate(parameters):
        ...     x = 1
        ...     if parameters[0]:
        ...         x = 2
        ...     return x
        ... ''')
        >>> result.success, result.sorted_values()
        (True, [1, 2])
    """
    solver = ReachabilitySolver(
        config=config,
        forced_strategy=Strategy.parse(forced_strategy),
        dry_run=dry_run,
    )
    return solver.solve(source, filename=filename)


def solve_file(
    path: str | Path,
    forced_strategy: Strategy | str | None = None,
    dry_run: bool = False,
    *,
    config: SolverConfig | None = None,
) -> SolveResult:
    """
    Solve a decision program stored in a file.
    Raises:
        OSError: The file cannot be read
    """
    path = Path(path)
    source = path.read_text(encoding="utf-8")
    return solve(source, forced_strategy, dry_run, config=config, filename=str(path))


def format_values(result: SolveResult, format_type: str = "text") -> str:
    """Render a result the way the command line prints it."""
    return format_result(result, format_type)


__all__ = ["solve", "solve_file", "format_values"]
