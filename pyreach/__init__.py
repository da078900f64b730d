"""PyReach: reachable return values of boolean decision programs.
Given a Python function that maps a vector of boolean parameters to a
value, PyReach computes the set of distinct values it can return, either by
static literal-set analysis of its control flow graph or by running it on
every parameter vector.
Example:
    >>> from pyreach import solve
    >>> result = solve('''
    ... def evaluate(parameters):
    ...     x = 1
    ...     if parameters[0] and parameters[1]:
    ...         x = 4
    ...     return x
    ... ''')
    >>> result.sorted_values()
    [1, 4]
"""

from pyreach.analysis.strategy import Strategy
from pyreach.api import solve, solve_file
from pyreach.config import PyReachConfig, SolverConfig, load_config
from pyreach.core.exceptions import (
    CapacityError,
    CompilationError,
    ConfigError,
    FailureKind,
    PyReachError,
    RuntimeFaultError,
    UnsupportedConstructError,
)
from pyreach.logging import LogLevel, configure_logging, get_logger
from pyreach.reporting.formatters import format_result
from pyreach.solver import ReachabilitySolver, SolveResult

__version__ = "0.1.0"

__all__ = [
    "solve",
    "solve_file",
    "Strategy",
    "SolveResult",
    "ReachabilitySolver",
    "FailureKind",
    "PyReachError",
    "CompilationError",
    "CapacityError",
    "RuntimeFaultError",
    "UnsupportedConstructError",
    "ConfigError",
    "PyReachConfig",
    "SolverConfig",
    "load_config",
    "configure_logging",
    "get_logger",
    "LogLevel",
    "format_result",
]
