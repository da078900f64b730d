"""
Error taxonomy for PyReach.
Every failure a single solve can hit is one of the exceptions below. The
solver catches them at the orchestration boundary and reports them as a
failed SolveResult tagged with a FailureKind:
- CompilationError: the front-end rejected the source
- CapacityError: too many parameters for exhaustive execution
- RuntimeFaultError: an invocation of the decision function raised
- UnsupportedConstructError: the analyzer met a statement outside its grammar
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pyreach.core.program import Diagnostic


class FailureKind(Enum):
    """Why a solve did not produce a return-value set."""

    COMPILATION = auto()
    CAPACITY = auto()
    UNSOUND = auto()
    RUNTIME_FAULT = auto()


class PyReachError(Exception):
    """Base class for all PyReach errors."""


class CompilationError(PyReachError):
    """The front-end could not turn the source into a decision program."""

    def __init__(self, diagnostics: Sequence[Diagnostic]):
        self.diagnostics = tuple(diagnostics)
        super().__init__("; ".join(d.format() for d in self.diagnostics))


class CapacityError(PyReachError):
    """Exhaustive execution was requested for more parameters than supported."""

    def __init__(self, requested: int, limit: int):
        self.requested = requested
        self.limit = limit
        super().__init__(
            f"exhaustive execution supports at most {limit} parameters, got {requested}"
        )


class RuntimeFaultError(PyReachError):
    """An invocation of the decision function raised an exception."""

    def __init__(self, vector: Sequence[bool], original: BaseException):
        self.vector = tuple(vector)
        self.original = original
        rendered = "[" + ", ".join("1" if bit else "0" for bit in self.vector) + "]"
        super().__init__(
            f"invocation with parameters {rendered} raised "
            f"{type(original).__name__}: {original}"
        )


class UnsupportedConstructError(PyReachError):
    """The control-flow builder met a statement it cannot model."""

    def __init__(self, node: Any):
        self.node_type = type(node).__name__
        self.line = getattr(node, "lineno", None)
        where = f" at line {self.line}" if self.line is not None else ""
        super().__init__(f"unsupported construct {self.node_type}{where}")


class ConfigError(PyReachError):
    """A configuration file could not be parsed or holds invalid values."""


__all__ = [
    "FailureKind",
    "PyReachError",
    "CompilationError",
    "CapacityError",
    "RuntimeFaultError",
    "UnsupportedConstructError",
    "ConfigError",
]
