"""Core module for PyReach.
Provides:
- The Python front-end that compiles decision programs
- Compile-time constant folding
- The error taxonomy
"""

from pyreach.core.constants import ConstantEvaluator, Folded
from pyreach.core.exceptions import (
    CapacityError,
    CompilationError,
    ConfigError,
    FailureKind,
    PyReachError,
    RuntimeFaultError,
    UnsupportedConstructError,
)
from pyreach.core.program import (
    CompileFailure,
    CompileResult,
    CompileSuccess,
    DecisionProgram,
    Diagnostic,
    compile_source,
)

__all__ = [
    "ConstantEvaluator",
    "Folded",
    "FailureKind",
    "PyReachError",
    "CompilationError",
    "CapacityError",
    "RuntimeFaultError",
    "UnsupportedConstructError",
    "ConfigError",
    "CompileFailure",
    "CompileResult",
    "CompileSuccess",
    "DecisionProgram",
    "Diagnostic",
    "compile_source",
]
