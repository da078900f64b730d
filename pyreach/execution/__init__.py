"""Execution module for PyReach."""

from pyreach.execution.executor import (
    ExecutionResult,
    ExhaustiveExecutor,
    padded_vector,
    reference_vector,
)

__all__ = ["ExhaustiveExecutor", "ExecutionResult", "padded_vector", "reference_vector"]
