"""
Strategy selection.
Static analysis is preferred only when it is both safe and worthwhile:
- every parameter index is a known constant and none is negative
- the parameter count reaches the static threshold, where exhaustive
  execution starts getting expensive
- no ``if`` condition combines a returned variable with arithmetic, which
  the literal-set analysis cannot narrow through
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from enum import Enum

from pyreach.analysis.profile import ParameterProfile
from pyreach.core.program import DecisionProgram
from pyreach.logging import get_logger

DEFAULT_STATIC_THRESHOLD = 20


class Strategy(Enum):
    """How return values are computed."""

    STATIC = "static"
    DYNAMIC = "dynamic"

    @classmethod
    def parse(cls, value: str | Strategy | None) -> Strategy | None:
        """Parse a strategy name; ``None`` and ``"auto"`` mean no preference."""
        if value is None or isinstance(value, Strategy):
            return value
        if value.lower() == "auto":
            return None
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(
                f"unknown strategy '{value}' (expected auto, static or dynamic)"
            ) from None


@dataclass(frozen=True)
class StrategyDecision:
    """The chosen strategy and the facts it was derived from."""

    strategy: Strategy
    forced: bool = False
    threshold_hit: bool = False
    out_of_bounds: bool = False
    arithmetic_with_result: bool = False
    reasons: tuple[str, ...] = field(default_factory=tuple)


def _is_opaque(node: ast.AST) -> bool:
    if isinstance(node, (ast.BinOp, ast.Call)):
        return True
    if isinstance(node, ast.UnaryOp):
        return not isinstance(node.op, ast.Not)
    if isinstance(node, ast.Compare):
        return len(node.ops) != 1 or not isinstance(node.ops[0], (ast.Eq, ast.NotEq))
    return False


def has_arithmetic_with_result(program: DecisionProgram) -> bool:
    """Check whether some ``if`` test mixes a returned variable with arithmetic."""
    if not program.result_names:
        return False
    for test in program.iter_conditions():
        nodes = list(ast.walk(test))
        mentions_result = any(
            isinstance(node, ast.Name) and node.id in program.result_names for node in nodes
        )
        if mentions_result and any(_is_opaque(node) for node in nodes):
            return True
    return False


class StrategySelector:
    """Picks static analysis or exhaustive execution for a program."""

    def __init__(self, static_threshold: int = DEFAULT_STATIC_THRESHOLD):
        self.static_threshold = static_threshold

    def select(
        self,
        profile: ParameterProfile,
        program: DecisionProgram,
        forced: Strategy | None = None,
    ) -> StrategyDecision:
        threshold_hit = profile.count >= self.static_threshold
        out_of_bounds = profile.out_of_bounds
        arithmetic = has_arithmetic_with_result(program)
        reasons: list[str] = []
        if not profile.indices_known:
            reasons.append("parameter indices are not all constant")
        if out_of_bounds:
            reasons.append(f"negative parameter index {profile.min_index}")
        if not threshold_hit:
            reasons.append(f"{profile.count} parameters is below the static threshold")
        if arithmetic:
            reasons.append("a condition combines a returned variable with arithmetic")
        if forced is not None:
            strategy = forced
        elif reasons:
            strategy = Strategy.DYNAMIC
        else:
            strategy = Strategy.STATIC
        decision = StrategyDecision(
            strategy=strategy,
            forced=forced is not None,
            threshold_hit=threshold_hit,
            out_of_bounds=out_of_bounds,
            arithmetic_with_result=arithmetic,
            reasons=tuple(reasons),
        )
        how = "forced" if decision.forced else "selected"
        detail = f" ({'; '.join(reasons)})" if reasons and not decision.forced else ""
        get_logger().verbose(f"{how} {strategy.value} strategy{detail}", category="strategy")
        return decision


__all__ = [
    "Strategy",
    "StrategyDecision",
    "StrategySelector",
    "has_arithmetic_with_result",
    "DEFAULT_STATIC_THRESHOLD",
]
