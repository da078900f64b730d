"""
Solve orchestration for PyReach.
A solve runs the stages in order:
1. predicate normalization and compilation
2. parameter profiling
3. strategy selection (or the caller's forced strategy)
4. static analysis, falling back to exhaustive execution when it is unsound
   and the strategy was not forced
Every failure is reported in the returned SolveResult; nothing escapes as an
exception.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pyreach.analysis.abstract_interpreter import ReachableValueAnalyzer
from pyreach.analysis.normalizer import PredicateNormalizer
from pyreach.analysis.profile import ParameterProfile, extract_profile
from pyreach.analysis.strategy import Strategy, StrategyDecision, StrategySelector
from pyreach.config import SolverConfig
from pyreach.core.exceptions import (
    CapacityError,
    CompilationError,
    FailureKind,
    RuntimeFaultError,
)
from pyreach.core.program import CompileFailure, CompileSuccess, compile_source
from pyreach.execution.executor import ExhaustiveExecutor
from pyreach.logging import get_logger


def _sort_key(value: Any) -> tuple[str, Any]:
    if isinstance(value, (bool, int, float)):
        return ("0", value)
    return (type(value).__name__, repr(value))


@dataclass(frozen=True)
class SolveResult:
    """
    Outcome of a single solve.
    Attributes:
        success: True when ``return_values`` is meaningful
        strategy_used: Strategy that produced the result, or None when
            compilation failed
        return_values: Distinct reachable return values
        compilation_failures: ``"{id}: {message}"`` lines when compilation failed
        failure: Why the solve failed
        message: Human-readable failure description
        profile: Parameter profile of the program, when it compiled
        decision: The strategy decision, when it compiled
    """

    success: bool
    strategy_used: Strategy | None = None
    return_values: frozenset = field(default_factory=frozenset)
    compilation_failures: tuple[str, ...] | None = None
    failure: FailureKind | None = None
    message: str = ""
    profile: ParameterProfile | None = None
    decision: StrategyDecision | None = None

    def sorted_values(self) -> list[Any]:
        """Return values in a stable display order."""
        return sorted(self.return_values, key=_sort_key)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "strategy": self.strategy_used.value if self.strategy_used else None,
            "return_values": self.sorted_values(),
            "compilation_failures": (
                list(self.compilation_failures) if self.compilation_failures is not None else None
            ),
            "failure": self.failure.name.lower() if self.failure else None,
            "message": self.message,
            "profile": self.profile.to_dict() if self.profile else None,
        }


class ReachabilitySolver:
    """
    Computes the reachable return values of a decision program.
    Args:
        config: Analysis and executor settings
        forced_strategy: Strategy to use regardless of the selector's choice
        dry_run: Stop after strategy selection; return an empty value set
    """

    def __init__(
        self,
        config: SolverConfig | None = None,
        forced_strategy: Strategy | None = None,
        dry_run: bool = False,
    ):
        self.config = config or SolverConfig()
        self.config.validate()
        self.forced_strategy = forced_strategy
        self.dry_run = dry_run
        self.selector = StrategySelector(self.config.analysis.static_threshold)
        self.analyzer = ReachableValueAnalyzer(self.config.analysis.literal_cap)
        self.executor = ExhaustiveExecutor(self.config.executor)

    def solve(self, source: str, filename: str = "<decision>") -> SolveResult:
        logger = get_logger()
        with logger.timer("compile"):
            compiled = compile_source(
                source,
                entry_point=self.config.analysis.entry_point,
                rewriters=[PredicateNormalizer()],
                filename=filename,
            )
        if isinstance(compiled, CompileFailure):
            error = CompilationError(compiled.diagnostics)
            logger.verbose(f"compilation failed: {error}", category="solver")
            return SolveResult(
                success=False,
                compilation_failures=tuple(d.format() for d in compiled.diagnostics),
                failure=FailureKind.COMPILATION,
                message=str(error),
            )
        profile = extract_profile(
            compiled.program, compiled.constant_evaluator, self.config.analysis.max_param_count
        )
        decision = self.selector.select(profile, compiled.program, self.forced_strategy)
        if decision.strategy is Strategy.STATIC:
            result = self._solve_static(compiled, profile, decision)
            if result is not None:
                return result
        return self._solve_dynamic(compiled, profile, decision)

    def _solve_static(
        self, compiled: CompileSuccess, profile: ParameterProfile, decision: StrategyDecision
    ) -> SolveResult | None:
        """Run the analyzer; None means the caller should fall back to execution."""
        logger = get_logger()
        if self.dry_run:
            return _success(Strategy.STATIC, frozenset(), profile, decision)
        with logger.timer("static analysis"):
            verdict = self.analyzer.analyze(
                compiled.program, compiled.constant_evaluator, param_count=profile.count
            )
        if verdict.sound:
            return _success(Strategy.STATIC, verdict.values, profile, decision)
        if decision.forced:
            return SolveResult(
                success=False,
                strategy_used=Strategy.STATIC,
                failure=FailureKind.UNSOUND,
                message=f"static analysis is unsound: {verdict.reason}",
                profile=profile,
                decision=decision,
            )
        logger.warning(
            f"static analysis is unsound ({verdict.reason}); "
            "falling back to exhaustive execution"
        )
        return None

    def _solve_dynamic(
        self, compiled: CompileSuccess, profile: ParameterProfile, decision: StrategyDecision
    ) -> SolveResult:
        logger = get_logger()
        try:
            if self.dry_run:
                self.executor.check_capacity(profile.count)
                values: frozenset = frozenset()
            else:
                with logger.timer("exhaustive execution"):
                    values = self.executor.execute(compiled.entry_point, profile.count).values
        except (CapacityError, RuntimeFaultError) as e:
            kind = (
                FailureKind.CAPACITY
                if isinstance(e, CapacityError)
                else FailureKind.RUNTIME_FAULT
            )
            logger.verbose(f"exhaustive execution failed: {e}", category="solver")
            return SolveResult(
                success=False,
                strategy_used=Strategy.DYNAMIC,
                failure=kind,
                message=str(e),
                profile=profile,
                decision=decision,
            )
        return _success(Strategy.DYNAMIC, values, profile, decision)


def _success(
    strategy: Strategy,
    values: frozenset,
    profile: ParameterProfile,
    decision: StrategyDecision,
) -> SolveResult:
    get_logger().verbose(
        f"{strategy.value} strategy produced {len(values)} value(s)", category="solver"
    )
    return SolveResult(
        success=True,
        strategy_used=strategy,
        return_values=values,
        profile=profile,
        decision=decision,
    )


__all__ = ["ReachabilitySolver", "SolveResult"]
