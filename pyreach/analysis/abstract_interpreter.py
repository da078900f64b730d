"""
Reachable-value analysis.
Computes, without running the program, the set of literal values a decision
function may return. Every local is tracked as a LiteralSet; each constant
parameter read ``parameters[i]`` gets a synthetic variable that starts as
``{False, True}``. Branch edges narrow the state with the branch condition,
and an edge whose condition cannot hold carries the bottom state, which is
how statically dead branches drop out of later joins.
The result is a verdict: Sound with the exact literal set when every
reachable return yields known literals, the soundness audit is clean and
Z3 confirms which values some parameter vector actually returns. It is
Unsound otherwise.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from typing import Any

from pyreach.analysis.abstract_domains import (
    DEFAULT_LITERAL_CAP,
    AbstractState,
    LiteralSet,
)
from pyreach.analysis.flow_sensitive import (
    BasicBlock,
    CFGBuilder,
    ControlFlowGraph,
    DataFlowAnalysis,
    EdgeKind,
)
from pyreach.analysis.feasibility import Inconclusive, PathFeasibilityChecker
from pyreach.analysis.soundness import SoundnessAuditor
from pyreach.core.constants import ConstantEvaluator
from pyreach.core.exceptions import UnsupportedConstructError
from pyreach.core.program import DecisionProgram, is_parameter_read
from pyreach.logging import get_logger

BOOLEANS = LiteralSet.of(False, True)


def parameter_variable(vector_name: str, index: int) -> str:
    """Name of the synthetic variable tracking ``vector_name[index]``."""
    return f"{vector_name}[{index}]"


def _loaded_names(node: ast.AST | None, names: frozenset[str]) -> set[str]:
    if node is None:
        return set()
    return {
        n.id
        for n in ast.walk(node)
        if isinstance(n, ast.Name) and isinstance(n.ctx, ast.Load) and n.id in names
    }


def _unsafe_reads(
    body: list[ast.stmt],
    assigned: set[str],
    locals_: frozenset[str],
    unsafe: set[str],
) -> set[str] | None:
    """Walk ``body`` collecting locals that may be read before assignment.
    Returns the names definitely assigned after ``body``, or None when every
    path through it returns.
    """
    for stmt in body:
        if isinstance(stmt, ast.Return):
            unsafe |= _loaded_names(stmt.value, locals_) - assigned
            return None
        if isinstance(stmt, ast.If):
            unsafe |= _loaded_names(stmt.test, locals_) - assigned
            then_assigned = _unsafe_reads(stmt.body, set(assigned), locals_, unsafe)
            else_assigned = _unsafe_reads(stmt.orelse, set(assigned), locals_, unsafe)
            if then_assigned is None and else_assigned is None:
                return None
            if then_assigned is None:
                assigned = else_assigned
            elif else_assigned is None:
                assigned = then_assigned
            else:
                assigned = then_assigned & else_assigned
        elif isinstance(stmt, ast.Assign) or (
            isinstance(stmt, ast.AnnAssign) and stmt.value is not None
        ):
            unsafe |= _loaded_names(stmt.value, locals_) - assigned
            targets = stmt.targets if isinstance(stmt, ast.Assign) else [stmt.target]
            for target in targets:
                for n in ast.walk(target):
                    if isinstance(n, ast.Name) and isinstance(n.ctx, ast.Store):
                        assigned.add(n.id)
        else:
            unsafe |= _loaded_names(stmt, locals_) - assigned
    return assigned


def possibly_unassigned(program: DecisionProgram) -> frozenset[str]:
    """Locals that some path may read before assigning them."""
    unsafe: set[str] = set()
    _unsafe_reads(program.function.body, set(), program.local_names, unsafe)
    return frozenset(unsafe)


class LiteralFlowAnalysis(DataFlowAnalysis[AbstractState]):
    """Forward literal-set propagation with condition narrowing on branch edges."""

    def __init__(
        self,
        cfg: ControlFlowGraph,
        program: DecisionProgram,
        evaluator: ConstantEvaluator,
        literal_cap: int = DEFAULT_LITERAL_CAP,
    ) -> None:
        super().__init__(cfg)
        self.program = program
        self.evaluator = evaluator
        self.literal_cap = literal_cap
        self.locals = program.local_names

    def initial_value(self) -> AbstractState:
        return AbstractState.bottom()

    def boundary_value(self) -> AbstractState:
        state = AbstractState()
        unassigned = possibly_unassigned(self.program)
        for name in self.locals:
            state.set(name, LiteralSet.top() if name in unassigned else LiteralSet.bottom())
        for read in self.program.iter_parameter_reads():
            index = self.evaluator.evaluate_index(read.slice)
            if index is not None and index >= 0:
                state.set(parameter_variable(self.program.vector_name, index), BOOLEANS)
        return state

    def meet(self, facts: list[AbstractState]) -> AbstractState:
        result = AbstractState.bottom()
        for fact in facts:
            result = result.join(fact, self.literal_cap)
        return result

    def transfer(self, block: BasicBlock, in_fact: AbstractState) -> AbstractState:
        if in_fact.is_bottom():
            return in_fact
        state = in_fact.copy()
        for stmt in block.statements:
            if isinstance(stmt, ast.Assign):
                value = self.value_of(stmt.value, state)
                for target in stmt.targets:
                    self._assign(target, value, state)
            elif isinstance(stmt, ast.AnnAssign) and stmt.value is not None:
                self._assign(stmt.target, self.value_of(stmt.value, state), state)
        return state

    def edge_transfer(
        self, block: BasicBlock, successor: int, out_fact: AbstractState
    ) -> AbstractState:
        kind = block.successor_edges[successor]
        if block.condition is None or kind is EdgeKind.SEQUENTIAL or out_fact.is_bottom():
            return out_fact
        return self.refine(block.condition, out_fact, kind is EdgeKind.BRANCH_TRUE)

    def return_values(self) -> dict[int, LiteralSet]:
        """Abstract value returned by each reachable exit block."""
        values: dict[int, LiteralSet] = {}
        for block_id in sorted(self.cfg.exit_block_ids):
            block = self.cfg.blocks[block_id]
            in_fact = self.get_in(block_id)
            if in_fact.is_bottom():
                continue
            returned = block.returned
            if returned is None:
                raise ValueError(f"exit block {block_id} does not end in a return")
            state = self.transfer(block, in_fact)
            if returned.value is None:
                values[block_id] = LiteralSet.of(None)
            else:
                values[block_id] = self.value_of(returned.value, state)
        return values

    def _assign(self, target: ast.expr, value: LiteralSet, state: AbstractState) -> None:
        if isinstance(target, ast.Name):
            state.set(target.id, value)
            return
        for n in ast.walk(target):
            if isinstance(n, ast.Name) and isinstance(n.ctx, ast.Store):
                state.set(n.id, LiteralSet.top())

    def variable_of(self, expr: ast.expr) -> str | None:
        """The tracked variable ``expr`` reads, if it is one."""
        if isinstance(expr, ast.Name) and expr.id in self.locals:
            return expr.id
        if is_parameter_read(expr, self.program.vector_name):
            index = self.evaluator.evaluate_index(expr.slice)
            if index is not None and index >= 0:
                return parameter_variable(self.program.vector_name, index)
        return None

    def value_of(self, expr: ast.expr, state: AbstractState) -> LiteralSet:
        """Abstract value of an expression in ``state``."""
        folded = self.evaluator.evaluate(expr)
        if folded is not None:
            return LiteralSet.of(folded.value)
        variable = self.variable_of(expr)
        if variable is not None:
            return state.get(variable)
        if isinstance(expr, ast.UnaryOp) and isinstance(expr.op, ast.Not):
            return self.value_of(expr.operand, state).map(lambda v: not v)
        return LiteralSet.top()

    def refine(self, test: ast.expr, state: AbstractState, outcome: bool) -> AbstractState:
        """Narrow ``state`` to the executions where ``test`` evaluates to ``outcome``."""
        if state.is_bottom():
            return state
        folded = self.evaluator.evaluate(test)
        if folded is not None:
            return state if bool(folded.value) is outcome else AbstractState.bottom()
        if isinstance(test, ast.UnaryOp) and isinstance(test.op, ast.Not):
            return self.refine(test.operand, state, not outcome)
        if isinstance(test, ast.BoolOp):
            return self._refine_bool_op(test, state, outcome)
        if isinstance(test, ast.Compare) and len(test.ops) == 1:
            if isinstance(test.ops[0], ast.Eq):
                return self._refine_equality(test.left, test.comparators[0], state, outcome)
            if isinstance(test.ops[0], ast.NotEq):
                return self._refine_equality(test.left, test.comparators[0], state, not outcome)
        if isinstance(test, ast.Name) and test.id in self.locals:
            narrowed = state.copy()
            narrowed.narrow(test.id, state.get(test.id).where_truthy(outcome))
            return narrowed
        return state

    def _refine_bool_op(self, test: ast.BoolOp, state: AbstractState, outcome: bool) -> AbstractState:
        # ``and`` is true only if every operand is; ``or`` is false only if every operand is.
        short_circuit = isinstance(test.op, ast.Or)
        if outcome is not short_circuit:
            for operand in test.values:
                state = self.refine(operand, state, outcome)
            return state
        result = AbstractState.bottom()
        remaining = state
        for operand in test.values:
            result = result.join(self.refine(operand, remaining, outcome), self.literal_cap)
            remaining = self.refine(operand, remaining, not outcome)
        return result

    def _refine_equality(
        self,
        left: ast.expr,
        right: ast.expr,
        state: AbstractState,
        equal: bool,
    ) -> AbstractState:
        left_value = self.value_of(left, state)
        right_value = self.value_of(right, state)
        if equal:
            if not left_value.may_intersect(right_value):
                return AbstractState.bottom()
            narrowed = state.copy()
            for expr, other in ((left, right_value), (right, left_value)):
                variable = self.variable_of(expr)
                if variable is not None and other.is_literal():
                    narrowed.narrow(variable, narrowed.get(variable).meet(other))
            return narrowed
        if left_value.must_equal(right_value):
            return AbstractState.bottom()
        narrowed = state.copy()
        for expr, other in ((left, right_value), (right, left_value)):
            variable = self.variable_of(expr)
            if variable is not None and other.is_singleton():
                (excluded,) = other.literals
                narrowed.narrow(variable, narrowed.get(variable).without(excluded))
        return narrowed


@dataclass(frozen=True)
class AnalysisVerdict:
    """
    Outcome of static analysis.
    Attributes:
        sound: The value set is exact
        values: Reachable literal return values (meaningful only when sound)
        reason: Why the verdict is unsound
        findings: Precision losses flagged by the soundness audit
    """

    sound: bool
    values: frozenset = field(default_factory=frozenset)
    reason: str = ""
    findings: tuple[Any, ...] = field(default_factory=tuple)

    @classmethod
    def sound_result(cls, values: frozenset) -> AnalysisVerdict:
        return cls(sound=True, values=values)

    @classmethod
    def unsound(cls, reason: str, findings: tuple[Any, ...] = ()) -> AnalysisVerdict:
        return cls(sound=False, reason=reason, findings=findings)


class ReachableValueAnalyzer:
    """
    Static reachable-value analysis of a decision program.
    Example:
        >>> analyzer = ReachableValueAnalyzer()
        >>> verdict = analyzer.analyze(program, evaluator)
        >>> verdict.sound, sorted(verdict.values)
        (True, [1, 4, 5, 6])
    """

    def __init__(self, literal_cap: int = DEFAULT_LITERAL_CAP):
        self.literal_cap = literal_cap

    def analyze(
        self,
        program: DecisionProgram,
        evaluator: ConstantEvaluator,
        param_count: int | None = None,
    ) -> AnalysisVerdict:
        """
        Analyze ``program``. The analyzer keeps no per-run state, so one
        instance may serve concurrent solves.
        Args:
            program: The decision program
            evaluator: Its constant evaluator
            param_count: Parameter vector width, used to resolve negative indices
        """
        logger = get_logger()
        try:
            cfg = CFGBuilder().build(program.function)
        except UnsupportedConstructError as e:
            logger.verbose(f"static analysis gives up: {e}", category="analysis")
            return AnalysisVerdict.unsound(str(e))
        flow = LiteralFlowAnalysis(cfg, program, evaluator, self.literal_cap)
        flow.analyze()
        logger.trace(
            f"fixpoint after {flow.iterations} iteration(s) over {len(cfg.blocks)} blocks",
            category="analysis",
        )
        returns = flow.return_values()
        for block_id, value in returns.items():
            logger.trace(f"block {block_id} returns {value}", category="analysis")
        findings = tuple(SoundnessAuditor().audit(flow))
        non_literal = sorted(b for b, value in returns.items() if not value.is_literal())
        if non_literal:
            lines = sorted(
                line for b in non_literal for line in cfg.blocks[b].line_numbers
            )
            where = f" (line {lines[-1]})" if lines else ""
            return AnalysisVerdict.unsound(
                f"a reachable return may yield a non-literal value{where}", findings
            )
        if findings:
            return AnalysisVerdict.unsound(
                f"precision lost for {', '.join(sorted({f.variable for f in findings}))}",
                findings,
            )
        candidates: set = set()
        for value in returns.values():
            candidates |= value.literals
        checker = PathFeasibilityChecker(program, evaluator, param_count)
        try:
            report = checker.check(candidates)
        except Inconclusive as e:
            logger.verbose(f"path feasibility is inconclusive: {e}", category="analysis")
            return AnalysisVerdict.unsound(f"cannot confirm reachability: {e}", findings)
        if report.infeasible:
            dropped = ", ".join(sorted(repr(v) for v in report.infeasible))
            logger.verbose(f"no parameter vector returns {dropped}", category="analysis")
        values = report.feasible
        logger.verbose(f"static analysis found {len(values)} value(s)", category="analysis")
        return AnalysisVerdict.sound_result(frozenset(values))


__all__ = [
    "AnalysisVerdict",
    "LiteralFlowAnalysis",
    "ReachableValueAnalyzer",
    "parameter_variable",
    "possibly_unassigned",
]
