"""
Path feasibility of reachable return values.
The literal-set lattice keeps one set per variable and forgets how
variables relate to each other, so a join can pair a value with a path no
parameter vector actually takes:

    x = 1
    if parameters[0]:
        x = 2
    if not parameters[0]:
        x = 3
    return x            # the lattice says {1, 2, 3}; only {2, 3} happen

The checker re-reads the function with Z3. There is one Bool per
parameter, and every local is a value table mapping each literal it may
hold to the condition under which it holds it. A candidate value survives
only if some vector reaches a return that yields it. Constructs the
checker cannot encode exactly make the check inconclusive.
"""

from __future__ import annotations

import ast
import itertools
import operator
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

import z3

from pyreach.core.constants import ConstantEvaluator
from pyreach.core.program import DecisionProgram, is_parameter_read
from pyreach.logging import get_logger

MAX_COMBINATIONS = 1024
MAX_EXPONENT = 4096
DEFAULT_TIMEOUT_MS = 5000

ValueTable = dict[Any, z3.BoolRef]

_UNARY: dict[type, Callable[[Any], Any]] = {
    ast.Not: operator.not_,
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
    ast.Invert: operator.invert,
}


def _bounded(op: Callable[[Any, Any], Any]) -> Callable[[Any, Any], Any]:
    def apply(left: Any, right: Any) -> Any:
        if isinstance(right, int) and abs(right) > MAX_EXPONENT:
            raise Inconclusive(f"operand {right} is too large to evaluate")
        return op(left, right)

    return apply


_BINARY: dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: _bounded(operator.pow),
    ast.LShift: _bounded(operator.lshift),
    ast.RShift: operator.rshift,
    ast.BitOr: operator.or_,
    ast.BitXor: operator.xor,
    ast.BitAnd: operator.and_,
}

_COMPARE: dict[type, Callable[[Any, Any], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda left, right: left in right,
    ast.NotIn: lambda left, right: left not in right,
}

_SINGLETONS = (None, True, False)


class Inconclusive(Exception):
    """The function uses something the checker cannot encode exactly."""


@dataclass(frozen=True)
class FeasibilityReport:
    """Candidates split by whether some parameter vector returns them."""

    feasible: frozenset = field(default_factory=frozenset)
    infeasible: frozenset = field(default_factory=frozenset)


class PathFeasibilityChecker:
    """
    Decides, for each candidate return value, whether a parameter vector
    returns it.
    Args:
        program: The decision program
        evaluator: Constant folder for indices and module constants
        param_count: Width of the parameter vector, when known; needed to
            resolve negative indices
        timeout_ms: Z3 timeout per candidate
    Example:
        >>> checker = PathFeasibilityChecker(program, evaluator, param_count=1)
        >>> sorted(checker.check({1, 2, 3}).feasible)
        [2, 3]
    """

    def __init__(
        self,
        program: DecisionProgram,
        evaluator: ConstantEvaluator,
        param_count: int | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ):
        self.program = program
        self.evaluator = evaluator
        self.param_count = param_count
        self.timeout_ms = timeout_ms
        self.context = z3.Context()
        self._true = z3.BoolVal(True, self.context)
        self._false = z3.BoolVal(False, self.context)
        self._parameters: dict[int, z3.BoolRef] = {}
        self._returns: list[tuple[ValueTable, z3.BoolRef]] = []

    def check(self, candidates: Iterable[Any]) -> FeasibilityReport:
        """
        Split ``candidates`` into feasible and infeasible values.
        Raises:
            Inconclusive: the function cannot be encoded, or Z3 gave up
        """
        self._encode()
        feasible: set[Any] = set()
        infeasible: set[Any] = set()
        for value in candidates:
            if self._is_returned(value):
                feasible.add(value)
            else:
                infeasible.add(value)
        return FeasibilityReport(frozenset(feasible), frozenset(infeasible))

    def _encode(self) -> None:
        self._parameters = {}
        self._returns = []
        end = self._body(self.program.function.body, self._true, {})
        if end is not None:
            self._returns.append(({None: self._true}, end))

    def _is_returned(self, value: Any) -> bool:
        paths = [
            z3.And(reach, table[value]) for table, reach in self._returns if value in table
        ]
        if not paths:
            return False
        solver = z3.Solver(ctx=self.context)
        solver.set("timeout", self.timeout_ms)
        solver.add(z3.Or(*paths))
        result = solver.check()
        if result == z3.sat:
            return True
        if result == z3.unsat:
            get_logger().trace(f"no parameter vector returns {value!r}", category="analysis")
            return False
        raise Inconclusive(f"solver returned {result} for value {value!r}")

    def _body(
        self, body: Sequence[ast.stmt], reach: z3.BoolRef, env: dict[str, ValueTable]
    ) -> z3.BoolRef | None:
        """Encode ``body`` in place; returns the fall-through condition, or None."""
        for stmt in body:
            if isinstance(stmt, ast.Return):
                table = (
                    {None: self._true} if stmt.value is None else self._table(stmt.value, env)
                )
                self._returns.append((table, reach))
                return None
            if isinstance(stmt, ast.If):
                next_reach = self._branch(stmt, reach, env)
                if next_reach is None:
                    return None
                reach = next_reach
            elif isinstance(stmt, ast.Assign):
                table = self._table(stmt.value, env)
                for target in stmt.targets:
                    self._bind(target, table, env)
            elif isinstance(stmt, ast.AnnAssign):
                if stmt.value is not None:
                    self._bind(stmt.target, self._table(stmt.value, env), env)
            elif isinstance(stmt, ast.Expr):
                self._table(stmt.value, env)
            elif not isinstance(stmt, ast.Pass):
                raise Inconclusive(f"cannot encode {type(stmt).__name__} (line {stmt.lineno})")
        return reach

    def _branch(
        self, stmt: ast.If, reach: z3.BoolRef, env: dict[str, ValueTable]
    ) -> z3.BoolRef | None:
        test = self._table(stmt.test, env)
        truthy = [guard for value, guard in test.items() if value]
        falsy = [guard for value, guard in test.items() if not value]
        then_env = dict(env)
        else_env = dict(env)
        then_reach = self._body(stmt.body, self._and(reach, self._or(truthy)), then_env)
        else_reach = self._body(stmt.orelse, self._and(reach, self._or(falsy)), else_env)
        env.clear()
        if then_reach is None and else_reach is None:
            return None
        if then_reach is None or else_reach is None:
            env.update(else_env if then_reach is None else then_env)
            return else_reach if then_reach is None else then_reach
        for name in then_env.keys() & else_env.keys():
            then_table, else_table = then_env[name], else_env[name]
            if then_table is else_table:
                env[name] = then_table
                continue
            merged: ValueTable = {}
            for value in then_table.keys() | else_table.keys():
                merged[value] = self._or(
                    [
                        self._and(then_reach, then_table.get(value, self._false)),
                        self._and(else_reach, else_table.get(value, self._false)),
                    ]
                )
            env[name] = merged
        return self._or([then_reach, else_reach])

    def _bind(self, target: ast.expr, table: ValueTable, env: dict[str, ValueTable]) -> None:
        if not isinstance(target, ast.Name):
            raise Inconclusive(f"cannot encode assignment to {type(target).__name__}")
        env[target.id] = table

    def _table(self, expr: ast.expr, env: dict[str, ValueTable]) -> ValueTable:
        """Value table of ``expr``: each possible value and when it occurs."""
        folded = self.evaluator.evaluate(expr)
        if folded is not None:
            return {folded.value: self._true}
        if isinstance(expr, ast.Name):
            if expr.id not in env:
                raise Inconclusive(f"'{expr.id}' is not a known local (line {expr.lineno})")
            return env[expr.id]
        if is_parameter_read(expr, self.program.vector_name):
            return self._parameter_read(expr, env)
        if isinstance(expr, ast.UnaryOp) and type(expr.op) in _UNARY:
            return self._combine([self._table(expr.operand, env)], _UNARY[type(expr.op)])
        if isinstance(expr, ast.BinOp) and type(expr.op) in _BINARY:
            tables = [self._table(expr.left, env), self._table(expr.right, env)]
            return self._combine(tables, _BINARY[type(expr.op)])
        if isinstance(expr, ast.Compare):
            tables = [self._table(operand, env) for operand in [expr.left, *expr.comparators]]
            return self._combine(tables, lambda *values: _compare(expr.ops, values))
        if isinstance(expr, ast.BoolOp):
            tables = [self._table(operand, env) for operand in expr.values]
            return self._combine(tables, lambda *values: _bool_op(expr.op, values))
        if isinstance(expr, ast.IfExp):
            tables = [
                self._table(expr.test, env),
                self._table(expr.body, env),
                self._table(expr.orelse, env),
            ]
            return self._combine(tables, lambda test, body, orelse: body if test else orelse)
        if isinstance(expr, ast.Tuple) and isinstance(expr.ctx, ast.Load):
            return self._combine([self._table(item, env) for item in expr.elts], _pack)
        raise Inconclusive(
            f"cannot encode {type(expr).__name__} (line {getattr(expr, 'lineno', '?')})"
        )

    def _parameter_read(self, expr: ast.Subscript, env: dict[str, ValueTable]) -> ValueTable:
        index = self.evaluator.evaluate_index(expr.slice)
        if index is not None:
            return self._parameter(index)
        result: ValueTable = {}
        for value, guard in self._table(expr.slice, env).items():
            if not isinstance(value, int):
                raise Inconclusive(f"parameter index {value!r} is not an integer")
            for bit, bit_guard in self._parameter(int(value)).items():
                reached = self._and(guard, bit_guard)
                result[bit] = self._or([result.get(bit, self._false), reached])
        return result

    def _parameter(self, index: int) -> ValueTable:
        if index < 0:
            if self.param_count is None or index < -self.param_count:
                raise Inconclusive(f"cannot resolve parameter index {index}")
            index += self.param_count
        elif self.param_count is not None and index >= self.param_count:
            raise Inconclusive(f"parameter index {index} is out of range")
        if index not in self._parameters:
            self._parameters[index] = z3.Bool(f"p{index}", self.context)
        bit = self._parameters[index]
        return {True: bit, False: z3.Not(bit)}

    def _combine(self, tables: list[ValueTable], apply: Callable[..., Any]) -> ValueTable:
        size = 1
        for table in tables:
            size *= len(table)
        if size > MAX_COMBINATIONS:
            raise Inconclusive(f"{size} value combinations exceed {MAX_COMBINATIONS}")
        result: ValueTable = {}
        for combination in itertools.product(*(table.items() for table in tables)):
            values = [value for value, _ in combination]
            try:
                value = apply(*values)
                hash(value)
            except Inconclusive:
                raise
            except Exception as e:
                raise Inconclusive(f"evaluating with {values!r} raised {type(e).__name__}") from e
            guard = self._true
            for _, operand_guard in combination:
                guard = self._and(guard, operand_guard)
            result[value] = self._or([result.get(value, self._false), guard])
        return result

    def _and(self, left: z3.BoolRef, right: z3.BoolRef) -> z3.BoolRef:
        if z3.is_true(left):
            return right
        if z3.is_true(right):
            return left
        if z3.is_false(left) or z3.is_false(right):
            return self._false
        return z3.And(left, right)

    def _or(self, guards: list[z3.BoolRef]) -> z3.BoolRef:
        kept = [guard for guard in guards if not z3.is_false(guard)]
        if any(z3.is_true(guard) for guard in kept):
            return self._true
        if not kept:
            return self._false
        return kept[0] if len(kept) == 1 else z3.Or(*kept)


def _compare(ops: list[ast.cmpop], values: Sequence[Any]) -> bool:
    for op, left, right in zip(ops, values, values[1:]):
        if isinstance(op, (ast.Is, ast.IsNot)):
            if not any(operand is s for operand in (left, right) for s in _SINGLETONS):
                raise Inconclusive("identity test between non-singletons")
            outcome = (left is right) is isinstance(op, ast.Is)
        else:
            outcome = bool(_COMPARE[type(op)](left, right))
        if not outcome:
            return False
    return True


def _bool_op(op: ast.boolop, values: Sequence[Any]) -> Any:
    for value in values[:-1]:
        if bool(value) is isinstance(op, ast.Or):
            return value
    return values[-1]


def _pack(*values: Any) -> tuple:
    return values


__all__ = [
    "FeasibilityReport",
    "Inconclusive",
    "PathFeasibilityChecker",
    "MAX_COMBINATIONS",
]
