"""Compile-time constant folding for decision programs.
Integer arithmetic is translated to Z3 terms and reduced with the Z3
simplifier; anything that does not reduce to a numeral is not a constant.
"""

from __future__ import annotations

import ast
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import z3

LITERAL_TYPES = (bool, int, float, str, type(None))


@dataclass(frozen=True)
class Folded:
    """A successfully folded constant. Wraps the value so None can be a literal."""

    value: Any


class _NotConstant(Exception):
    pass


class _IntegerTermBuilder(ast.NodeVisitor):
    """Builds a Z3 integer term from an arithmetic expression."""

    def __init__(self, constants: Mapping[str, Any], context: z3.Context):
        self.constants = constants
        self.context = context

    def visit_Constant(self, node: ast.Constant) -> z3.ArithRef:
        if isinstance(node.value, bool):
            return z3.IntVal(int(node.value), self.context)
        if isinstance(node.value, int):
            return z3.IntVal(node.value, self.context)
        raise _NotConstant

    def visit_Name(self, node: ast.Name) -> z3.ArithRef:
        value = self.constants.get(node.id)
        if isinstance(value, int):
            return z3.IntVal(int(value), self.context)
        raise _NotConstant

    def visit_UnaryOp(self, node: ast.UnaryOp) -> z3.ArithRef:
        operand = self.visit(node.operand)
        if isinstance(node.op, ast.USub):
            return -operand
        if isinstance(node.op, ast.UAdd):
            return operand
        raise _NotConstant

    def visit_BinOp(self, node: ast.BinOp) -> z3.ArithRef:
        left = self.visit(node.left)
        right = self.visit(node.right)
        if isinstance(node.op, ast.Add):
            return left + right
        if isinstance(node.op, ast.Sub):
            return left - right
        if isinstance(node.op, ast.Mult):
            return left * right
        if isinstance(node.op, (ast.FloorDiv, ast.Mod)):
            # Z3 integer division is Euclidean; Python floors.
            dividend, divisor = numeral(left), numeral(right)
            if divisor == 0:
                raise _NotConstant
            if isinstance(node.op, ast.FloorDiv):
                return z3.IntVal(dividend // divisor, self.context)
            return z3.IntVal(dividend % divisor, self.context)
        raise _NotConstant

    def generic_visit(self, node: ast.AST) -> z3.ArithRef:
        raise _NotConstant


def numeral(term: z3.ArithRef) -> int:
    """Simplify a Z3 integer term and return it as a Python int."""
    simplified = z3.simplify(term)
    if not z3.is_int_value(simplified):
        raise _NotConstant
    return simplified.as_long()


class ConstantEvaluator:
    """
    Resolves compile-time constant sub-expressions to literal values.
    Known constants are the literal leaves of the expression plus the
    module-level names passed in ``constants``. Each evaluator owns its Z3
    context, so evaluators used from different threads never share one.
    """

    def __init__(self, constants: Mapping[str, Any] | None = None):
        self.constants: dict[str, Any] = dict(constants or {})
        self.context = z3.Context()

    def evaluate(self, expr: ast.expr) -> Folded | None:
        """Fold ``expr``; returns None when it is not a compile-time constant."""
        try:
            return Folded(self._fold(expr))
        except _NotConstant:
            return None

    def evaluate_index(self, expr: ast.expr) -> int | None:
        """Fold ``expr`` to an integer index, or None."""
        folded = self.evaluate(expr)
        if folded is None or not isinstance(folded.value, int):
            return None
        return int(folded.value)

    def _fold(self, expr: ast.expr) -> Any:
        if isinstance(expr, ast.Constant):
            if not isinstance(expr.value, LITERAL_TYPES):
                raise _NotConstant
            return expr.value
        if isinstance(expr, ast.Name):
            if expr.id not in self.constants:
                raise _NotConstant
            return self.constants[expr.id]
        if isinstance(expr, ast.UnaryOp):
            if isinstance(expr.op, ast.Not):
                return not self._fold(expr.operand)
            operand = self._fold(expr.operand)
            if isinstance(operand, float) and isinstance(expr.op, (ast.USub, ast.UAdd)):
                return -operand if isinstance(expr.op, ast.USub) else +operand
        if isinstance(expr, (ast.UnaryOp, ast.BinOp)):
            return numeral(_IntegerTermBuilder(self.constants, self.context).visit(expr))
        raise _NotConstant


__all__ = ["ConstantEvaluator", "Folded", "LITERAL_TYPES", "numeral"]
