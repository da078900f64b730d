"""
Predicate normalization.
Rewrites every parameter-vector read used inside an ``if`` condition into an
explicit comparison against ``True``::

    if parameters[0] and not parameters[0]:
becomes
    if parameters[0] == True and not parameters[0] == True:

The literal-set analysis only narrows on equality against a tracked
variable, so a bare boolean read would leave both branches open. The rewrite
does not change runtime behavior for boolean vectors. Reads that already are
an operand of ``==`` or ``!=`` are left untouched, as are reads outside
``if`` tests.
"""

from __future__ import annotations

import ast

from pyreach.core.program import is_parameter_read
from pyreach.logging import get_logger


def vector_name_of(function: ast.FunctionDef | ast.AsyncFunctionDef) -> str | None:
    """Name of the parameter vector of a decision function, if it has one."""
    args = function.args
    positional = args.posonlyargs + args.args
    if len(positional) == 1 and args.vararg is None:
        return positional[0].arg
    if not positional and args.vararg is not None:
        return args.vararg.arg
    return None


class PredicateNormalizer(ast.NodeTransformer):
    """Expands bare parameter reads in ``if`` tests to ``== True`` comparisons."""

    def __init__(self) -> None:
        self.rewrites = 0
        self._vectors: list[str | None] = []

    def visit_FunctionDef(self, node: ast.FunctionDef) -> ast.FunctionDef:
        self._vectors.append(vector_name_of(node))
        self.generic_visit(node)
        self._vectors.pop()
        return node

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> ast.AsyncFunctionDef:
        self._vectors.append(vector_name_of(node))
        self.generic_visit(node)
        self._vectors.pop()
        return node

    def visit_If(self, node: ast.If) -> ast.If:
        vector = self._vectors[-1] if self._vectors else None
        if vector is not None:
            before = self.rewrites
            node.test = self._expand(node.test, vector, under_equality=False)
            if self.rewrites != before:
                get_logger().debug(
                    f"line {node.lineno}: expanded {self.rewrites - before} parameter read(s)",
                    category="normalize",
                )
        self.generic_visit(node)
        return node

    def _expand(self, expr: ast.expr, vector: str, under_equality: bool) -> ast.expr:
        if is_parameter_read(expr, vector):
            if under_equality:
                return expr
            self.rewrites += 1
            comparison = ast.Compare(left=expr, ops=[ast.Eq()], comparators=[ast.Constant(True)])
            return ast.copy_location(comparison, expr)
        if isinstance(expr, ast.Compare):
            equality = len(expr.ops) == 1 and isinstance(expr.ops[0], (ast.Eq, ast.NotEq))
            expr.left = self._expand(expr.left, vector, equality)
            expr.comparators = [self._expand(c, vector, equality) for c in expr.comparators]
            return expr
        for name, value in ast.iter_fields(expr):
            if isinstance(value, ast.expr):
                setattr(expr, name, self._expand(value, vector, False))
            elif isinstance(value, list):
                setattr(
                    expr,
                    name,
                    [
                        self._expand(item, vector, False) if isinstance(item, ast.expr) else item
                        for item in value
                    ],
                )
        return expr


def normalize_predicates(tree: ast.Module) -> ast.Module:
    """Apply PredicateNormalizer to a module and fix up locations."""
    tree = PredicateNormalizer().visit(tree)
    return ast.fix_missing_locations(tree)


__all__ = ["PredicateNormalizer", "normalize_predicates", "vector_name_of"]
