"""
Front-end for PyReach.
Turns Python source text into the two artifacts the solver consumes:
- a DecisionProgram: the parsed (and rewritten) entry-point function that
  the static analyzer walks
- a callable entry point that the exhaustive executor invokes
together with a ConstantEvaluator for compile-time index expressions.
The decision function takes the boolean parameter vector as its only
parameter, either as a sequence (``def evaluate(parameters)``) or as
varargs (``def evaluate(*parameters)``).
"""

from __future__ import annotations

import ast
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from pyreach.core.constants import ConstantEvaluator
from pyreach.logging import get_logger

DEFAULT_ENTRY_POINT = "evaluate"
MODULE_NAME = "__pyreach__"

SYNTAX_ERROR = "PR0001"
MISSING_ENTRY_POINT = "PR0002"
BAD_SIGNATURE = "PR0003"
MODULE_INIT_FAILED = "PR0004"

EntryPoint = Callable[[Sequence[bool]], Any]


@dataclass(frozen=True)
class Diagnostic:
    """A front-end error message."""

    id: str
    message: str
    line: int | None = None

    def format(self) -> str:
        return f"{self.id}: {self.message}"


@dataclass(frozen=True)
class DecisionProgram:
    """
    The analyzable form of a decision function.
    Attributes:
        source: Source text as given to the front-end
        module: Module tree after rewriting
        function: The entry-point function definition inside ``module``
        vector_name: Name of the boolean parameter vector
        result_names: Locals returned by ``return <name>`` statements
        local_names: Every local name assigned inside the function
    """

    source: str
    module: ast.Module
    function: ast.FunctionDef
    vector_name: str
    result_names: frozenset[str] = field(default_factory=frozenset)
    local_names: frozenset[str] = field(default_factory=frozenset)

    @property
    def name(self) -> str:
        return self.function.name

    def iter_conditions(self) -> Iterator[ast.expr]:
        """Yield the test expression of every ``if`` in the function."""
        for node in ast.walk(self.function):
            if isinstance(node, ast.If):
                yield node.test

    def iter_parameter_reads(self) -> Iterator[ast.Subscript]:
        """Yield every ``<vector>[<index>]`` read in the function body."""
        for stmt in self.function.body:
            for node in ast.walk(stmt):
                if is_parameter_read(node, self.vector_name):
                    yield node


@dataclass(frozen=True)
class CompileSuccess:
    program: DecisionProgram
    constant_evaluator: ConstantEvaluator
    entry_point: EntryPoint

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class CompileFailure:
    diagnostics: tuple[Diagnostic, ...]

    @property
    def success(self) -> bool:
        return False


CompileResult = CompileSuccess | CompileFailure


def is_parameter_read(node: ast.AST, vector_name: str) -> bool:
    """Check whether ``node`` is ``<vector_name>[...]`` with a non-slice index."""
    return (
        isinstance(node, ast.Subscript)
        and isinstance(node.value, ast.Name)
        and node.value.id == vector_name
        and not isinstance(node.slice, ast.Slice)
    )


def compile_source(
    source: str,
    *,
    entry_point: str = DEFAULT_ENTRY_POINT,
    rewriters: Sequence[ast.NodeTransformer] = (),
    filename: str = "<decision>",
) -> CompileResult:
    """
    Parse, rewrite and compile a decision program.
    Args:
        source: Python source text
        entry_point: Name of the top-level decision function
        rewriters: AST transformers applied, in order, before compilation
        filename: File name used in code objects and messages
    Returns:
        CompileSuccess, or CompileFailure carrying diagnostics
    """
    logger = get_logger()
    source = source.lstrip("\ufeff")
    try:
        module = ast.parse(source, filename=filename)
    except SyntaxError as e:
        return CompileFailure(
            (Diagnostic(SYNTAX_ERROR, f"{e.msg} (line {e.lineno})", e.lineno),)
        )
    for rewriter in rewriters:
        module = rewriter.visit(module)
    ast.fix_missing_locations(module)
    function = _find_entry_point(module, entry_point)
    if function is None:
        return CompileFailure(
            (Diagnostic(MISSING_ENTRY_POINT, f"no top-level function named '{entry_point}'"),)
        )
    vector_name, is_varargs = _vector_parameter(function)
    if vector_name is None:
        return CompileFailure(
            (
                Diagnostic(
                    BAD_SIGNATURE,
                    f"'{entry_point}' must take exactly one parameter vector",
                    function.lineno,
                ),
            )
        )
    local_names = _assigned_names(function)
    evaluator = ConstantEvaluator(_final_constants(module, shadowed=local_names | {vector_name}))
    namespace: dict[str, Any] = {"__name__": MODULE_NAME}
    try:
        code = compile(module, filename, "exec")
        exec(code, namespace)
    except KeyboardInterrupt:
        raise
    except BaseException as e:
        return CompileFailure(
            (Diagnostic(MODULE_INIT_FAILED, f"{type(e).__name__}: {e}"),)
        )
    func = namespace[entry_point]
    if is_varargs:

        def call(vector: Sequence[bool]) -> Any:
            return func(*vector)

    else:

        def call(vector: Sequence[bool]) -> Any:
            return func(vector)

    program = DecisionProgram(
        source=source,
        module=module,
        function=function,
        vector_name=vector_name,
        result_names=_returned_names(function),
        local_names=local_names,
    )
    logger.debug(
        f"compiled '{entry_point}' (vector '{vector_name}', "
        f"{len(local_names)} locals, returns {sorted(program.result_names)})",
        category="frontend",
    )
    return CompileSuccess(program=program, constant_evaluator=evaluator, entry_point=call)


def _find_entry_point(module: ast.Module, name: str) -> ast.FunctionDef | None:
    for stmt in module.body:
        if isinstance(stmt, ast.FunctionDef) and stmt.name == name:
            return stmt
    return None


def _vector_parameter(function: ast.FunctionDef) -> tuple[str | None, bool]:
    args = function.args
    if args.kwonlyargs or args.kwarg is not None or args.defaults:
        return None, False
    positional = args.posonlyargs + args.args
    if len(positional) == 1 and args.vararg is None:
        return positional[0].arg, False
    if not positional and args.vararg is not None:
        return args.vararg.arg, True
    return None, False


def _assigned_names(function: ast.FunctionDef) -> frozenset[str]:
    names: set[str] = set()
    for node in ast.walk(function):
        if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Store):
            names.add(node.id)
    return frozenset(names)


def _returned_names(function: ast.FunctionDef) -> frozenset[str]:
    names: set[str] = set()
    for node in ast.walk(function):
        if isinstance(node, ast.Return) and isinstance(node.value, ast.Name):
            names.add(node.value.id)
    return frozenset(names)


def _is_final(annotation: ast.expr) -> bool:
    if isinstance(annotation, ast.Subscript):
        annotation = annotation.value
    if isinstance(annotation, ast.Name):
        return annotation.id == "Final"
    if isinstance(annotation, ast.Attribute):
        return annotation.attr == "Final"
    return False


def _final_constants(module: ast.Module, shadowed: frozenset[str]) -> dict[str, Any]:
    """Fold module-level ``NAME: Final = <expr>`` bindings in source order."""
    evaluator = ConstantEvaluator()
    for stmt in module.body:
        if not (
            isinstance(stmt, ast.AnnAssign)
            and isinstance(stmt.target, ast.Name)
            and stmt.value is not None
            and _is_final(stmt.annotation)
        ):
            continue
        folded = evaluator.evaluate(stmt.value)
        if folded is not None and stmt.target.id not in shadowed:
            evaluator.constants[stmt.target.id] = folded.value
    return evaluator.constants


__all__ = [
    "Diagnostic",
    "DecisionProgram",
    "CompileSuccess",
    "CompileFailure",
    "CompileResult",
    "EntryPoint",
    "compile_source",
    "is_parameter_read",
    "DEFAULT_ENTRY_POINT",
    "SYNTAX_ERROR",
    "MISSING_ENTRY_POINT",
    "BAD_SIGNATURE",
    "MODULE_INIT_FAILED",
]
