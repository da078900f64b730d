"""Property-based testing infrastructure using Hypothesis.
Provides strategies for generating lattice elements and whole decision programs,
plus a stateful machine that checks the literal-set join under long random
sequences of updates.
"""

from __future__ import annotations

from hypothesis import strategies as st
from hypothesis.stateful import RuleBasedStateMachine, invariant, precondition, rule

from pyreach.analysis.abstract_domains import DEFAULT_LITERAL_CAP, LiteralSet

VECTOR = "parameters"


def literal_sets(max_size: int = DEFAULT_LITERAL_CAP) -> st.SearchStrategy:
    """Strategy for LiteralSet lattice elements, top and bottom included."""
    finite = st.frozensets(st.integers(0, 15), max_size=max_size).map(
        lambda values: LiteralSet(values, False)
    )
    return st.one_of(st.just(LiteralSet.top()), st.just(LiteralSet.bottom()), finite)


def _indent(lines: list[str]) -> list[str]:
    return ["    " + line for line in lines]


@st.composite
def parameter_conditions(draw, param_count: int = 4, result_name: str = "x") -> str:
    """Strategy for ``if`` tests over the parameter vector and the result local."""
    i = draw(st.integers(0, param_count - 1))
    j = draw(st.integers(0, param_count - 1))
    kind = draw(
        st.sampled_from(["read", "not", "and", "or", "equals", "result", "result_not"])
    )
    if kind == "read":
        return f"{VECTOR}[{i}]"
    if kind == "not":
        return f"not {VECTOR}[{i}]"
    if kind == "and":
        return f"{VECTOR}[{i}] and {VECTOR}[{j}]"
    if kind == "or":
        return f"{VECTOR}[{i}] or not {VECTOR}[{j}]"
    if kind == "equals":
        return f"{VECTOR}[{i}] == {draw(st.booleans())}"
    literal = draw(st.integers(0, 12))
    if kind == "result":
        return f"{result_name} == {literal}"
    return f"{result_name} != {literal}"


@st.composite
def decision_programs(
    draw,
    param_count: int = 4,
    max_depth: int = 3,
    max_statements: int = 3,
) -> str:
    """
    Strategy for decision programs with arbitrary, possibly correlated, tests.
    Every program assigns ``x`` first, so no path reads it unassigned.
    """
    literals = st.integers(0, 12)

    def block(depth: int) -> list[str]:
        lines: list[str] = []
        for _ in range(draw(st.integers(1, max_statements))):
            choice = draw(st.sampled_from(["assign", "if", "if_else", "return"]))
            if choice == "return":
                lines.append(draw(st.sampled_from(["return x", f"return {draw(literals)}"])))
                break
            if choice == "assign" or depth >= max_depth:
                lines.append(f"x = {draw(literals)}")
                continue
            lines.append(f"if {draw(parameter_conditions(param_count))}:")
            lines.extend(_indent(block(depth + 1)))
            if choice == "if_else":
                lines.append("else:")
                lines.extend(_indent(block(depth + 1)))
        return lines

    body = [f"x = {draw(literals)}"] + block(0) + ["return x"]
    return "\n".join(["def evaluate(parameters):"] + _indent(body)) + "\n"


@st.composite
def independent_decision_programs(
    draw,
    param_count: int = 5,
    max_depth: int = 3,
    max_statements: int = 3,
) -> str:
    """
    Strategy for decision programs in which every parameter is tested once
    and no test mentions a local. Every path through such a program is
    feasible, so the reachable set is exactly the union over paths.
    """
    literals = st.integers(0, 9)
    unused = list(range(param_count))

    def block(depth: int) -> list[str]:
        lines: list[str] = []
        for _ in range(draw(st.integers(1, max_statements))):
            choice = draw(st.sampled_from(["assign", "if", "if_else", "return"]))
            if choice == "return":
                lines.append(f"return {draw(literals)}")
                break
            if choice == "assign" or depth >= max_depth or not unused:
                lines.append(f"x = {draw(literals)}")
                continue
            index = unused.pop(draw(st.integers(0, len(unused) - 1)))
            negate = "not " if draw(st.booleans()) else ""
            lines.append(f"if {negate}{VECTOR}[{index}]:")
            lines.extend(_indent(block(depth + 1)))
            if choice == "if_else":
                lines.append("else:")
                lines.extend(_indent(block(depth + 1)))
        return lines

    body = [f"x = {draw(literals)}"] + block(0) + ["return x"]
    return "\n".join(["def evaluate(parameters):"] + _indent(body)) + "\n"


class LiteralSetJoinMachine(RuleBasedStateMachine):
    """Stateful test for the literal-set join.
    Accumulates joins of random values and checks that:
    1. the accumulator is an upper bound of everything joined so far
    2. it never holds more literals than the cap
    3. once widened to top it stays top
    """

    def __init__(self):
        super().__init__()
        self.accumulated = LiteralSet.bottom()
        self.seen: list[LiteralSet] = []
        self.widened = False

    @rule(value=literal_sets(max_size=4))
    def join_value(self, value):
        """Join a random literal set into the accumulator."""
        self.accumulated = self.accumulated.join(value)
        self.seen.append(value)
        self.widened = self.widened or self.accumulated.is_top()

    @precondition(lambda self: not self.accumulated.is_top())
    @rule(value=st.integers(0, 15))
    def exclude_value(self, value):
        """Narrowing by inequality only shrinks a finite set."""
        narrowed = self.accumulated.without(value)
        assert narrowed.leq(self.accumulated)
        assert value not in narrowed.literals

    @invariant()
    def is_upper_bound(self):
        assert all(value.leq(self.accumulated) for value in self.seen)

    @invariant()
    def within_cap(self):
        assert self.accumulated.is_top() or len(self.accumulated) <= DEFAULT_LITERAL_CAP

    @invariant()
    def widening_is_permanent(self):
        assert self.accumulated.is_top() == self.widened


__all__ = [
    "literal_sets",
    "parameter_conditions",
    "decision_programs",
    "independent_decision_programs",
    "LiteralSetJoinMachine",
]
