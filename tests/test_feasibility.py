"""Tests for the Z3 path feasibility checker."""

from __future__ import annotations

import pytest

from pyreach.analysis.feasibility import Inconclusive, PathFeasibilityChecker

from .conftest import NON_CONSTANT_INDEX, SAMPLE_1, program


def check(compile_program, source, candidates, param_count=None):
    compiled = compile_program(source)
    checker = PathFeasibilityChecker(compiled.program, compiled.constant_evaluator, param_count)
    return checker.check(candidates)


class TestFeasibleValues:
    def test_every_sample_value_is_feasible(self, compile_program):
        report = check(compile_program, SAMPLE_1, {1, 4, 5, 6})
        assert report.feasible == {1, 4, 5, 6}
        assert report.infeasible == frozenset()

    def test_value_needing_contradictory_tests(self, compile_program):
        source = program(
            "x = 1\nif parameters[0]:\n    x = 2\nif not parameters[0]:\n    x = 3\nreturn x"
        )
        report = check(compile_program, source, {1, 2, 3})
        assert report.feasible == {2, 3}
        assert report.infeasible == {1}

    def test_value_never_returned(self, compile_program):
        report = check(compile_program, program("return 1"), {1, 2})
        assert report.infeasible == {2}

    def test_implicit_return_none(self, compile_program):
        report = check(compile_program, program("if parameters[0]:\n    return 1"), {1, None})
        assert report.feasible == {1, None}

    def test_implicit_return_unreachable(self, compile_program):
        source = program("if parameters[0]:\n    return 1\nelse:\n    return 2")
        report = check(compile_program, source, {1, 2, None})
        assert report.infeasible == {None}

    def test_index_computed_from_a_local(self, compile_program):
        report = check(compile_program, NON_CONSTANT_INDEX, {1, 2, 3})
        assert report.feasible == {1, 3}

    def test_short_circuit_value(self, compile_program):
        source = program("x = parameters[0] or 5\nreturn x")
        report = check(compile_program, source, {True, False, 5})
        assert report.feasible == {True, 5}

    def test_conditional_expression(self, compile_program):
        source = program("return 'a' if parameters[0] else ('b' if parameters[0] else 'c')")
        report = check(compile_program, source, {"a", "b", "c"})
        assert report.feasible == {"a", "c"}

    def test_chained_comparison(self, compile_program):
        source = program(
            "x = 0\nif parameters[0]:\n    x = 1\nif parameters[1]:\n    x = 2\n"
            "if 0 < x < 2:\n    return 'one'\nreturn 'other'"
        )
        report = check(compile_program, source, {"one", "other"})
        assert report.feasible == {"one", "other"}

    def test_negative_index_with_known_width(self, compile_program):
        source = program("x = 1\nif parameters[-1] and not parameters[1]:\n    x = 2\nreturn x")
        report = check(compile_program, source, {1, 2}, param_count=2)
        assert report.feasible == {1}

    def test_identity_with_none(self, compile_program):
        source = program(
            "x = None\nif parameters[0]:\n    x = 3\nif x is None:\n    return 0\nreturn x"
        )
        report = check(compile_program, source, {0, 3, None})
        assert report.feasible == {0, 3}


class TestInconclusive:
    @pytest.mark.parametrize(
        "body",
        [
            "if len(parameters) > 1:\n    return 1\nreturn 2",
            "x = 1\nif GLOBAL_FLAG:\n    x = 2\nreturn x",
            "x = 0\nif parameters[0]:\n    x = 1\nreturn 1 // x",
            "x = [1]\nreturn 1",
        ],
    )
    def test_unencodable_functions(self, compile_program, body):
        with pytest.raises(Inconclusive):
            check(compile_program, "GLOBAL_FLAG = True\n" + program(body), {1, 2})

    def test_negative_index_without_width(self, compile_program):
        with pytest.raises(Inconclusive, match="cannot resolve parameter index -1"):
            check(compile_program, program("return parameters[-1]"), {False, True})

    def test_index_past_the_width(self, compile_program):
        with pytest.raises(Inconclusive, match="out of range"):
            check(compile_program, program("return parameters[3]"), {False, True}, param_count=2)

    def test_identity_between_numbers(self, compile_program):
        source = program(
            "x = 1\ny = 2\nif parameters[0]:\n    x = 2\nif x is y:\n    return 0\nreturn x"
        )
        with pytest.raises(Inconclusive, match="identity"):
            check(compile_program, source, {0, 1})
