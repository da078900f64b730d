"""Tests for control flow graphs, the reachable-value analyzer and the soundness audit."""

from __future__ import annotations

import ast

import pytest

from pyreach.analysis.abstract_domains import LiteralSet
from pyreach.analysis.abstract_interpreter import (
    LiteralFlowAnalysis,
    ReachableValueAnalyzer,
    possibly_unassigned,
)
from pyreach.analysis.flow_sensitive import CFGBuilder, EdgeKind
from pyreach.analysis.soundness import SoundnessAuditor
from pyreach.core.exceptions import UnsupportedConstructError

from .conftest import (
    DEAD_EQUALS,
    DEAD_NESTED,
    DEAD_SAME_IF,
    ELEVEN_LITERALS,
    NO_PARAMS,
    SAMPLE_1,
    SAMPLE_2,
    WITHOUT_ARITHMETIC,
    program,
)


def build(source: str):
    function = ast.parse(source).body[0]
    return CFGBuilder().build(function)


class TestCFGBuilder:
    def test_straight_line_is_one_block(self):
        cfg = build(NO_PARAMS)
        assert len(cfg.blocks) == 1
        assert cfg.exit_block_ids == {cfg.entry_block_id}

    def test_if_creates_branch_and_join(self):
        cfg = build(program("x = 1\nif parameters[0]:\n    x = 2\nreturn x"))
        entry = cfg.get_block(cfg.entry_block_id)
        assert entry.is_conditional()
        kinds = sorted(kind.name for kind in entry.successor_edges.values())
        assert kinds == ["BRANCH_FALSE", "BRANCH_TRUE"]
        (exit_id,) = cfg.exit_block_ids
        assert len(cfg.get_predecessors(exit_id)) == 2

    def test_early_return_leaves_the_graph(self):
        cfg = build(program("if parameters[0]:\n    return 1\nreturn 2"))
        assert len(cfg.exit_block_ids) == 2
        for block_id in cfg.exit_block_ids:
            assert cfg.get_successors(block_id) == set()

    def test_both_arms_return(self):
        cfg = build(program("if parameters[0]:\n    return 1\nelse:\n    return 2\nx = 3"))
        assert len(cfg.exit_block_ids) == 2
        assert all(
            not any(isinstance(s, ast.Assign) for s in block.statements)
            for block in cfg.blocks.values()
        )

    def test_implicit_return_none(self):
        cfg = build(program("x = 1"))
        (exit_id,) = cfg.exit_block_ids
        terminator = cfg.get_block(exit_id).get_terminator()
        assert isinstance(terminator, ast.Return)
        assert terminator.value.value is None

    def test_elif_chain(self):
        cfg = build(
            program(
                "if parameters[0]:\n    x = 1\nelif parameters[1]:\n    x = 2\n"
                "else:\n    x = 3\nreturn x"
            )
        )
        conditional = [b for b in cfg.blocks.values() if b.is_conditional()]
        assert len(conditional) == 2

    def test_forward_order_puts_predecessors_first(self):
        cfg = build(SAMPLE_1)
        seen: set[int] = set()
        for block in cfg.iter_blocks_forward():
            assert block.predecessors <= seen
            seen.add(block.id)

    @pytest.mark.parametrize(
        "statement",
        [
            "for i in range(3):\n    x = i",
            "while parameters[0]:\n    x = 1",
            "try:\n    x = 1\nexcept Exception:\n    x = 2",
            "x += 1",
            "raise ValueError()",
        ],
    )
    def test_unsupported_statements(self, statement):
        with pytest.raises(UnsupportedConstructError):
            build(program(f"x = 0\n{statement}\nreturn x"))


def analyze(compile_program, source: str, literal_cap: int = 10):
    compiled = compile_program(source)
    return ReachableValueAnalyzer(literal_cap).analyze(
        compiled.program, compiled.constant_evaluator
    )


class TestReachableValueAnalyzer:
    @pytest.mark.parametrize(
        "source, expected",
        [
            (SAMPLE_1, {1, 4, 5, 6}),
            (SAMPLE_2, {1, 4, 5, 6}),
            (DEAD_SAME_IF, {1}),
            (DEAD_EQUALS, {1, 2}),
            (DEAD_NESTED, {1, 2, 3}),
            (WITHOUT_ARITHMETIC, {1, 3, 4}),
            (NO_PARAMS, {1}),
        ],
    )
    def test_reference_programs(self, compile_program, source, expected):
        verdict = analyze(compile_program, source)
        assert verdict.sound
        assert verdict.values == expected

    def test_literal_cap_overflow_is_unsound(self, compile_program):
        verdict = analyze(compile_program, ELEVEN_LITERALS)
        assert not verdict.sound
        assert any(f.variable == "x" for f in verdict.findings)

    def test_larger_cap_keeps_precision(self, compile_program):
        verdict = analyze(compile_program, ELEVEN_LITERALS, literal_cap=11)
        assert verdict.sound
        assert verdict.values == set(range(1, 12))

    def test_early_returns_are_unioned(self, compile_program):
        source = program(
            "if parameters[0]:\n    return 'a'\nif parameters[1]:\n    return 'b'\nreturn None"
        )
        assert analyze(compile_program, source).values == {"a", "b", None}

    def test_implicit_none(self, compile_program):
        source = program("if parameters[0]:\n    return 1")
        assert analyze(compile_program, source).values == {1, None}

    def test_dead_early_return_is_excluded(self, compile_program):
        source = program(
            "if parameters[0]:\n    if not parameters[0]:\n        return 9\n    return 1\nreturn 2"
        )
        assert analyze(compile_program, source).values == {1, 2}

    def test_non_literal_return_is_unsound(self, compile_program):
        verdict = analyze(compile_program, program("return parameters[0] + 1"))
        assert not verdict.sound
        assert "non-literal" in verdict.reason

    def test_returning_a_parameter_is_literal(self, compile_program):
        verdict = analyze(compile_program, program("return parameters[3]"))
        assert verdict.values == {False, True}

    def test_returning_a_narrowed_parameter(self, compile_program):
        source = program("if parameters[0]:\n    return parameters[0]\nreturn 0")
        verdict = analyze(compile_program, source)
        assert verdict.values == {True, 0}

    def test_unsupported_construct_is_unsound(self, compile_program):
        verdict = analyze(compile_program, program("x = 0\nfor i in range(2):\n    x = i\nreturn x"))
        assert not verdict.sound
        assert "For" in verdict.reason

    def test_possibly_unassigned_local_is_unsound(self, compile_program):
        verdict = analyze(compile_program, program("if parameters[0]:\n    x = 1\nreturn x"))
        assert not verdict.sound

    def test_inequality_narrows_locals(self, compile_program):
        source = program("x = 1\nif parameters[0]:\n    x = 2\nif x != 1:\n    return x\nreturn 0")
        assert analyze(compile_program, source).values == {2, 0}

    def test_truthiness_of_locals(self, compile_program):
        source = program(
            "flag = False\nif parameters[0]:\n    flag = True\nif flag:\n    return 'on'\nreturn 'off'"
        )
        assert analyze(compile_program, source).values == {"on", "off"}

    def test_constant_condition(self, compile_program):
        source = program("x = 1\nif False:\n    x = 2\nreturn x")
        assert analyze(compile_program, source).values == {1}

    def test_or_condition(self, compile_program):
        source = program(
            "x = 1\nif parameters[0] or parameters[1]:\n    x = 2\n"
            "else:\n    if parameters[0]:\n        x = 3\nreturn x"
        )
        assert analyze(compile_program, source).values == {1, 2}

    def test_final_constant_index(self, compile_program):
        source = (
            "from typing import Final\nA: Final = 4\n"
            + program("x = 1\nif parameters[A]:\n    if not parameters[2 + 2]:\n        x = 2\nreturn x")
        )
        assert analyze(compile_program, source).values == {1}

    def test_correlated_tests_drop_unreachable_values(self, compile_program):
        source = program(
            "x = 1\nif parameters[0]:\n    x = 2\nif not parameters[0]:\n    x = 3\nreturn x"
        )
        verdict = analyze(compile_program, source)
        assert verdict.sound
        assert verdict.values == {2, 3}

    def test_result_test_implies_parameter_values(self, compile_program):
        source = program(
            """
            x = 0
            if parameters[0]:
                x = 1
            if parameters[1]:
                x = 2
            y = 5
            if x == 1:
                if not parameters[0]:
                    y = 6
            return y
            """
        )
        verdict = analyze(compile_program, source)
        assert verdict.sound
        assert verdict.values == {5}

    def test_opaque_condition_is_unsound(self, compile_program):
        source = program("x = 1\nif len(parameters) > 2:\n    x = 2\nreturn x")
        verdict = analyze(compile_program, source)
        assert not verdict.sound
        assert verdict.reason.startswith("cannot confirm reachability")

    def test_exit_block_without_return_is_rejected(self, compile_program):
        compiled = compile_program(NO_PARAMS)
        cfg = CFGBuilder().build(compiled.program.function)
        flow = LiteralFlowAnalysis(cfg, compiled.program, compiled.constant_evaluator)
        flow.analyze()
        cfg.get_block(cfg.entry_block_id).statements.pop()
        with pytest.raises(ValueError, match="does not end in a return"):
            flow.return_values()
        assert analyze(compile_program, source).values == {1}


class TestPossiblyUnassigned:
    def test_assigned_on_all_paths(self, compile_program):
        compiled = compile_program(
            program("if parameters[0]:\n    x = 1\nelse:\n    x = 2\nreturn x")
        )
        assert possibly_unassigned(compiled.program) == frozenset()

    def test_assigned_on_one_path(self, compile_program):
        compiled = compile_program(program("if parameters[0]:\n    x = 1\nreturn x"))
        assert possibly_unassigned(compiled.program) == frozenset({"x"})

    def test_returning_branch_does_not_count(self, compile_program):
        compiled = compile_program(
            program("if parameters[0]:\n    return 0\nelse:\n    x = 2\nreturn x")
        )
        assert possibly_unassigned(compiled.program) == frozenset()


class TestSoundnessAuditor:
    def flow(self, compile_program, source, literal_cap=10):
        compiled = compile_program(source)
        cfg = CFGBuilder().build(compiled.program.function)
        analysis = LiteralFlowAnalysis(
            cfg, compiled.program, compiled.constant_evaluator, literal_cap
        )
        analysis.analyze()
        return analysis

    def test_clean_analysis(self, compile_program):
        assert SoundnessAuditor().audit(self.flow(compile_program, SAMPLE_1)) == []

    def test_flags_widening_at_join(self, compile_program):
        findings = SoundnessAuditor().audit(self.flow(compile_program, SAMPLE_1, literal_cap=2))
        assert findings
        assert {f.variable for f in findings} == {"x"}
        assert "widened" in str(findings[0])

    def test_non_literal_input_is_not_flagged(self, compile_program):
        source = program("x = parameters[0] + 1\nif parameters[1]:\n    x = 2\nreturn x")
        assert SoundnessAuditor().audit(self.flow(compile_program, source)) == []

    def test_infeasible_edges_are_ignored(self, compile_program):
        analysis = self.flow(compile_program, DEAD_SAME_IF)
        entry = analysis.cfg.get_block(analysis.cfg.entry_block_id)
        true_edge = next(
            succ for succ, kind in entry.successor_edges.items() if kind is EdgeKind.BRANCH_TRUE
        )
        assert analysis.get_edge(entry.id, true_edge).is_bottom()
        assert analysis.get_in(true_edge).is_bottom()
        assert SoundnessAuditor().audit(analysis) == []

    def test_parameter_variables_start_boolean(self, compile_program):
        analysis = self.flow(compile_program, SAMPLE_1)
        entry_state = analysis.get_in(analysis.cfg.entry_block_id)
        assert entry_state.get("parameters[2]") == LiteralSet.of(False, True)
        assert entry_state.get("x").is_bottom()
