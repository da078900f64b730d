"""
Control flow graphs for decision functions.
The CFG is built directly from the function's AST. Each ``if`` ends its
block with a two-way branch whose edges carry the condition outcome, the
two arms flow into a fresh join block, and every ``return`` leaves the
graph. Decision functions are loop-free, so the graph is a DAG.
The module also provides the forward data-flow framework the reachable
value analysis runs on. Unlike a plain block-level framework, facts can be
refined per edge, which is how branch conditions narrow the state.
"""

from __future__ import annotations

import ast
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Generic, TypeVar

from pyreach.core.exceptions import UnsupportedConstructError

T = TypeVar("T")

_PLAIN_STATEMENTS = (ast.Assign, ast.AnnAssign, ast.Pass, ast.Expr)


class EdgeKind(Enum):
    """Types of CFG edges."""

    SEQUENTIAL = auto()
    BRANCH_TRUE = auto()
    BRANCH_FALSE = auto()


@dataclass
class BasicBlock:
    """
    A basic block in the control flow graph.
    A block holds straight-line statements. It ends either by falling
    through, by branching on ``condition``, or with a ``return`` as its last
    statement.
    """

    id: int
    statements: list[ast.stmt] = field(default_factory=list)
    condition: ast.expr | None = None
    line_numbers: set[int] = field(default_factory=set)
    predecessors: set[int] = field(default_factory=set)
    successors: set[int] = field(default_factory=set)
    successor_edges: dict[int, EdgeKind] = field(default_factory=dict)
    is_entry: bool = False

    def __hash__(self) -> int:
        return hash(self.id)

    def add_statement(self, stmt: ast.stmt) -> None:
        """Add a statement to this block."""
        self.statements.append(stmt)
        if hasattr(stmt, "lineno"):
            self.line_numbers.add(stmt.lineno)

    def add_successor(self, block_id: int, edge_kind: EdgeKind) -> None:
        """Add a successor block."""
        self.successors.add(block_id)
        self.successor_edges[block_id] = edge_kind

    def get_terminator(self) -> ast.stmt | None:
        """Get the last statement of this block."""
        if self.statements:
            return self.statements[-1]
        return None

    def is_conditional(self) -> bool:
        return self.condition is not None

    @property
    def returned(self) -> ast.Return | None:
        """The ``return`` ending this block, if it ends in one."""
        terminator = self.get_terminator()
        return terminator if isinstance(terminator, ast.Return) else None

    @property
    def is_exit(self) -> bool:
        return self.returned is not None

    def __repr__(self) -> str:
        lines = sorted(self.line_numbers)
        span = f"lines {lines[0]}-{lines[-1]}" if lines else "empty"
        return f"BasicBlock({self.id}, {span})"


@dataclass
class ControlFlowGraph:
    """Control flow graph for a decision function."""

    blocks: dict[int, BasicBlock] = field(default_factory=dict)
    entry_block_id: int = 0
    exit_block_ids: set[int] = field(default_factory=set)

    def add_block(self, block: BasicBlock) -> None:
        """Add a basic block."""
        self.blocks[block.id] = block

    def get_block(self, block_id: int) -> BasicBlock | None:
        """Get a block by ID."""
        return self.blocks.get(block_id)

    def add_edge(self, source: int, target: int, kind: EdgeKind = EdgeKind.SEQUENTIAL) -> None:
        self.blocks[source].add_successor(target, kind)
        self.blocks[target].predecessors.add(source)

    def get_predecessors(self, block_id: int) -> set[int]:
        """Get predecessor block IDs."""
        block = self.blocks.get(block_id)
        if block:
            return block.predecessors
        return set()

    def get_successors(self, block_id: int) -> set[int]:
        """Get successor block IDs."""
        block = self.blocks.get(block_id)
        if block:
            return block.successors
        return set()

    def edge_kind(self, source: int, target: int) -> EdgeKind:
        return self.blocks[source].successor_edges[target]

    def iter_blocks_forward(self) -> Iterable[BasicBlock]:
        """Iterate blocks reachable from the entry so that predecessors come first."""
        reachable: set[int] = set()
        stack = [self.entry_block_id]
        while stack:
            block_id = stack.pop()
            if block_id in reachable or block_id not in self.blocks:
                continue
            reachable.add(block_id)
            stack.extend(self.blocks[block_id].successors)
        pending = {
            block_id: len(self.blocks[block_id].predecessors & reachable) for block_id in reachable
        }
        ready = sorted(block_id for block_id, count in pending.items() if count == 0)
        result: list[BasicBlock] = []
        while ready:
            block = self.blocks[ready.pop(0)]
            result.append(block)
            for succ_id in sorted(block.successors):
                pending[succ_id] -= 1
                if pending[succ_id] == 0:
                    ready.append(succ_id)
        return result


class CFGBuilder:
    """
    Builds a ControlFlowGraph from a decision function.
    Supported statements are assignments, ``pass``, expression statements,
    ``if``/``elif``/``else`` and ``return``. Anything else raises
    UnsupportedConstructError. Statements after a ``return`` in the same
    body are unreachable and skipped.
    """

    def __init__(self) -> None:
        self._cfg = ControlFlowGraph()
        self._next_id = 0

    def build(self, function: ast.FunctionDef) -> ControlFlowGraph:
        self._cfg = ControlFlowGraph()
        self._next_id = 0
        entry = self._new_block()
        entry.is_entry = True
        self._cfg.entry_block_id = entry.id
        tail = self._build_body(function.body, entry)
        if tail is not None:
            implicit = ast.Return(value=ast.Constant(value=None))
            end = function.end_lineno or function.lineno
            implicit.lineno = implicit.value.lineno = end
            implicit.col_offset = implicit.value.col_offset = 0
            tail.add_statement(implicit)
            self._cfg.exit_block_ids.add(tail.id)
        return self._cfg

    def _new_block(self) -> BasicBlock:
        block = BasicBlock(id=self._next_id)
        self._next_id += 1
        self._cfg.add_block(block)
        return block

    def _build_body(self, body: list[ast.stmt], current: BasicBlock) -> BasicBlock | None:
        """Append ``body`` to ``current``; returns the open tail block, or None."""
        for stmt in body:
            if isinstance(stmt, _PLAIN_STATEMENTS):
                current.add_statement(stmt)
            elif isinstance(stmt, ast.Return):
                current.add_statement(stmt)
                self._cfg.exit_block_ids.add(current.id)
                return None
            elif isinstance(stmt, ast.If):
                current.condition = stmt.test
                current.line_numbers.add(stmt.lineno)
                then_block = self._new_block()
                else_block = self._new_block()
                self._cfg.add_edge(current.id, then_block.id, EdgeKind.BRANCH_TRUE)
                self._cfg.add_edge(current.id, else_block.id, EdgeKind.BRANCH_FALSE)
                tails = [
                    tail
                    for tail in (
                        self._build_body(stmt.body, then_block),
                        self._build_body(stmt.orelse, else_block),
                    )
                    if tail is not None
                ]
                if not tails:
                    return None
                current = self._new_block()
                for tail in tails:
                    self._cfg.add_edge(tail.id, current.id)
            else:
                raise UnsupportedConstructError(stmt)
        return current


class DataFlowAnalysis(ABC, Generic[T]):
    """
    Forward data flow analysis over a ControlFlowGraph.
    Provides the fixed-point iteration; subclasses supply the lattice
    operations, the block transfer function and, optionally, per-edge
    refinement of a block's output.
    """

    def __init__(self, cfg: ControlFlowGraph) -> None:
        self.cfg = cfg
        self.in_facts: dict[int, T] = {}
        self.out_facts: dict[int, T] = {}
        self.edge_facts: dict[tuple[int, int], T] = {}
        self.iterations = 0

    @abstractmethod
    def initial_value(self) -> T:
        """Return the initial value for analysis."""

    @abstractmethod
    def boundary_value(self) -> T:
        """Return the value on entry to the function."""

    @abstractmethod
    def transfer(self, block: BasicBlock, in_fact: T) -> T:
        """Transfer function: compute output from input."""

    @abstractmethod
    def meet(self, facts: list[T]) -> T:
        """Meet operation: combine facts from multiple paths."""

    def edge_transfer(self, block: BasicBlock, successor: int, out_fact: T) -> T:
        """Refine a block's output along the edge to ``successor``."""
        return out_fact

    def analyze(self) -> None:
        """Run the data flow analysis to fixed point."""
        for block_id in self.cfg.blocks:
            if block_id == self.cfg.entry_block_id:
                self.in_facts[block_id] = self.boundary_value()
            else:
                self.in_facts[block_id] = self.initial_value()
        changed = True
        self.iterations = 0
        max_iterations = len(self.cfg.blocks) * 10
        while changed and self.iterations < max_iterations:
            changed = False
            self.iterations += 1
            for block in self.cfg.iter_blocks_forward():
                if block.id != self.cfg.entry_block_id:
                    incoming = [
                        self.edge_facts.get((p, block.id), self.initial_value())
                        for p in sorted(block.predecessors)
                    ]
                    new_in = self.meet(incoming) if incoming else self.initial_value()
                    if new_in != self.in_facts.get(block.id):
                        self.in_facts[block.id] = new_in
                        changed = True
                new_out = self.transfer(block, self.in_facts[block.id])
                if new_out != self.out_facts.get(block.id):
                    self.out_facts[block.id] = new_out
                    changed = True
                for succ_id in sorted(block.successors):
                    new_edge = self.edge_transfer(block, succ_id, new_out)
                    if new_edge != self.edge_facts.get((block.id, succ_id)):
                        self.edge_facts[(block.id, succ_id)] = new_edge
                        changed = True

    def get_in(self, block_id: int) -> T:
        """Get input facts for a block."""
        return self.in_facts.get(block_id, self.initial_value())

    def get_out(self, block_id: int) -> T:
        """Get output facts for a block."""
        return self.out_facts.get(block_id, self.initial_value())

    def get_edge(self, source: int, target: int) -> T:
        """Get the facts flowing along an edge."""
        return self.edge_facts.get((source, target), self.initial_value())


__all__ = [
    "EdgeKind",
    "BasicBlock",
    "ControlFlowGraph",
    "CFGBuilder",
    "DataFlowAnalysis",
]
