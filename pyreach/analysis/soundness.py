"""
Soundness audit of a finished literal-set analysis.
A join that overflows the literal cap widens to top, silently discarding
literal information. The auditor finds every block where that happened: a
variable that is non-literal on entry although it is literal on every
feasible incoming edge.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pyreach.logging import get_logger

if TYPE_CHECKING:
    from pyreach.analysis.flow_sensitive import DataFlowAnalysis
    from pyreach.analysis.abstract_domains import AbstractState


@dataclass(frozen=True)
class PrecisionLoss:
    """A variable that became non-literal at a join."""

    block_id: int
    variable: str
    incoming: int

    def __str__(self) -> str:
        return (
            f"block {self.block_id}: '{self.variable}' widened to non-literal "
            f"while literal on all {self.incoming} incoming path(s)"
        )


class SoundnessAuditor:
    """Flags widening-induced precision loss in a completed analysis."""

    def audit(self, analysis: DataFlowAnalysis[AbstractState]) -> list[PrecisionLoss]:
        findings: list[PrecisionLoss] = []
        cfg = analysis.cfg
        for block in cfg.iter_blocks_forward():
            entering = analysis.get_in(block.id)
            if entering.is_bottom():
                continue
            incoming = [
                edge
                for edge in (analysis.get_edge(p, block.id) for p in sorted(block.predecessors))
                if not edge.is_bottom()
            ]
            # The entry block has no incoming edges and is never a join.
            if not incoming:
                continue
            for name, value in sorted(entering.values.items()):
                if value.is_literal():
                    continue
                if all(edge.tracks(name) and edge.get(name).is_literal() for edge in incoming):
                    findings.append(PrecisionLoss(block.id, name, len(incoming)))
        logger = get_logger()
        for finding in findings:
            logger.verbose(str(finding), category="soundness")
        return findings


__all__ = ["PrecisionLoss", "SoundnessAuditor"]
