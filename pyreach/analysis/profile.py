"""Parameter profile extraction: how many parameters a decision program reads."""

from __future__ import annotations

from dataclasses import dataclass, field

from pyreach.core.constants import ConstantEvaluator
from pyreach.core.program import DecisionProgram
from pyreach.logging import get_logger

DEFAULT_MAX_PARAM_COUNT = 50


@dataclass(frozen=True)
class ParameterProfile:
    """
    Parameter usage of a decision program.
    Attributes:
        count: Number of parameters the program is assumed to read
        indices_known: Every read has a compile-time constant index
        indices: Known indices in source order (duplicates kept)
    """

    count: int
    indices_known: bool
    indices: tuple[int, ...] = field(default_factory=tuple)

    @property
    def min_index(self) -> int | None:
        return min(self.indices) if self.indices else None

    @property
    def max_index(self) -> int | None:
        return max(self.indices) if self.indices else None

    @property
    def out_of_bounds(self) -> bool:
        """A known index is negative."""
        return self.min_index is not None and self.min_index < 0

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "indices_known": self.indices_known,
            "indices": list(self.indices),
        }


def extract_profile(
    program: DecisionProgram,
    evaluator: ConstantEvaluator,
    max_param_count: int = DEFAULT_MAX_PARAM_COUNT,
) -> ParameterProfile:
    """
    Determine the parameter count of a program from its vector reads.
    With no reads the count is 0. When every index folds to a constant the
    count is the largest index plus one, never below 0. Otherwise it falls
    back to ``max_param_count``.
    """
    indices: list[int] = []
    known = True
    for read in program.iter_parameter_reads():
        index = evaluator.evaluate_index(read.slice)
        if index is None:
            known = False
        else:
            indices.append(index)
    if known and not indices:
        count = 0
    elif known:
        count = max(max(indices) + 1, 0)
    else:
        count = max_param_count
    profile = ParameterProfile(count=count, indices_known=known, indices=tuple(indices))
    get_logger().verbose(
        f"parameter count {count} (indices known: {known}, min index: {profile.min_index})",
        category="profile",
    )
    return profile


__all__ = ["ParameterProfile", "extract_profile", "DEFAULT_MAX_PARAM_COUNT"]
