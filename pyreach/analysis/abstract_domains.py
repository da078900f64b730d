"""
Abstract domains for reachable-value analysis.
A variable's abstract value is a LiteralSet: a bounded set of literal values
the variable may hold, plus a flag recording that it may also hold something
that is not a known literal. The lattice is
    bottom (no value yet) < {finite literal sets of size <= K} < top
Joining past K literals widens straight to top, so the height is bounded
and every fixpoint terminates.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, TypeVar

DEFAULT_LITERAL_CAP = 10

T = TypeVar("T", bound="AbstractValue")


class AbstractValue(ABC, Generic[T]):
    """Base class for lattice elements."""

    @abstractmethod
    def is_bottom(self) -> bool:
        """Check if this is the bottom element."""

    @abstractmethod
    def is_top(self) -> bool:
        """Check if this is the top element."""

    @abstractmethod
    def join(self, other: T) -> T:
        """Least upper bound."""

    @abstractmethod
    def meet(self, other: T) -> T:
        """Greatest lower bound."""

    @abstractmethod
    def leq(self, other: T) -> bool:
        """Partial order: self <= other."""


def _render(value: Any) -> str:
    return repr(value)


@dataclass(frozen=True)
class LiteralSet(AbstractValue["LiteralSet"]):
    """
    Bounded literal-set abstraction of a single variable.
    ``literals`` is empty whenever ``may_be_non_literal`` is set: once a
    value might be arbitrary, the individual literals carry no information.
    """

    literals: frozenset = field(default_factory=frozenset)
    may_be_non_literal: bool = False

    cap: ClassVar[int] = DEFAULT_LITERAL_CAP

    @classmethod
    def bottom(cls) -> LiteralSet:
        return cls(frozenset(), False)

    @classmethod
    def top(cls) -> LiteralSet:
        return cls(frozenset(), True)

    @classmethod
    def of(cls, *values: Any) -> LiteralSet:
        return cls(frozenset(values), False)

    @classmethod
    def from_values(cls, values: Iterable[Any], cap: int | None = None) -> LiteralSet:
        literals = frozenset(values)
        if len(literals) > (cls.cap if cap is None else cap):
            return cls.top()
        return cls(literals, False)

    def is_bottom(self) -> bool:
        return not self.literals and not self.may_be_non_literal

    def is_top(self) -> bool:
        return self.may_be_non_literal

    def is_literal(self) -> bool:
        """Every value the variable may hold is a known literal."""
        return not self.may_be_non_literal

    def is_singleton(self) -> bool:
        return not self.may_be_non_literal and len(self.literals) == 1

    def join(self, other: LiteralSet, cap: int | None = None) -> LiteralSet:
        if self.is_top() or other.is_top():
            return LiteralSet.top()
        if self.literals >= other.literals:
            return self
        return LiteralSet.from_values(self.literals | other.literals, cap)

    def meet(self, other: LiteralSet) -> LiteralSet:
        if self.is_top():
            return other
        if other.is_top():
            return self
        return LiteralSet(self.literals & other.literals, False)

    def leq(self, other: LiteralSet) -> bool:
        if other.is_top() or self.is_bottom():
            return True
        if self.is_top():
            return False
        return self.literals <= other.literals

    def without(self, value: Any) -> LiteralSet:
        """Remove a literal; top stays top."""
        if self.is_top():
            return self
        return LiteralSet(self.literals - {value}, False)

    def where_truthy(self, truthy: bool) -> LiteralSet:
        """Keep only literals whose truth value is ``truthy``."""
        if self.is_top():
            return self
        return LiteralSet(frozenset(v for v in self.literals if bool(v) is truthy), False)

    def may_intersect(self, other: LiteralSet) -> bool:
        """Some concrete value could be held by both."""
        if self.is_bottom() or other.is_bottom():
            return False
        if self.is_top() or other.is_top():
            return True
        return bool(self.literals & other.literals)

    def must_equal(self, other: LiteralSet) -> bool:
        """Both are the same single literal."""
        return self.is_singleton() and other.is_singleton() and self.literals == other.literals

    def map(self, func) -> LiteralSet:
        """Apply ``func`` to every literal; top stays top."""
        if self.is_top():
            return self
        return LiteralSet(frozenset(func(v) for v in self.literals), False)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.literals)

    def __len__(self) -> int:
        return len(self.literals)

    def __str__(self) -> str:
        if self.is_top():
            return "⊤"
        if self.is_bottom():
            return "⊥"
        return "{" + ", ".join(sorted(_render(v) for v in self.literals)) + "}"


@dataclass
class AbstractState:
    """
    Abstract state mapping variable names to literal sets.
    A bottom state stands for an unreachable program point. Variables that
    are not in the map are unknown (top).
    """

    values: dict[str, LiteralSet] = field(default_factory=dict)
    _is_bottom: bool = False

    @classmethod
    def bottom(cls) -> AbstractState:
        return cls(_is_bottom=True)

    def is_bottom(self) -> bool:
        return self._is_bottom

    def copy(self) -> AbstractState:
        return AbstractState(dict(self.values), self._is_bottom)

    def get(self, name: str) -> LiteralSet:
        return self.values.get(name, LiteralSet.top())

    def tracks(self, name: str) -> bool:
        return name in self.values

    def set(self, name: str, value: LiteralSet) -> None:
        self.values[name] = value

    def narrow(self, name: str, value: LiteralSet) -> None:
        """Restrict a variable; an empty restriction makes the state unreachable."""
        if value.is_bottom():
            self._is_bottom = True
            self.values.clear()
            return
        self.values[name] = value

    def join(self, other: AbstractState, cap: int | None = None) -> AbstractState:
        if self._is_bottom:
            return other.copy()
        if other._is_bottom:
            return self.copy()
        result = AbstractState()
        for name in self.values.keys() | other.values.keys():
            result.values[name] = self.get(name).join(other.get(name), cap)
        return result

    def leq(self, other: AbstractState) -> bool:
        if self._is_bottom:
            return True
        if other._is_bottom:
            return False
        names = self.values.keys() | other.values.keys()
        return all(self.get(name).leq(other.get(name)) for name in names)

    def __str__(self) -> str:
        if self._is_bottom:
            return "⊥"
        inner = ", ".join(f"{name}: {value}" for name, value in sorted(self.values.items()))
        return "{" + inner + "}"


__all__ = ["AbstractValue", "LiteralSet", "AbstractState", "DEFAULT_LITERAL_CAP"]
