"""Core types for tdbn structure learning."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List


# ---------------------------------------------------------------------------
# Network variables
# ---------------------------------------------------------------------------

@dataclass
class Attribute:
    """A discrete variable of the network with a finite set of states.

    Observations store each value as its index in *states*, so an
    attribute with ``k`` states takes the coded values ``0..k-1``.
    """

    name: str
    states: List[str]

    @property
    def cardinality(self) -> int:
        return len(self.states)

    @classmethod
    def with_cardinality(cls, name: str, cardinality: int) -> Attribute:
        """Create an attribute whose states are labelled ``"0"``, ``"1"``, ..."""
        if cardinality < 1:
            raise ValueError(
                f"Attribute '{name}' needs at least one state, got {cardinality}"
            )
        return cls(name=name, states=[str(v) for v in range(cardinality)])


# ---------------------------------------------------------------------------
# Graph edges
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Edge:
    """A directed edge ``tail -> head`` with an optional weight."""

    tail: int
    head: int
    weight: float = 0.0

    def __str__(self) -> str:
        return f"{self.tail} -> {self.head}"
