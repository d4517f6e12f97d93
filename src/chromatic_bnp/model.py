"""Columns and branching decisions shared across the search."""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Hashable


@dataclass(frozen=True)
class IndependentSet:
    """A color class: one variable of the master problem.

    Attributes:
        vertices: Pairwise non-adjacent vertices of the owning node's graph.
        pricing_problem: Id of the pricing problem that produced the column.
        is_initial: True for warm-start and trivial (singleton) columns.
        label: Name of the producer, e.g. "greedyColoring" or "exactPricing".
        cost: Objective coefficient in the master problem.
    """

    vertices: FrozenSet[Hashable]
    pricing_problem: str = "chromaticNumberPricingProblem"
    is_initial: bool = False
    label: str = ""
    cost: float = 1.0

    def __len__(self) -> int:
        return len(self.vertices)

    def __contains__(self, vertex) -> bool:
        return vertex in self.vertices

    def __str__(self) -> str:
        return f"{self.label or 'column'}: {sorted(self.vertices)}"


class BranchDirection(Enum):
    SAME = "same"
    DIFFERENT = "different"


@dataclass(frozen=True)
class BranchingDecision:
    """Vertices ``u`` and ``v`` receive the same color or different colors."""

    u: int
    v: int
    direction: BranchDirection

    def __post_init__(self):
        if self.u == self.v:
            raise ValueError(f"Branching pair needs two distinct vertices, got ({self.u}, {self.v})")
        # store the pair in canonical order
        if self.v < self.u:
            u, v = self.v, self.u
            object.__setattr__(self, "u", u)
            object.__setattr__(self, "v", v)

    @property
    def pair(self):
        return self.u, self.v

    def __str__(self) -> str:
        return f"{self.direction.value.upper()}({self.u},{self.v})"
