"""Abstract base class for pricing oracles."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Set

import networkx as nx
import numpy as np

PROFIT_TOLERANCE = 1e-6


@dataclass
class PricingResult:
    """Outcome of one pricing call.

    Attributes:
        columns: Profitable independent sets (total dual weight > 1).
        max_weight: Upper bound on the maximum independent-set weight under
            the given duals, or None if the oracle cannot bound it.
        exact: True when an empty ``columns`` list proves that no profitable
            independent set exists.
    """

    columns: List[Set[int]] = field(default_factory=list)
    max_weight: Optional[float] = None
    exact: bool = False


class PricingOracle(ABC):
    """Interface for column-generation pricing subproblem solvers.

    A pricing oracle finds independent sets whose total dual weight exceeds 1
    (i.e. negative reduced cost ``1 - sum(duals)``), which can be added as new
    columns to the restricted master problem.
    """

    #: Whether an empty result certifies LP optimality.
    exact: bool = False

    @abstractmethod
    def solve(self, graph: nx.Graph, dual_vars: np.ndarray) -> PricingResult:
        """Return profitable independent sets.

        An independent set S is *profitable* when sum(dual_vars[v] for v in S) > 1.

        Args:
            graph: Pricing graph; its nodes index into ``dual_vars``.
            dual_vars: Vertex weights from the master duals, indexed by node.

        Returns:
            A PricingResult; ``columns`` may be empty when no profitable
            column exists or none was found.
        """


def set_weight(vertices, dual_vars: np.ndarray) -> float:
    return float(sum(dual_vars[v] for v in vertices))


def is_profitable(vertices, dual_vars: np.ndarray, tolerance: float = PROFIT_TOLERANCE) -> bool:
    return set_weight(vertices, dual_vars) > 1.0 + tolerance
