"""Greedy heuristic pricing oracle with local search refinement.

Builds independent sets greedily under a few vertex orders and improves each
with 1-swap local search. Cheap, but an empty result proves nothing: the
exact oracle still has to confirm convergence.
"""

from typing import Callable, Dict, List, Optional, Set

import networkx as nx
import numpy as np

from .base import PricingOracle, PricingResult, PROFIT_TOLERANCE, set_weight


def _greedy_independent_set(
    order: List[int],
    graph: nx.Graph,
) -> Set[int]:
    """Scan ``order`` and keep every vertex with no neighbor kept so far."""
    chosen: Set[int] = set()
    for v in order:
        if not any(graph.has_edge(v, u) for u in chosen):
            chosen.add(v)
    return chosen


def _local_search(
    graph: nx.Graph,
    independent_set: Set[int],
    dual_vars: np.ndarray,
    max_passes: int = 5,
) -> Set[int]:
    """Improve an independent set via 1-swap local search."""
    improved = set(independent_set)
    candidates = sorted(
        [v for v in graph.nodes() if dual_vars[v] > 1e-8],
        key=lambda v: (-dual_vars[v], v),
    )

    for _ in range(max_passes):
        changed = False
        for v in candidates:
            if v in improved:
                continue
            conflicts = {u for u in improved if graph.has_edge(v, u)}
            gain = dual_vars[v] - sum(dual_vars[u] for u in conflicts)
            if gain > 1e-8:
                improved -= conflicts
                improved.add(v)
                changed = True
        if not changed:
            break
    return improved


def _by_dual(graph: nx.Graph, dual_vars: np.ndarray, nodes: List[int]) -> List[int]:
    return sorted(nodes, key=lambda v: (-dual_vars[v], v))


def _by_dual_per_degree(graph: nx.Graph, dual_vars: np.ndarray, nodes: List[int]) -> List[int]:
    return sorted(nodes, key=lambda v: (-dual_vars[v] / (graph.degree(v) + 1), v))


def _by_degree(graph: nx.Graph, dual_vars: np.ndarray, nodes: List[int]) -> List[int]:
    return sorted(nodes, key=lambda v: (graph.degree(v), -dual_vars[v], v))


ORDERINGS: Dict[str, Callable[[nx.Graph, np.ndarray, List[int]], List[int]]] = {
    "dual": _by_dual,
    "dual_per_degree": _by_dual_per_degree,
    "degree": _by_degree,
}


class GreedyPricingOracle(PricingOracle):
    """Heuristic pricing for the Maximum Weight Independent Set subproblem.

    Parameters
    ----------
    orderings : list of str
        Vertex orders to try, keys of ``ORDERINGS``.
    local_search_passes : int
        Number of 1-swap local search passes per constructed set.
    max_columns : int
        Maximum number of profitable sets returned per call.
    """

    exact = False

    def __init__(
        self,
        orderings: Optional[List[str]] = None,
        local_search_passes: int = 5,
        max_columns: int = 5,
        tolerance: float = PROFIT_TOLERANCE,
    ):
        self.orderings = list(orderings) if orderings is not None else list(ORDERINGS)
        unknown = [name for name in self.orderings if name not in ORDERINGS]
        if unknown:
            raise ValueError(f"Unknown greedy orderings: {unknown}")
        self.local_search_passes = local_search_passes
        self.max_columns = max_columns
        self.tolerance = tolerance

    def solve(self, graph: nx.Graph, dual_vars: np.ndarray) -> PricingResult:
        pos_nodes = [v for v in sorted(graph.nodes()) if dual_vars[v] > 1e-10]
        if not pos_nodes:
            return PricingResult()
        subgraph = graph.subgraph(pos_nodes)

        seen: Set[frozenset] = set()
        profitable: List[Set[int]] = []

        # one start per ordering, then restarts from each high-weight vertex
        starts = [ORDERINGS[name](subgraph, dual_vars, pos_nodes) for name in self.orderings]
        ranked = _by_dual(subgraph, dual_vars, pos_nodes)
        for v in ranked[: self.max_columns]:
            starts.append([v] + [u for u in ranked if u != v])

        for order in starts:
            if len(profitable) >= self.max_columns:
                break
            candidate = _greedy_independent_set(order, subgraph)
            candidate = _local_search(
                subgraph, candidate, dual_vars, max_passes=self.local_search_passes
            )
            sig = frozenset(candidate)
            if sig in seen:
                continue
            seen.add(sig)
            if set_weight(candidate, dual_vars) > 1.0 + self.tolerance:
                profitable.append(set(candidate))

        return PricingResult(columns=profitable)
