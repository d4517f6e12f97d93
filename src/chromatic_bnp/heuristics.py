"""Bound providers called once when the root node is initialised.

Both are plain callables so that callers can plug in their own:

* an initial solution provider ``graph -> list of vertex sets`` whose
  size is the starting upper bound, and
* a lower bound provider ``graph -> int``.
"""

from collections import defaultdict
from typing import Dict, FrozenSet, Hashable, List

import networkx as nx

GREEDY_STRATEGIES = (
    "largest_first",
    "smallest_last",
    "saturation_largest_first",
    "independent_set",
    "connected_sequential_bfs",
)


def greedy_coloring(graph: nx.Graph, strategies=GREEDY_STRATEGIES) -> List[FrozenSet[Hashable]]:
    """Best of several greedy colorings, as a list of color classes."""
    if graph.number_of_nodes() == 0:
        return []

    best: List[FrozenSet[Hashable]] = []
    for strategy in strategies:
        assignment = nx.greedy_color(graph, strategy=strategy)
        groups: Dict[int, set] = defaultdict(set)
        for v, color in assignment.items():
            groups[color].add(v)
        classes = [frozenset(groups[c]) for c in sorted(groups)]
        if not best or len(classes) < len(best):
            best = classes
    return best


def max_clique_size(graph: nx.Graph) -> int:
    """Size of a largest clique (Bron-Kerbosch enumeration of maximal cliques)."""
    if graph.number_of_nodes() == 0:
        return 0
    return max(len(clique) for clique in nx.find_cliques(graph))

