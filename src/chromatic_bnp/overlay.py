"""Per-node view of the base graph under SAME/DIFFERENT branching decisions.

The base graph is never copied or mutated. A node only stores the tuple of
decisions on its path from the root; merge groups, forbidden pairs and the
contracted pricing graph are derived from it on demand.
"""

from functools import cached_property
from typing import Dict, FrozenSet, Iterable, List, Set, Tuple

import networkx as nx
import numpy as np

from .exceptions import MalformedBranchError
from .model import BranchDirection, BranchingDecision


class GraphOverlay:
    """Base graph with vertex contractions and forbidden pairs layered on top.

    Vertices of the base graph must be ``0 .. n-1``. Every merge group is
    represented by its smallest vertex; the pricing graph has one node per
    representative.
    """

    def __init__(self, base: nx.Graph, decisions: Iterable[BranchingDecision] = ()):
        self.base = base
        self.decisions: Tuple[BranchingDecision, ...] = tuple(decisions)

        self._rep: Dict[int, int] = {v: v for v in base.nodes()}
        self._members: Dict[int, Set[int]] = {v: {v} for v in base.nodes()}
        self._forbidden: Set[Tuple[int, int]] = set()
        for decision in self.decisions:
            self._apply(decision)

    def _apply(self, decision: BranchingDecision) -> None:
        for vertex in decision.pair:
            if vertex not in self._rep:
                raise ValueError(f"Branching on vertex {vertex} absent from the graph")

        ru = self._rep[decision.u]
        rv = self._rep[decision.v]
        if decision.direction is BranchDirection.DIFFERENT:
            if ru == rv:
                raise MalformedBranchError(
                    f"{decision}: vertices were already merged into one color class"
                )
            self._forbidden.add((min(ru, rv), max(ru, rv)))
            return

        if ru == rv:
            return
        if self._groups_adjacent(ru, rv):
            raise MalformedBranchError(
                f"{decision}: vertices are adjacent or forbidden to share a color"
            )
        keep, gone = min(ru, rv), max(ru, rv)
        for w in self._members.pop(gone):
            self._rep[w] = keep
            self._members[keep].add(w)
        # re-key forbidden pairs onto the surviving representative
        remapped = set()
        for a, b in self._forbidden:
            a = keep if a == gone else a
            b = keep if b == gone else b
            remapped.add((min(a, b), max(a, b)))
        self._forbidden = remapped

    def _groups_adjacent(self, ru: int, rv: int) -> bool:
        if (min(ru, rv), max(ru, rv)) in self._forbidden:
            return True
        small, large = sorted((self._members[ru], self._members[rv]), key=len)
        return any(self.base.has_edge(a, b) for a in small for b in large)

    # -- queries -------------------------------------------------------------

    def with_decision(self, decision: BranchingDecision) -> "GraphOverlay":
        """Return the overlay of a child node; raises MalformedBranchError."""
        return GraphOverlay(self.base, self.decisions + (decision,))

    @property
    def num_vertices(self) -> int:
        return self.base.number_of_nodes()

    def representative(self, vertex: int) -> int:
        return self._rep[vertex]

    def group(self, vertex: int) -> FrozenSet[int]:
        """All base vertices merged with ``vertex``."""
        return frozenset(self._members[self._rep[vertex]])

    def representatives(self) -> List[int]:
        return sorted(self._members)

    @property
    def forbidden_pairs(self) -> FrozenSet[Tuple[int, int]]:
        return frozenset(self._forbidden)

    def are_adjacent(self, u: int, v: int) -> bool:
        """True if the groups of ``u`` and ``v`` may not share a color."""
        ru, rv = self._rep[u], self._rep[v]
        if ru == rv:
            return False
        return self._groups_adjacent(ru, rv)

    @cached_property
    def pricing_graph(self) -> nx.Graph:
        """Contracted graph on representatives, forbidden pairs added as edges."""
        graph = nx.Graph()
        graph.add_nodes_from(self.representatives())
        for a, b in self.base.edges():
            ra, rb = self._rep[a], self._rep[b]
            if ra != rb:
                graph.add_edge(ra, rb)
        graph.add_edges_from(self._forbidden)
        return graph

    def contract_weights(self, dual_vars: np.ndarray) -> np.ndarray:
        """Sum vertex duals onto their representatives (zero elsewhere)."""
        weights = np.zeros(self.num_vertices)
        for rep, members in self._members.items():
            weights[rep] = sum(dual_vars[w] for w in members)
        return weights

    def expand(self, representatives: Iterable[int]) -> FrozenSet[int]:
        """Map a set of representatives back to base vertices."""
        vertices: Set[int] = set()
        for rep in representatives:
            vertices |= self._members[self._rep[rep]]
        return frozenset(vertices)

    def is_valid_column(self, vertices: Iterable[int]) -> bool:
        """Check a base-vertex set against this node's branching decisions.

        The set must contain whole merge groups only, no base edge and no
        forbidden pair. Unknown vertices are a contract violation.
        """
        vertex_set = set(vertices)
        unknown = [v for v in vertex_set if v not in self._rep]
        if unknown:
            raise ValueError(f"Column references vertices absent from the graph: {sorted(unknown)}")

        reps = {self._rep[v] for v in vertex_set}
        for rep in reps:
            if not self._members[rep] <= vertex_set:
                return False
        for a, b in self._forbidden:
            if a in reps and b in reps:
                return False
        nodes = sorted(vertex_set)
        for i, u in enumerate(nodes):
            for w in nodes[i + 1:]:
                if self.base.has_edge(u, w):
                    return False
        return True

    def __repr__(self) -> str:
        path = ", ".join(str(d) for d in self.decisions) or "root"
        return f"GraphOverlay({path})"
