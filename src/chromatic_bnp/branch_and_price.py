"""Branch-and-Price tree controller for the chromatic number.

Each node optimises the LP relaxation of the set-covering formulation by
column generation, then is pruned by bound, accepted as integral, or split
with vertex-pair branching. The global bounds and incumbent live in a
BoundState; OPEN nodes live in a NodeQueue.
"""

import itertools
import logging
import math
import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, Hashable, Iterable, List, Optional, Sequence

import networkx as nx
import numpy as np

from .branching import branch_on_pair, is_fractional, select_branching_pair
from .coloring import coloring_to_dict, to_partition, validate_coloring
from .column_generation import CGState, ColumnGeneration
from .exceptions import GlobalTimeoutError, InfeasibleNodeError
from .heuristics import greedy_coloring, max_clique_size
from .master_problem import MasterProblem, solve_restricted_ilp
from .model import IndependentSet
from .overlay import GraphOverlay
from .pricing import ClassicalPricingOracle, GreedyPricingOracle, PricingOracle
from .state import BEST_BOUND, SEARCH_STRATEGIES, BoundState, NodeQueue
from .timing import SolveTimer

logger = logging.getLogger(__name__)

PRICING_PROBLEM_ID = "chromaticNumberPricingProblem"


class NodeStatus(Enum):
    OPEN = "open"
    PROCESSING = "processing"
    BOUNDED = "bounded"
    INFEASIBLE = "infeasible"
    INTEGRAL = "integral"
    BRANCHED = "branched"


@dataclass
class BnPNode:
    """A node of the search tree.

    ``columns`` holds the warm-start columns while the node is OPEN and the
    full column pool after it has been solved; it is released once the node
    is closed.
    """

    node_id: int
    overlay: GraphOverlay
    columns: List[FrozenSet[int]]
    parent_id: Optional[int] = None
    depth: int = 0
    bound: float = 0.0
    status: NodeStatus = NodeStatus.OPEN
    fathom_reason: Optional[str] = None
    objective: Optional[float] = None
    cg_state: Optional[CGState] = None

    def close(self, status: NodeStatus, reason: Optional[str] = None) -> None:
        self.status = status
        self.fathom_reason = reason
        self.columns = []

    def __str__(self) -> str:
        return (
            f"Node {self.node_id} (parent {self.parent_id}, depth {self.depth}, "
            f"{self.overlay}): status={self.status.value} bound={self.bound:.4f}"
        )


@dataclass
class BranchAndPriceConfig:
    """Run parameters.

    Attributes:
        search_strategy: "best_bound" (smallest node bound first) or
            "depth_first" (most recent node first, SAME child before
            DIFFERENT child).
        max_cg_iterations: Master solves allowed per node.
        node_time_limit: Optional column generation budget per node, seconds.
        pricing_time_limit: Optional time limit of each exact pricing call.
        tolerance: Integrality and comparison tolerance.
        root_ilp_heuristic: Solve the integer master over the root column
            pool when the root LP is fractional.
        ilp_time_limit: Optional time limit of that heuristic.
        max_nodes: Optional limit on the number of processed nodes.
    """

    search_strategy: str = BEST_BOUND
    max_cg_iterations: int = 500
    node_time_limit: Optional[float] = None
    pricing_time_limit: Optional[float] = None
    tolerance: float = 1e-6
    root_ilp_heuristic: bool = True
    ilp_time_limit: Optional[float] = None
    max_nodes: Optional[int] = None

    def __post_init__(self):
        if self.search_strategy not in SEARCH_STRATEGIES:
            raise ValueError(
                f"Unknown search strategy: {self.search_strategy}. Use one of {SEARCH_STRATEGIES}"
            )
        if self.max_cg_iterations < 1:
            raise ValueError("max_cg_iterations must be at least 1")
        if not 0 < self.tolerance < 0.5:
            raise ValueError("tolerance must lie in (0, 0.5)")
        for name in ("node_time_limit", "pricing_time_limit", "ilp_time_limit"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive")
        if self.max_nodes is not None and self.max_nodes < 1:
            raise ValueError("max_nodes must be at least 1")


@dataclass
class BranchAndPriceReport:
    """Outcome of a run.

    ``objective`` is the number of colors of the best coloring found (the
    chromatic number when ``optimal``); ``columns`` are its color classes.
    """

    objective: Optional[int]
    optimal: bool
    lower_bound: int
    nodes_processed: int
    iterations: int
    master_seconds: float
    pricing_seconds: float
    total_seconds: float
    columns: List[IndependentSet] = field(default_factory=list)
    root_bound: Optional[float] = None
    diagnostics: Dict[str, int] = field(default_factory=dict)
    bound_history: List[Dict[str, float]] = field(default_factory=list)

    def coloring(self) -> Dict[Hashable, int]:
        """Map each vertex to its color index."""
        return coloring_to_dict([col.vertices for col in self.columns])

    def summary(self) -> Dict[str, object]:
        return {
            "objective": self.objective,
            "optimal": self.optimal,
            "lower_bound": self.lower_bound,
            "nodes_processed": self.nodes_processed,
            "iterations": self.iterations,
            "master_seconds": round(self.master_seconds, 4),
            "pricing_seconds": round(self.pricing_seconds, 4),
            "total_seconds": round(self.total_seconds, 4),
        }


class BranchAndPrice:
    """Compute the chromatic number of ``graph`` by Branch-and-Price.

    Args:
        graph: Undirected graph with sortable node labels. It is relabelled
            to ``0..n-1`` internally; reported columns use the original labels.
        pricers: Pricing oracles tried in order on every column generation
            round. Defaults to a greedy heuristic followed by the exact MILP.
        config: Run parameters.
        initial_solution_provider: ``graph -> list of vertex sets``, a
            coloring used as initial upper bound and warm start, or None.
        lower_bound_provider: ``graph -> int``, a combinatorial lower bound,
            or None.
    """

    def __init__(
        self,
        graph: nx.Graph,
        pricers: Optional[Sequence[PricingOracle]] = None,
        config: Optional[BranchAndPriceConfig] = None,
        initial_solution_provider: Optional[Callable[[nx.Graph], Iterable[Iterable[int]]]] = greedy_coloring,
        lower_bound_provider: Optional[Callable[[nx.Graph], int]] = max_clique_size,
    ):
        if graph.is_directed():
            raise TypeError("Graph coloring needs an undirected graph")
        if nx.number_of_selfloops(graph):
            raise ValueError("A graph with self-loops has no proper coloring")
        self.graph = graph
        self.config = config if config is not None else BranchAndPriceConfig()

        try:
            self.labels: List[Hashable] = sorted(graph.nodes())
        except TypeError:
            self.labels = list(graph.nodes())
        self.index = {label: i for i, label in enumerate(self.labels)}
        self.base = nx.Graph()
        self.base.add_nodes_from(range(len(self.labels)))
        self.base.add_edges_from(
            (self.index[u], self.index[v]) for u, v in graph.edges() if u != v
        )
        self.num_vertices = self.base.number_of_nodes()

        if pricers is None:
            pricers = [
                GreedyPricingOracle(tolerance=self.config.tolerance),
                ClassicalPricingOracle(
                    time_limit=self.config.pricing_time_limit, tolerance=self.config.tolerance
                ),
            ]
        self.pricers: List[PricingOracle] = list(pricers)
        if not any(p.exact for p in self.pricers):
            raise ValueError("At least one exact pricing oracle is required")

        self.initial_solution_provider = initial_solution_provider
        self.lower_bound_provider = lower_bound_provider

        self.bounds = BoundState()
        self.queue: NodeQueue[BnPNode] = NodeQueue(self.config.search_strategy)
        self.nodes: Dict[int, BnPNode] = {}
        self.master_timer = SolveTimer("master")
        self.pricing_timer = SolveTimer("pricing")
        self.diagnostics: Counter = Counter()
        self.nodes_processed = 0
        self.total_iterations = 0
        self.root_bound: Optional[float] = None
        self._warm_start: List[FrozenSet[int]] = []
        self._node_ids = itertools.count()

    # -- columns and incumbents ----------------------------------------------

    def _internal(self, vertex_sets: Iterable[Iterable[Hashable]]) -> List[FrozenSet[int]]:
        columns = []
        for vertex_set in vertex_sets:
            labels = set(vertex_set)
            unknown = [v for v in labels if v not in self.index]
            if unknown:
                raise ValueError(f"Column references vertices absent from the graph: {unknown}")
            col = frozenset(self.index[v] for v in labels)
            if not col:
                continue
            nodes = sorted(col)
            for i, u in enumerate(nodes):
                for w in nodes[i + 1:]:
                    if self.base.has_edge(u, w):
                        raise ValueError(
                            f"Column {sorted(labels)} is not an independent set: "
                            f"{self.labels[u]} and {self.labels[w]} are adjacent"
                        )
            columns.append(col)
        return columns

    def _external(self, columns: Iterable[FrozenSet[int]], label: str, is_initial: bool = False) -> List[IndependentSet]:
        return [
            IndependentSet(
                vertices=frozenset(self.labels[v] for v in col),
                pricing_problem=PRICING_PROBLEM_ID,
                is_initial=is_initial,
                label=label,
            )
            for col in columns
        ]

    def _offer_cover(
        self,
        cover: Iterable[FrozenSet[int]],
        label: str,
        node_id: Optional[int] = None,
        is_initial: bool = False,
    ) -> bool:
        """Turn a cover into a coloring and offer it as incumbent."""
        coloring = to_partition(cover)
        validation = validate_coloring(self.base, coloring)
        if not validation.valid:
            raise RuntimeError(
                f"{label} produced an invalid coloring: missing={validation.missing_vertices} "
                f"conflicts={validation.edge_violations}"
            )
        return self.bounds.try_update_incumbent(
            self._external(coloring, label, is_initial), node_id
        )

    def warm_start(self, columns: Iterable[Iterable[Hashable]]) -> None:
        """Seed the root master with independent sets given in original labels.

        If the sets cover every vertex they also become the initial
        incumbent. Raises ValueError for sets that are not independent.
        """
        internal = self._internal(columns)
        self._warm_start.extend(internal)
        covered = set().union(*internal) if internal else set()
        if len(covered) == self.num_vertices:
            self._offer_cover(internal, "warmStart", is_initial=True)

    # -- search ----------------------------------------------------------------

    def _prunable(self, bound: float) -> bool:
        return math.ceil(bound - self.config.tolerance) >= self.bounds.upper_bound

    def _initialise_root(self) -> BnPNode:
        columns: List[FrozenSet[int]] = list(self._warm_start)

        if self.initial_solution_provider is not None:
            initial = self._internal(self.initial_solution_provider(self.graph))
            if initial:
                self._offer_cover(initial, "initialColumn", is_initial=True)
                columns.extend(initial)

        lower_bound = 1
        if self.lower_bound_provider is not None:
            lower_bound = max(lower_bound, int(self.lower_bound_provider(self.graph)))
        self.bounds.raise_lower_bound(lower_bound)

        columns.extend(frozenset([v]) for v in range(self.num_vertices))
        root = BnPNode(
            node_id=next(self._node_ids),
            overlay=GraphOverlay(self.base),
            columns=columns,
            bound=float(lower_bound),
        )
        self.nodes[root.node_id] = root
        logger.info(
            "Root: %d vertices, %d edges, lower bound %d, upper bound %s",
            self.num_vertices, self.base.number_of_edges(), self.bounds.lower_bound, self.bounds.upper_bound,
        )
        return root

    def _process(self, node: BnPNode, deadline: Optional[float]) -> None:
        node.status = NodeStatus.PROCESSING
        self.nodes_processed += 1
        cfg = self.config

        if self._prunable(node.bound):
            self.diagnostics["bounded"] += 1
            node.close(NodeStatus.BOUNDED, "bound")
            logger.debug("%s pruned by inherited bound", node)
            return

        master = MasterProblem(self.num_vertices, node.columns)
        cg = ColumnGeneration(
            master,
            node.overlay,
            self.pricers,
            max_iterations=cfg.max_cg_iterations,
            time_limit=cfg.node_time_limit,
            deadline=deadline,
            lower_bound=node.bound,
            upper_bound=lambda: self.bounds.upper_bound,
            tolerance=cfg.tolerance,
            master_timer=self.master_timer,
            pricing_timer=self.pricing_timer,
        )
        try:
            result = cg.run()
        except InfeasibleNodeError as exc:
            self.diagnostics["infeasible"] += 1
            node.close(NodeStatus.INFEASIBLE, "infeasible")
            logger.warning("Node %d infeasible: %s", node.node_id, exc)
            return

        self.total_iterations += result.iterations
        self.diagnostics["pricing_timeouts"] += result.pricing_timeouts
        if result.state is CGState.ITERATION_LIMIT:
            self.diagnostics["iteration_limits"] += 1

        node.cg_state = result.state
        node.objective = result.objective
        node.bound = max(node.bound, result.bound)
        node.columns = list(master.columns)
        if node.parent_id is None:
            self.root_bound = node.bound
        values = result.values
        logger.debug(
            "Node %d: %s after %d iterations, obj=%.4f bound=%.4f",
            node.node_id, result.state.value, result.iterations, result.objective, node.bound,
        )

        if result.state is CGState.BOUND_EXCEEDED or self._prunable(node.bound):
            self.diagnostics["bounded"] += 1
            node.close(NodeStatus.BOUNDED, "bound")
            return

        if not any(is_fractional(x, cfg.tolerance) for x in values):
            selected = [col for col, x in zip(master.columns, values) if x > 0.5]
            self._offer_cover(selected, "branchAndPrice", node.node_id)
            if result.converged:
                self.diagnostics["integral"] += 1
                node.close(NodeStatus.INTEGRAL, "integral")
                return
        elif node.parent_id is None and cfg.root_ilp_heuristic:
            num_colors, chosen = solve_restricted_ilp(
                master.columns, self.num_vertices, time_limit=cfg.ilp_time_limit
            )
            if num_colors is not None:
                self._offer_cover([master.columns[i] for i in chosen], "restrictedIlp", node.node_id)

        if self._prunable(node.bound):
            self.diagnostics["bounded"] += 1
            node.close(NodeStatus.BOUNDED, "bound")
            return

        self._branch(node, values)

    def _branch(self, node: BnPNode, values: np.ndarray) -> None:
        pair = select_branching_pair(node.columns, values, node.overlay, self.config.tolerance)
        if pair is None:
            # contracted graph is complete: one color per merge group is the only coloring left
            groups = [node.overlay.group(rep) for rep in node.overlay.representatives()]
            self._offer_cover(groups, "branchAndPrice", node.node_id)
            self.diagnostics["integral"] += 1
            node.close(NodeStatus.INTEGRAL, "integral")
            return

        children = branch_on_pair(node.overlay, node.columns, pair)
        self.diagnostics["branched"] += 1
        open_children = []
        for child in children:
            child_node = BnPNode(
                node_id=next(self._node_ids),
                overlay=child.overlay if child.overlay is not None else node.overlay,
                columns=child.columns,
                parent_id=node.node_id,
                depth=node.depth + 1,
                bound=node.bound,
            )
            self.nodes[child_node.node_id] = child_node
            if child.error is not None:
                self.diagnostics["malformed_branches"] += 1
                self.diagnostics["infeasible"] += 1
                child_node.close(NodeStatus.INFEASIBLE, f"malformed branch {child.decision}")
                continue
            open_children.append(child_node)
        logger.debug("Node %d branched on %s into %s", node.node_id, pair, [c.node_id for c in open_children])
        node.close(NodeStatus.BRANCHED, f"branched on {pair}")
        self.queue.push_many(open_children)

    def _update_lower_bound(self) -> None:
        if len(self.queue) == 0:
            return
        self.bounds.raise_lower_bound(math.ceil(self.queue.min_bound() - self.config.tolerance))

    def run(self, time_limit: Optional[float] = None) -> BranchAndPriceReport:
        """Explore the tree until it is exhausted or ``time_limit`` seconds elapse."""
        start = time.monotonic()
        deadline = start + time_limit if time_limit is not None else None

        if self.num_vertices == 0:
            self.bounds.try_update_incumbent([])
            return self._report(start, optimal=True)

        root = self._initialise_root()
        if self.bounds.is_optimal():
            root.close(NodeStatus.BOUNDED, "heuristic bounds meet")
            logger.info("Heuristic bounds meet, no search needed")
        else:
            self.queue.push(root)

        while len(self.queue) > 0:
            if deadline is not None and time.monotonic() >= deadline:
                self.diagnostics["global_timeout"] = 1
                break
            if self.config.max_nodes is not None and self.nodes_processed >= self.config.max_nodes:
                self.diagnostics["node_limit"] = 1
                break
            node = self.queue.pop()
            try:
                self._process(node, deadline)
            except GlobalTimeoutError as exc:
                logger.warning("Stopping search: %s", exc)
                self.diagnostics["global_timeout"] = 1
                node.status = NodeStatus.OPEN
                self.nodes_processed -= 1
                self.queue.push(node)
                break
            self._update_lower_bound()

        if len(self.queue) == 0:
            self.bounds.close_gap()
        self.diagnostics["open_nodes"] = len(self.queue)
        return self._report(start, optimal=self.bounds.is_optimal())

    def _report(self, start: float, optimal: bool) -> BranchAndPriceReport:
        upper = self.bounds.upper_bound
        report = BranchAndPriceReport(
            objective=int(upper) if upper < math.inf else None,
            optimal=optimal,
            lower_bound=self.bounds.lower_bound,
            nodes_processed=self.nodes_processed,
            iterations=self.total_iterations,
            master_seconds=self.master_timer.total_seconds,
            pricing_seconds=self.pricing_timer.total_seconds,
            total_seconds=time.monotonic() - start,
            columns=self.bounds.incumbent,
            root_bound=self.root_bound,
            diagnostics=dict(self.diagnostics),
            bound_history=list(self.bounds.history),
        )
        logger.info(
            "Branch-and-Price finished: objective=%s optimal=%s nodes=%d iterations=%d",
            report.objective, report.optimal, report.nodes_processed, report.iterations,
        )
        return report


def chromatic_number(
    graph: nx.Graph,
    time_limit: Optional[float] = None,
    **kwargs,
) -> BranchAndPriceReport:
    """Run Branch-and-Price on ``graph``; ``kwargs`` go to BranchAndPrice."""
    return BranchAndPrice(graph, **kwargs).run(time_limit=time_limit)
