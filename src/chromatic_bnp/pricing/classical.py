"""Classical MILP-based pricing subproblem solver."""

import logging
from typing import Optional

import networkx as nx
import numpy as np
from scipy.optimize import milp, LinearConstraint, Bounds
from scipy.sparse import lil_matrix

from ..exceptions import PricingTimeoutError
from .base import PricingOracle, PricingResult, PROFIT_TOLERANCE, is_profitable, set_weight

logger = logging.getLogger(__name__)

# scipy.optimize.milp status codes
_OPTIMAL = 0
_LIMIT_REACHED = 1
_INFEASIBLE = 2


class ClassicalPricingOracle(PricingOracle):
    """Exact MILP solver for the Maximum Weight Independent Set pricing subproblem.

    Formulation (on the positive-dual subgraph V'):
        maximize  sum  dual_vars[v] * x[v]   for v in V'
        s.t.      x[u] + x[v] <= 1           for all edges (u,v) in G[V']
                  x[v] in {0, 1}

    Args:
        time_limit: Optional HiGHS time limit in seconds. When it is hit
            before an improving set is found, PricingTimeoutError is raised
            with the solver's dual bound.
        tolerance: Profitability margin above 1.
    """

    exact = True

    def __init__(self, time_limit: Optional[float] = None, tolerance: float = PROFIT_TOLERANCE):
        self.time_limit = time_limit
        self.tolerance = tolerance

    def solve(self, graph: nx.Graph, dual_vars: np.ndarray) -> PricingResult:
        node_list = sorted(graph.nodes())
        if not node_list:
            return PricingResult(max_weight=0.0, exact=True)

        # Filter to positive-dual subgraph V' = {v | dual_vars[v] > 0}
        filtered_nodes = [v for v in node_list if dual_vars[v] > 1e-10]
        if not filtered_nodes:
            return PricingResult(max_weight=0.0, exact=True)

        filtered_weights = np.array([dual_vars[v] for v in filtered_nodes], dtype=float)
        filtered_node_to_idx = {node: i for i, node in enumerate(filtered_nodes)}
        subgraph = graph.subgraph(filtered_nodes)
        n_filt = len(filtered_nodes)

        # No edges left: every positive-dual vertex fits in one set
        if subgraph.number_of_edges() == 0:
            total = float(filtered_weights.sum())
            columns = [set(filtered_nodes)] if total > 1.0 + self.tolerance else []
            return PricingResult(columns=columns, max_weight=total, exact=True)

        # Objective: maximize weighted sum -> minimize negative
        c_psp = -filtered_weights

        edges = list(subgraph.edges())
        A_ub = lil_matrix((len(edges), n_filt), dtype=float)
        for i, (u, v) in enumerate(edges):
            A_ub[i, filtered_node_to_idx[u]] = 1
            A_ub[i, filtered_node_to_idx[v]] = 1
        constraints = [LinearConstraint(A_ub.tocsr(), -np.inf, np.ones(len(edges)))]

        # HiGHS stops at a 1e-4 relative gap by default; pricing needs the true optimum
        options = {"mip_rel_gap": 0.0}
        if self.time_limit is not None:
            options["time_limit"] = float(self.time_limit)

        result = milp(
            c=c_psp,
            constraints=constraints,
            integrality=np.ones(n_filt, dtype=int),
            bounds=Bounds(lb=0, ub=1),
            options=options,
        )

        if result.status == _INFEASIBLE:
            logger.debug("Pricing subproblem infeasible, no column")
            return PricingResult(max_weight=0.0, exact=True)

        selected = []
        if result.x is not None:
            selected = [filtered_nodes[j] for j in range(n_filt) if result.x[j] > 0.5]

        dual_bound = getattr(result, "mip_dual_bound", None)
        bound = -float(dual_bound) if dual_bound is not None else None

        if result.status == _LIMIT_REACHED:
            if selected and is_profitable(selected, dual_vars, self.tolerance):
                logger.debug("Pricing hit its time limit with an improving set")
                return PricingResult(columns=[set(selected)], max_weight=bound, exact=False)
            raise PricingTimeoutError(
                f"Exact pricing exceeded {self.time_limit}s without an improving set",
                bound=bound,
            )

        if result.status != _OPTIMAL:
            raise RuntimeError(f"Exact pricing failed: {result.message}")

        best = set_weight(selected, dual_vars)
        # the dual bound is never below the true optimum
        max_weight = max(best, bound) if bound is not None else best
        if selected and best > 1.0 + self.tolerance:
            return PricingResult(columns=[set(selected)], max_weight=max_weight, exact=True)
        return PricingResult(max_weight=max_weight, exact=True)
