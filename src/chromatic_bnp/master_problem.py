"""Restricted Master Problem (RMP) for graph coloring and its ILP heuristic."""

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Set, Tuple

import numpy as np
from scipy.optimize import linprog, milp, LinearConstraint, Bounds
from scipy.sparse import lil_matrix

from .exceptions import InfeasibleNodeError

logger = logging.getLogger(__name__)


def _coverage_matrix(columns: List[FrozenSet[int]], num_vertices: int):
    A = lil_matrix((num_vertices, len(columns)))
    for s_idx, col in enumerate(columns):
        for v in col:
            A[v, s_idx] = 1
    return A.tocsc()


def solve_rmp(
    columns: List[FrozenSet[int]],
    num_vertices: int,
) -> Tuple[Optional[float], Optional[np.ndarray], Optional[np.ndarray]]:
    """Solve the LP relaxation of the Restricted Master Problem.

    minimize   sum y_s
    s.t.       sum_{s : v in s} y_s  >= 1    for all v
               y_s >= 0

    Args:
        columns: Current set of independent-set columns (each a frozenset of vertex indices).
        num_vertices: Total number of vertices in the graph.

    Returns:
        (objective_value, dual_variables, column_values) or (None, None, None)
        on failure. Duals are the non-negative covering-row multipliers.
    """
    num_columns = len(columns)
    if num_vertices == 0:
        return 0.0, np.zeros(0), np.zeros(num_columns)
    if num_columns == 0:
        return None, None, None

    # linprog wants A_ub x <= b_ub, so the covering rows are negated
    A = -_coverage_matrix(columns, num_vertices)
    b = -np.ones(num_vertices)
    c = np.ones(num_columns)
    bounds = [(0, None)] * num_columns

    result = linprog(c, A_ub=A, b_ub=b, bounds=bounds, method="highs")
    if not result.success:
        return None, None, None

    duals = np.zeros(num_vertices)
    if hasattr(result, "ineqlin") and result.ineqlin is not None:
        marginals = (
            result.ineqlin["marginals"]
            if isinstance(result.ineqlin, dict)
            else result.ineqlin.marginals
        )
        if marginals is not None:
            # marginals are d(obj)/d(b_ub) <= 0; flip the sign back for >= rows
            duals = np.maximum(-np.asarray(marginals, dtype=float), 0.0)
    return float(result.fun), duals, np.asarray(result.x, dtype=float)


@dataclass
class MasterSolution:
    """Optimal LP solution of the master over its current columns."""

    objective: float
    duals: np.ndarray
    values: np.ndarray


class MasterProblem:
    """Set-covering LP over the independent sets generated for one node.

    Columns are only ever appended, so every index returned by
    ``add_column`` stays valid for the lifetime of the master.
    """

    def __init__(self, num_vertices: int, columns: Iterable[Iterable[int]] = ()):
        self.num_vertices = num_vertices
        self.columns: List[FrozenSet[int]] = []
        self._index = {}
        self.solution: Optional[MasterSolution] = None
        for col in columns:
            self.add_column(col)

    def add_column(self, vertices: Iterable[int]) -> Optional[int]:
        """Append a column; returns its index, or None if it already exists."""
        col = frozenset(vertices)
        if not col:
            raise ValueError("Cannot add an empty column")
        bad = [v for v in col if not (0 <= v < self.num_vertices)]
        if bad:
            raise ValueError(f"Column references vertices absent from the graph: {sorted(bad)}")
        if col in self._index:
            return None
        self._index[col] = len(self.columns)
        self.columns.append(col)
        return self._index[col]

    def __contains__(self, vertices) -> bool:
        return frozenset(vertices) in self._index

    def __len__(self) -> int:
        return len(self.columns)

    def solve(self) -> MasterSolution:
        """Solve the LP relaxation; raises InfeasibleNodeError on failure."""
        obj, duals, values = solve_rmp(self.columns, self.num_vertices)
        if obj is None:
            uncovered = self.uncovered_vertices()
            raise InfeasibleNodeError(
                f"Master LP infeasible with {len(self.columns)} columns "
                f"(uncovered vertices: {sorted(uncovered)})"
            )
        self.solution = MasterSolution(objective=obj, duals=duals, values=values)
        return self.solution

    def solution_values(self) -> np.ndarray:
        """Column values of the last solve, zero for columns added since."""
        if self.solution is None:
            return np.zeros(len(self.columns))
        values = np.zeros(len(self.columns))
        values[: len(self.solution.values)] = self.solution.values
        return values

    def uncovered_vertices(self) -> Set[int]:
        covered: Set[int] = set()
        for col in self.columns:
            covered |= col
        return set(range(self.num_vertices)) - covered


def solve_restricted_ilp(
    columns: List[FrozenSet[int]],
    num_vertices: int,
    time_limit: Optional[float] = None,
) -> Tuple[Optional[int], List[int]]:
    """Solve the integer covering problem over a fixed column pool.

    minimize   sum y_s
    s.t.       sum_{s : v in s} y_s  >= 1    for all v
               y_s in {0, 1}

    Used as a primal heuristic: the optimum over a restricted pool is a
    feasible coloring, not necessarily an optimal one.

    Args:
        columns: Column pool.
        num_vertices: Number of graph vertices.
        time_limit: Optional time limit in seconds. If reached, returns best
            feasible solution found (may not be optimal).

    Returns:
        (num_colors, selected_column_indices) or (None, []) on failure.
    """
    num_columns = len(columns)
    if num_columns == 0 or num_vertices == 0:
        return None, []

    A = _coverage_matrix(columns, num_vertices)
    c = np.ones(num_columns)
    constraints = [LinearConstraint(A, np.ones(num_vertices), np.inf)]
    integrality = np.ones(num_columns, dtype=int)

    options = {}
    if time_limit is not None:
        options["time_limit"] = float(time_limit)

    result = milp(
        c=c,
        constraints=constraints,
        integrality=integrality,
        bounds=Bounds(lb=0, ub=1),
        options=options if options else None,
    )
    if result.x is None:
        logger.debug("Restricted ILP found no solution: %s", result.message)
        return None, []

    selected = [i for i, val in enumerate(result.x) if val > 0.5]
    return len(selected), selected
