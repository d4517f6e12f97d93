"""Column generation loop that optimises the LP bound of a single tree node."""

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence

import numpy as np

from .exceptions import GlobalTimeoutError, PricingTimeoutError
from .master_problem import MasterProblem, MasterSolution
from .overlay import GraphOverlay
from .pricing.base import PricingOracle
from .timing import SolveTimer

logger = logging.getLogger(__name__)


class CGState(Enum):
    SOLVING_MASTER = "solving_master"
    PRICING = "pricing"
    CONVERGED = "converged"
    ITERATION_LIMIT = "iteration_limit"
    BOUND_EXCEEDED = "bound_exceeded"


@dataclass
class ColumnGenerationResult:
    """Final state of a node's column generation.

    ``bound`` is always a valid lower bound on the node's LP optimum. It
    equals ``objective`` when the loop converged.
    """

    state: CGState
    objective: float
    bound: float
    values: np.ndarray
    iterations: int
    columns_added: int
    pricing_timeouts: int = 0

    @property
    def converged(self) -> bool:
        return self.state is CGState.CONVERGED


def farley_bound(objective: float, max_weight: float) -> float:
    """Lower bound on the LP optimum from a restricted master objective.

    Scaling the current duals by the heaviest independent set weight gives a
    feasible dual solution, hence ``objective / max(1, max_weight)``.
    """
    return objective / max(1.0, max_weight)


class ColumnGeneration:
    """Alternate master solves and pricing until no improving column exists.

    Args:
        master: Master problem holding the node's warm-start columns.
        overlay: Branching view of the graph used to build the pricing graph.
        pricers: Oracles tried in order on each round; the first one that
            yields new columns ends the round. At least one must be exact.
        max_iterations: Maximum number of master solves.
        time_limit: Optional per-node budget in seconds. The first master
            solve and pricing round always run, so every result carries
            master values.
        deadline: Optional ``time.monotonic()`` value after which
            GlobalTimeoutError is raised between iterations.
        lower_bound: Bound inherited from the parent node.
        upper_bound: Callable returning the current incumbent value; the
            loop stops early once the node cannot beat it.
        tolerance: Integrality and comparison tolerance.
    """

    def __init__(
        self,
        master: MasterProblem,
        overlay: GraphOverlay,
        pricers: Sequence[PricingOracle],
        max_iterations: int = 500,
        time_limit: Optional[float] = None,
        deadline: Optional[float] = None,
        lower_bound: float = 0.0,
        upper_bound: Optional[Callable[[], float]] = None,
        tolerance: float = 1e-6,
        master_timer: Optional[SolveTimer] = None,
        pricing_timer: Optional[SolveTimer] = None,
    ):
        if not any(p.exact for p in pricers):
            raise ValueError("Column generation needs at least one exact pricing oracle")
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.master = master
        self.overlay = overlay
        self.pricers: List[PricingOracle] = list(pricers)
        self.max_iterations = max_iterations
        self.time_limit = time_limit
        self.deadline = deadline
        self.lower_bound = lower_bound
        self.upper_bound = upper_bound
        self.tolerance = tolerance
        self.master_timer = master_timer if master_timer is not None else SolveTimer("master")
        self.pricing_timer = pricing_timer if pricing_timer is not None else SolveTimer("pricing")
        self.state = CGState.SOLVING_MASTER

    def _prunable(self, bound: float) -> bool:
        if self.upper_bound is None:
            return False
        return math.ceil(bound - self.tolerance) >= self.upper_bound()

    def run(self) -> ColumnGenerationResult:
        start = time.monotonic()
        best_bound = self.lower_bound
        iterations = 0
        columns_added = 0
        pricing_timeouts = 0
        solution: Optional[MasterSolution] = None
        self.state = CGState.SOLVING_MASTER

        while True:
            now = time.monotonic()
            if self.deadline is not None and now >= self.deadline:
                raise GlobalTimeoutError("Deadline reached during column generation")
            if iterations >= self.max_iterations or (
                iterations > 0 and self.time_limit is not None and now - start >= self.time_limit
            ):
                logger.debug("Column generation budget exhausted after %d iterations", iterations)
                self.state = CGState.ITERATION_LIMIT
                break

            # SOLVING_MASTER
            iterations += 1
            t0 = time.monotonic()
            solution = self.master.solve()
            elapsed = time.monotonic() - t0
            self.master_timer.record(seconds=elapsed)
            logger.debug(
                "CG it %d: master obj=%.6f columns=%d", iterations, solution.objective, len(self.master)
            )

            # PRICING
            self.state = CGState.PRICING
            weights = self.overlay.contract_weights(solution.duals)
            graph = self.overlay.pricing_graph
            added = 0
            proven = False
            timed_out = False
            stalled = False
            for oracle in self.pricers:
                t0 = time.monotonic()
                try:
                    result = oracle.solve(graph, weights)
                except PricingTimeoutError as exc:
                    self.pricing_timer.record(seconds=time.monotonic() - t0)
                    pricing_timeouts += 1
                    logger.warning("Pricing timed out at CG it %d: %s", iterations, exc)
                    if exc.bound is not None:
                        best_bound = max(best_bound, farley_bound(solution.objective, exc.bound))
                    timed_out = True
                    break
                self.pricing_timer.record(seconds=time.monotonic() - t0, columns_found=len(result.columns))

                if result.max_weight is not None:
                    best_bound = max(best_bound, farley_bound(solution.objective, result.max_weight))

                for col in result.columns:
                    if self.master.add_column(self.overlay.expand(col)) is not None:
                        added += 1
                if added:
                    break
                if result.columns and result.exact:
                    stalled = True
                    break
                if result.exact:
                    proven = True
                    break

            columns_added += added
            if proven or stalled:
                if stalled:
                    logger.warning(
                        "Exact pricing only returned known columns at CG it %d, "
                        "treating the master as optimal", iterations
                    )
                self.state = CGState.CONVERGED
                best_bound = max(best_bound, solution.objective)
                break
            if timed_out:
                self.state = CGState.ITERATION_LIMIT
                break
            if self._prunable(best_bound):
                self.state = CGState.BOUND_EXCEEDED
                break
            if not added:
                # no exact verdict and nothing new: nothing left to try
                self.state = CGState.ITERATION_LIMIT
                break
            self.state = CGState.SOLVING_MASTER

        return ColumnGenerationResult(
            state=self.state,
            objective=solution.objective if solution is not None else math.inf,
            bound=best_bound,
            values=self.master.solution_values(),
            iterations=iterations,
            columns_added=columns_added,
            pricing_timeouts=pricing_timeouts,
        )
