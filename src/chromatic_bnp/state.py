"""Shared search state of a Branch-and-Price run.

BoundState (global bounds and incumbent) and NodeQueue (OPEN nodes) are the
only objects shared between node evaluations. Every read-modify-write goes
through their lock; no lock is held while a node runs column generation.
"""

import heapq
import itertools
import logging
import math
import threading
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

BEST_BOUND = "best_bound"
DEPTH_FIRST = "depth_first"
SEARCH_STRATEGIES = (BEST_BOUND, DEPTH_FIRST)

T = TypeVar("T")


class BoundState:
    """Global lower/upper bound and incumbent, monotone under updates.

    The lower bound never decreases, the upper bound never increases, and the
    incumbent only changes together with a strictly better upper bound.
    """

    def __init__(self, lower_bound: int = 0, upper_bound: float = math.inf):
        self.lock = threading.Lock()
        self._lower_bound = lower_bound
        self._upper_bound = upper_bound
        self._incumbent: List[Any] = []
        self.history: List[Dict[str, float]] = []

    @property
    def lower_bound(self) -> int:
        with self.lock:
            return self._lower_bound

    @property
    def upper_bound(self) -> float:
        with self.lock:
            return self._upper_bound

    @property
    def incumbent(self) -> List[Any]:
        with self.lock:
            return list(self._incumbent)

    def try_update_incumbent(self, solution: Sequence[Any], node_id: Optional[int] = None) -> bool:
        """Install ``solution`` if it uses strictly fewer colors.

        Returns True if the incumbent was updated.
        """
        value = len(solution)
        with self.lock:
            if value >= self._upper_bound:
                return False
            old = self._upper_bound
            self._upper_bound = value
            self._incumbent = list(solution)
            self._record()
        logger.info("New incumbent: %d colors (previous: %s, node: %s)", value, old, node_id)
        return True

    def raise_lower_bound(self, bound: int) -> bool:
        """Raise the lower bound, capped at the upper bound."""
        with self.lock:
            bound = min(bound, self._upper_bound)
            if bound <= self._lower_bound:
                return False
            old = self._lower_bound
            self._lower_bound = int(bound)
            self._record()
        logger.debug("Lower bound raised: %d -> %d", old, bound)
        return True

    def close_gap(self) -> None:
        """Mark the incumbent optimal: lower bound := upper bound."""
        with self.lock:
            if self._upper_bound < math.inf and self._lower_bound < self._upper_bound:
                self._lower_bound = int(self._upper_bound)
                self._record()

    def is_optimal(self) -> bool:
        with self.lock:
            return self._lower_bound >= self._upper_bound

    def _record(self) -> None:
        # called with the lock held
        self.history.append({"lower_bound": self._lower_bound, "upper_bound": self._upper_bound})

    def snapshot(self) -> Dict[str, float]:
        with self.lock:
            return {"lower_bound": self._lower_bound, "upper_bound": self._upper_bound}


class NodeQueue(Generic[T]):
    """Collection of OPEN nodes.

    ``best_bound`` pops the node with the smallest bound (ties: smallest
    node id), ``depth_first`` pops the most recently pushed node. Nodes need
    ``bound`` and ``node_id`` attributes.
    """

    def __init__(self, strategy: str = BEST_BOUND):
        if strategy not in SEARCH_STRATEGIES:
            raise ValueError(f"Unknown search strategy: {strategy}. Use one of {SEARCH_STRATEGIES}")
        self.strategy = strategy
        self.lock = threading.Lock()
        self._heap: List[Any] = []
        self._stack: List[T] = []
        self._counter = itertools.count()

    def push(self, node: T) -> None:
        with self.lock:
            self._push(node)

    def push_many(self, nodes: Iterable[T]) -> None:
        """Push siblings so that the first one is explored first."""
        nodes = list(nodes)
        with self.lock:
            if self.strategy == DEPTH_FIRST:
                nodes = nodes[::-1]
            for node in nodes:
                self._push(node)

    def _push(self, node: T) -> None:
        if self.strategy == BEST_BOUND:
            heapq.heappush(self._heap, (round(node.bound, 9), node.node_id, next(self._counter), node))
        else:
            self._stack.append(node)

    def pop(self) -> Optional[T]:
        with self.lock:
            if self.strategy == BEST_BOUND:
                return heapq.heappop(self._heap)[-1] if self._heap else None
            return self._stack.pop() if self._stack else None

    def min_bound(self) -> float:
        """Smallest bound among OPEN nodes, inf when empty."""
        with self.lock:
            if self.strategy == BEST_BOUND:
                return self._heap[0][0] if self._heap else math.inf
            return min((n.bound for n in self._stack), default=math.inf)

    def __len__(self) -> int:
        with self.lock:
            return len(self._heap) if self.strategy == BEST_BOUND else len(self._stack)
