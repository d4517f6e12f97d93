"""Vertex-pair branching (Ryan-Foster) for the coloring master problem.

A fractional master solution is cut off by choosing two vertices u, v that
are colored together only fractionally. The SAME child contracts them, the
DIFFERENT child forbids them from sharing a color. Every integral coloring
lies in exactly one of the two children.
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

import numpy as np

from .exceptions import MalformedBranchError
from .model import BranchDirection, BranchingDecision
from .overlay import GraphOverlay

logger = logging.getLogger(__name__)


def _fractional_part(x: float) -> float:
    return x - math.floor(x)


def is_fractional(x: float, tolerance: float = 1e-6) -> bool:
    frac = _fractional_part(x)
    return tolerance < frac < 1.0 - tolerance


def together_weights(
    columns: Sequence[FrozenSet[int]],
    values: np.ndarray,
    overlay: GraphOverlay,
    tolerance: float = 1e-6,
) -> Dict[Tuple[int, int], float]:
    """Sum of column values over columns holding both groups of each pair."""
    together: Dict[Tuple[int, int], float] = defaultdict(float)
    for col, x in zip(columns, values):
        if x <= tolerance:
            continue
        reps = sorted({overlay.representative(v) for v in col})
        for i, a in enumerate(reps):
            for b in reps[i + 1:]:
                together[(a, b)] += x
    return together


def select_branching_pair(
    columns: Sequence[FrozenSet[int]],
    values: np.ndarray,
    overlay: GraphOverlay,
    tolerance: float = 1e-6,
) -> Optional[Tuple[int, int]]:
    """Pick the representative pair to branch on.

    The preferred pair is the one whose together-weight is fractional and
    closest to 0.5; ties go to the lexicographically smallest pair. If no
    pair has a fractional together-weight, the smallest non-adjacent pair of
    vertices from fractional columns is used, and failing that the smallest
    non-adjacent pair of the whole graph. Returns None only when the
    contracted graph is complete, i.e. there is nothing left to branch on.
    """
    best_pair = None
    best_score = -1.0
    for pair, weight in sorted(together_weights(columns, values, overlay, tolerance).items()):
        if not is_fractional(weight, tolerance):
            continue
        frac = _fractional_part(weight)
        score = min(frac, 1.0 - frac)
        if score > best_score + tolerance:
            best_pair, best_score = pair, score
    if best_pair is not None:
        return best_pair

    fractional_reps: Set[int] = set()
    for col, x in zip(columns, values):
        if is_fractional(x, tolerance):
            fractional_reps |= {overlay.representative(v) for v in col}
    pair = _first_free_pair(sorted(fractional_reps), overlay)
    if pair is not None:
        return pair
    return _first_free_pair(overlay.representatives(), overlay)


def _first_free_pair(reps: List[int], overlay: GraphOverlay) -> Optional[Tuple[int, int]]:
    for i, a in enumerate(reps):
        for b in reps[i + 1:]:
            if not overlay.are_adjacent(a, b):
                return a, b
    return None


def inherit_columns(
    overlay: GraphOverlay,
    columns: Sequence[FrozenSet[int]],
) -> List[FrozenSet[int]]:
    """Filter parent columns for a child and restore coverage.

    Columns violating the child's decisions are dropped; each super-vertex
    left uncovered receives its merge group as a trivial column so that the
    child's master stays feasible.
    """
    kept = [col for col in columns if overlay.is_valid_column(col)]
    covered: Set[int] = set()
    for col in kept:
        covered |= col
    for rep in overlay.representatives():
        if rep not in covered:
            kept.append(overlay.group(rep))
    return kept


@dataclass
class Child:
    """A child node produced by branching, before it enters the tree.

    ``overlay`` is None and ``error`` set when the decision contradicts the
    decisions already on the path.
    """

    decision: BranchingDecision
    overlay: Optional[GraphOverlay]
    columns: List[FrozenSet[int]] = field(default_factory=list)
    error: Optional[MalformedBranchError] = None


def branch_on_pair(
    overlay: GraphOverlay,
    columns: Sequence[FrozenSet[int]],
    pair: Tuple[int, int],
) -> List[Child]:
    """Create the SAME and DIFFERENT children for ``pair``, in that order."""
    u, v = pair
    children: List[Child] = []
    for direction in (BranchDirection.SAME, BranchDirection.DIFFERENT):
        decision = BranchingDecision(u, v, direction)
        try:
            child_overlay = overlay.with_decision(decision)
        except MalformedBranchError as exc:
            logger.warning("Malformed branch %s: %s", decision, exc)
            children.append(Child(decision=decision, overlay=None, error=exc))
            continue
        inherited = inherit_columns(child_overlay, columns)
        logger.debug(
            "%s keeps %d of %d parent columns", decision, len(inherited), len(columns)
        )
        children.append(Child(decision=decision, overlay=child_overlay, columns=inherited))
    return children
