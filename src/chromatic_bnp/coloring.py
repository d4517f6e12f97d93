"""Checks on colorings produced by the solver."""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Hashable, Iterable, List, Set, Tuple

import networkx as nx


def to_partition(cover: Iterable[Iterable[Hashable]]) -> List[FrozenSet[Hashable]]:
    """Turn a cover by independent sets into a partition.

    Each vertex stays in the first class that contains it. Subsets of
    independent sets are independent, so the result is still a coloring;
    classes that become empty are dropped.
    """
    seen: Set[Hashable] = set()
    partition: List[FrozenSet[Hashable]] = []
    for color_set in cover:
        remaining = frozenset(color_set) - seen
        if remaining:
            partition.append(remaining)
            seen |= remaining
    return partition


def coloring_to_dict(coloring: List[FrozenSet[Hashable]]) -> Dict[Hashable, int]:
    """Map each vertex to the index of its color class."""
    return {v: idx for idx, color_set in enumerate(coloring) for v in color_set}


@dataclass
class ValidationResult:
    """Detailed coloring validation result."""
    valid: bool
    num_colors: int
    num_vertices_covered: int
    num_vertices_expected: int
    missing_vertices: List[Hashable]
    duplicate_vertices: List[Hashable]
    edge_violations: List[Tuple[int, Hashable, Hashable]]  # (color_idx, u, v)
    empty_color_classes: List[int]


def validate_coloring(
    graph: nx.Graph, coloring: List[FrozenSet[Hashable]],
) -> ValidationResult:
    """Detailed validation of a coloring solution.

    Returns a ValidationResult with specific error information.
    """
    all_vertices = set(graph.nodes())
    covered: Set[Hashable] = set()
    duplicates: List[Hashable] = []
    edge_violations: List[Tuple[int, Hashable, Hashable]] = []
    empty_classes: List[int] = []

    for idx, color_set in enumerate(coloring):
        if len(color_set) == 0:
            empty_classes.append(idx)
            continue
        for v in color_set:
            if v in covered:
                duplicates.append(v)
            covered.add(v)
        nodes = sorted(color_set)
        for i, u in enumerate(nodes):
            for w in nodes[i + 1:]:
                if graph.has_edge(u, w):
                    edge_violations.append((idx, u, w))

    missing = sorted(all_vertices - covered)
    valid = (
        len(missing) == 0
        and len(duplicates) == 0
        and len(edge_violations) == 0
    )

    return ValidationResult(
        valid=valid,
        num_colors=len(coloring) - len(empty_classes),
        num_vertices_covered=len(covered),
        num_vertices_expected=len(all_vertices),
        missing_vertices=missing,
        duplicate_vertices=duplicates,
        edge_violations=edge_violations,
        empty_color_classes=empty_classes,
    )


def verify_coloring(graph: nx.Graph, coloring: List[FrozenSet[Hashable]]) -> bool:
    """True iff every vertex is in exactly one class and classes are independent."""
    return validate_coloring(graph, coloring).valid
