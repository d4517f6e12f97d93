"""Tests for vertex-pair branching."""

import networkx as nx
import numpy as np
import pytest

from chromatic_bnp.branching import (
    branch_on_pair,
    inherit_columns,
    is_fractional,
    select_branching_pair,
    together_weights,
)
from chromatic_bnp.model import BranchDirection, BranchingDecision
from chromatic_bnp.overlay import GraphOverlay


def _set_partitions(items):
    if not items:
        yield []
        return
    first, rest = items[0], items[1:]
    for partition in _set_partitions(rest):
        yield [[first]] + partition
        for i in range(len(partition)):
            yield partition[:i] + [[first] + partition[i]] + partition[i + 1:]


def _proper_colorings(graph):
    for partition in _set_partitions(sorted(graph.nodes())):
        if all(
            not graph.has_edge(u, w) for block in partition for u in block for w in block if u != w
        ):
            yield [frozenset(block) for block in partition]


@pytest.fixture
def c5_fractional(graph_c5, c5_maximal_sets):
    columns = [frozenset([i]) for i in range(5)] + c5_maximal_sets
    values = np.array([0.0] * 5 + [0.5] * 5)
    return GraphOverlay(graph_c5), columns, values


class TestPairSelection:
    def test_is_fractional(self):
        assert is_fractional(0.5)
        assert is_fractional(1.25)
        assert not is_fractional(1.0)
        assert not is_fractional(1.0 - 1e-9)
        assert not is_fractional(0.0)

    def test_together_weights(self, c5_fractional):
        overlay, columns, values = c5_fractional
        weights = together_weights(columns, values, overlay)
        assert weights[(0, 2)] == pytest.approx(0.5)
        assert weights[(0, 3)] == pytest.approx(0.5)
        assert (0, 1) not in weights

    def test_ties_go_to_lowest_pair(self, c5_fractional):
        overlay, columns, values = c5_fractional
        assert select_branching_pair(columns, values, overlay) == (0, 2)

    def test_prefers_most_fractional_pair(self, graph_c5):
        overlay = GraphOverlay(graph_c5)
        columns = [frozenset([0, 2]), frozenset([1, 3]), frozenset([2, 4]), frozenset([0, 3]), frozenset([1, 4])]
        values = np.array([0.2, 0.5, 0.8, 0.7, 0.3])
        assert select_branching_pair(columns, values, overlay) == (1, 3)

    def test_integral_solution_falls_back_to_free_pair(self, graph_c5):
        overlay = GraphOverlay(graph_c5)
        columns = [frozenset([0, 2]), frozenset([1, 3]), frozenset([4])]
        values = np.array([1.0, 1.0, 1.0])
        assert select_branching_pair(columns, values, overlay) == (0, 2)

    def test_complete_graph_has_nothing_to_branch_on(self, graph_k4):
        overlay = GraphOverlay(graph_k4)
        columns = [frozenset([i]) for i in range(4)]
        assert select_branching_pair(columns, np.ones(4), overlay) is None

    def test_merged_pairs_are_never_selected(self, graph_c5, c5_maximal_sets):
        overlay = GraphOverlay(graph_c5).with_decision(BranchingDecision(0, 2, BranchDirection.SAME))
        columns = inherit_columns(overlay, c5_maximal_sets)
        values = np.full(len(columns), 0.5)
        pair = select_branching_pair(columns, values, overlay)
        assert pair is not None
        u, v = pair
        assert overlay.representative(u) != overlay.representative(v)
        assert not overlay.are_adjacent(u, v)


class TestChildren:
    def test_children_filter_columns(self, c5_fractional):
        overlay, columns, values = c5_fractional
        same, different = branch_on_pair(overlay, columns, (0, 2))

        assert same.decision.direction is BranchDirection.SAME
        assert same.error is None
        assert set(same.columns) == {
            frozenset([0, 2]), frozenset([1, 3]), frozenset([1, 4]),
            frozenset([1]), frozenset([3]), frozenset([4]),
        }

        assert different.decision.direction is BranchDirection.DIFFERENT
        assert frozenset([0, 2]) not in different.columns
        assert len(different.columns) == len(columns) - 1

    def test_children_stay_covered(self, graph_c5):
        overlay = GraphOverlay(graph_c5)
        columns = [frozenset([0, 3]), frozenset([1, 3]), frozenset([2, 4]), frozenset([1, 4])]
        same, _ = branch_on_pair(overlay, columns, (0, 2))
        covered = set().union(*same.columns)
        assert covered == set(range(5))
        # the merged group comes back as one trivial column
        assert frozenset([0, 2]) in same.columns

    def test_malformed_child_reported(self, graph_c5):
        overlay = GraphOverlay(graph_c5).with_decision(
            BranchingDecision(0, 2, BranchDirection.DIFFERENT)
        )
        same, different = branch_on_pair(overlay, [frozenset([i]) for i in range(5)], (0, 2))
        assert same.error is not None
        assert same.overlay is None
        assert different.error is None

    def test_children_split_integral_solutions(self, graph_c5):
        """Every coloring is feasible in exactly one of the two children."""
        overlay = GraphOverlay(graph_c5)
        same, different = branch_on_pair(overlay, [], (0, 2))
        colorings = list(_proper_colorings(graph_c5))
        assert colorings
        for coloring in colorings:
            in_same = all(same.overlay.is_valid_column(c) for c in coloring)
            in_different = all(different.overlay.is_valid_column(c) for c in coloring)
            assert in_same != in_different

    def test_children_split_after_earlier_decisions(self):
        graph = nx.cycle_graph(6)
        overlay = GraphOverlay(graph).with_decision(BranchingDecision(0, 3, BranchDirection.SAME))
        same, different = branch_on_pair(overlay, [], (1, 4))
        for coloring in _proper_colorings(graph):
            in_parent = all(overlay.is_valid_column(c) for c in coloring)
            in_same = all(same.overlay.is_valid_column(c) for c in coloring)
            in_different = all(different.overlay.is_valid_column(c) for c in coloring)
            assert not (in_same and in_different)
            assert in_parent == (in_same or in_different)
