"""End-to-end Branch-and-Price tests."""

import networkx as nx
import pytest
from scipy.optimize import OptimizeResult

from chromatic_bnp import branch_and_price
from chromatic_bnp.branch_and_price import (
    BranchAndPrice,
    BranchAndPriceConfig,
    NodeStatus,
    chromatic_number,
)
from chromatic_bnp.coloring import verify_coloring
from chromatic_bnp.graphs import erdos_renyi
from chromatic_bnp.heuristics import greedy_coloring, max_clique_size
from chromatic_bnp.pricing import classical
from chromatic_bnp.pricing.classical import ClassicalPricingOracle
from chromatic_bnp.pricing.greedy import GreedyPricingOracle


def _classes(report):
    return [col.vertices for col in report.columns]


class TestKnownGraphs:
    def test_all_known_graphs(self, named_graph):
        name, graph, expected_chi = named_graph
        report = chromatic_number(graph)

        assert report.optimal, f"{name} not solved to optimality"
        assert report.objective == expected_chi, (
            f"{name}: expected chi={expected_chi}, got {report.objective}"
        )
        assert report.lower_bound == expected_chi
        assert verify_coloring(graph, _classes(report)), f"Invalid coloring on {name}"
        assert len(report.columns) == report.objective

    def test_bounds_bracket_result(self, named_graph):
        name, graph, _ = named_graph
        report = chromatic_number(graph)
        assert max_clique_size(graph) <= report.objective <= len(greedy_coloring(graph))

    def test_bounds_are_monotone(self, graph_myciel3):
        report = chromatic_number(graph_myciel3)
        lows = [h["lower_bound"] for h in report.bound_history]
        ups = [h["upper_bound"] for h in report.bound_history]
        assert lows == sorted(lows)
        assert ups == sorted(ups, reverse=True)

    def test_complete_graphs(self):
        for k in range(1, 7):
            report = chromatic_number(nx.complete_graph(k))
            assert report.objective == k
            assert report.optimal

    def test_edgeless_graph(self):
        report = chromatic_number(nx.empty_graph(6))
        assert report.objective == 1
        assert _classes(report) == [frozenset(range(6))]

    def test_empty_graph(self):
        report = chromatic_number(nx.Graph())
        assert report.objective == 0
        assert report.optimal
        assert report.columns == []

    def test_random_graph(self):
        G = erdos_renyi(12, 0.4, seed=42)
        report = chromatic_number(G)
        assert report.optimal
        assert verify_coloring(G, _classes(report))

    def test_string_labels(self):
        G = nx.relabel_nodes(nx.cycle_graph(5), dict(enumerate("abcde")))
        report = chromatic_number(G)
        assert report.objective == 3
        assert verify_coloring(G, _classes(report))
        coloring = report.coloring()
        assert set(coloring) == set("abcde")
        assert all(coloring[u] != coloring[v] for u, v in G.edges())


class TestSearch:
    def test_c5_solved_at_root(self, graph_c5):
        bap = BranchAndPrice(graph_c5)
        report = bap.run()
        assert report.objective == 3
        assert report.nodes_processed == 1
        assert report.iterations >= 1
        assert 2.0 < report.root_bound <= 2.5 + 1e-6
        assert bap.nodes[0].status is NodeStatus.BOUNDED

    @pytest.mark.parametrize("strategy", ["best_bound", "depth_first"])
    def test_branching_needed(self, graph_myciel3, strategy):
        config = BranchAndPriceConfig(search_strategy=strategy, root_ilp_heuristic=False)
        bap = BranchAndPrice(graph_myciel3, config=config)
        report = bap.run()
        assert report.objective == 4
        assert report.optimal
        assert verify_coloring(graph_myciel3, _classes(report))
        # fractional chromatic number of the Groetzsch graph is 2.9
        assert report.root_bound <= 2.9 + 1e-6
        assert report.diagnostics.get("open_nodes") == 0

    def test_branching_without_heuristic_start(self, graph_c5):
        bap = BranchAndPrice(
            graph_c5,
            config=BranchAndPriceConfig(root_ilp_heuristic=False),
            initial_solution_provider=None,
            lower_bound_provider=None,
        )
        report = bap.run()
        assert report.objective == 3
        assert report.optimal
        assert report.diagnostics.get("branched", 0) >= 1
        statuses = {node.status for node in bap.nodes.values()}
        assert NodeStatus.BRANCHED in statuses
        assert NodeStatus.OPEN not in statuses
        assert NodeStatus.PROCESSING not in statuses

    def test_only_exact_pricer(self, graph_w5):
        report = chromatic_number(graph_w5, pricers=[ClassicalPricingOracle()])
        assert report.objective == 4
        assert report.optimal

    def test_time_limit_returns_incumbent(self, graph_myciel3):
        report = chromatic_number(graph_myciel3, time_limit=1e-9)
        assert not report.optimal
        assert report.diagnostics["global_timeout"] == 1
        assert report.objective is not None and report.objective >= 4
        assert verify_coloring(graph_myciel3, _classes(report))

    def test_node_limit(self, graph_myciel3):
        config = BranchAndPriceConfig(max_nodes=1, root_ilp_heuristic=False)
        report = chromatic_number(
            graph_myciel3, config=config, initial_solution_provider=None
        )
        assert report.nodes_processed == 1
        assert report.diagnostics["node_limit"] == 1
        assert not report.optimal
        assert report.lower_bound == 3

    def test_timers_accumulate(self, graph_c5):
        report = chromatic_number(graph_c5)
        assert report.master_seconds > 0
        assert report.pricing_seconds > 0
        assert report.summary()["objective"] == 3


class TestBudgetsAndDiagnostics:
    def test_tiny_node_time_limit(self, graph_c5):
        config = BranchAndPriceConfig(node_time_limit=1e-12)
        report = chromatic_number(graph_c5, config=config, initial_solution_provider=None)
        assert report.objective == 3
        assert report.optimal
        assert report.diagnostics["iteration_limits"] >= 1
        assert verify_coloring(graph_c5, _classes(report))

    def test_tiny_node_time_limit_with_node_cap(self, graph_myciel3):
        config = BranchAndPriceConfig(node_time_limit=1e-12, max_nodes=20)
        report = chromatic_number(graph_myciel3, config=config, initial_solution_provider=None)
        assert report.objective is not None and report.objective >= 4
        assert report.lower_bound <= 4
        assert verify_coloring(graph_myciel3, _classes(report))

    def test_pricing_timeouts_are_counted(self, graph_c5, monkeypatch):
        def out_of_time(*args, **kwargs):
            # an independent set of C5 holds two vertices of dual weight at most 1
            return OptimizeResult(status=1, x=None, mip_dual_bound=-2.0, message="time limit")

        monkeypatch.setattr(classical, "milp", out_of_time)
        config = BranchAndPriceConfig(pricing_time_limit=0.5)
        report = chromatic_number(graph_c5, config=config)
        assert report.objective == 3
        assert report.optimal
        assert report.diagnostics["pricing_timeouts"] >= 1
        assert report.diagnostics["iteration_limits"] >= 1

    def test_malformed_child_is_infeasible(self, graph_c5, monkeypatch):
        real_select = branch_and_price.select_branching_pair
        calls = []

        def adjacent_first(*args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                return (0, 1)
            return real_select(*args, **kwargs)

        monkeypatch.setattr(branch_and_price, "select_branching_pair", adjacent_first)
        bap = BranchAndPrice(
            graph_c5,
            config=BranchAndPriceConfig(root_ilp_heuristic=False),
            initial_solution_provider=None,
        )
        report = bap.run()
        assert report.objective == 3
        assert report.optimal
        assert report.diagnostics["malformed_branches"] == 1
        assert report.diagnostics["infeasible"] >= 1
        assert bap.nodes[1].status is NodeStatus.INFEASIBLE
        assert "malformed" in bap.nodes[1].fathom_reason

    def test_uncovered_child_is_infeasible(self, graph_c5, monkeypatch):
        real_branch = branch_and_price.branch_on_pair
        calls = []

        def drop_first_child_columns(*args, **kwargs):
            children = real_branch(*args, **kwargs)
            calls.append(1)
            if len(calls) == 1:
                children[0].columns = []
            return children

        monkeypatch.setattr(branch_and_price, "branch_on_pair", drop_first_child_columns)
        bap = BranchAndPrice(
            graph_c5,
            config=BranchAndPriceConfig(root_ilp_heuristic=False),
            initial_solution_provider=None,
        )
        report = bap.run()
        assert report.diagnostics["infeasible"] == 1
        assert bap.nodes[1].status is NodeStatus.INFEASIBLE
        assert report.objective == 3
        assert report.optimal


class TestWarmStart:
    def test_warm_start_sets_incumbent(self, graph_p4):
        bap = BranchAndPrice(graph_p4, initial_solution_provider=None)
        bap.warm_start([{0, 2}, {1, 3}])
        report = bap.run()
        assert report.objective == 2
        assert report.iterations == 0
        assert all(col.is_initial for col in report.columns)
        assert {col.label for col in report.columns} == {"warmStart"}

    def test_warm_start_never_needs_more_iterations(self, graph_p4):
        cold = chromatic_number(graph_p4, initial_solution_provider=None)
        bap = BranchAndPrice(graph_p4, initial_solution_provider=None)
        bap.warm_start([{0, 2}, {1, 3}])
        warm = bap.run()
        assert warm.iterations <= cold.iterations
        assert warm.objective == cold.objective == 2

    def test_warm_start_keeps_optimum(self, graph_c5):
        cold = chromatic_number(graph_c5, initial_solution_provider=None)
        bap = BranchAndPrice(graph_c5, initial_solution_provider=None)
        bap.warm_start([{0, 2}, {1, 3}, {4}])
        warm = bap.run()
        assert warm.objective == cold.objective == 3

    def test_partial_warm_start_is_not_an_incumbent(self, graph_c5):
        bap = BranchAndPrice(graph_c5, initial_solution_provider=None)
        bap.warm_start([{0, 2}])
        assert bap.bounds.incumbent == []
        assert bap.run().objective == 3

    def test_rejects_dependent_set(self, graph_c5):
        bap = BranchAndPrice(graph_c5)
        with pytest.raises(ValueError, match="not an independent set"):
            bap.warm_start([{0, 1}])

    def test_rejects_unknown_vertex(self, graph_c5):
        bap = BranchAndPrice(graph_c5)
        with pytest.raises(ValueError, match="absent"):
            bap.warm_start([{0, 42}])


class TestConfiguration:
    def test_rejects_directed_graph(self):
        with pytest.raises(TypeError):
            BranchAndPrice(nx.DiGraph([(0, 1)]))

    def test_rejects_self_loops(self):
        G = nx.Graph([(0, 0), (0, 1)])
        with pytest.raises(ValueError, match="self-loops"):
            BranchAndPrice(G)

    def test_requires_exact_pricer(self, graph_c5):
        with pytest.raises(ValueError, match="exact"):
            BranchAndPrice(graph_c5, pricers=[GreedyPricingOracle()])

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"search_strategy": "random"},
            {"max_cg_iterations": 0},
            {"tolerance": 0.0},
            {"node_time_limit": -1.0},
            {"max_nodes": 0},
        ],
    )
    def test_invalid_config(self, kwargs):
        with pytest.raises(ValueError):
            BranchAndPriceConfig(**kwargs)
