"""Shared test fixtures for chromatic-bnp."""

import pytest

from chromatic_bnp.graphs import (
    paper_5vertex,
    cycle_c5,
    complete,
    path_p4,
    wheel_w5,
    myciel3,
    KNOWN_CHROMATIC,
)


@pytest.fixture
def graph_5vertex():
    """Triangle with a pendant path (chromatic number 3)."""
    return paper_5vertex()


@pytest.fixture
def graph_triangle():
    return complete(3)


@pytest.fixture
def graph_k4():
    return complete(4)


@pytest.fixture
def graph_p4():
    return path_p4()


@pytest.fixture
def graph_c5():
    return cycle_c5()


@pytest.fixture
def graph_w5():
    return wheel_w5()


@pytest.fixture
def graph_myciel3():
    return myciel3()


@pytest.fixture
def c5_maximal_sets():
    """The five maximum independent sets of C5."""
    return [frozenset(s) for s in ([0, 2], [1, 3], [2, 4], [0, 3], [1, 4])]


@pytest.fixture(params=list(KNOWN_CHROMATIC.keys()))
def named_graph(request):
    """Parametrized fixture yielding (name, graph, expected_chromatic_number)."""
    from chromatic_bnp.graphs import TEST_GRAPHS

    name = request.param
    return name, TEST_GRAPHS[name](), KNOWN_CHROMATIC[name]

