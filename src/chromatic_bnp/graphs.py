"""Named test graphs with known chromatic numbers."""

import networkx as nx


def paper_5vertex() -> nx.Graph:
    """Triangle 0-1-2 with a path 1-3-4-2 hanging off it. Chromatic number = 3."""
    G = nx.Graph()
    G.add_nodes_from(range(5))
    G.add_edges_from([(0, 1), (0, 2), (1, 2), (1, 3), (2, 4), (3, 4)])
    return G


def cycle_c5() -> nx.Graph:
    """C5 odd cycle. Chromatic number = 3."""
    return nx.cycle_graph(5)


def cycle_c6() -> nx.Graph:
    """C6 even cycle. Chromatic number = 2."""
    return nx.cycle_graph(6)


def complete(k: int) -> nx.Graph:
    """Complete graph K_k. Chromatic number = k."""
    return nx.complete_graph(k)


def path_p4() -> nx.Graph:
    """P4 path graph. Chromatic number = 2."""
    return nx.path_graph(4)


def bipartite_k33() -> nx.Graph:
    """Complete bipartite K_{3,3}. Chromatic number = 2."""
    return nx.complete_bipartite_graph(3, 3)


def edgeless(n: int = 5) -> nx.Graph:
    """n isolated vertices. Chromatic number = 1."""
    return nx.empty_graph(n)


def wheel_w5() -> nx.Graph:
    """Wheel graph W5 (6 nodes including center). Chromatic number = 4."""
    return nx.wheel_graph(6)


def myciel3() -> nx.Graph:
    """Groetzsch graph (Mycielskian of C5), triangle-free. Chromatic number = 4."""
    return nx.mycielski_graph(4)


def petersen() -> nx.Graph:
    """Petersen graph. Chromatic number = 3."""
    return nx.petersen_graph()


def erdos_renyi(n: int, p: float, seed: int = 42) -> nx.Graph:
    """Erdos-Renyi random graph G(n,p)."""
    return nx.gnp_random_graph(n, p, seed=seed)


KNOWN_CHROMATIC = {
    "paper_5vertex": 3,
    "cycle_c5": 3,
    "cycle_c6": 2,
    "complete_k4": 4,
    "path_p4": 2,
    "bipartite_k33": 2,
    "edgeless": 1,
    "wheel_w5": 4,
    "myciel3": 4,
    "petersen": 3,
}

TEST_GRAPHS = {
    "paper_5vertex": paper_5vertex,
    "cycle_c5": cycle_c5,
    "cycle_c6": cycle_c6,
    "complete_k4": lambda: complete(4),
    "path_p4": path_p4,
    "bipartite_k33": bipartite_k33,
    "edgeless": edgeless,
    "wheel_w5": wheel_w5,
    "myciel3": myciel3,
    "petersen": petersen,
}
