"""Built-in weighted graph generators for recurrent topologies.

Edge weights are drawn uniformly from [-1, 1] with a numpy generator seeded
by ``seed``, so a graph is fully determined by its arguments.
"""

import networkx as nx
import numpy as np

from .topology.registry import register_graph_topology


def _assign_weights(G: nx.Graph, seed: int | None) -> nx.Graph:
    rng = np.random.default_rng(seed)
    for u, v in sorted(G.edges()):
        G[u][v]["weight"] = rng.uniform(-1.0, 1.0)
    return G


@register_graph_topology("erdos_renyi", p=0.1, directed=True)
def erdos_renyi_graph(
    n: int,
    p: float = 0.1,
    directed: bool = True,
    seed: int | None = None,
) -> nx.Graph:
    """Random graph where each edge exists independently with probability ``p``."""
    G = nx.gnp_random_graph(n, p, seed=seed, directed=directed)
    return _assign_weights(G, seed)


@register_graph_topology("watts_strogatz", k=4, p=0.1)
def watts_strogatz_graph(
    n: int,
    k: int = 4,
    p: float = 0.1,
    seed: int | None = None,
) -> nx.Graph:
    """Small-world ring lattice with ``k`` neighbours and rewiring probability ``p``."""
    G = nx.watts_strogatz_graph(n, min(k, n - 1), p, seed=seed)
    return _assign_weights(G, seed)


@register_graph_topology("ring")
def ring_graph(
    n: int,
    seed: int | None = None,
) -> nx.DiGraph:
    """Directed cycle through all units."""
    G = nx.cycle_graph(n, create_using=nx.DiGraph)
    return _assign_weights(G, seed)
