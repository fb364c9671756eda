"""Topology system for recurrent weight initialization.

Wraps networkx graph generators as initializers for the recurrent matrix
of a :class:`~rcgraph.nodes.ReservoirNode`.

Basic Usage
-----------
>>> from rcgraph.init.topology import get_topology
>>> topology = get_topology("erdos_renyi", p=0.1)
>>> weight = torch.empty(100, 100)
>>> topology.initialize(weight, spectral_radius=0.9, seed=42)

Registering custom topologies with decorator:

>>> from rcgraph.init.topology import register_graph_topology
>>> @register_graph_topology("custom", param=1.0)
... def my_custom_graph(n, param=1.0, seed=None):
...     G = nx.DiGraph()
...     # ... graph generation logic
...     return G
>>> topology = get_topology("custom")
"""

from .base import GraphTopology, TopologyInitializer
from .registry import get_topology, register_graph_topology, show_topologies

__all__ = [
    "GraphTopology",
    "TopologyInitializer",
    "get_topology",
    "register_graph_topology",
    "show_topologies",
]
