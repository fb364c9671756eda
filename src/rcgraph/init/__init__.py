"""Weight initialization for reservoir nodes."""

from . import graphs, topology
from .topology import GraphTopology, TopologyInitializer, get_topology

__all__ = [
    "graphs",
    "topology",
    "GraphTopology",
    "TopologyInitializer",
    "get_topology",
]
