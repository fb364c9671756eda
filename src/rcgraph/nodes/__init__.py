"""Node implementations for rcgraph.

- Node: Abstract stateful computational unit (base for custom nodes)
- InputNode: Passthrough entry point
- ReservoirNode: Leaky-integrator ESN reservoir
- RidgeNode: Linear readout trained by ridge regression
"""

from .base import Node, NodeType
from .input import InputNode
from .reservoir import ReservoirNode
from .ridge import RidgeNode

__all__ = [
    "Node",
    "NodeType",
    "InputNode",
    "ReservoirNode",
    "RidgeNode",
]
