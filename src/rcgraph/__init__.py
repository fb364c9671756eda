"""rcgraph: PyTorch-native reservoir computing graphs.

A small dataflow engine for Echo State Networks and related reservoir
architectures: stateful nodes composed into an acyclic graph, executed
step by step and trained in closed form.

Key Features:
- Stateful nodes as torch nn.Modules (Input, Reservoir, Ridge, custom)
- Seeded, node-local weight generation with spectral radius scaling
- Graph-based recurrent topologies (networkx)
- Topological execution of arbitrary DAGs of nodes
- Ridge regression readouts fitted from collected design rows

Basic Usage:
>>> from rcgraph import InputNode, Model, ReservoirNode, RidgeNode
>>>
>>> model = Model()
>>> inp = model.add_node(InputNode(1), "input")
>>> res = model.add_node(ReservoirNode(100, spectral_radius=1.25, leak_rate=0.3), "reservoir")
>>> out = model.add_node(RidgeNode(100, 1, ridge=1e-5), "readout")
>>> model.connect(inp, res)
>>> model.connect(res, out)
>>>
>>> model.fit(X_train, y_train, batch_size=200, warmup=20)
>>> y = model.run([0.5])
"""

import logging

from . import api, config, errors, graph, init, models, nodes, solvers, training, utils
from .config import ReservoirParams, RidgeParams
from .errors import (
    AllocationFailure,
    CycleError,
    DimensionMismatch,
    InvalidIndex,
    InvalidParameter,
    InvalidState,
    RCError,
    Untrained,
    UntrainedWarning,
)
from .graph import Model
from .models import classic_esn, esn, linear_esn
from .nodes import InputNode, Node, NodeType, ReservoirNode, RidgeNode
from .training import ReadoutTrainer

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Modules
    "api",
    "config",
    "errors",
    "graph",
    "init",
    "models",
    "nodes",
    "solvers",
    "training",
    "utils",
    "__version__",
    # Nodes
    "Node",
    "NodeType",
    "InputNode",
    "ReservoirNode",
    "RidgeNode",
    # Configuration
    "ReservoirParams",
    "RidgeParams",
    # Model composition
    "Model",
    # Training
    "ReadoutTrainer",
    # Premade models
    "esn",
    "classic_esn",
    "linear_esn",
    # Errors
    "RCError",
    "DimensionMismatch",
    "InvalidParameter",
    "InvalidIndex",
    "CycleError",
    "InvalidState",
    "AllocationFailure",
    "Untrained",
    "UntrainedWarning",
]
