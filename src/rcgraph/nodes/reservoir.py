"""ReservoirNode implementation for rcgraph.

This module provides ReservoirNode, the stateful recurrent core of an Echo
State Network, with seeded random or graph-based weight initialization.
"""

import logging
from typing import Callable, Dict, Optional

import torch
import torch.nn.functional as F

from ..config import ReservoirParams
from ..errors import AllocationFailure, DimensionMismatch, InvalidParameter
from ..init.topology import TopologyInitializer, get_topology
from ..utils.linalg import scale_spectral_radius
from .base import Node, NodeType

logger = logging.getLogger(__name__)

_ACTIVATIONS: Dict[str, Callable[[torch.Tensor], torch.Tensor]] = {
    "tanh": torch.tanh,
    "sigmoid": torch.sigmoid,
    "relu": F.relu,
    "identity": lambda x: x,
}


def _resolve_topology(
    topology: str | TopologyInitializer | None,
) -> Optional[TopologyInitializer]:
    """Map a topology name or initializer to an initializer."""
    if topology is None or isinstance(topology, TopologyInitializer):
        return topology
    if isinstance(topology, str):
        try:
            return get_topology(topology)
        except ValueError as exc:
            raise InvalidParameter(str(exc)) from exc
    raise InvalidParameter(
        f"topology must be a string or TopologyInitializer, got {type(topology).__name__}"
    )


class ReservoirNode(Node):
    """Leaky-integrator Echo State Network reservoir.

    The reservoir state evolves according to:
        pre_t = W_in @ x_t + W @ h_{t-1}
        h_t = (1 - leak_rate) * h_{t-1} + leak_rate * activation(pre_t)

    Where:
        - W_in: Input weight matrix (units, input_dim), uniform in
          [-input_scaling, input_scaling]
        - W: Recurrent weight matrix (units, units), uniform in [-1, 1] with
          each entry kept with probability (1 - sparsity), rescaled to the
          requested spectral radius
        - h_t: State at step t, also the node output

    All weights come from a generator local to the node, seeded once at
    construction. The recurrent matrix is drawn first and the input matrix
    second, either at construction (``input_dim`` given) or on the first
    forward call, so both paths give the same weights for the same seed.

    Args:
        units: Number of reservoir units
        spectral_radius: Desired spectral radius for W (default: 0.9)
        leak_rate: Leaky integration rate in (0, 1] (default: 0.3)
        input_scaling: Scale of input weights (default: 1.0)
        sparsity: Probability that a recurrent weight is zero (default: 0.1)
        activation: "tanh", "sigmoid", "relu" or "identity"
        seed: Seed for weight generation (default: 42)
        input_dim: Input length; None fixes it on the first forward call
        topology: Optional graph topology for W. Either the name of a
                  registered topology ("erdos_renyi", ...) or a
                  TopologyInitializer. Replaces the sparse uniform draw.
        name: Optional node name

    Example:
        >>> reservoir = ReservoirNode(100, spectral_radius=1.25, leak_rate=0.3, seed=42)
        >>> h = reservoir([0.5])  # input_dim fixed to 1 here
        >>> h.shape
        torch.Size([100])
        >>> reservoir.reset()
    """

    node_type = NodeType.RESERVOIR

    def __init__(
        self,
        units: int,
        spectral_radius: float = 0.9,
        leak_rate: float = 0.3,
        input_scaling: float = 1.0,
        sparsity: float = 0.1,
        activation: str = "tanh",
        seed: int = 42,
        input_dim: Optional[int] = None,
        topology: str | TopologyInitializer | None = None,
        name: Optional[str] = None,
    ) -> None:
        params = ReservoirParams(
            units=units,
            spectral_radius=spectral_radius,
            leak_rate=leak_rate,
            input_scaling=input_scaling,
            sparsity=sparsity,
            activation=activation,
            seed=seed,
            input_dim=input_dim,
        ).validate()

        super().__init__(
            output_dim=int(units),
            state_dim=int(units),
            input_dim=int(input_dim) if input_dim is not None else None,
            name=name,
        )

        self.params = params
        self.units = int(units)
        self.spectral_radius = float(spectral_radius)
        self.leak_rate = float(leak_rate)
        self.input_scaling = float(input_scaling)
        self.sparsity = float(sparsity)
        self.seed = int(seed)
        self.topology = topology
        self._topology_init = _resolve_topology(topology)

        self._activation_name = activation
        self.activation = _ACTIVATIONS[activation]

        self._generator = torch.Generator().manual_seed(self.seed)

        self.register_buffer("weight_hh", None)
        self.register_buffer("weight_in", None)

        try:
            self._initialize_recurrent_weights()
            if self._input_dim is not None:
                self._initialize_input_weights(self._input_dim)
        except (RuntimeError, MemoryError) as exc:
            raise AllocationFailure(
                f"Could not allocate reservoir weights for {self.units} units: {exc}"
            ) from exc

        logger.debug(
            "Created reservoir: units=%d sr=%s lr=%s sparsity=%s seed=%d",
            self.units,
            self.spectral_radius,
            self.leak_rate,
            self.sparsity,
            self.seed,
        )

    @classmethod
    def from_params(
        cls,
        params: ReservoirParams,
        name: Optional[str] = None,
        topology: str | TopologyInitializer | None = None,
    ) -> "ReservoirNode":
        """Build a reservoir from a parameter record."""
        return cls(**params.to_dict(), topology=topology, name=name)

    # ------------------------------------------------------------------
    # Weight initialization
    # ------------------------------------------------------------------

    def _uniform(self, *shape: int, scale: float = 1.0) -> torch.Tensor:
        """Draw uniform values in [-scale, scale] from the node generator."""
        values = torch.rand(*shape, generator=self._generator, dtype=torch.float64)
        return ((2.0 * values - 1.0) * scale).to(torch.get_default_dtype())

    def _initialize_recurrent_weights(self) -> None:
        """Initialize the recurrent matrix and rescale its spectral radius."""
        if self._topology_init is not None:
            weight = torch.empty(self.units, self.units)
            graph_seed = int(torch.randint(0, 2**31 - 1, (1,), generator=self._generator))
            self._topology_init.initialize(
                weight, spectral_radius=self.spectral_radius, seed=graph_seed
            )
            self.weight_hh = weight
            return

        weight = self._uniform(self.units, self.units)
        keep = torch.rand(self.units, self.units, generator=self._generator) < (1.0 - self.sparsity)
        weight = weight * keep
        self.weight_hh = scale_spectral_radius(weight, self.spectral_radius)

    def _initialize_input_weights(self, input_dim: int) -> None:
        """Initialize the input matrix for ``input_dim`` inputs."""
        self.weight_in = self._uniform(self.units, input_dim, scale=self.input_scaling)
        self._input_dim = input_dim

    # ------------------------------------------------------------------
    # Forward
    # ------------------------------------------------------------------

    def _check_input(self, x: torch.Tensor) -> None:
        if x.shape[0] == 0:
            raise DimensionMismatch("ReservoirNode input must not be empty")
        super()._check_input(x)

    def _step(self, x: torch.Tensor) -> torch.Tensor:
        if self.weight_in is None:
            self._initialize_input_weights(x.shape[0])
            logger.debug("Reservoir input dimension fixed to %d", x.shape[0])

        input_contrib = F.linear(x, self.weight_in)
        recurrent_contrib = F.linear(self.state, self.weight_hh)
        activated = self.activation(input_contrib + recurrent_contrib)

        new_state = (1.0 - self.leak_rate) * self.state + self.leak_rate * activated
        self.state.copy_(new_state)
        return new_state

    def __repr__(self) -> str:
        input_str = f", input_dim={self._input_dim}" if self._input_dim is not None else ""
        name_str = f", name='{self._name}'" if self._name is not None else ""
        return (
            f"{self.__class__.__name__}("
            f"units={self.units}"
            f"{input_str}, "
            f"spectral_radius={self.spectral_radius}, "
            f"leak_rate={self.leak_rate}, "
            f"activation='{self._activation_name}'"
            f"{name_str}"
            f")"
        )
