"""Parameter records for node construction.

These records carry the full configuration of a node; nothing is read from
files or the environment. Node constructors build a record from their
keyword arguments and validate it, so the rules below are the only place
parameter ranges are checked.
"""

import math
import numbers
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .errors import InvalidParameter

ACTIVATIONS = ("tanh", "sigmoid", "relu", "identity")


def check_dim(value: Any, field: str) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 1:
        raise InvalidParameter(f"{field} must be a positive integer, got {value!r}")


def check_real(value: Any, field: str) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
        raise InvalidParameter(f"{field} must be a finite number, got {value!r}")


@dataclass(frozen=True)
class ReservoirParams:
    """Configuration of a reservoir node.

    Attributes:
        units: Number of reservoir units (state and output dimension)
        spectral_radius: Target spectral radius of the recurrent matrix
        leak_rate: Leaky-integration rate in (0, 1]
        input_scaling: Input weights are drawn from [-input_scaling, input_scaling]
        sparsity: Probability that a recurrent weight is zero, in [0, 1]
        activation: One of "tanh", "sigmoid", "relu", "identity"
        seed: Seed of the node-local generator
        input_dim: Input dimension; None defers it to the first forward call
    """

    units: int
    spectral_radius: float = 0.9
    leak_rate: float = 0.3
    input_scaling: float = 1.0
    sparsity: float = 0.1
    activation: str = "tanh"
    seed: int = 42
    input_dim: Optional[int] = None

    def validate(self) -> "ReservoirParams":
        check_dim(self.units, "units")
        if self.input_dim is not None:
            check_dim(self.input_dim, "input_dim")
        for field in ("spectral_radius", "leak_rate", "input_scaling", "sparsity"):
            check_real(getattr(self, field), field)
        if self.spectral_radius < 0:
            raise InvalidParameter(
                f"spectral_radius must be finite and >= 0, got {self.spectral_radius}"
            )
        if not (0.0 < self.leak_rate <= 1.0):
            raise InvalidParameter(f"leak_rate must be in (0, 1], got {self.leak_rate}")
        if self.input_scaling < 0:
            raise InvalidParameter(
                f"input_scaling must be finite and >= 0, got {self.input_scaling}"
            )
        if not (0.0 <= self.sparsity <= 1.0):
            raise InvalidParameter(f"sparsity must be in [0, 1], got {self.sparsity}")
        if self.activation not in ACTIVATIONS:
            raise InvalidParameter(
                f"Unknown activation '{self.activation}'. Supported: {list(ACTIVATIONS)}"
            )
        seed = self.seed
        if isinstance(seed, bool) or not isinstance(seed, numbers.Integral) or seed < 0:
            raise InvalidParameter(f"seed must be a non-negative integer, got {self.seed!r}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RidgeParams:
    """Configuration of a ridge readout node.

    Attributes:
        input_dim: Length of the design rows fed to the readout
        output_dim: Length of the readout output
        ridge: L2 regularization strength (>= 0)
    """

    input_dim: int
    output_dim: int
    ridge: float = 1e-6

    def validate(self) -> "RidgeParams":
        check_dim(self.input_dim, "input_dim")
        check_dim(self.output_dim, "output_dim")
        check_real(self.ridge, "ridge")
        if self.ridge < 0:
            raise InvalidParameter(f"ridge must be finite and >= 0, got {self.ridge}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = ["ACTIVATIONS", "ReservoirParams", "RidgeParams", "check_dim", "check_real"]
