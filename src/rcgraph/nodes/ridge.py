"""RidgeNode: trained linear readout for rcgraph.

The readout computes ``W_out @ x + bias``. Its weights start at zero and
are fitted in closed form (or by Conjugate Gradient) from a design matrix
of upstream activations and a matrix of targets.
"""

import logging
import warnings
from typing import Any, Optional

import torch

from ..config import RidgeParams
from ..errors import DimensionMismatch, InvalidParameter, Untrained, UntrainedWarning
from ..solvers import conjugate_gradient_ridge, ridge_regression
from ..utils import as_matrix, as_tensor
from .base import Node, NodeType

logger = logging.getLogger(__name__)

_SOLVERS = ("solve", "cg")


class RidgeNode(Node):
    """Linear readout fitted by ridge regression.

    Solves the regularized least squares problem on centered data:
        (H.T @ H + ridge * I) @ W = H.T @ Y

    and recovers the bias from the column means, so ``ridge > 0`` always
    yields a unique solution, even with fewer rows than columns.

    Before :meth:`fit`, :meth:`forward` returns zeros and issues an
    ``UntrainedWarning``; with ``strict=True`` it raises ``Untrained``
    instead.

    Args:
        input_dim: Length of the design rows
        output_dim: Length of the output
        ridge: L2 regularization strength (default: 1e-6)
        solver: "solve" for the closed form (default) or "cg" for
                Conjugate Gradient
        strict: Raise ``Untrained`` on forward before fit
        max_iter: Maximum CG iterations (solver="cg" only)
        tol: CG convergence tolerance (solver="cg" only)
        name: Optional node name

    Example:
        >>> readout = RidgeNode(input_dim=100, output_dim=1, ridge=1e-5)
        >>> readout.fit(states, targets)  # (n, 100), (n, 1)
        >>> y = readout(states[-1])
    """

    node_type = NodeType.RIDGE
    trainable = True

    def __init__(
        self,
        input_dim: int,
        output_dim: int,
        ridge: float = 1e-6,
        solver: str = "solve",
        strict: bool = False,
        max_iter: int = 100,
        tol: float = 1e-5,
        name: Optional[str] = None,
    ) -> None:
        params = RidgeParams(input_dim=input_dim, output_dim=output_dim, ridge=ridge).validate()
        if solver not in _SOLVERS:
            raise InvalidParameter(f"Unknown solver '{solver}'. Supported: {list(_SOLVERS)}")

        super().__init__(
            output_dim=int(output_dim),
            state_dim=0,
            input_dim=int(input_dim),
            name=name,
        )

        self.params = params
        self.ridge = float(ridge)
        self.solver = solver
        self.strict = strict
        self.max_iter = max_iter
        self.tol = tol

        self.register_buffer("weight", torch.zeros(self._output_dim, self._input_dim))
        self.register_buffer("bias", torch.zeros(self._output_dim))

        self._is_fitted = False

    @classmethod
    def from_params(
        cls, params: RidgeParams, name: Optional[str] = None, **kwargs: Any
    ) -> "RidgeNode":
        """Build a readout from a parameter record."""
        return cls(**params.to_dict(), name=name, **kwargs)

    @property
    def is_fitted(self) -> bool:
        """True once :meth:`fit` has succeeded."""
        return self._is_fitted

    @property
    def trained(self) -> bool:
        return self._is_fitted

    def _step(self, x: torch.Tensor) -> torch.Tensor:
        if not self._is_fitted:
            if self.strict:
                raise Untrained(f"{self!r} has not been fitted")
            warnings.warn(
                f"{self!r} has not been fitted; its output is all zeros",
                UntrainedWarning,
            )
        return self.weight @ x + self.bias

    @torch.no_grad()
    def fit(self, inputs: Any, targets: Any) -> None:
        """Fit readout weights by ridge regression.

        Args:
            inputs: Design matrix of shape (n_samples, input_dim)
            targets: Target matrix of shape (n_samples, output_dim)

        Raises:
            DimensionMismatch: If the shapes disagree with the node dimensions
                or with each other
            InvalidParameter: If ridge is negative
        """
        self._check_alive()
        if self.ridge < 0:
            raise InvalidParameter(f"ridge must be non-negative, got {self.ridge}")

        H = as_tensor(inputs, dtype=torch.float64)
        if H.dim() != 2:
            raise DimensionMismatch(
                f"inputs must be 2D (n_samples, features), got {tuple(H.shape)}"
            )
        n_samples = H.shape[0]
        H = as_matrix(H, n_samples, self._input_dim, name="inputs", dtype=torch.float64)
        Y = as_matrix(targets, n_samples, self._output_dim, name="targets", dtype=torch.float64)

        if self.solver == "cg":
            weight, bias = conjugate_gradient_ridge(H, Y, self.ridge, self.max_iter, self.tol)
        else:
            weight, bias = ridge_regression(H, Y, self.ridge)

        self.weight.copy_(weight.to(self.weight.dtype))
        self.bias.copy_(bias.to(self.bias.dtype))
        self._is_fitted = True

        logger.info(
            "Fitted %s on %d samples (ridge=%s, solver=%s)",
            self._name or self.__class__.__name__,
            n_samples,
            self.ridge,
            self.solver,
        )

    def __repr__(self) -> str:
        name_str = f", name='{self._name}'" if self._name is not None else ""
        return (
            f"{self.__class__.__name__}("
            f"input_dim={self._input_dim}, "
            f"output_dim={self._output_dim}, "
            f"ridge={self.ridge}"
            f"{name_str}"
            f")"
        )
