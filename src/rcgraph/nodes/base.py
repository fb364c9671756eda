"""Base Node implementation for rcgraph.

A node is a stateful computational unit: it consumes an input vector,
updates its internal state in place and returns a new output vector.
Concrete variants implement :meth:`Node._step`; everything else
(validation, state accessors, ownership, release) lives here.
"""

import enum
import weakref
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Optional

import torch
import torch.nn as nn

from ..errors import DimensionMismatch, InvalidState
from ..utils import as_vector


class NodeType(enum.Enum):
    """Kind of a node."""

    INPUT = "input"
    RESERVOIR = "reservoir"
    RIDGE = "ridge"
    CUSTOM = "custom"


class Node(nn.Module, ABC):
    """Abstract stateful node.

    Subclasses must call ``super().__init__(output_dim, state_dim, ...)``
    and implement :meth:`_step`. User subclasses report
    ``NodeType.CUSTOM`` unless they override ``node_type``.

    The state is a 1D buffer of length ``state_dim``, zero at construction,
    mutated in place by every forward call and zeroed by :meth:`reset`.

    Args:
        output_dim: Length of the output vector
        state_dim: Length of the internal state (0 for stateless nodes)
        input_dim: Expected input length, or None if not known yet
        name: Optional name, used as default name when added to a model
    """

    node_type: ClassVar[NodeType] = NodeType.CUSTOM
    trainable: ClassVar[bool] = False

    def __init__(
        self,
        output_dim: int,
        state_dim: int = 0,
        input_dim: Optional[int] = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__()
        self._output_dim = output_dim
        self._state_dim = state_dim
        self._input_dim = input_dim
        self._name = name
        self._owner: Optional[weakref.ReferenceType] = None
        self._released = False

        self.register_buffer("state", torch.zeros(state_dim))

    # ------------------------------------------------------------------
    # Dimensions
    # ------------------------------------------------------------------

    @property
    def input_dim(self) -> Optional[int]:
        """Expected input length, or None if it is fixed on first use."""
        return self._input_dim

    @property
    def output_dim(self) -> int:
        return self._output_dim

    @property
    def state_dim(self) -> int:
        return self._state_dim

    def get_output_dim(self) -> int:
        return self._output_dim

    def get_state_dim(self) -> int:
        return self._state_dim

    @property
    def name(self) -> Optional[str]:
        return self._name

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    @property
    def owner(self) -> Optional[nn.Module]:
        """The model that owns this node, or None for a standalone node."""
        return self._owner() if self._owner is not None else None

    def _attach(self, owner: nn.Module) -> None:
        if self.owner is not None:
            raise InvalidState(f"{self!r} is already owned by another model")
        self._check_alive()
        self._owner = weakref.ref(owner)

    @property
    def is_released(self) -> bool:
        return self._released

    def _check_alive(self) -> None:
        if self._released:
            raise InvalidState(f"{self.__class__.__name__} has been freed")

    # ------------------------------------------------------------------
    # Forward computation
    # ------------------------------------------------------------------

    @torch.no_grad()
    def forward(self, input: Any) -> torch.Tensor:
        """Run one step of the node.

        Args:
            input: Vector of length ``input_dim``

        Returns:
            New output tensor of length ``output_dim``

        Raises:
            DimensionMismatch: If the input length disagrees with ``input_dim``
            InvalidState: If the node has been freed
        """
        self._check_alive()
        x = as_vector(input, dtype=self.state.dtype)
        self._check_input(x)
        return self._step(x)

    def _check_input(self, x: torch.Tensor) -> None:
        if self._input_dim is not None and x.shape[0] != self._input_dim:
            raise DimensionMismatch(
                f"{self.__class__.__name__} expects input of length {self._input_dim}, "
                f"got {x.shape[0]}"
            )

    @abstractmethod
    def _step(self, x: torch.Tensor) -> torch.Tensor:
        """Compute the output for a validated input vector, updating state."""

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def get_state(self) -> torch.Tensor:
        """Return a copy of the current state (length ``state_dim``)."""
        self._check_alive()
        return self.state.clone()

    def set_state(self, state: Any) -> None:
        """Overwrite the internal state.

        Raises:
            DimensionMismatch: If the state length differs from ``state_dim``
        """
        self._check_alive()
        new_state = as_vector(state, name="state", dtype=self.state.dtype)
        if new_state.shape[0] != self._state_dim:
            raise DimensionMismatch(
                f"State size mismatch. Expected {self._state_dim}, got {new_state.shape[0]}"
            )
        self.state.copy_(new_state)

    def reset(self) -> None:
        """Set the state to all zeros."""
        self._check_alive()
        self.state.zero_()

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    def free(self) -> None:
        """Release the node's tensors.

        Any later use raises ``InvalidState``. A node owned by a model is
        released through :meth:`rcgraph.graph.Model.free`.
        """
        if self.owner is not None:
            raise InvalidState(f"{self!r} is owned by a model; free the model instead")
        self._release()

    def _release(self) -> None:
        for key in list(self._buffers):
            self._buffers[key] = None
        self._released = True

    def extra_repr(self) -> str:
        name_str = f", name='{self._name}'" if self._name is not None else ""
        return f"output_dim={self._output_dim}, state_dim={self._state_dim}{name_str}"
