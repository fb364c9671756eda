"""Input node: the entry point of a model."""

from typing import Optional

import torch

from ..config import check_dim
from .base import Node, NodeType


class InputNode(Node):
    """Stateless passthrough node.

    Checks that the incoming vector has ``input_dim`` entries and returns a
    copy of it unchanged.

    Args:
        input_dim: Length of the input (and output) vector
        name: Optional node name

    Example:
        >>> inp = InputNode(3)
        >>> inp([0.1, 0.2, 0.3])
        tensor([0.1000, 0.2000, 0.3000])
    """

    node_type = NodeType.INPUT

    def __init__(self, input_dim: int, name: Optional[str] = None) -> None:
        check_dim(input_dim, "input_dim")
        super().__init__(output_dim=input_dim, state_dim=0, input_dim=input_dim, name=name)

    def _step(self, x: torch.Tensor) -> torch.Tensor:
        return x.clone()

    def __repr__(self) -> str:
        name_str = f", name='{self._name}'" if self._name is not None else ""
        return f"{self.__class__.__name__}(input_dim={self._input_dim}{name_str})"
