"""Readout trainer for algebraic fitting of model graphs.

This module provides the ReadoutTrainer class that trains a Model by
fitting each trainable node (ridge readout) in topological order.
"""

import logging
import warnings
from typing import TYPE_CHECKING, Any, Dict, List, Tuple

import torch

from ..errors import DimensionMismatch, InvalidParameter, InvalidState
from ..utils import as_matrix

if TYPE_CHECKING:
    from ..graph.model import Model
    from ..nodes.base import Node

logger = logging.getLogger(__name__)


class ReadoutTrainer:
    """Trainer for models with algebraically fitted readouts.

    Traverses the model graph in topological order and, for each trainable
    node, drives the part of the graph upstream of it over the training
    sequence, collects the vector that reaches the node at every step past
    the warmup (its design rows), and calls ``node.fit(design, targets)``.

    Each readout handles its own fitting hyperparameters (e.g. ``ridge`` is
    set when the RidgeNode is constructed).

    For stacked architectures (readout1 -> reservoir2 -> readout2), every
    readout gets a fresh reset + drive so it sees activations computed with
    the readouts fitted before it.

    Node states from before training are restored when :meth:`fit`
    returns, whether it succeeds or fails. Readouts fitted before a later
    failure keep their new weights.

    Example:
        >>> trainer = ReadoutTrainer(model)
        >>> trainer.fit(X_train, y_train, batch_size=500, warmup=100)
    """

    def __init__(self, model: "Model") -> None:
        """Initialize trainer.

        Args:
            model: Model to train
        """
        self.model = model

    @torch.no_grad()
    def fit(
        self,
        X_train: Any,
        y_train: Any,
        batch_size: int,
        warmup: int = 0,
    ) -> None:
        """Train all trainable nodes in topological order.

        For each readout:
        1. Reset node states
        2. Drive the readout's ancestors over all ``batch_size`` steps
        3. Keep the readout's input vector for every step past ``warmup``
        4. Call readout.fit(design_rows, targets[warmup:])

        Args:
            X_train: Full input sequence, (batch_size, input_dim) or flat
                     with batch_size * input_dim values.
            y_train: Targets for every step (warmup included), either one
                     tensor shared by all readouts or a dict mapping readout
                     index/name to its targets.
            batch_size: Number of steps in the sequence.
            warmup: Number of initial steps excluded from the regression.

        Raises:
            DimensionMismatch: If batch_size <= warmup or the data does not
                factor into the expected shapes.
            InvalidParameter: If batch_size or warmup is negative.
            InvalidState: If the model has no trainable node.
        """
        if batch_size < 0 or warmup < 0:
            raise InvalidParameter(
                f"batch_size and warmup must be non-negative, got {batch_size} and {warmup}"
            )
        if batch_size <= warmup:
            raise DimensionMismatch(
                f"batch_size ({batch_size}) must be greater than warmup ({warmup})"
            )

        readouts = self._get_readouts_in_order()
        if not readouts:
            raise InvalidState("Model has no trainable nodes to fit")

        X = as_matrix(X_train, batch_size, self.model.input_dim, name="X_train")
        # Validates the per-step input against the sources before any node runs
        self.model._split_input(X[0])

        targets = self._resolve_targets(y_train, readouts, batch_size)
        self._check_design_dims(readouts)

        snapshot = self.model.get_states()
        try:
            for index, readout in readouts:
                design = self._collect_design_rows(index, X, warmup)
                readout.fit(design, targets[index][warmup:])
                logger.info(
                    "Trained node %d on %d rows (%d warmup steps skipped)",
                    index,
                    design.shape[0],
                    warmup,
                )
        finally:
            self.model.reset()
            self.model.set_states(snapshot)

    def _get_readouts_in_order(self) -> List[Tuple[int, "Node"]]:
        """Return [(index, node), ...] for trainable nodes in topological order."""
        return [
            (index, self.model.nodes[index])
            for index in self.model.execution_order()
            if self.model.nodes[index].trainable
        ]

    def _resolve_targets(
        self,
        y_train: Any,
        readouts: List[Tuple[int, "Node"]],
        batch_size: int,
    ) -> Dict[int, torch.Tensor]:
        """Map each readout index to a (batch_size, output_dim) target matrix.

        Raises:
            DimensionMismatch: If a target does not factor into the readout's shape
            InvalidParameter: If a readout has no target in a dict of targets
        """
        if not isinstance(y_train, dict):
            return {
                index: as_matrix(
                    y_train, batch_size, readout.output_dim, name=f"y_train for node {index}"
                )
                for index, readout in readouts
            }

        by_index = {self.model._resolve(key): value for key, value in y_train.items()}
        readout_indices = [index for index, _ in readouts]

        missing = [index for index in readout_indices if index not in by_index]
        if missing:
            raise InvalidParameter(
                f"Missing targets for readouts: {missing}. "
                f"Available readouts: {readout_indices}. "
                f"Provided targets: {list(y_train.keys())}."
            )

        extra = [index for index in by_index if index not in readout_indices]
        if extra:
            warnings.warn(
                f"Targets provided for non-trainable nodes: {extra}. These will be ignored.",
                UserWarning,
            )

        return {
            index: as_matrix(
                by_index[index], batch_size, readout.output_dim, name=f"y_train for node {index}"
            )
            for index, readout in readouts
        }

    def _check_design_dims(self, readouts: List[Tuple[int, "Node"]]) -> None:
        """Check that each readout's predecessors produce rows of its input_dim."""
        for index, readout in readouts:
            preds = self.model.predecessors(index)
            if not preds:
                continue
            width = sum(self.model.nodes[p].output_dim for p in preds)
            if readout.input_dim is not None and width != readout.input_dim:
                raise DimensionMismatch(
                    f"Node {index} expects rows of length {readout.input_dim}, "
                    f"but its predecessors {preds} produce {width}"
                )

    def _collect_design_rows(self, index: int, X: torch.Tensor, warmup: int) -> torch.Tensor:
        """Drive the ancestors of a readout and stack its post-warmup inputs."""
        upstream = self.model.ancestors(index)
        self.model.reset()

        rows = []
        for step in range(X.shape[0]):
            feeds = self.model._split_input(X[step])
            outputs = self.model._propagate(feeds, restrict=upstream)
            if step >= warmup:
                rows.append(self.model.node_input(index, outputs, feeds))

        return torch.stack(rows)
