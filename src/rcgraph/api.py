"""Flat, sentinel-returning interface to nodes and models.

Each function mirrors one boundary operation of the library and never
raises an :class:`~rcgraph.errors.RCError`: failures are logged at error
level and reported through the return value (``None``, ``False`` or
``-1``). Use the classes in :mod:`rcgraph.nodes` and :mod:`rcgraph.graph`
directly to get exceptions instead.

Example:
    >>> from rcgraph import api
    >>> from rcgraph.config import ReservoirParams, RidgeParams
    >>>
    >>> model = api.model_create()
    >>> inp = api.model_add_node(model, api.create_input(1), "input")
    >>> reservoir = api.create_reservoir(ReservoirParams(units=100))
    >>> res = api.model_add_node(model, reservoir, "reservoir")
    >>> out = api.model_add_node(model, api.create_ridge(RidgeParams(100, 1)), "readout")
    >>> api.model_connect(model, inp, res) and api.model_connect(model, res, out)
    True
"""

import logging
from typing import Any, Optional

import torch

from .config import ReservoirParams, RidgeParams
from .errors import RCError
from .graph import Model
from .nodes import InputNode, Node, ReservoirNode, RidgeNode

logger = logging.getLogger(__name__)


def _describe(exc: RCError) -> str:
    """Exception message followed by any notes attached while propagating."""
    return "; ".join([str(exc), *getattr(exc, "__notes__", ())])


# ----------------------------------------------------------------------
# Node construction
# ----------------------------------------------------------------------


def create_reservoir(params: ReservoirParams) -> Optional[ReservoirNode]:
    """Create a reservoir node, or return None on error."""
    try:
        return ReservoirNode.from_params(params)
    except RCError as exc:
        logger.error("create_reservoir failed: %s", exc)
        return None


def create_ridge(params: RidgeParams) -> Optional[RidgeNode]:
    """Create a ridge readout node, or return None on error."""
    try:
        return RidgeNode.from_params(params)
    except RCError as exc:
        logger.error("create_ridge failed: %s", exc)
        return None


def create_input(input_dim: int) -> Optional[InputNode]:
    """Create an input node, or return None on error."""
    try:
        return InputNode(input_dim)
    except RCError as exc:
        logger.error("create_input failed: %s", exc)
        return None


# ----------------------------------------------------------------------
# Node operations
# ----------------------------------------------------------------------


def node_forward(node: Node, input: Any) -> Optional[torch.Tensor]:
    """Run one step of a node; the returned tensor belongs to the caller."""
    try:
        return node(input)
    except RCError as exc:
        logger.error("node_forward failed: %s", exc)
        return None


def node_get_state(node: Node) -> Optional[torch.Tensor]:
    try:
        return node.get_state()
    except RCError as exc:
        logger.error("node_get_state failed: %s", exc)
        return None


def node_set_state(node: Node, state: Any) -> bool:
    try:
        node.set_state(state)
    except RCError as exc:
        logger.error("node_set_state failed: %s", exc)
        return False
    return True


def node_reset(node: Node) -> None:
    try:
        node.reset()
    except RCError as exc:
        logger.error("node_reset failed: %s", exc)


def node_get_output_dim(node: Node) -> int:
    return node.get_output_dim()


def node_get_state_dim(node: Node) -> int:
    return node.get_state_dim()


def node_free(node: Optional[Node]) -> None:
    """Release a standalone node. Nodes owned by a model are left alone."""
    if node is None:
        return
    try:
        node.free()
    except RCError as exc:
        logger.error("node_free failed: %s", exc)


# ----------------------------------------------------------------------
# Model operations
# ----------------------------------------------------------------------


def model_create(name: Optional[str] = None) -> Model:
    return Model(name=name)


def model_add_node(model: Model, node: Optional[Node], name: Optional[str] = None) -> int:
    """Add a node to a model; return its index, or -1 on error."""
    if node is None:
        logger.error("model_add_node failed: node is None")
        return -1
    try:
        return model.add_node(node, name)
    except RCError as exc:
        logger.error("model_add_node failed: %s", exc)
        return -1


def model_connect(model: Model, from_idx: int, to_idx: int) -> bool:
    try:
        model.connect(from_idx, to_idx)
    except RCError as exc:
        logger.error("model_connect failed: %s", exc)
        return False
    return True


def model_run(model: Model, input: Any) -> Optional[torch.Tensor]:
    """Run a model on one input vector; return None on error."""
    try:
        return model.run(input)
    except RCError as exc:
        logger.error("model_run failed: %s", _describe(exc))
        return None


def model_fit(
    model: Model,
    X_train: Any,
    y_train: Any,
    batch_size: int,
    warmup: int = 0,
) -> bool:
    """Fit the trainable nodes of a model; return False on error."""
    try:
        model.fit(X_train, y_train, batch_size=batch_size, warmup=warmup)
    except RCError as exc:
        logger.error("model_fit failed: %s", _describe(exc))
        return False
    return True


def model_reset(model: Model) -> None:
    try:
        model.reset()
    except RCError as exc:
        logger.error("model_reset failed: %s", exc)


def model_get_node_count(model: Model) -> int:
    return model.get_node_count()


def model_free(model: Optional[Model]) -> None:
    """Release a model and every node it owns."""
    if model is not None:
        model.free()


__all__ = [
    "create_reservoir",
    "create_ridge",
    "create_input",
    "node_forward",
    "node_get_state",
    "node_set_state",
    "node_reset",
    "node_get_output_dim",
    "node_get_state_dim",
    "node_free",
    "model_create",
    "model_add_node",
    "model_connect",
    "model_run",
    "model_fit",
    "model_reset",
    "model_get_node_count",
    "model_free",
]
