"""Echo State Network architectures built from nodes."""

from typing import Any, Dict, Optional

from ..graph import Model
from ..nodes import InputNode, ReservoirNode, RidgeNode


def esn(
    input_dim: int,
    units: int,
    output_dim: int,
    reservoir_config: Optional[Dict[str, Any]] = None,
    readout_config: Optional[Dict[str, Any]] = None,
    name: str = "esn",
) -> Model:
    """Build an Echo State Network.

    Architecture:
        Input -> Reservoir -> Ridge (output)

    Nodes are named "input", "reservoir" and "readout".

    Args:
        input_dim: Number of input features
        units: Number of reservoir units
        output_dim: Number of output features
        reservoir_config: Optional dict with ReservoirNode parameters
            (spectral_radius, leak_rate, input_scaling, sparsity,
            activation, seed, topology). ``units`` and ``input_dim`` are
            set automatically.
        readout_config: Optional dict with RidgeNode parameters
            (ridge, solver, strict, ...). Dimensions are set automatically.
        name: Model name

    Returns:
        Model ready for fitting

    Example:
        >>> from rcgraph.models import esn
        >>> model = esn(1, 100, 1, reservoir_config={"spectral_radius": 1.25})
        >>> model.fit(X, y, batch_size=200, warmup=20)
    """
    res_config = dict(reservoir_config or {})
    read_config = dict(readout_config or {})

    res_config["units"] = units
    res_config["input_dim"] = input_dim
    read_config["input_dim"] = units
    read_config["output_dim"] = output_dim

    model = Model(name=name)
    inp = model.add_node(InputNode(input_dim), "input")
    res = model.add_node(ReservoirNode(**res_config), "reservoir")
    out = model.add_node(RidgeNode(**read_config), "readout")
    model.connect(inp, res)
    model.connect(res, out)
    return model


def classic_esn(
    input_dim: int,
    units: int,
    output_dim: int,
    reservoir_config: Optional[Dict[str, Any]] = None,
    readout_config: Optional[Dict[str, Any]] = None,
    name: str = "classic_esn",
) -> Model:
    """Build a classic ESN whose readout also sees the raw input.

    Architecture:
        Input -> Reservoir
        [Input, Reservoir] -> Ridge (output)

    The input edge into the readout is added first, so design rows are
    ``[x_t, h_t]`` with ``input_dim + units`` entries.

    Args:
        input_dim: Number of input features
        units: Number of reservoir units
        output_dim: Number of output features
        reservoir_config: Optional dict with ReservoirNode parameters
        readout_config: Optional dict with RidgeNode parameters
        name: Model name

    Returns:
        Model ready for fitting
    """
    res_config = dict(reservoir_config or {})
    read_config = dict(readout_config or {})

    res_config["units"] = units
    res_config["input_dim"] = input_dim
    read_config["input_dim"] = input_dim + units
    read_config["output_dim"] = output_dim

    model = Model(name=name)
    inp = model.add_node(InputNode(input_dim), "input")
    res = model.add_node(ReservoirNode(**res_config), "reservoir")
    out = model.add_node(RidgeNode(**read_config), "readout")
    model.connect(inp, res)
    model.connect(inp, out)
    model.connect(res, out)
    return model


def linear_esn(
    input_dim: int,
    units: int,
    reservoir_config: Optional[Dict[str, Any]] = None,
    name: str = "linear_esn",
) -> Model:
    """Build a model with no readout and a linear reservoir.

    Useful for studying linear dynamics or as a baseline for comparison
    with nonlinear reservoirs.

    Architecture:
        Input -> Reservoir(activation='identity') (output)

    Args:
        input_dim: Number of input features
        units: Number of reservoir units
        reservoir_config: Optional dict with ReservoirNode parameters.
            Note: 'activation' will be forced to 'identity'
        name: Model name

    Returns:
        Model returning the reservoir state at each step
    """
    res_config = dict(reservoir_config or {})

    res_config["units"] = units
    res_config["input_dim"] = input_dim
    res_config["activation"] = "identity"

    model = Model(name=name)
    inp = model.add_node(InputNode(input_dim), "input")
    res = model.add_node(ReservoirNode(**res_config), "reservoir")
    model.connect(inp, res)
    return model
