"""Named graph topologies.

A graph generator registered here can be selected by name, e.g.
``ReservoirNode(100, topology="watts_strogatz")``. Defaults given at
registration are merged under the overrides passed to :func:`get_topology`.
"""

from typing import Any, Callable, Dict, List, NamedTuple

import networkx as nx

from .base import GraphTopology


class _Entry(NamedTuple):
    graph_func: Callable[..., nx.Graph]
    defaults: Dict[str, Any]


_TOPOLOGIES: Dict[str, _Entry] = {}


def register_graph_topology(name: str, **defaults: Any) -> Callable[[Callable], Callable]:
    """Decorator registering a graph generator under ``name``.

    The generator is called as ``graph_func(n, seed=..., **kwargs)`` and
    must return a graph on ``0 .. n-1`` with weighted edges.

    Raises:
        ValueError: If ``name`` is already registered
    """

    def decorator(graph_func: Callable[..., nx.Graph]) -> Callable[..., nx.Graph]:
        if name in _TOPOLOGIES:
            raise ValueError(f"Topology '{name}' is already registered")
        _TOPOLOGIES[name] = _Entry(graph_func, dict(defaults))
        return graph_func

    return decorator


def get_topology(name: str, **overrides: Any) -> GraphTopology:
    """Return a :class:`GraphTopology` for a registered name.

    Raises:
        ValueError: If no topology is registered under ``name``
    """
    try:
        entry = _TOPOLOGIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown topology '{name}'. Available topologies: {', '.join(show_topologies())}"
        ) from None
    return GraphTopology(entry.graph_func, {**entry.defaults, **overrides})


def show_topologies() -> List[str]:
    """Sorted names of the registered topologies."""
    return sorted(_TOPOLOGIES)
