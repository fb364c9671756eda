"""Recurrent matrices built from graph structures."""

from abc import ABC, abstractmethod
from typing import Any, Callable

import networkx as nx
import numpy as np
import torch

from ...utils.linalg import scale_spectral_radius


class TopologyInitializer(ABC):
    """Fills a square recurrent matrix from a connectivity pattern.

    Subclasses implement :meth:`adjacency`, which returns the weighted
    (n, n) adjacency matrix for a reservoir of ``n`` units. ``initialize``
    handles shape checks, dtype/device placement and spectral rescaling.
    """

    @abstractmethod
    def adjacency(self, n: int, seed: int | None = None) -> np.ndarray:
        """Return the float64 (n, n) weighted adjacency matrix.

        Entry ``[i, j]`` is the weight of the connection from unit ``j``
        into unit ``i``.
        """

    def initialize(
        self,
        weight: torch.Tensor,
        spectral_radius: float | None = None,
        seed: int | None = None,
    ) -> torch.Tensor:
        """Overwrite ``weight`` in place with the topology's matrix.

        Args:
            weight: Square tensor to fill
            spectral_radius: If given, the matrix is rescaled to this radius
            seed: Seed passed to :meth:`adjacency`

        Returns:
            ``weight`` itself

        Raises:
            ValueError: If ``weight`` is not a square matrix
        """
        if weight.ndim != 2:
            raise ValueError(f"Weight must be 2D, got shape {tuple(weight.shape)}")
        n_rows, n_cols = weight.shape
        if n_rows != n_cols:
            raise ValueError(f"Weight must be square, got shape {tuple(weight.shape)}")

        matrix = self.adjacency(n_rows, seed=seed)
        if matrix.shape != (n_rows, n_rows):
            raise ValueError(
                f"{self!r} produced a matrix of shape {matrix.shape}, "
                f"expected ({n_rows}, {n_rows})"
            )

        values = torch.from_numpy(matrix)
        if spectral_radius is not None:
            values = scale_spectral_radius(values, spectral_radius)

        with torch.no_grad():
            weight.copy_(values.to(device=weight.device, dtype=weight.dtype))
        return weight


class GraphTopology(TopologyInitializer):
    """Topology given by a networkx graph generator.

    ``graph_func(n, seed=..., **graph_kwargs)`` must return a graph on the
    nodes ``0 .. n-1`` whose edges carry a ``weight`` attribute. An edge
    ``u -> v`` becomes the entry ``[v, u]`` of the recurrent matrix, so
    unit ``v`` reads from unit ``u``. Undirected graphs give symmetric
    matrices.

    A ``seed`` in ``graph_kwargs`` pins the graph; otherwise the seed
    passed to :meth:`initialize` is used.

    Example:
        >>> from rcgraph.init.graphs import erdos_renyi_graph
        >>> topology = GraphTopology(erdos_renyi_graph, {"p": 0.1, "directed": True})
        >>> weight = topology.initialize(torch.empty(100, 100), spectral_radius=0.9, seed=7)
    """

    def __init__(
        self,
        graph_func: Callable[..., nx.Graph],
        graph_kwargs: dict[str, Any] | None = None,
    ):
        self.graph_func = graph_func
        self.graph_kwargs = dict(graph_kwargs or {})

    def build_graph(self, n: int, seed: int | None = None) -> nx.Graph:
        kwargs = dict(self.graph_kwargs)
        if kwargs.get("seed") is None:
            kwargs["seed"] = seed
        return self.graph_func(n, **kwargs)

    def adjacency(self, n: int, seed: int | None = None) -> np.ndarray:
        G = self.build_graph(n, seed=seed)
        # networkx rows are edge sources; the recurrent matrix wants targets
        return nx.to_numpy_array(G, nodelist=list(range(n)), weight="weight", dtype=np.float64).T

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.graph_func.__name__}, {self.graph_kwargs})"
