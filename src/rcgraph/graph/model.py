"""Model: a directed acyclic graph of nodes and its executor.

Example:
    >>> from rcgraph import InputNode, Model, ReservoirNode, RidgeNode
    >>>
    >>> model = Model()
    >>> inp = model.add_node(InputNode(1), "input")
    >>> res = model.add_node(ReservoirNode(100, spectral_radius=1.25, seed=42), "reservoir")
    >>> out = model.add_node(RidgeNode(100, 1, ridge=1e-5), "readout")
    >>> model.connect(inp, res)
    >>> model.connect(res, out)
    >>>
    >>> model.fit(X_train, y_train, batch_size=200, warmup=20)
    >>> y = model.run([0.5])
"""

import logging
import numbers
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import networkx as nx
import torch
import torch.nn as nn

from ..errors import (
    CycleError,
    DimensionMismatch,
    InvalidIndex,
    InvalidParameter,
    InvalidState,
    RCError,
)
from ..nodes.base import Node
from ..training.trainer import ReadoutTrainer
from ..utils import as_vector

logger = logging.getLogger(__name__)

NodeKey = Union[int, str]


class Model(nn.Module):
    """Graph container and executor for nodes.

    Nodes are stored in insertion order and addressed by their index
    (0-based, never reused) or by an optional unique name. Edges are
    directed ``from -> to`` and must keep the graph acyclic; recurrence
    lives inside nodes (e.g. a reservoir), not between them.

    Execution semantics of :meth:`run`:
    - Sources (nodes without incoming edges) receive the input, split in
      index order by their ``input_dim``.
    - Nodes run in topological order, ties broken by index.
    - A node with several predecessors receives their outputs concatenated
      in edge-insertion order.
    - The result is the concatenation of sink outputs (nodes without
      outgoing edges) in index order.

    The model exclusively owns the nodes added to it: a node cannot be
    added to a second model and is released by :meth:`free`.

    Args:
        name: Optional model name, used in visualizations
    """

    def __init__(self, name: Optional[str] = None) -> None:
        super().__init__()
        self.name = name
        self.nodes = nn.ModuleList()
        self._names: Dict[str, int] = {}
        self._edges: List[Tuple[int, int]] = []
        self._order: Optional[List[int]] = None
        self._released = False

    # ------------------------------------------------------------------
    # Graph construction
    # ------------------------------------------------------------------

    def add_node(self, node: Node, name: Optional[str] = None) -> int:
        """Append a node and take ownership of it.

        Args:
            node: Node to add
            name: Optional unique name; defaults to ``node.name``

        Returns:
            Index of the node in this model

        Raises:
            InvalidState: If the node already belongs to a model or was freed
            InvalidParameter: If the name is already taken
        """
        self._check_alive()
        if not isinstance(node, Node):
            raise InvalidParameter(f"Expected a Node, got {type(node).__name__}")

        name = name if name is not None else node.name
        if name is not None and name in self._names:
            raise InvalidParameter(f"A node named '{name}' already exists in the model")

        node._attach(self)

        index = len(self.nodes)
        self.nodes.append(node)
        if name is not None:
            self._names[name] = index
        self._order = None

        logger.debug("Added %r at index %d", node, index)
        return index

    def connect(self, src: NodeKey, dst: NodeKey) -> None:
        """Add a directed edge ``src -> dst``.

        Raises:
            InvalidIndex: If an index is out of range, ``src == dst``, or the
                edge already exists
            CycleError: If the edge would close a cycle
        """
        self._check_alive()
        src_idx = self._resolve(src)
        dst_idx = self._resolve(dst)

        if src_idx == dst_idx:
            raise InvalidIndex(f"Cannot connect node {src_idx} to itself")
        if (src_idx, dst_idx) in self._edges:
            raise InvalidIndex(f"Edge {src_idx} -> {dst_idx} already exists")
        if nx.has_path(self._graph(), dst_idx, src_idx):
            raise CycleError(
                f"Edge {src_idx} -> {dst_idx} would create a cycle; "
                f"only acyclic graphs are supported"
            )

        self._edges.append((src_idx, dst_idx))
        self._order = None
        logger.debug("Connected %d -> %d", src_idx, dst_idx)

    def _resolve(self, key: NodeKey) -> int:
        """Map an index or name to a valid index."""
        if isinstance(key, str):
            if key not in self._names:
                raise InvalidIndex(f"No node named '{key}'")
            return self._names[key]
        if isinstance(key, bool) or not isinstance(key, numbers.Integral):
            raise InvalidIndex(f"Node key must be an int or str, got {type(key).__name__}")
        if not 0 <= key < len(self.nodes):
            raise InvalidIndex(f"Node index {key} out of range for {len(self.nodes)} nodes")
        return int(key)

    # ------------------------------------------------------------------
    # Graph queries
    # ------------------------------------------------------------------

    def node(self, key: NodeKey) -> Node:
        """Return the node at an index or with a name."""
        return self.nodes[self._resolve(key)]

    def index_of(self, name: str) -> int:
        return self._resolve(name)

    def name_of(self, index: int) -> Optional[str]:
        for name, idx in self._names.items():
            if idx == index:
                return name
        return None

    @property
    def edges(self) -> List[Tuple[int, int]]:
        """Edges in insertion order."""
        return list(self._edges)

    def predecessors(self, key: NodeKey) -> List[int]:
        """Indices feeding a node, in edge-insertion order."""
        index = self._resolve(key)
        return [src for src, dst in self._edges if dst == index]

    def successors(self, key: NodeKey) -> List[int]:
        index = self._resolve(key)
        return [dst for src, dst in self._edges if src == index]

    def sources(self) -> List[int]:
        """Indices of nodes without incoming edges."""
        targets = {dst for _, dst in self._edges}
        return [i for i in range(len(self.nodes)) if i not in targets]

    def sinks(self) -> List[int]:
        """Indices of nodes without outgoing edges."""
        origins = {src for src, _ in self._edges}
        return [i for i in range(len(self.nodes)) if i not in origins]

    def _graph(self) -> nx.DiGraph:
        G = nx.DiGraph()
        G.add_nodes_from(range(len(self.nodes)))
        G.add_edges_from(self._edges)
        return G

    def execution_order(self) -> List[int]:
        """Topological order of all nodes, ties broken by index."""
        if self._order is None:
            self._order = list(nx.lexicographical_topological_sort(self._graph()))
        return list(self._order)

    def ancestors(self, key: NodeKey) -> List[int]:
        """Indices of all nodes upstream of a node, sorted."""
        return sorted(nx.ancestors(self._graph(), self._resolve(key)))

    @property
    def input_dim(self) -> Optional[int]:
        """Combined input length of the sources, or None if undetermined."""
        dims = [self.nodes[i].input_dim for i in self.sources()]
        if not dims or any(d is None for d in dims):
            return None
        return sum(dims)

    @property
    def output_dim(self) -> int:
        """Combined output length of the sinks."""
        return sum(self.nodes[i].output_dim for i in self.sinks())

    def get_node_count(self) -> int:
        return len(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    @torch.no_grad()
    def run(self, input: Any) -> torch.Tensor:
        """Push one input vector through the graph.

        The input is validated against the sources before any node runs. A
        node failing during propagation leaves the nodes that already ran
        with their updated state; there is no rollback.

        Args:
            input: Vector of the combined source input length

        Returns:
            Concatenated outputs of the sink nodes, in index order

        Raises:
            InvalidState: If the model is empty or freed
            DimensionMismatch: If the input or an intermediate vector has the
                wrong length
        """
        self._check_alive()
        if len(self.nodes) == 0:
            raise InvalidState("Cannot run an empty model")

        feeds = self._split_input(as_vector(input))
        outputs = self._propagate(feeds)
        return torch.cat([outputs[i] for i in self.sinks()])

    def forward(self, input: Any) -> torch.Tensor:
        return self.run(input)

    def _split_input(self, x: torch.Tensor) -> Dict[int, torch.Tensor]:
        """Slice the run input among the sources in index order.

        At most one source may have an undetermined input dimension; it
        receives whatever the others leave.
        """
        sources = self.sources()
        dims = {i: self.nodes[i].input_dim for i in sources}
        unknown = [i for i, d in dims.items() if d is None]
        known_total = sum(d for d in dims.values() if d is not None)

        if len(unknown) > 1:
            raise DimensionMismatch(
                f"Sources {unknown} have no fixed input dimension; "
                f"cannot split the input among them"
            )
        if unknown:
            remainder = x.shape[0] - known_total
            if remainder < 1:
                raise DimensionMismatch(
                    f"Input of length {x.shape[0]} leaves nothing for source {unknown[0]}"
                )
            dims[unknown[0]] = remainder
        elif x.shape[0] != known_total:
            raise DimensionMismatch(
                f"Model expects input of length {known_total}, got {x.shape[0]}"
            )

        feeds = {}
        offset = 0
        for i in sources:
            feeds[i] = x[offset : offset + dims[i]]
            offset += dims[i]
        return feeds

    def _propagate(
        self,
        feeds: Dict[int, torch.Tensor],
        restrict: Optional[Iterable[int]] = None,
    ) -> Dict[int, torch.Tensor]:
        """Run nodes in topological order and return every node's output.

        Args:
            feeds: Input slice for each source
            restrict: If given, only these nodes run (must be closed under
                      predecessors)
        """
        allowed = set(restrict) if restrict is not None else None
        outputs: Dict[int, torch.Tensor] = {}

        for index in self.execution_order():
            if allowed is not None and index not in allowed:
                continue
            node = self.nodes[index]
            inp = self.node_input(index, outputs, feeds)
            try:
                outputs[index] = node(inp)
            except RCError as exc:
                label = self.name_of(index) or node.__class__.__name__
                exc.add_note(f"raised by node {index} ({label})")
                raise

        return outputs

    def node_input(
        self,
        key: NodeKey,
        outputs: Dict[int, torch.Tensor],
        feeds: Dict[int, torch.Tensor],
    ) -> torch.Tensor:
        """Vector that feeds a node given the outputs of its predecessors."""
        index = self._resolve(key)
        preds = self.predecessors(index)
        return torch.cat([outputs[p] for p in preds]) if preds else feeds[index]

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def fit(
        self,
        X_train: Any,
        y_train: Any,
        batch_size: int,
        warmup: int = 0,
    ) -> None:
        """Fit every trainable node of the graph.

        See :class:`rcgraph.training.ReadoutTrainer` for the procedure.

        Args:
            X_train: Inputs, (batch_size, input_dim) or flat
            y_train: Targets, (batch_size, output_dim) or flat, or a dict
                     mapping readout index/name to its targets
            batch_size: Number of time steps in the sequence
            warmup: Leading steps excluded from the regression
        """
        self._check_alive()
        ReadoutTrainer(self).fit(X_train, y_train, batch_size=batch_size, warmup=warmup)

    # ------------------------------------------------------------------
    # State management
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Reset the state of every node. Trained weights are kept."""
        self._check_alive()
        for node in self.nodes:
            node.reset()

    def get_states(self) -> Dict[int, torch.Tensor]:
        """Copy the states of all stateful nodes, keyed by index."""
        self._check_alive()
        return {i: node.get_state() for i, node in enumerate(self.nodes) if node.state_dim > 0}

    def set_states(self, states: Dict[NodeKey, Any]) -> None:
        """Restore node states from a mapping of index/name to state."""
        self._check_alive()
        resolved = {self._resolve(key): state for key, state in states.items()}
        for index, state in resolved.items():
            self.nodes[index].set_state(state)

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    @property
    def is_released(self) -> bool:
        return self._released

    def _check_alive(self) -> None:
        if self._released:
            raise InvalidState("Model has been freed")

    def free(self) -> None:
        """Release every owned node. Any later use of the model raises."""
        if self._released:
            return
        for node in self.nodes:
            node._release()
        self._released = True
        logger.debug("Freed model with %d nodes", len(self.nodes))

    # ------------------------------------------------------------------
    # Visualization
    # ------------------------------------------------------------------

    def to_dot(self, rankdir: str = "LR", show_dims: bool = True) -> str:
        """Return a Graphviz DOT description of the graph.

        Sources are drawn as pink ellipses, sinks as green ellipses and the
        remaining nodes as blue boxes. Edges are labelled with the length of
        the vector they carry.
        """
        sources = set(self.sources())
        sinks = set(self.sinks())

        dot_lines = [
            f'digraph "{self.name or "Model"}" {{',
            f"  rankdir={rankdir};",
            "  node [shape=box, style=filled];",
            "  edge [fontsize=10];",
        ]

        for index, node in enumerate(self.nodes):
            label = self.name_of(index) or f"node_{index}"
            display_label = f"{label}\\n{node.__class__.__name__}"
            if show_dims:
                display_label += f"\\n({node.output_dim})"

            if index in sources:
                style = 'fillcolor="#FFB6C1", shape=ellipse'
            elif index in sinks:
                style = 'fillcolor="#90EE90", shape=ellipse'
            else:
                style = 'fillcolor="#87CEEB"'

            dot_lines.append(f'  "{index}" [label="{display_label}", {style}];')

        for src, dst in self._edges:
            if show_dims:
                dot_lines.append(f'  "{src}" -> "{dst}" [label="{self.nodes[src].output_dim}"];')
            else:
                dot_lines.append(f'  "{src}" -> "{dst}";')

        dot_lines.append("}")
        return "\n".join(dot_lines)

    def plot(
        self,
        save_path: Optional[Union[str, Path]] = None,
        format: str = "svg",
        rankdir: str = "LR",
    ) -> Any:
        """Render the graph with graphviz.

        Args:
            save_path: Where to write the rendering. If None, nothing is written.
            format: Output format when saving ("svg", "png", "pdf")
            rankdir: Graph direction ("TB" or "LR")

        Returns:
            A ``graphviz.Source`` when graphviz is installed, otherwise the
            DOT source string
        """
        dot_source = self.to_dot(rankdir=rankdir)

        try:
            import graphviz
        except ImportError:
            logger.warning("graphviz is not installed; returning DOT source")
            return dot_source

        graph = graphviz.Source(dot_source)
        if save_path is not None:
            save_path = Path(save_path)
            save_path.parent.mkdir(parents=True, exist_ok=True)
            graph.render(str(save_path.with_suffix("")), format=format, cleanup=True)
        return graph

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"nodes={len(self.nodes)}, "
            f"edges={len(self._edges)}"
            f"{', released' if self._released else ''}"
            f")"
        )
