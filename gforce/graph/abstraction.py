"""
Graph Abstraction Layer

Plain data containers for the nodes and edges handed to the layout engine.
The engine only ever reads and writes the position fields of a node; all
other fields are inputs.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..errors import InvalidEdgeReference

NodeSize = Union[float, Tuple[float, float], Mapping[str, float]]


@dataclass
class Node:
    """A graph node positioned by the layout."""
    id: str
    x: Optional[float] = None
    y: Optional[float] = None
    fx: Optional[float] = None  # Pinned x, overrides the simulation
    fy: Optional[float] = None  # Pinned y
    mass: Optional[float] = None
    size: Optional[NodeSize] = None  # Scalar, (w, h) or {"width", "height"}
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_pinned(self) -> bool:
        """True when both pinned coordinates are set."""
        return is_finite(self.fx) and is_finite(self.fy)

    def pin(self, x: Optional[float] = None, y: Optional[float] = None):
        """Pin the node at (x, y), defaulting to its current position."""
        self.fx = self.x if x is None else x
        self.fy = self.y if y is None else y

    def unpin(self):
        self.fx = None
        self.fy = None


@dataclass
class Edge:
    """A connection between two nodes.

    Endpoints are usually node ids but may be richer terminal descriptors
    (a Node, or a mapping carrying "id" or "cell").
    """
    source: Any
    target: Any
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Degree:
    """Edge counts for a single node."""
    in_degree: int = 0
    out_degree: int = 0
    all: int = 0


@dataclass
class Graph:
    """Convenience holder for a node list and an edge list."""
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    def add_node(self, node_id: str, **kwargs) -> Node:
        node = Node(id=node_id, **kwargs)
        self.nodes.append(node)
        return node

    def add_edge(self, source: str, target: str, **data) -> Edge:
        edge = Edge(source=source, target=target, data=data)
        self.edges.append(edge)
        return edge

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def node_index(self) -> Dict[str, int]:
        """Map node id -> position in the node list."""
        return build_index_map(self.nodes)


def is_number(value: Any) -> bool:
    """Real int or float; booleans are rejected."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_finite(value: Any) -> bool:
    return is_number(value) and math.isfinite(value)


def get_edge_terminal(edge: Any, terminal: str) -> Any:
    """Return the node id at one end of an edge.

    Args:
        edge: An Edge, or any mapping/object with source and target fields
        terminal: "source" or "target"

    Returns:
        The referenced node id
    """
    if terminal not in ("source", "target"):
        raise ValueError(f"terminal must be 'source' or 'target', not {terminal!r}")

    if isinstance(edge, Mapping):
        value = edge.get(terminal)
    else:
        value = getattr(edge, terminal, None)

    if isinstance(value, Node):
        return value.id
    if isinstance(value, Mapping):
        if "cell" in value:
            return value["cell"]
        return value.get("id")
    return value


def build_index_map(nodes: Sequence[Node]) -> Dict[str, int]:
    """Build the node id -> index lookup used by the force buffers."""
    return {node.id: i for i, node in enumerate(nodes)}


def validate_edges(edges: Sequence[Any], index_map: Mapping[str, int]):
    """Raise InvalidEdgeReference for the first edge with an unknown endpoint."""
    for i, edge in enumerate(edges):
        for terminal in ("source", "target"):
            node_id = get_edge_terminal(edge, terminal)
            if node_id not in index_map:
                raise InvalidEdgeReference(i, terminal, node_id)


def get_degree(node_count: int, index_map: Mapping[str, int],
               edges: Optional[Sequence[Any]]) -> List[Degree]:
    """Count in/out/total edges for every node.

    Edges with an endpoint missing from ``index_map`` are skipped; callers
    that need strictness run ``validate_edges`` first. A self-loop counts
    twice towards ``all``.
    """
    degrees = [Degree() for _ in range(node_count)]
    if not edges:
        return degrees

    for edge in edges:
        source_idx = index_map.get(get_edge_terminal(edge, "source"))
        target_idx = index_map.get(get_edge_terminal(edge, "target"))
        if source_idx is not None:
            degrees[source_idx].out_degree += 1
            degrees[source_idx].all += 1
        if target_idx is not None:
            degrees[target_idx].in_degree += 1
            degrees[target_idx].all += 1

    return degrees
