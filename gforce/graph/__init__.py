"""Graph data model consumed by the layout engine."""

from .abstraction import (
    Node,
    Edge,
    Degree,
    Graph,
    get_edge_terminal,
    build_index_map,
    validate_edges,
    get_degree,
)

__all__ = [
    "Node",
    "Edge",
    "Degree",
    "Graph",
    "get_edge_terminal",
    "build_index_map",
    "validate_edges",
    "get_degree",
]
