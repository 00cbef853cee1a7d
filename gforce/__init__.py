"""
gforce - Physics-Based Graph Layout

Positions the nodes of a graph in 2-D by simulating repulsion between
nodes, spring attraction along edges and gravity toward a center, then
integrating with damping until the layout settles.
"""

__version__ = "0.1.0"

from .errors import (
    GForceError,
    LayoutConfigError,
    InvalidEdgeReference,
    NumericalInstabilityError,
    LayoutDestroyedError,
)
from .graph.abstraction import Node, Edge, Degree, Graph, get_degree, get_edge_terminal
from .layout.config import GForceConfig
from .layout.gforce import GForceLayout
from .layout.runner import LayoutRun, LayoutStatus

__all__ = [
    "GForceError",
    "LayoutConfigError",
    "InvalidEdgeReference",
    "NumericalInstabilityError",
    "LayoutDestroyedError",
    "Node",
    "Edge",
    "Degree",
    "Graph",
    "get_degree",
    "get_edge_terminal",
    "GForceConfig",
    "GForceLayout",
    "LayoutRun",
    "LayoutStatus",
]
