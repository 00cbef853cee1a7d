"""
Layout Errors

Exceptions raised by the layout engine. Degenerate geometry (coincident
nodes) and malformed custom centers are recovered inside the simulation
and never surface here.
"""

from typing import Optional


class GForceError(Exception):
    """Base class for all layout engine errors."""
    pass


class LayoutConfigError(GForceError, ValueError):
    """A configuration option has an unusable type or value."""
    pass


class InvalidEdgeReference(GForceError, KeyError):
    """An edge points at a node id that is not part of the node set."""

    def __init__(self, edge_index: int, terminal: str, node_id: object):
        self.edge_index = edge_index
        self.terminal = terminal
        self.node_id = node_id
        super().__init__(
            f"Edge {edge_index} references unknown {terminal} node {node_id!r}"
        )

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class NumericalInstabilityError(GForceError, ArithmeticError):
    """The simulation produced a NaN or infinite coordinate."""

    def __init__(self, node_id: object, iteration: int,
                 position: Optional[tuple] = None):
        self.node_id = node_id
        self.iteration = iteration
        self.position = position
        super().__init__(
            f"Node {node_id!r} reached non-finite position {position} "
            f"at iteration {iteration}"
        )


class LayoutDestroyedError(GForceError):
    """The layout was destroyed and can no longer run."""
    pass
