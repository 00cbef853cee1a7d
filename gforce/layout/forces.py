"""
Force Functions

Turns configuration values that may be absent, a fixed number or a
callback into plain callables. Done once per run, before the first step,
so the simulation loop never inspects option types.
"""

from typing import Any, Callable, List, Mapping, Optional, Sequence

from ..errors import LayoutConfigError
from ..graph.abstraction import Degree, Node, is_finite, is_number

DEFAULT_NODE_SIZE = 10.0


def to_force_func(value: Any, default: float = 1.0) -> Callable[..., float]:
    """Normalize a scalar-or-callback option.

    Args:
        value: None, a number, or a callable
        default: Constant used when value is None

    Returns:
        A callable accepting any arguments and returning a float
    """
    if value is None:
        return lambda *args: default
    if is_number(value):
        constant = float(value)
        return lambda *args: constant
    if callable(value):
        return value
    raise LayoutConfigError(f"Expected a number or a callable, got {value!r}")


def size_from_node(node: Node) -> float:
    """Largest extent of a node's own size field, or the default size."""
    size = node.size
    if not size:
        return DEFAULT_NODE_SIZE
    if isinstance(size, Mapping):
        return float(max(size.get("width", 0), size.get("height", 0)))
    if isinstance(size, Sequence):
        return float(max(size[0], size[1] if len(size) > 1 else size[0]))
    return float(size)


def make_node_size_func(node_size: Any, node_spacing: Any = None
                        ) -> Callable[[Node], float]:
    """Build the node -> rendered size function used for overlap tests.

    The node spacing (default 0) is added on top of the size.
    """
    spacing = to_force_func(node_spacing, 0.0)

    if node_size is None:
        return lambda node: size_from_node(node) + spacing(node)
    if callable(node_size):
        return lambda node: node_size(node) + spacing(node)
    if isinstance(node_size, Sequence) and not isinstance(node_size, (str, bytes)):
        largest = float(max(node_size[0], node_size[1] if len(node_size) > 1 else node_size[0]))
        return lambda node: largest + spacing(node)
    if is_number(node_size):
        constant = float(node_size)
        return lambda node: constant + spacing(node)
    raise LayoutConfigError(f"Unsupported node_size {node_size!r}")


def make_mass_func(get_mass: Optional[Callable[[Node], float]],
                   degrees: Sequence[Degree],
                   index_map: Mapping[str, int]) -> Callable[[Node], float]:
    """Node mass: the callback if given, else explicit mass, degree, or 1."""
    if get_mass is not None:
        return get_mass

    def degree_mass(node: Node) -> float:
        return node.mass or degrees[index_map[node.id]].all or 1

    return degree_mass


def resolve_masses(nodes: Sequence[Node], mass_func: Callable[[Node], float]
                   ) -> List[float]:
    """Evaluate every node's mass once.

    Raises:
        LayoutConfigError: If a mass is not a positive finite number
    """
    masses = []
    for node in nodes:
        mass = mass_func(node)
        if not is_finite(mass) or mass <= 0:
            raise LayoutConfigError(
                f"Node {node.id!r} has invalid mass {mass!r}; mass must be positive"
            )
        masses.append(float(mass))
    return masses
