"""Force-directed layout engine and its run driver."""

from .config import GForceConfig
from .gforce import GForceLayout, step_interval_for
from .runner import LayoutRun, LayoutStatus
from .forces import to_force_func, make_node_size_func, make_mass_func, resolve_masses

__all__ = [
    "GForceConfig",
    "GForceLayout",
    "LayoutRun",
    "LayoutStatus",
    "step_interval_for",
    "to_force_func",
    "make_node_size_func",
    "make_mass_func",
    "resolve_masses",
]
