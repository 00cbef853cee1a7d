"""
Layout Configuration

Options for the force layout. Scalar options can be kept in a YAML file:

```yaml
max_iteration: 300
gravity: 5
node_strength: 800
prevent_overlap: true
node_size: 24
center: [400, 300]
```

Options that accept per-node or per-edge callbacks (strengths, mass,
custom center, link distance, node size/spacing) are passed in code.
"""

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple, Union

import yaml

from ..errors import LayoutConfigError
from ..graph.abstraction import is_finite, is_number

logger = logging.getLogger(__name__)

DEFAULT_CANVAS_SIZE = 300.0

ScalarOrFunc = Union[float, Callable[..., float], None]

# camelCase spellings accepted alongside the snake_case field names
CAMEL_CASE_ALIASES = {
    "maxIteration": "max_iteration",
    "edgeStrength": "edge_strength",
    "nodeStrength": "node_strength",
    "coulombDisScale": "coulomb_dis_scale",
    "maxSpeed": "max_speed",
    "minMovement": "min_movement",
    "getMass": "get_mass",
    "getCenter": "get_center",
    "linkDistance": "link_distance",
    "preventOverlap": "prevent_overlap",
    "nodeSize": "node_size",
    "collideStrength": "collide_strength",
    "nodeSpacing": "node_spacing",
    "enableTick": "enable_tick",
    "workerEnabled": "worker_enabled",
    "onLayoutEnd": "on_layout_end",
}

# Options that cannot be expressed in a config file
CALLBACK_OPTIONS = ("get_mass", "get_center", "tick", "on_layout_end")


@dataclass
class GForceConfig:
    """Configuration for the force layout."""
    # Canvas and center
    center: Optional[Tuple[float, float]] = None  # Defaults to canvas center
    width: Optional[float] = DEFAULT_CANVAS_SIZE
    height: Optional[float] = DEFAULT_CANVAS_SIZE

    # Iteration control
    max_iteration: int = 500
    min_movement: float = 0.5  # Mean displacement that counts as converged
    interval: float = 0.02  # Base step interval, decays per iteration
    damping: float = 0.9
    max_speed: float = 1000.0

    # Force strengths
    edge_strength: ScalarOrFunc = 200.0
    node_strength: ScalarOrFunc = 1000.0
    coulomb_dis_scale: float = 0.005
    factor: float = 1.0
    link_distance: ScalarOrFunc = 1.0
    gravity: float = 10.0
    get_mass: Optional[Callable[[Any], float]] = None  # Defaults to node degree
    get_center: Optional[Callable[[Any, int], Sequence[float]]] = None

    # Overlap prevention
    prevent_overlap: bool = True
    node_size: Union[float, Sequence[float], Callable[[Any], float], None] = None
    node_spacing: ScalarOrFunc = 0.0
    collide_strength: float = 1.0

    # Callbacks and execution mode
    tick: Optional[Callable[[], None]] = None
    enable_tick: bool = True
    on_layout_end: Optional[Callable[[], None]] = None
    animate: bool = True
    worker_enabled: bool = False
    seed: Optional[int] = None

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Check option types and ranges.

        Raises:
            LayoutConfigError: If any option is unusable
        """
        if not isinstance(self.max_iteration, int) or isinstance(self.max_iteration, bool):
            raise LayoutConfigError(
                f"max_iteration must be an integer, got {self.max_iteration!r}"
            )
        if self.max_iteration < 0:
            raise LayoutConfigError("max_iteration must be >= 0")

        for name in ("damping", "interval", "max_speed", "coulomb_dis_scale"):
            value = getattr(self, name)
            if not is_finite(value) or value <= 0:
                raise LayoutConfigError(f"{name} must be a positive number, got {value!r}")

        for name in ("min_movement", "factor", "gravity", "collide_strength"):
            value = getattr(self, name)
            if not is_finite(value):
                raise LayoutConfigError(f"{name} must be a finite number, got {value!r}")
        if self.min_movement < 0:
            raise LayoutConfigError("min_movement must be >= 0")

        for name in ("width", "height"):
            value = getattr(self, name)
            if value is None:
                continue
            if not is_finite(value) or value < 0:
                raise LayoutConfigError(f"{name} must be a non-negative number, got {value!r}")

        if self.center is not None:
            if (
                isinstance(self.center, (str, bytes))
                or not isinstance(self.center, Sequence)
                or len(self.center) != 2
                or not all(is_finite(c) for c in self.center)
            ):
                raise LayoutConfigError(f"center must be an (x, y) pair, got {self.center!r}")
            self.center = (float(self.center[0]), float(self.center[1]))

        for name in ("edge_strength", "node_strength", "link_distance", "node_spacing"):
            value = getattr(self, name)
            if value is not None and not (is_number(value) or callable(value)):
                raise LayoutConfigError(
                    f"{name} must be a number or a callable, got {value!r}"
                )

        if self.node_size is not None and not (
            is_number(self.node_size)
            or callable(self.node_size)
            or (isinstance(self.node_size, Sequence)
                and len(self.node_size) >= 1
                and all(is_number(v) for v in self.node_size))
        ):
            raise LayoutConfigError(
                f"node_size must be a number, a sequence or a callable, got {self.node_size!r}"
            )

        for name in CALLBACK_OPTIONS:
            value = getattr(self, name)
            if value is not None and not callable(value):
                raise LayoutConfigError(f"{name} must be callable, got {value!r}")

    def canvas_size(self) -> Tuple[float, float]:
        """Width and height, falling back to the default canvas when unset."""
        width = self.width or DEFAULT_CANVAS_SIZE
        height = self.height or DEFAULT_CANVAS_SIZE
        return float(width), float(height)

    def resolve_center(self) -> Tuple[float, float]:
        """Configured center, or the middle of the canvas."""
        if self.center is not None:
            return self.center
        width, height = self.canvas_size()
        return (width / 2, height / 2)

    @property
    def runs_synchronously(self) -> bool:
        """All steps run back-to-back inside execute()."""
        return self.worker_enabled or not self.animate

    def update(self, **options) -> "GForceConfig":
        """Update options in place and re-validate."""
        normalized = _normalize_keys(options)
        known = {f.name for f in fields(self)}
        unknown = sorted(set(normalized) - known)
        if unknown:
            raise LayoutConfigError(f"Unknown layout option(s): {', '.join(unknown)}")
        previous = {name: getattr(self, name) for name in normalized}
        for name, value in normalized.items():
            setattr(self, name, value)
        try:
            self.validate()
        except LayoutConfigError:
            for name, value in previous.items():
                setattr(self, name, value)
            raise
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Scalar options only; callbacks are skipped."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if callable(value):
                continue
            if isinstance(value, tuple):
                value = list(value)
            result[f.name] = value
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GForceConfig":
        """Create a config from a mapping of option names.

        Both snake_case and camelCase option names are accepted.
        """
        if not isinstance(data, Mapping):
            raise LayoutConfigError(
                f"Layout config must be a mapping, got {type(data).__name__}"
            )
        normalized = _normalize_keys(data)
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(normalized) - known)
        if unknown:
            raise LayoutConfigError(f"Unknown layout option(s): {', '.join(unknown)}")
        return cls(**normalized)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "GForceConfig":
        """Load scalar options from a YAML file."""
        path = Path(path)
        with open(path, "r") as f:
            data = yaml.safe_load(f)

        if data is None:
            data = {}
        # Allow the options to be nested under a "layout" key
        if isinstance(data, Mapping) and isinstance(data.get("layout"), Mapping):
            data = data["layout"]

        logger.debug("Loaded layout config from %s", path)
        return cls.from_dict(data)

    def save_yaml(self, path: Union[str, Path]):
        """Write the scalar options to a YAML file."""
        path = Path(path)
        with open(path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
        logger.debug("Saved layout config to %s", path)


def _normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    normalized = {}
    for key, value in data.items():
        name = CAMEL_CASE_ALIASES.get(key, key)
        if name == "center" and isinstance(value, list):
            value = tuple(value)
        normalized[name] = value
    return normalized
