"""
Force Layout

Positions graph nodes with a physics simulation that balances:
- Repulsion between every pair of nodes (Coulomb-like, inverse square)
- Collision push for nodes whose rendered extents overlap
- Spring attraction along edges toward an ideal length
- Gravity pulling every node toward a global or per-node center

Forces are accumulated into a flat acceleration buffer (x at 2*i, y at
2*i+1), turned into a damped, speed-clamped velocity and integrated with a
step interval that shrinks as iterations advance.
"""

import asyncio
import logging
import math
import random
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..errors import LayoutDestroyedError, NumericalInstabilityError
from ..graph.abstraction import (
    Degree,
    Node,
    build_index_map,
    get_degree,
    get_edge_terminal,
    is_finite,
    validate_edges,
)
from .config import GForceConfig
from .forces import make_mass_func, make_node_size_func, resolve_masses, to_force_func
from .runner import LayoutRun, LayoutStatus

logger = logging.getLogger(__name__)

MIN_STEP_INTERVAL = 0.02
STEP_INTERVAL_DECAY = 0.002
# Velocity used when a computed component is exactly zero
IDLE_VELOCITY = 0.01
# Added to pair distance before scaling, keeps repulsion finite
DISTANCE_FLOOR = 0.1
JITTER_SCALE = 0.01


def step_interval_for(interval: float, iteration: int) -> float:
    """Step interval for an iteration; decays linearly down to a floor."""
    return max(MIN_STEP_INTERVAL, interval - iteration * STEP_INTERVAL_DECAY)


class GForceLayout:
    """
    Force-directed graph layout.

    Usage:
        layout = GForceLayout(animate=False, center=(0, 0))
        layout.layout(nodes, edges)  # positions are written to the nodes

    In animated mode execute() returns a LayoutRun that is stepped one
    iteration at a time, either by the caller or on the running asyncio
    loop.
    """

    def __init__(self, config: Optional[GForceConfig] = None, **options):
        self.config = config or GForceConfig()
        if options:
            self.config.update(**options)

        self.nodes: List[Node] = []
        self.edges: List[Any] = []

        self.node_map: Dict[str, Node] = {}
        self.node_index: Dict[str, int] = {}
        self.degrees: List[Degree] = []
        self.center: Tuple[float, float] = self.config.resolve_center()

        self._rng = random.Random(self.config.seed)
        self._run: Optional[LayoutRun] = None
        self._destroyed = False

        # Normalized per run by initialize()
        self._node_strength: Callable[..., float] = to_force_func(None)
        self._edge_strength: Callable[..., float] = to_force_func(None)
        self._link_distance: Callable[..., float] = to_force_func(None)
        self._node_size: Callable[[Node], float] = make_node_size_func(None)
        self._masses: List[float] = []

    # =========================================================================
    # Public API
    # =========================================================================

    def get_type(self) -> str:
        return "gForce"

    @property
    def current_run(self) -> Optional[LayoutRun]:
        return self._run

    def update_config(self, **options) -> GForceConfig:
        """Change layout options; takes effect on the next execute()."""
        self.config.update(**options)
        if "seed" in options:
            self._rng.seed(self.config.seed)
        return self.config

    def layout(self, nodes: Sequence[Node], edges: Optional[Sequence[Any]] = None
               ) -> LayoutRun:
        """Set the graph data and execute the layout."""
        self.nodes = list(nodes)
        self.edges = list(edges or [])
        return self.execute()

    def execute(self) -> LayoutRun:
        """Start a new layout run over the current nodes and edges.

        Any active run is stopped first. In synchronous mode (animate off or
        worker enabled) the returned run has already finished.

        Raises:
            LayoutDestroyedError: If destroy() was called
            InvalidEdgeReference: If an edge references an unknown node
            LayoutConfigError: If a node mass is not positive
        """
        if self._destroyed:
            raise LayoutDestroyedError("Cannot execute a destroyed layout")
        self.stop()

        run = LayoutRun(self)
        self._run = run
        nodes = self.nodes

        try:
            validate_edges(self.edges, build_index_map(nodes))

            if not nodes:
                logger.debug("Force layout: no nodes, nothing to do")
                run.finish(LayoutStatus.CONVERGED)
                return run

            self.center = self.config.resolve_center()

            if len(nodes) == 1:
                nodes[0].x, nodes[0].y = self.center
                logger.debug("Force layout: single node placed at center %s", self.center)
                run.finish(LayoutStatus.CONVERGED)
                return run

            self.initialize()
        except Exception:
            run.finish(LayoutStatus.STOPPED)
            raise

        if self.config.runs_synchronously:
            run.run_all()
        else:
            run.start_if_loop_running()
        return run

    async def run_async(self) -> LayoutRun:
        """Execute and step on the running event loop until the run ends.

        Cancelling the coroutine stops the run.
        """
        run = self.execute()
        try:
            await run.wait()
        except asyncio.CancelledError:
            run.stop()
            raise
        return run

    def stop(self):
        """Stop the active run; nodes keep their last positions."""
        if self._run is not None:
            self._run.stop()

    def destroy(self):
        """Stop and release the graph data. The layout cannot run again."""
        self.stop()
        self.config.tick = None
        self.nodes = []
        self.edges = []
        self.node_map = {}
        self.node_index = {}
        self._masses = []
        self._destroyed = True

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    # =========================================================================
    # Initialization
    # =========================================================================

    def initialize(self):
        """Seed positions and resolve all per-run lookups and force functions.

        Called by execute(); safe to call directly before using the force
        calculators on their own.
        """
        config = self.config
        nodes = self.nodes
        width, height = config.canvas_size()
        self.center = config.resolve_center()

        for node in nodes:
            if not is_finite(node.x):
                node.x = self._rng.random() * width
            if not is_finite(node.y):
                node.y = self._rng.random() * height

        self.node_map = {node.id: node for node in nodes}
        self.node_index = build_index_map(nodes)
        validate_edges(self.edges, self.node_index)

        self._link_distance = to_force_func(config.link_distance, 1.0)
        self._node_strength = to_force_func(config.node_strength, 1.0)
        self._edge_strength = to_force_func(config.edge_strength, 1.0)
        self._node_size = make_node_size_func(config.node_size, config.node_spacing)

        self.degrees = get_degree(len(nodes), self.node_index, self.edges)
        mass_func = make_mass_func(config.get_mass, self.degrees, self.node_index)
        self._masses = resolve_masses(nodes, mass_func)

        if logger.isEnabledFor(logging.DEBUG):
            pinned = sum(1 for node in nodes if node.is_pinned)
            logger.debug(
                "Force layout start: nodes=%d edges=%d pinned=%d mode=%s",
                len(nodes),
                len(self.edges),
                pinned,
                "sync" if config.runs_synchronously else "stepped",
            )
            active_forces = ["repulsion", "attraction"]
            if config.prevent_overlap:
                active_forces.append(f"collision (strength={config.collide_strength})")
            if config.gravity or config.get_center:
                active_forces.append("gravity")
            logger.debug("  Active force types: %s", ", ".join(active_forces))

    # =========================================================================
    # Simulation step
    # =========================================================================

    def run_one_step(self, iteration: int) -> List[Tuple[float, float]]:
        """Accumulate forces and integrate one step.

        Returns:
            Node positions from before the step, in node order
        """
        nodes = self.nodes
        size = 2 * len(nodes)
        acc = [0.0] * size
        vel = [0.0] * size

        self.calc_repulsive(acc, nodes)
        if self.edges:
            self.calc_attractive(acc, self.edges)
        self.calc_gravity(acc, nodes)

        step_interval = step_interval_for(self.config.interval, iteration)
        self.update_velocity(acc, vel, step_interval)

        previous = [(node.x, node.y) for node in nodes]
        self.update_position(vel, step_interval, nodes, iteration)
        return previous

    def mean_displacement(self, previous: Sequence[Tuple[float, float]]) -> float:
        """Average distance moved by the nodes since ``previous``."""
        nodes = self.nodes
        if not nodes:
            return 0.0
        movement = 0.0
        for node, (px, py) in zip(nodes, previous):
            dx = node.x - px
            dy = node.y - py
            movement += math.sqrt(dx * dx + dy * dy)
        return movement / len(nodes)

    def _jitter(self) -> Tuple[float, float]:
        """Small random offset separating coincident points."""
        rand = self._rng.random
        return ((rand() or 0.5) * JITTER_SCALE, (rand() or 0.5) * JITTER_SCALE)

    def calc_repulsive(self, acc: List[float], nodes: Sequence[Node]):
        """Add pairwise repulsion, and collision push where nodes overlap.

        Base repulsion is mass-agnostic; only the collision term is divided
        by each node's mass.
        """
        config = self.config
        factor = config.factor
        scale = config.coulomb_dis_scale
        prevent_overlap = config.prevent_overlap
        collide_strength = config.collide_strength
        masses = self._masses

        strengths = [self._node_strength(node) for node in nodes]
        sizes = [self._node_size(node) for node in nodes] if prevent_overlap else None

        count = len(nodes)
        for i in range(count):
            ni = nodes[i]
            xi = ni.x
            yi = ni.y
            strength_i = strengths[i]
            for j in range(i + 1, count):
                nj = nodes[j]
                vec_x = xi - nj.x
                vec_y = yi - nj.y
                if vec_x == 0 and vec_y == 0:
                    vec_x, vec_y = self._jitter()
                length_sqr = vec_x * vec_x + vec_y * vec_y
                length = math.sqrt(length_sqr)
                scaled = (length + DISTANCE_FLOOR) * scale
                dire_x = vec_x / length
                dire_y = vec_y / length
                half_strength = (strength_i + strengths[j]) * 0.5
                param = half_strength * factor / (scaled * scaled)

                acc[2 * i] += dire_x * param
                acc[2 * i + 1] += dire_y * param
                acc[2 * j] -= dire_x * param
                acc[2 * j + 1] -= dire_y * param

                if prevent_overlap and (sizes[i] + sizes[j]) / 2 > length:
                    overlap = collide_strength * half_strength / length_sqr
                    mass_i = masses[i]
                    mass_j = masses[j]
                    acc[2 * i] += dire_x * overlap / mass_i
                    acc[2 * i + 1] += dire_y * overlap / mass_i
                    acc[2 * j] -= dire_x * overlap / mass_j
                    acc[2 * j + 1] -= dire_y * overlap / mass_j

    def calc_attractive(self, acc: List[float], edges: Sequence[Any]):
        """Add spring forces pulling each edge toward its ideal length."""
        node_map = self.node_map
        node_index = self.node_index
        masses = self._masses
        link_distance = self._link_distance
        edge_strength = self._edge_strength
        node_size = self._node_size

        for edge in edges:
            source = get_edge_terminal(edge, "source")
            target = get_edge_terminal(edge, "target")
            source_node = node_map[source]
            target_node = node_map[target]

            vec_x = target_node.x - source_node.x
            vec_y = target_node.y - source_node.y
            if vec_x == 0 and vec_y == 0:
                vec_x, vec_y = self._jitter()
            length = math.sqrt(vec_x * vec_x + vec_y * vec_y)
            dire_x = vec_x / length
            dire_y = vec_y / length

            ideal = link_distance(edge, source_node, target_node)
            if not ideal:
                ideal = 1 + (node_size(source_node) + node_size(target_node)) / 2
            param = (ideal - length) * edge_strength(edge)

            source_idx = node_index[source]
            target_idx = node_index[target]
            mass_source = masses[source_idx]
            mass_target = masses[target_idx]
            acc[2 * source_idx] -= dire_x * param / mass_source
            acc[2 * source_idx + 1] -= dire_y * param / mass_source
            acc[2 * target_idx] += dire_x * param / mass_target
            acc[2 * target_idx + 1] += dire_y * param / mass_target

    def calc_gravity(self, acc: List[float], nodes: Sequence[Node]):
        """Pull every node toward the center, or its own custom center."""
        center_x, center_y = self.center
        default_gravity = self.config.gravity
        get_center = self.config.get_center
        degrees = self.degrees

        for i, node in enumerate(nodes):
            vec_x = node.x - center_x
            vec_y = node.y - center_y
            gravity = default_gravity

            if get_center is not None:
                degree = degrees[i].all if i < len(degrees) else 0
                custom = _valid_custom_center(get_center(node, degree))
                if custom is not None:
                    vec_x = node.x - custom[0]
                    vec_y = node.y - custom[1]
                    gravity = custom[2]

            if not gravity:
                continue

            acc[2 * i] -= gravity * vec_x
            acc[2 * i + 1] -= gravity * vec_y

    def update_velocity(self, acc: Sequence[float], vel: List[float], step_interval: float):
        """Convert acceleration to a damped, speed-clamped velocity."""
        param = step_interval * self.config.damping
        max_speed = self.config.max_speed

        for i in range(len(acc) // 2):
            vx = acc[2 * i] * param or IDLE_VELOCITY
            vy = acc[2 * i + 1] * param or IDLE_VELOCITY
            speed = math.sqrt(vx * vx + vy * vy)
            if speed > max_speed:
                ratio = max_speed / speed
                vx *= ratio
                vy *= ratio
            vel[2 * i] = vx
            vel[2 * i + 1] = vy

    def update_position(self, vel: Sequence[float], step_interval: float,
                        nodes: Sequence[Node], iteration: int = 0):
        """Move nodes by their velocity; pinned nodes snap to their pins.

        Raises:
            NumericalInstabilityError: If a node ends up at NaN or infinity
        """
        for i, node in enumerate(nodes):
            if node.is_pinned:
                node.x = node.fx
                node.y = node.fy
                continue

            node.x += vel[2 * i] * step_interval
            node.y += vel[2 * i + 1] * step_interval
            if not (math.isfinite(node.x) and math.isfinite(node.y)):
                raise NumericalInstabilityError(node.id, iteration, (node.x, node.y))


def _valid_custom_center(value: Any) -> Optional[Tuple[float, float, float]]:
    """(x, y, strength) if the callback result is usable, else None."""
    if not value or isinstance(value, (str, bytes)):
        return None
    try:
        x, y, strength = value[0], value[1], value[2]
    except (IndexError, KeyError, TypeError):
        return None
    for component in (x, y, strength):
        if not is_finite(component):
            return None
    return (x, y, strength)
