"""
Force-directed layout for GraphLens.

ForceSimulation is the physics: link springs, pairwise repulsion and a
centering pull, integrated with velocity decay under a decaying ``alpha``
(same constants and update order as d3-force).

LayoutEngine owns one simulation plus its lifecycle. It reconciles positions
with each new snapshot, handles pinning for drags, and schedules its own
ticks on the running asyncio loop until alpha drops below ``alpha_min``.
Every tick emits a fresh position snapshot to listeners.
"""

import asyncio
import logging
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from graphlens.model import GraphSnapshot

logger = logging.getLogger(__name__)

LINK_DISTANCE = 100.0
CHARGE_STRENGTH = -300.0
ALPHA_MIN = 0.001
ALPHA_DECAY = 1 - ALPHA_MIN ** (1 / 300)
VELOCITY_DECAY = 0.4
DRAG_ALPHA_TARGET = 0.3
REHEAT_ALPHA = 0.3
# Below this (with no target) the run counts as cooling
COOLING_ALPHA = 0.05
DISTANCE_MIN2 = 1.0

_INITIAL_RADIUS = 10.0
_INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))


@dataclass(frozen=True)
class NodePosition:
    """Emitted per-node layout state."""
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    pinned: bool = False


class _Body:
    __slots__ = ('id', 'x', 'y', 'vx', 'vy', 'fx', 'fy')

    def __init__(self, node_id: str, x: float, y: float):
        self.id = node_id
        self.x = x
        self.y = y
        self.vx = 0.0
        self.vy = 0.0
        self.fx: Optional[float] = None
        self.fy: Optional[float] = None

    @property
    def pinned(self) -> bool:
        return self.fx is not None

    def freeze(self) -> NodePosition:
        return NodePosition(self.x, self.y, self.vx, self.vy, self.pinned)


class ForceSimulation:
    """Link, many-body and centering forces over a set of bodies."""

    def __init__(self, width: float = 800, height: float = 600,
                 link_distance: float = LINK_DISTANCE,
                 charge_strength: float = CHARGE_STRENGTH,
                 seed: int = 0):
        self.center = (width / 2, height / 2)
        self.link_distance = link_distance
        self.charge_strength = charge_strength
        self.alpha = 1.0
        self.alpha_min = ALPHA_MIN
        self.alpha_decay = ALPHA_DECAY
        self.alpha_target = 0.0
        self.velocity_decay = VELOCITY_DECAY
        self.bodies: Dict[str, _Body] = {}
        self._links: List[Tuple[_Body, _Body, float, float]] = []
        self._random = random.Random(seed)

    def _jiggle(self) -> float:
        return (self._random.random() - 0.5) * 1e-6

    def set_bodies(self, bodies: Dict[str, _Body]) -> None:
        self.bodies = bodies

    def set_links(self, links: List[Tuple[str, str]], degree: Mapping[str, int]) -> None:
        """Resolve links to bodies; strength and bias follow endpoint degree."""
        resolved = []
        for source_id, target_id in links:
            source = self.bodies.get(source_id)
            target = self.bodies.get(target_id)
            if source is None or target is None:
                continue
            s_count = max(degree.get(source_id, 1), 1)
            t_count = max(degree.get(target_id, 1), 1)
            strength = 1.0 / min(s_count, t_count)
            bias = s_count / (s_count + t_count)
            resolved.append((source, target, strength, bias))
        self._links = resolved

    @property
    def link_count(self) -> int:
        return len(self._links)

    def step(self) -> None:
        self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay
        self._apply_links()
        self._apply_charge()
        self._apply_center()
        keep = 1 - self.velocity_decay
        for body in self.bodies.values():
            if body.pinned:
                body.x, body.y = body.fx, body.fy
                body.vx = body.vy = 0.0
            else:
                body.vx *= keep
                body.vy *= keep
                body.x += body.vx
                body.y += body.vy

    def _apply_links(self) -> None:
        alpha = self.alpha
        for source, target, strength, bias in self._links:
            x = target.x + target.vx - source.x - source.vx or self._jiggle()
            y = target.y + target.vy - source.y - source.vy or self._jiggle()
            length = math.sqrt(x * x + y * y)
            length = (length - self.link_distance) / length * alpha * strength
            x *= length
            y *= length
            if not target.pinned:
                target.vx -= x * bias
                target.vy -= y * bias
            if not source.pinned:
                source.vx += x * (1 - bias)
                source.vy += y * (1 - bias)

    def _apply_charge(self) -> None:
        bodies = list(self.bodies.values())
        factor = self.charge_strength * self.alpha
        for node in bodies:
            if node.pinned:
                continue
            for other in bodies:
                if other is node:
                    continue
                x = other.x - node.x
                y = other.y - node.y
                dist2 = x * x + y * y
                if x == 0:
                    x = self._jiggle()
                    dist2 += x * x
                if y == 0:
                    y = self._jiggle()
                    dist2 += y * y
                if dist2 < DISTANCE_MIN2:
                    dist2 = math.sqrt(DISTANCE_MIN2 * dist2)
                w = factor / dist2
                node.vx += x * w
                node.vy += y * w

    def _apply_center(self) -> None:
        if not self.bodies:
            return
        n = len(self.bodies)
        sx = sum(b.x for b in self.bodies.values()) / n - self.center[0]
        sy = sum(b.y for b in self.bodies.values()) / n - self.center[1]
        for body in self.bodies.values():
            body.x -= sx
            body.y -= sy


class LayoutState(Enum):
    STOPPED = 'stopped'
    RUNNING = 'running'
    COOLING = 'cooling'


PositionListener = Callable[[Dict[str, NodePosition]], None]


class LayoutEngine:
    """
    Owns position state for one graph and drives the simulation.

    With ``autorun`` the engine schedules its own ticks on the running event
    loop every ``interval`` seconds and stops once the energy has decayed.
    Without it, callers drive ``tick()`` themselves (tests, batch layout).
    """

    def __init__(self, width: float = 800, height: float = 600,
                 interval: float = 1 / 60, autorun: bool = False, seed: int = 0):
        self.width = width
        self.height = height
        self.simulation = ForceSimulation(width, height, seed=seed)
        self._interval = interval
        self._autorun = autorun
        self._active = False
        self._task: Optional[asyncio.Task] = None
        self._pinned_id: Optional[str] = None
        self._positions: Dict[str, NodePosition] = {}
        self._listeners: List[PositionListener] = []
        self.tick_count = 0

    # --- Observation ---

    @property
    def positions(self) -> Dict[str, NodePosition]:
        """The last emitted position snapshot (a copy)."""
        return dict(self._positions)

    def position(self, node_id: str) -> Optional[NodePosition]:
        return self._positions.get(node_id)

    @property
    def alpha(self) -> float:
        return self.simulation.alpha

    @property
    def pinned_id(self) -> Optional[str]:
        return self._pinned_id

    @property
    def state(self) -> LayoutState:
        if not self._active:
            return LayoutState.STOPPED
        sim = self.simulation
        if sim.alpha_target > 0 or sim.alpha >= COOLING_ALPHA:
            return LayoutState.RUNNING
        return LayoutState.COOLING

    def add_listener(self, callback: PositionListener) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: PositionListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    # --- Snapshot reconciliation ---

    def _initial_point(self, index: int) -> Tuple[float, float]:
        radius = _INITIAL_RADIUS * math.sqrt(0.5 + index)
        angle = index * _INITIAL_ANGLE
        cx, cy = self.simulation.center
        return cx + radius * math.cos(angle), cy + radius * math.sin(angle)

    def sync(self, snapshot: GraphSnapshot,
             seeds: Optional[Mapping[str, Tuple[float, float]]] = None) -> None:
        """
        Match bodies to a new snapshot and restart.

        Surviving nodes keep position and velocity, new nodes start at their
        seed (or a deterministic point around the centre), removed nodes are
        discarded.
        """
        seeds = seeds or {}
        old = self.simulation.bodies
        bodies: Dict[str, _Body] = {}
        fresh = 0
        for index, node in enumerate(snapshot.nodes):
            body = old.get(node.id)
            if body is None:
                x, y = seeds.get(node.id) or self._initial_point(index)
                body = _Body(node.id, float(x), float(y))
                fresh += 1
            bodies[node.id] = body

        if self._pinned_id is not None and self._pinned_id not in bodies:
            logger.debug(f"Pinned node {self._pinned_id} removed; releasing pin")
            self._pinned_id = None
            self.simulation.alpha_target = 0.0

        links = [
            (e.source_id, e.target_id)
            for e in snapshot.renderable_edges()
            if e.source_id != e.target_id
        ]
        self.simulation.set_bodies(bodies)
        self.simulation.set_links(links, snapshot.degrees())
        self._positions = {nid: b.freeze() for nid, b in bodies.items()}

        if not bodies:
            self.stop()
            return
        if fresh == len(bodies):
            alpha = 1.0
        else:
            alpha = max(self.simulation.alpha, REHEAT_ALPHA)
        self.restart(alpha)

    # --- Lifecycle ---

    def restart(self, alpha: Optional[float] = None) -> None:
        if alpha is not None:
            self.simulation.alpha = alpha
        self._active = True
        self._ensure_running()

    def stop(self) -> None:
        self._active = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _ensure_running(self) -> None:
        if not self._autorun:
            return
        if self._task is not None and not self._task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; ticks must be driven manually")
            return
        self._task = loop.create_task(self._run())

    async def _run(self) -> None:
        while self.tick():
            await asyncio.sleep(self._interval)
        logger.debug(f"Layout settled after {self.tick_count} ticks")

    def tick(self) -> bool:
        """Advance one step and emit positions. Returns True while still running."""
        if not self._active:
            return False
        sim = self.simulation
        sim.step()
        self.tick_count += 1
        self._positions = {nid: b.freeze() for nid, b in sim.bodies.items()}
        if sim.alpha < sim.alpha_min and sim.alpha_target < sim.alpha_min:
            self._active = False
        for callback in list(self._listeners):
            callback(self.positions)
        return self._active

    # --- Pinning (drag) ---

    def pin(self, node_id: str, x: Optional[float] = None, y: Optional[float] = None) -> bool:
        """Fix a node in place (at x, y or where it is) and heat the simulation."""
        body = self.simulation.bodies.get(node_id)
        if body is None:
            return False
        if self._pinned_id is not None and self._pinned_id != node_id:
            self._release(self._pinned_id)
        body.fx = body.x if x is None else float(x)
        body.fy = body.y if y is None else float(y)
        self._pinned_id = node_id
        sim = self.simulation
        sim.alpha_target = DRAG_ALPHA_TARGET
        self.restart(max(sim.alpha, DRAG_ALPHA_TARGET))
        return True

    def move_pin(self, x: float, y: float) -> bool:
        if self._pinned_id is None:
            return False
        body = self.simulation.bodies.get(self._pinned_id)
        if body is None:
            return False
        body.fx, body.fy = float(x), float(y)
        return True

    def unpin(self) -> Optional[str]:
        node_id = self._pinned_id
        if node_id is None:
            return None
        self._release(node_id)
        self._pinned_id = None
        self.simulation.alpha_target = 0.0
        self.restart()
        return node_id

    def _release(self, node_id: str) -> None:
        body = self.simulation.bodies.get(node_id)
        if body is not None:
            body.fx = body.fy = None
