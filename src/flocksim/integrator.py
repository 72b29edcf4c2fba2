from __future__ import annotations

import logging
from typing import Sequence

from pygame.math import Vector2

from .agent import AgentState
from .config import SimulationConfig
from .math2d import _clamp_speed
from .quadtree import QuadTree

logger = logging.getLogger(__name__)


class Integrator:
    """Write phase of a tick: speed clamp, Euler step, index sync.

    This is the only place the quadtree is mutated while the simulation
    runs, and it runs on a single thread.
    """

    def __init__(self, config: SimulationConfig, index: QuadTree) -> None:
        self._config = config
        self._index = index

    def apply(self, agents: Sequence[AgentState], deltas: Sequence[Vector2], dt: float = 1.0) -> int:
        """Advance every agent by one step; return the number of desynced moves.

        An agent whose pre-step position has no matching index entry (its
        position was changed behind the index's back) is still inserted at
        its new position, and the miss is logged and counted.
        """
        if len(deltas) != len(agents):
            raise ValueError(f"Expected {len(agents)} deltas, got {len(deltas)}")
        flocking = self._config.flocking
        boundary = self._index.boundary
        desyncs = 0
        for agent, delta in zip(agents, deltas):
            old = agent.copy()
            velocity = _clamp_speed(agent.velocity + delta, flocking.min_speed, flocking.max_speed)
            # Agents overshooting the padded world are held at the index edge
            agent.position = boundary.clamp_inside(agent.position + velocity * dt)
            agent.velocity = velocity
            if not self._index.move(old, agent.copy()):
                desyncs += 1
                logger.warning(
                    "Spatial index desynchronised for agent %d: no entry at (%.3f, %.3f)",
                    agent.id,
                    old.position.x,
                    old.position.y,
                )
        return desyncs
