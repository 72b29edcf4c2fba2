from __future__ import annotations

import logging
import math
from time import perf_counter
from typing import Any, Dict, Iterable, List, Sequence

from pygame.math import Vector2

from .agent import AgentState, AttractionPoint
from .config import SimulationConfig
from .errors import BoundaryError, ConfigurationError
from .flock_model import FlockModel
from .integrator import Integrator
from .metrics import Snapshot, SnapshotMetadata, SnapshotWorld, TickMetrics
from .quadtree import QuadTree
from .rectangle import Rectangle
from .rng import DeterministicRng

logger = logging.getLogger(__name__)


class Simulation:
    """Owns the agent arena and the spatial index and runs ticks.

    The arena is fixed at construction: agents are never added or removed,
    and an agent's id is its index in `agents`. Rendering and input live
    outside; they read `snapshot()` and feed attraction points in.
    """

    def __init__(self, config: SimulationConfig):
        self._config = config.validate()
        self._rng = DeterministicRng(config.seed)
        padding = config.index_padding
        self._boundary = Rectangle(
            -padding,
            -padding,
            config.world_width + padding,
            config.world_height + padding,
        )
        self._index = QuadTree(self._boundary, config.quadtree_capacity, config.quadtree_max_depth)
        self._model = FlockModel(config)
        self._integrator = Integrator(config, self._index)
        self._agents: List[AgentState] = []
        self._attraction_points: List[AttractionPoint] = []
        self._tick = 0
        self._metrics: TickMetrics | None = None
        self._bootstrap_population()
        logger.info(
            "Simulation started with %d agents in a %.0fx%.0f world (seed=%d)",
            len(self._agents),
            config.world_width,
            config.world_height,
            config.seed,
        )

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def agents(self) -> Sequence[AgentState]:
        return self._agents

    @property
    def index(self) -> QuadTree:
        return self._index

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def attraction_points(self) -> Sequence[AttractionPoint]:
        return tuple(self._attraction_points)

    def add_attraction_point(self, position: Vector2) -> AttractionPoint:
        point = AttractionPoint(Vector2(position))
        self._attraction_points.append(point)
        return point

    def set_attraction_points(self, points: Iterable[AttractionPoint]) -> None:
        self._attraction_points = list(points)

    def clear_attraction_points(self) -> None:
        self._attraction_points.clear()

    def reset(self) -> None:
        self._index.clear()
        self._agents.clear()
        self._rng.reset()
        self._tick = 0
        self._metrics = None
        self._bootstrap_population()

    def close(self) -> None:
        self._model.close()

    def advance_tick(
        self,
        attraction_points: Iterable[AttractionPoint] | None = None,
        dt: float | None = None,
    ) -> TickMetrics:
        start = perf_counter()
        points = list(self._attraction_points if attraction_points is None else attraction_points)
        step = self._config.time_step if dt is None else dt
        if not math.isfinite(step) or step <= 0.0:
            raise ConfigurationError(f"dt must be a positive finite number, got {step!r}")

        deltas = self._model.compute_deltas(self._agents, self._index, points)
        desyncs = self._integrator.apply(self._agents, deltas, step)

        elapsed_ms = (perf_counter() - start) * 1000.0
        self._metrics = self._create_metrics(
            self._tick, self._model.last_neighbor_checks, len(points), desyncs, elapsed_ms
        )
        self._tick += 1
        return self._metrics

    def snapshot(self) -> Snapshot:
        metrics = self._metrics
        if metrics is None:
            metrics = self._create_metrics(self._tick, 0, len(self._attraction_points), 0, 0.0)
        return Snapshot(
            tick=self._tick,
            metrics=metrics,
            agents=[self._agent_snapshot(agent) for agent in self._agents],
            world=SnapshotWorld(width=self._config.world_width, height=self._config.world_height),
            metadata=SnapshotMetadata(
                seed=self._config.seed,
                config_version=self._config.config_version,
                time_step=self._config.time_step,
            ),
        )

    def _bootstrap_population(self) -> None:
        flocking = self._config.flocking
        for agent_id in range(self._config.agent_count):
            position = self._rng.next_position(self._config.world_width, self._config.world_height)
            velocity = self._rng.next_velocity(flocking.min_speed, flocking.max_speed)
            agent = AgentState(id=agent_id, position=position, velocity=velocity)
            if not self._index.insert(agent.copy()):
                raise BoundaryError(
                    f"Agent {agent_id} spawned at ({position.x:.3f}, {position.y:.3f}) "
                    f"outside the index boundary {self._boundary}"
                )
            self._agents.append(agent)

    @staticmethod
    def _agent_snapshot(agent: AgentState) -> Dict[str, Any]:
        return {
            "id": agent.id,
            "x": agent.position.x,
            "y": agent.position.y,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "speed": agent.velocity.length(),
            "heading": agent.heading,
        }

    def _create_metrics(
        self,
        tick: int,
        neighbor_checks: int,
        attraction_points: int,
        desyncs: int,
        duration_ms: float,
    ) -> TickMetrics:
        population = len(self._agents)
        speed_sum = sum(agent.velocity.length() for agent in self._agents)
        return TickMetrics(
            tick=tick,
            population=population,
            neighbor_checks=neighbor_checks,
            average_speed=0.0 if population == 0 else speed_sum / population,
            attraction_points=attraction_points,
            index_nodes=self._index.node_count(),
            index_depth=self._index.depth(),
            desyncs=desyncs,
            tick_duration_ms=duration_ms,
        )
