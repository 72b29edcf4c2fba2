from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Sequence, Tuple

from pygame.math import Vector2

from .agent import AgentState, attraction_centroid
from .config import FlockingConfig, SimulationConfig
from .math2d import ZERO, _safe_normalize_xy
from .quadtree import SpatialQuery
from .rectangle import Rectangle


def separation(agent: AgentState, neighbors: List[AgentState], protected_range: float) -> Vector2:
    """Push away from neighbours inside the protected range, harder the deeper they are."""
    push_x = 0.0
    push_y = 0.0
    protected_sq = protected_range * protected_range
    pos = agent.position
    for other in neighbors:
        offset_x = pos.x - other.position.x
        offset_y = pos.y - other.position.y
        dist_sq = offset_x * offset_x + offset_y * offset_y
        if dist_sq >= protected_sq or dist_sq < 1e-12:
            continue
        dist = math.sqrt(dist_sq)
        weight = abs(protected_range - dist) / dist
        push_x += offset_x * weight
        push_y += offset_y * weight
    return Vector2(push_x, push_y)


def alignment(agent: AgentState, neighbors: List[AgentState]) -> Vector2:
    if not neighbors:
        return Vector2()
    sum_x = 0.0
    sum_y = 0.0
    for other in neighbors:
        sum_x += other.velocity.x
        sum_y += other.velocity.y
    inv = 1.0 / len(neighbors)
    return Vector2(sum_x * inv - agent.velocity.x, sum_y * inv - agent.velocity.y)


def cohesion(agent: AgentState, neighbors: List[AgentState]) -> Vector2:
    if not neighbors:
        return Vector2()
    sum_x = 0.0
    sum_y = 0.0
    for other in neighbors:
        sum_x += other.position.x
        sum_y += other.position.y
    inv = 1.0 / len(neighbors)
    return Vector2(sum_x * inv - agent.position.x, sum_y * inv - agent.position.y)


def edge_avoidance(position: Vector2, width: float, height: float, margin: float, turn_factor: float) -> Vector2:
    turn_x = 0.0
    turn_y = 0.0
    if position.x < margin:
        turn_x += turn_factor
    if position.x > width - margin:
        turn_x -= turn_factor
    if position.y < margin:
        turn_y += turn_factor
    if position.y > height - margin:
        turn_y -= turn_factor
    return Vector2(turn_x, turn_y)


def attraction(position: Vector2, centroid: Vector2 | None) -> Vector2:
    if centroid is None:
        return Vector2()
    return Vector2(centroid.x - position.x, centroid.y - position.y)


def is_attraction_eligible(agent_id: int, eligibility: str) -> bool:
    if eligibility == "all":
        return True
    if eligibility == "even":
        return agent_id % 2 == 0
    if eligibility == "odd":
        return agent_id % 2 == 1
    return False


class FlockModel:
    """Per-tick steering for every agent.

    `compute_deltas` reads the agents and the index without mutating either;
    all deltas come from the same snapshot, so evaluation order (and the
    number of worker threads) does not change the result.
    """

    def __init__(self, config: SimulationConfig) -> None:
        self._config = config
        self._flocking: FlockingConfig = config.flocking
        self._executor: ThreadPoolExecutor | None = None
        self.last_neighbor_checks = 0

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def neighbors(self, agent: AgentState, index: SpatialQuery) -> List[AgentState]:
        perception = self._flocking.perception_range
        perception_sq = perception * perception
        pos_x = agent.position.x
        pos_y = agent.position.y
        found: List[AgentState] = []
        for other in index.query(Rectangle.around(agent.position, perception)):
            if other.id == agent.id:
                continue
            offset_x = other.position.x - pos_x
            offset_y = other.position.y - pos_y
            if offset_x * offset_x + offset_y * offset_y < perception_sq:
                found.append(other)
        return found

    def compute_delta(
        self,
        agent: AgentState,
        index: SpatialQuery,
        centroid: Vector2 | None = None,
        neighbors: List[AgentState] | None = None,
    ) -> Vector2:
        flocking = self._flocking
        if neighbors is None:
            neighbors = self.neighbors(agent, index)

        separation_dv = separation(agent, neighbors, flocking.protected_range)
        alignment_dv = alignment(agent, neighbors)
        cohesion_dv = cohesion(agent, neighbors)
        turn_dv = edge_avoidance(
            agent.position,
            self._config.world_width,
            self._config.world_height,
            flocking.edge_margin,
            flocking.turn_factor,
        )
        attraction_dv = ZERO
        if centroid is not None and is_attraction_eligible(agent.id, flocking.attraction_eligibility):
            attraction_dv = attraction(agent.position, centroid)

        delta = _safe_normalize_xy(separation_dv.x, separation_dv.y) * flocking.separation_factor
        delta += _safe_normalize_xy(turn_dv.x, turn_dv.y) * flocking.turn_factor
        delta += _safe_normalize_xy(alignment_dv.x, alignment_dv.y) * flocking.alignment_factor
        delta += _safe_normalize_xy(cohesion_dv.x, cohesion_dv.y) * flocking.cohesion_factor
        delta += _safe_normalize_xy(attraction_dv.x, attraction_dv.y) * flocking.attraction_point_factor
        return delta

    def compute_deltas(
        self,
        agents: Sequence[AgentState],
        index: SpatialQuery,
        attraction_points: Iterable = (),
    ) -> List[Vector2]:
        centroid = attraction_centroid(attraction_points)
        workers = self._config.workers
        if workers <= 1 or len(agents) < 2 * workers:
            deltas, checks = self._compute_range(agents, index, centroid, 0, len(agents))
            self.last_neighbor_checks = checks
            return deltas

        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="flock")
        chunk = int(math.ceil(len(agents) / workers))
        bounds = [(start, min(start + chunk, len(agents))) for start in range(0, len(agents), chunk)]
        futures = [
            self._executor.submit(self._compute_range, agents, index, centroid, start, stop)
            for start, stop in bounds
        ]
        deltas: List[Vector2] = []
        checks = 0
        for future in futures:
            part, part_checks = future.result()
            deltas.extend(part)
            checks += part_checks
        self.last_neighbor_checks = checks
        return deltas

    def _compute_range(
        self,
        agents: Sequence[AgentState],
        index: SpatialQuery,
        centroid: Vector2 | None,
        start: int,
        stop: int,
    ) -> Tuple[List[Vector2], int]:
        deltas: List[Vector2] = []
        checks = 0
        for i in range(start, stop):
            agent = agents[i]
            neighbors = self.neighbors(agent, index)
            checks += len(neighbors)
            deltas.append(self.compute_delta(agent, index, centroid, neighbors))
        return deltas, checks
