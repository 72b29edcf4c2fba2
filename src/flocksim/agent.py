from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from pygame.math import Vector2

from .math2d import _heading_from_velocity


@dataclass(slots=True)
class AgentState:
    id: int
    position: Vector2 = field(default_factory=Vector2)
    velocity: Vector2 = field(default_factory=Vector2)

    @property
    def heading(self) -> float:
        return _heading_from_velocity(self.velocity)

    def copy(self) -> "AgentState":
        return AgentState(id=self.id, position=Vector2(self.position), velocity=Vector2(self.velocity))


@dataclass(slots=True)
class AttractionPoint:
    position: Vector2 = field(default_factory=Vector2)


def attraction_centroid(points: Iterable[AttractionPoint | Vector2]) -> Vector2 | None:
    """Mean position of `points`, or None when there are none."""
    count = 0
    sum_x = 0.0
    sum_y = 0.0
    for point in points:
        position = point.position if isinstance(point, AttractionPoint) else point
        sum_x += position[0]
        sum_y += position[1]
        count += 1
    if count == 0:
        return None
    inv = 1.0 / count
    return Vector2(sum_x * inv, sum_y * inv)
