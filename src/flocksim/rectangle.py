"""Axis-aligned bounding boxes for the spatial index.

A `Rectangle` covers the half-open region ``[left, right) x [bottom, top)``.
It can be built from a centre and a half extent per axis, but the edges are
what gets stored, so the four quadrants of a node share their inner edges
exactly and tile it without gaps or shared points. Both `contains` and
`intersects` follow the half-open policy.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

from pygame.math import Vector2


@dataclass(frozen=True, slots=True)
class Rectangle:
    left: float
    bottom: float
    right: float
    top: float

    def __post_init__(self) -> None:
        if self.right < self.left or self.top < self.bottom:
            raise ValueError(
                f"Rectangle size must be non-negative, got bounds "
                f"({self.left}, {self.bottom}, {self.right}, {self.top})"
            )

    @classmethod
    def from_center(cls, position: Vector2, size: Vector2) -> "Rectangle":
        """Build from a centre and a half extent per axis."""
        if size.x < 0.0 or size.y < 0.0:
            raise ValueError(f"Rectangle size must be non-negative, got ({size.x}, {size.y})")
        return cls(
            float(position.x - size.x),
            float(position.y - size.y),
            float(position.x + size.x),
            float(position.y + size.y),
        )

    @classmethod
    def around(cls, point: Vector2, half_extent: float) -> "Rectangle":
        """Square window centred on `point`, e.g. an agent's perception range."""
        return cls.from_center(point, Vector2(half_extent, half_extent))

    @property
    def position(self) -> Vector2:
        return Vector2((self.left + self.right) * 0.5, (self.bottom + self.top) * 0.5)

    @property
    def size(self) -> Vector2:
        return Vector2((self.right - self.left) * 0.5, (self.top - self.bottom) * 0.5)

    def contains(self, point: Vector2) -> bool:
        return self.left <= point.x < self.right and self.bottom <= point.y < self.top

    def intersects(self, other: "Rectangle") -> bool:
        return (
            self.left < other.right
            and other.left < self.right
            and self.bottom < other.top
            and other.bottom < self.top
        )

    def can_split(self) -> bool:
        """Whether both mid lines fall strictly inside this rectangle."""
        mid_x = (self.left + self.right) * 0.5
        mid_y = (self.bottom + self.top) * 0.5
        return self.left < mid_x < self.right and self.bottom < mid_y < self.top

    def quadrants(self) -> Tuple["Rectangle", "Rectangle", "Rectangle", "Rectangle"]:
        """Return the NW, NE, SW and SE quarters of this rectangle.

        NW sits at +x,+y and NE at -x,+y relative to the centre; only the
        tiling matters, not the labels.
        """
        mid_x = (self.left + self.right) * 0.5
        mid_y = (self.bottom + self.top) * 0.5
        return (
            Rectangle(mid_x, mid_y, self.right, self.top),
            Rectangle(self.left, mid_y, mid_x, self.top),
            Rectangle(mid_x, self.bottom, self.right, mid_y),
            Rectangle(self.left, self.bottom, mid_x, mid_y),
        )

    def clamp_inside(self, point: Vector2) -> Vector2:
        """Return the nearest point that `contains` accepts."""
        max_x = math.nextafter(self.right, -math.inf) if self.right > self.left else self.left
        max_y = math.nextafter(self.top, -math.inf) if self.top > self.bottom else self.bottom
        return Vector2(
            max(self.left, min(max_x, point.x)),
            max(self.bottom, min(max_y, point.y)),
        )
