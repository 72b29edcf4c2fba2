from __future__ import annotations

import math
import random

from pygame.math import Vector2


class DeterministicRng:
    """Seeded source for spawn positions and velocities.

    Draws happen in a fixed order (x, y, speed, angle per agent), so two
    generators with the same seed spawn identical flocks.
    """

    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> int:
        return self._seed

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_position(self, width: float, height: float) -> Vector2:
        """Uniform point in `[0, width) x [0, height)`."""
        x = self._random.random() * width
        y = self._random.random() * height
        # The product can round up to the far edge
        return Vector2(min(x, math.nextafter(width, 0.0)), min(y, math.nextafter(height, 0.0)))

    def next_velocity(self, min_speed: float, max_speed: float) -> Vector2:
        """Velocity with a uniform heading and a speed in `[min_speed, max_speed]`."""
        speed = self._random.uniform(min_speed, max_speed)
        heading = self._random.uniform(-180.0, 180.0)
        velocity = Vector2()
        velocity.from_polar((speed, heading))
        return velocity
