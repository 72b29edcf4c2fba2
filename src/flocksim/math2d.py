from __future__ import annotations

import math

from pygame.math import Vector2

ZERO = Vector2()


def _safe_normalize_xy(x: float, y: float) -> Vector2:
    magnitude_sq = x * x + y * y
    if magnitude_sq < 1e-10:
        return Vector2()
    inv = 1.0 / math.sqrt(magnitude_sq)
    return Vector2(x * inv, y * inv)


def _clamp_speed(vector: Vector2, min_speed: float, max_speed: float) -> Vector2:
    """Clamp the magnitude of `vector` into [min_speed, max_speed].

    A zero vector has no direction; it is mapped to (min_speed, 0).
    """
    magnitude_sq = vector.length_squared()
    if magnitude_sq < 1e-18:
        return Vector2(min_speed, 0.0)
    magnitude = math.sqrt(magnitude_sq)
    if magnitude < min_speed:
        return vector * (min_speed / magnitude)
    if magnitude > max_speed:
        return vector * (max_speed / magnitude)
    return Vector2(vector)


def _heading_from_velocity(vector: Vector2) -> float:
    if vector.length_squared() < 1e-12:
        return 0.0
    return math.atan2(vector.y, vector.x)
