"""Region quadtree over agent entries.

Each node stores up to `capacity` entries directly. Once a node is full it
subdivides into four children and routes later insertions to the child whose
boundary contains the entry; entries already resident stay in the node and
are never pushed down. A subdivided node collapses back to a leaf as soon as
a removal leaves all of its children empty.

Nodes at `max_depth`, or too small for their mid lines to separate float
values, never subdivide and hold every entry routed to them. Many entries at
one position therefore pile up in a single leaf instead of recursing.

The tree stores `AgentState` copies. Entries are matched for removal by exact
position only, so callers must hand the index the same position they
inserted.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Protocol, Sequence

from pygame.math import Vector2

from .agent import AgentState
from .errors import BoundaryError, ConfigurationError
from .rectangle import Rectangle

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 32


class SpatialQuery(Protocol):
    """Read-only view of a spatial index."""

    def query(self, region: Rectangle) -> List[AgentState]:
        ...


class QuadTree:
    def __init__(self, boundary: Rectangle, capacity: int, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        if capacity < 1:
            raise ConfigurationError(f"QuadTree capacity must be >= 1, got {capacity}")
        if max_depth < 0:
            raise ConfigurationError(f"QuadTree max_depth must be >= 0, got {max_depth}")
        self._boundary = boundary
        self._capacity = capacity
        # Levels still allowed below this node
        self._max_depth = max_depth
        self._points: List[AgentState] = []
        self._children: List[QuadTree] = []
        self._subdivided = False
        # Entries in this node and all descendants
        self._count = 0

    @property
    def boundary(self) -> Rectangle:
        return self._boundary

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def max_depth(self) -> int:
        return self._max_depth

    @property
    def subdivided(self) -> bool:
        return self._subdivided

    @property
    def children(self) -> Sequence["QuadTree"]:
        return tuple(self._children)

    @property
    def points(self) -> Sequence[AgentState]:
        """Entries stored directly in this node, in insertion order."""
        return tuple(self._points)

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[AgentState]:
        yield from self._points
        for child in self._children:
            yield from child

    def insert(self, point: AgentState) -> bool:
        """Store `point`; return False if it lies outside this node."""
        if not self._boundary.contains(point.position):
            return False
        if not self._subdivided and (len(self._points) < self._capacity or not self._can_subdivide()):
            self._points.append(point)
            self._count += 1
            return True
        if not self._subdivided:
            self.subdivide()
        for child in self._children:
            if child._boundary.contains(point.position):
                if child.insert(point):
                    self._count += 1
                    return True
                return False
        return False

    def subdivide(self) -> None:
        if self._subdivided or not self._can_subdivide():
            return
        self._children = [
            QuadTree(quadrant, self._capacity, self._max_depth - 1) for quadrant in self._boundary.quadrants()
        ]
        self._subdivided = True
        logger.debug("Subdivided quadtree node %s", self._boundary)

    def query(self, region: Rectangle) -> List[AgentState]:
        found: List[AgentState] = []
        self._query_into(region, found)
        return found

    def _query_into(self, region: Rectangle, found: List[AgentState]) -> None:
        if not self._boundary.intersects(region):
            return
        contains = region.contains
        for point in self._points:
            if contains(point.position):
                found.append(point)
        for child in self._children:
            child._query_into(region, found)

    def remove(self, position: Vector2) -> bool:
        """Remove the first entry at exactly `position`."""
        removed = False
        px = position.x
        py = position.y
        for index, point in enumerate(self._points):
            # Exact match; Vector2.__eq__ compares within an epsilon
            if point.position.x == px and point.position.y == py:
                del self._points[index]
                removed = True
                break
        if not removed and self._subdivided:
            for child in self._children:
                if child._boundary.contains(position):
                    removed = child.remove(position)
                    break
        if removed:
            self._count -= 1
        if self._subdivided and all(child._count == 0 for child in self._children):
            self._collapse()
        return removed

    def move(self, old: AgentState, new: AgentState) -> bool:
        """Relocate an entry: remove at `old.position`, then insert `new`.

        `new` is inserted even when nothing was found at `old.position`.
        Returns whether the removal succeeded so callers can detect a stale
        `old` value. Raises BoundaryError if `new` lies outside the tree.
        """
        removed = self.remove(old.position)
        if not self.insert(new):
            raise BoundaryError(
                f"Agent {new.id} at ({new.position.x:.3f}, {new.position.y:.3f}) "
                f"is outside the index boundary {self._boundary}"
            )
        return removed

    def clear(self) -> None:
        self._points.clear()
        self._count = 0
        self._collapse()

    def node_count(self) -> int:
        return 1 + sum(child.node_count() for child in self._children)

    def depth(self) -> int:
        if not self._children:
            return 1
        return 1 + max(child.depth() for child in self._children)

    def _can_subdivide(self) -> bool:
        return self._max_depth > 0 and self._boundary.can_split()

    def _collapse(self) -> None:
        if self._subdivided:
            logger.debug("Collapsed quadtree node %s", self._boundary)
        self._children = []
        self._subdivided = False
