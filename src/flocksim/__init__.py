"""2-D boids flocking simulation with quadtree neighbour lookup."""

__version__ = "0.1.0"
