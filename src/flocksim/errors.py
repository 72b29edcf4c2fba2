"""Flock simulation exception hierarchy."""


class FlockError(Exception):
    """Root of all flocksim exceptions."""


class ConfigurationError(FlockError, ValueError):
    """Invalid configuration, rejected before the first tick."""


class BoundaryError(FlockError):
    """A position fell outside the spatial index's root boundary."""
