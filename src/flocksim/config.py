from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

from .errors import ConfigurationError

ATTRACTION_ELIGIBILITY = ("even", "odd", "all", "none")


@dataclass
class FlockingConfig:
    separation_factor: float = 0.3
    alignment_factor: float = 0.075
    cohesion_factor: float = 0.055
    perception_range: float = 60.0
    protected_range: float = 12.0
    min_speed: float = 5.0
    max_speed: float = 5.1
    turn_factor: float = 0.4
    edge_margin: float = 100.0
    attraction_point_factor: float = 0.1
    # Which agent ids steer toward attraction points
    attraction_eligibility: str = "even"


@dataclass
class SimulationConfig:
    agent_count: int = 1000
    world_width: float = 920.0
    world_height: float = 920.0
    time_step: float = 1.0
    seed: int = 42
    config_version: str = "v1"
    quadtree_capacity: int = 4
    quadtree_max_depth: int = 32
    # Extra room around the world so agents overshooting an edge stay indexed
    index_padding: float = 100.0
    workers: int = 1
    flocking: FlockingConfig = field(default_factory=FlockingConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)

    def validate(self) -> "SimulationConfig":
        flocking = self.flocking
        _check_numbers(self)
        _check_numbers(flocking)
        if self.agent_count < 0:
            raise ConfigurationError(f"agent_count must be >= 0, got {self.agent_count}")
        if self.quadtree_capacity < 1:
            raise ConfigurationError(f"quadtree_capacity must be >= 1, got {self.quadtree_capacity}")
        if self.quadtree_max_depth < 0:
            raise ConfigurationError(f"quadtree_max_depth must be >= 0, got {self.quadtree_max_depth}")
        if self.world_width <= 0.0 or self.world_height <= 0.0:
            raise ConfigurationError(
                f"world size must be positive, got {self.world_width}x{self.world_height}"
            )
        if self.index_padding < 0.0:
            raise ConfigurationError(f"index_padding must be >= 0, got {self.index_padding}")
        if self.time_step <= 0.0:
            raise ConfigurationError(f"time_step must be positive, got {self.time_step}")
        if self.workers < 1:
            raise ConfigurationError(f"workers must be >= 1, got {self.workers}")
        if flocking.min_speed < 0.0 or flocking.min_speed > flocking.max_speed:
            raise ConfigurationError(
                f"speed range is invalid: min_speed={flocking.min_speed}, max_speed={flocking.max_speed}"
            )
        if not 0.0 < flocking.protected_range < flocking.perception_range:
            raise ConfigurationError(
                "protected_range must be positive and smaller than perception_range, "
                f"got {flocking.protected_range} and {flocking.perception_range}"
            )
        if flocking.edge_margin < 0.0:
            raise ConfigurationError(f"edge_margin must be >= 0, got {flocking.edge_margin}")
        for name in (
            "separation_factor",
            "alignment_factor",
            "cohesion_factor",
            "turn_factor",
            "attraction_point_factor",
        ):
            if getattr(flocking, name) < 0.0:
                raise ConfigurationError(f"{name} must be >= 0, got {getattr(flocking, name)}")
        if flocking.attraction_eligibility not in ATTRACTION_ELIGIBILITY:
            raise ConfigurationError(
                f"attraction_eligibility must be one of {ATTRACTION_ELIGIBILITY}, "
                f"got {flocking.attraction_eligibility!r}"
            )
        return self


def load_config(raw: dict) -> SimulationConfig:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Configuration must be a mapping, got {type(raw).__name__}")
    flocking_fields = {f.name: f for f in fields(FlockingConfig)}
    sim_fields = {f.name: f for f in fields(SimulationConfig) if f.name != "flocking"}
    flocking_keys = set(flocking_fields)
    sim_keys = set(sim_fields)

    flocking_raw = raw.get("flocking")
    if flocking_raw is None:
        flocking_raw = {}
    if not isinstance(flocking_raw, dict):
        raise ConfigurationError(f"flocking must be a mapping, got {type(flocking_raw).__name__}")
    flocking_values = dict(flocking_raw)
    # Flat keys such as `perception_range` are accepted at the top level too
    flocking_values.update({k: v for k, v in raw.items() if k in flocking_keys})
    unknown = set(raw) - flocking_keys - sim_keys - {"flocking"}
    unknown |= set(flocking_values) - flocking_keys
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")

    flocking = FlockingConfig(**{k: _coerce(flocking_fields[k], v) for k, v in flocking_values.items()})
    sim_values = {k: _coerce(sim_fields[k], v) for k, v in raw.items() if k in sim_keys}
    return SimulationConfig(flocking=flocking, **sim_values)


def _check_numbers(config: object) -> None:
    # Every comparison against NaN is False, so range checks alone let it through
    for f in fields(config):
        if f.type not in ("int", "float"):
            continue
        value = getattr(config, f.name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigurationError(f"{f.name} must be a number, got {value!r}")
        if f.type == "int" and not isinstance(value, int):
            raise ConfigurationError(f"{f.name} must be an integer, got {value!r}")
        if not math.isfinite(value):
            raise ConfigurationError(f"{f.name} must be finite, got {value!r}")


def _coerce(f, value):
    """Convert a raw YAML value to the type declared on field `f`."""
    if f.type == "str":
        if not isinstance(value, str):
            raise ConfigurationError(f"{f.name} must be a string, got {value!r}")
        return value
    if isinstance(value, bool):
        raise ConfigurationError(f"{f.name} must be a number, got {value!r}")
    try:
        if f.type == "int":
            if isinstance(value, float) and not value.is_integer():
                raise ValueError(value)
            return int(value)
        return float(value)
    except (TypeError, ValueError, OverflowError):
        kind = "an integer" if f.type == "int" else "a number"
        raise ConfigurationError(f"{f.name} must be {kind}, got {value!r}") from None
