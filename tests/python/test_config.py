from __future__ import annotations

import pytest

from flocksim.config import FlockingConfig, SimulationConfig, load_config
from flocksim.errors import ConfigurationError


def test_defaults_are_valid():
    config = SimulationConfig().validate()
    assert config.agent_count == 1000
    assert config.flocking.perception_range == 60.0
    assert config.flocking.protected_range == 12.0
    assert config.flocking.min_speed == 5.0
    assert config.flocking.max_speed == 5.1


def test_from_yaml_reads_nested_and_flat_keys(tmp_path):
    path = tmp_path / "flock.yaml"
    path.write_text(
        "agent_count: 250\n"
        "seed: 9\n"
        "perception_range: 45\n"
        "flocking:\n"
        "  separation_factor: 0.5\n"
        "  attraction_eligibility: all\n"
    )
    config = SimulationConfig.from_yaml(path)
    assert config.agent_count == 250
    assert config.seed == 9
    assert config.flocking.perception_range == 45
    assert config.flocking.separation_factor == 0.5
    assert config.flocking.attraction_eligibility == "all"
    assert config.flocking.cohesion_factor == FlockingConfig().cohesion_factor


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert SimulationConfig.from_yaml(path) == SimulationConfig()


def test_unknown_keys_are_rejected():
    with pytest.raises(ConfigurationError):
        load_config({"boid_size": 10})
    with pytest.raises(ConfigurationError):
        load_config({"flocking": {"speed": 3}})


@pytest.mark.parametrize(
    "config",
    [
        SimulationConfig(agent_count=-1),
        SimulationConfig(quadtree_capacity=0),
        SimulationConfig(world_width=0.0),
        SimulationConfig(index_padding=-5.0),
        SimulationConfig(time_step=0.0),
        SimulationConfig(workers=0),
        SimulationConfig(flocking=FlockingConfig(min_speed=6.0, max_speed=5.0)),
        SimulationConfig(flocking=FlockingConfig(min_speed=-1.0)),
        SimulationConfig(flocking=FlockingConfig(protected_range=60.0)),
        SimulationConfig(flocking=FlockingConfig(protected_range=0.0)),
        SimulationConfig(flocking=FlockingConfig(edge_margin=-1.0)),
        SimulationConfig(flocking=FlockingConfig(cohesion_factor=-0.1)),
        SimulationConfig(flocking=FlockingConfig(attraction_eligibility="prime")),
        SimulationConfig(quadtree_max_depth=-1),
        SimulationConfig(world_width=float("inf")),
        SimulationConfig(time_step=float("nan")),
        SimulationConfig(agent_count=True),
        SimulationConfig(agent_count=2.5),
        SimulationConfig(flocking=FlockingConfig(max_speed=float("nan"))),
        SimulationConfig(flocking=FlockingConfig(perception_range=float("nan"))),
        SimulationConfig(flocking=FlockingConfig(separation_factor=float("nan"))),
        SimulationConfig(flocking=FlockingConfig(edge_margin="100")),
    ],
)
def test_invalid_configurations_are_rejected(config):
    with pytest.raises(ConfigurationError):
        config.validate()


def test_configuration_error_is_a_value_error():
    with pytest.raises(ValueError):
        SimulationConfig(quadtree_capacity=0).validate()


def test_yaml_numbers_written_as_strings_are_coerced(tmp_path):
    path = tmp_path / "quoted.yaml"
    path.write_text('perception_range: "60"\nagent_count: "25"\nworkers: 2.0\n')
    config = SimulationConfig.from_yaml(path)
    assert config.flocking.perception_range == 60.0
    assert isinstance(config.flocking.perception_range, float)
    assert config.agent_count == 25
    assert isinstance(config.agent_count, int)
    assert config.workers == 2
    config.validate()


def test_yaml_nan_is_rejected_on_validate(tmp_path):
    path = tmp_path / "nan.yaml"
    path.write_text("flocking:\n  max_speed: .nan\n")
    config = SimulationConfig.from_yaml(path)
    with pytest.raises(ConfigurationError):
        config.validate()


@pytest.mark.parametrize(
    "raw",
    [
        {"perception_range": "sixty"},
        {"flocking": {"min_speed": [1, 2]}},
        {"agent_count": 10.5},
        {"agent_count": "many"},
        {"seed": True},
        {"world_width": {"x": 1}},
        {"config_version": 2},
        {"flocking": {"attraction_eligibility": 1}},
    ],
)
def test_wrongly_typed_values_are_rejected(raw):
    with pytest.raises(ConfigurationError):
        load_config(raw)


@pytest.mark.parametrize("raw", [[1, 2], "agent_count: 5", {"flocking": 5}, {"flocking": ["a"]}])
def test_non_mapping_sections_are_rejected(raw):
    with pytest.raises(ConfigurationError):
        load_config(raw)
