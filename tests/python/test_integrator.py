from __future__ import annotations

import logging
import random

import pytest
from pygame.math import Vector2
from pytest import approx

from flocksim.agent import AgentState
from flocksim.config import SimulationConfig
from flocksim.integrator import Integrator
from flocksim.quadtree import QuadTree
from flocksim.rectangle import Rectangle


def _setup(agents: list[AgentState], config: SimulationConfig) -> tuple[QuadTree, Integrator]:
    tree = QuadTree(Rectangle(-50.0, -50.0, 350.0, 350.0), config.quadtree_capacity)
    for agent in agents:
        assert tree.insert(agent.copy())
    return tree, Integrator(config, tree)


def _index_positions(tree: QuadTree) -> list[tuple[float, float]]:
    return sorted((entry.position.x, entry.position.y) for entry in tree)


def test_speeds_are_clamped_into_range():
    config = SimulationConfig()
    rng = random.Random(1)
    agents = [
        AgentState(
            id=i,
            position=Vector2(rng.uniform(0, 300), rng.uniform(0, 300)),
            velocity=Vector2(rng.uniform(-20, 20), rng.uniform(-20, 20)),
        )
        for i in range(60)
    ]
    _, integrator = _setup(agents, config)
    deltas = [Vector2(rng.uniform(-3, 3), rng.uniform(-3, 3)) for _ in agents]

    integrator.apply(agents, deltas)

    flocking = config.flocking
    for agent in agents:
        speed = agent.velocity.length()
        assert flocking.min_speed - 1e-9 <= speed <= flocking.max_speed + 1e-9


def test_clamp_preserves_direction():
    config = SimulationConfig()
    agent = AgentState(id=0, position=Vector2(100, 100), velocity=Vector2(30, 40))
    _, integrator = _setup([agent], config)

    integrator.apply([agent], [Vector2()])

    assert agent.velocity.x == approx(0.6 * config.flocking.max_speed)
    assert agent.velocity.y == approx(0.8 * config.flocking.max_speed)


def test_zero_velocity_falls_back_to_positive_x():
    config = SimulationConfig()
    agent = AgentState(id=0, position=Vector2(100, 100), velocity=Vector2())
    _, integrator = _setup([agent], config)

    integrator.apply([agent], [Vector2()])

    assert agent.velocity == Vector2(config.flocking.min_speed, 0.0)
    assert agent.position == Vector2(100 + config.flocking.min_speed, 100)


def test_position_advances_by_velocity_times_dt():
    config = SimulationConfig()
    agent = AgentState(id=0, position=Vector2(100, 100), velocity=Vector2(0, 5.05))
    _, integrator = _setup([agent], config)

    integrator.apply([agent], [Vector2()], dt=2.0)

    assert agent.position.x == approx(100.0)
    assert agent.position.y == approx(110.1)


def test_index_follows_agents():
    config = SimulationConfig(quadtree_capacity=2)
    rng = random.Random(7)
    agents = [
        AgentState(
            id=i,
            position=Vector2(rng.uniform(0, 300), rng.uniform(0, 300)),
            velocity=Vector2(rng.uniform(-5, 5), rng.uniform(-5, 5)),
        )
        for i in range(40)
    ]
    tree, integrator = _setup(agents, config)

    for _ in range(5):
        desyncs = integrator.apply(agents, [Vector2(0.2, -0.1) for _ in agents])
        assert desyncs == 0
        assert len(tree) == len(agents)
        assert _index_positions(tree) == sorted((a.position.x, a.position.y) for a in agents)


def test_index_entries_are_copies():
    config = SimulationConfig()
    agent = AgentState(id=0, position=Vector2(100, 100), velocity=Vector2(5, 0))
    tree, integrator = _setup([agent], config)
    integrator.apply([agent], [Vector2()])

    entry = next(iter(tree))
    assert entry is not agent
    assert entry.position is not agent.position
    assert entry.position == agent.position


def test_positions_are_held_inside_the_index():
    config = SimulationConfig()
    agent = AgentState(id=0, position=Vector2(348, 100), velocity=Vector2(5, 0))
    tree, integrator = _setup([agent], config)

    integrator.apply([agent], [Vector2()])

    assert tree.boundary.contains(agent.position)
    assert len(tree) == 1


def test_desync_is_counted_and_logged(caplog):
    config = SimulationConfig()
    agent = AgentState(id=3, position=Vector2(100, 100), velocity=Vector2(5, 0))
    tree, integrator = _setup([agent], config)
    agent.position = Vector2(120, 100)

    with caplog.at_level(logging.WARNING, logger="flocksim.integrator"):
        desyncs = integrator.apply([agent], [Vector2()])

    assert desyncs == 1
    assert "desynchronised for agent 3" in caplog.text
    assert len(tree) == 2


def test_delta_count_must_match_agents():
    config = SimulationConfig()
    agent = AgentState(id=0, position=Vector2(100, 100), velocity=Vector2(5, 0))
    _, integrator = _setup([agent], config)
    with pytest.raises(ValueError):
        integrator.apply([agent], [])
