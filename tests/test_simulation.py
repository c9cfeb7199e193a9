"""Tests for patrol/simulation.py — SimState, create_sim, sim_step, events."""

from __future__ import annotations

import copy

import numpy as np
import pytest

from patrol.actions import CarAction
from patrol.level import parse_level
from patrol.simulation import (
    InterruptEvent,
    SimState,
    StepStartedEvent,
    TimelineFinishedEvent,
    create_sim,
    reset_sim,
    sim_step,
)


def _run(sim: SimState, frames: int) -> list[list]:
    return [sim_step(sim) for _ in range(frames)]


# ---------------------------------------------------------------------------
# create_sim
# ---------------------------------------------------------------------------

class TestCreateSim:
    def test_crosswalk(self):
        sim = create_sim("crosswalk", ai=False)
        assert [a.name for a in sim.actors] == [
            "caster", "pedestrian_0", "pedestrian_1", "car_0", "car_1",
        ]
        assert sim.player_x == 10.0 and sim.player_y == 10.0
        assert sim.frame == 0
        assert sim.ai is None
        assert sim.finished == set()

    def test_runtime_pool_is_separate(self):
        sim = create_sim("crosswalk")
        assert sim.pool is not sim.level.pool
        assert len(sim.pool) == len(sim.level.pool) == 18
        assert all(a.timeline.pool is sim.pool for a in sim.actors)

    def test_positions(self):
        sim = create_sim("crosswalk")
        positions = sim.positions()
        assert positions.shape == (5, 2)
        np.testing.assert_allclose(positions[1], [40.0, 30.0])

    def test_actor_lookup(self):
        sim = create_sim("crosswalk")
        assert sim.actor("car_1").actor_type == "car"
        with pytest.raises(KeyError):
            sim.actor("car_9")


# ---------------------------------------------------------------------------
# sim_step
# ---------------------------------------------------------------------------

class TestSimStep:
    def test_frame_zero_starts_every_scheduled_actor(self):
        sim = create_sim("crosswalk", ai=False)
        events = sim_step(sim)
        started = [e.actor for e in events if isinstance(e, StepStartedEvent)]
        assert started == ["pedestrian_0", "pedestrian_1", "car_0", "car_1"]
        assert sim.frame == 1

    def test_actors_move(self):
        sim = create_sim("crosswalk", ai=False)
        _run(sim, 4)
        walker = sim.actor("pedestrian_0")
        assert walker.body.x == pytest.approx(43.0)
        assert walker.body.y == pytest.approx(30.0)

    def test_templates_untouched(self):
        sim = create_sim("crosswalk", ai=False)
        _run(sim, 10)
        template = sim.level.pedestrians[0].timeline.peek()
        assert template.frame == 0
        assert template.remaining == 3

    def test_finite_actor_finishes_once(self):
        sim = create_sim("crosswalk", ai=False)
        frames = _run(sim, 50)
        finished = [
            i for i, events in enumerate(frames)
            for e in events if isinstance(e, TimelineFinishedEvent)
        ]
        assert finished == [44]
        assert sim.finished == {"car_1"}
        assert sim.actor("car_1").current is None

    def test_step_started_on_transitions(self):
        sim = create_sim("crosswalk", ai=False)
        frames = _run(sim, 22)
        car_starts = [
            (i, e.kind) for i, events in enumerate(frames)
            for e in events
            if isinstance(e, StepStartedEvent) and e.actor == "car_0"
        ]
        assert car_starts == [
            (0, CarAction.GO), (20, CarAction.TURN_RIGHT), (21, CarAction.GO),
        ]

    def test_ai_interrupts_recorded(self):
        sim = create_sim("crosswalk", ai=True)
        events = sim_step(sim)
        assert InterruptEvent("caster", "retargeted") in events
        assert sim.interrupts == 1
        assert sim.actor("caster").current.kind.value == "go"

    def test_player_override(self):
        sim = create_sim("crosswalk", ai=True)
        events = sim_step(sim, player_x=41.0, player_y=30.0)
        assert (sim.player_x, sim.player_y) == (41.0, 30.0)
        assert InterruptEvent("pedestrian_0", "noticed") in events

    def test_bodies_clamped_to_level(self):
        data = {
            "index": 0,
            "size": {"width": 100, "height": 50},
            "playerSite": {"x": 0, "y": 0},
            "casterSite": {"x": 50, "y": 25},
            "pedestrians": [],
            "cars": [{
                "x": 95, "y": 10, "bearing": 0,
                "actions": [{"kind": "go", "length": 10}],
            }],
        }
        sim = create_sim(parse_level(copy.deepcopy(data)), ai=False)
        _run(sim, 10)
        assert sim.actor("car_0").body.x == 100.0


# ---------------------------------------------------------------------------
# reset_sim
# ---------------------------------------------------------------------------

class TestResetSim:
    def test_reset_restores_start(self):
        sim = create_sim("crosswalk", ai=True)
        start = sim.positions()
        _run(sim, 30)
        reset_sim(sim)
        assert sim.frame == 0
        assert sim.interrupts == 0
        assert (sim.player_x, sim.player_y) == (10.0, 10.0)
        np.testing.assert_allclose(sim.positions(), start)
        assert len(sim.pool) == 18
        assert sim.actor("caster").timeline.is_empty()

    def test_reset_replays_identically(self):
        sim = create_sim("crosswalk", ai=False)
        first = [len(events) for events in _run(sim, 40)]
        reset_sim(sim)
        assert [len(events) for events in _run(sim, 40)] == first
