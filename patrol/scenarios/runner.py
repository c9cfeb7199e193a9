"""patrol/scenarios/runner — Scenario execution engine.

Executes a ScenarioDef to completion, collecting a per-frame trajectory,
expectation failures, and metrics.
"""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any

import numpy as np

from patrol.level import build_timeline
from patrol.scenarios.conditions import InterruptSpec, _kind_name, check_expectations
from patrol.scenarios.loader import ScenarioDef
from patrol.simulation import (
    InterruptEvent,
    SimState,
    StepStartedEvent,
    create_sim,
    sim_step,
)


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


@dataclass
class FrameRecord:
    """Per-frame snapshot of every actor."""

    frame: int
    player: tuple[float, float]
    kinds: dict[str, str | None]
    positions: dict[str, tuple[float, float]]
    events: list[str]


@dataclass
class ScenarioOutcome:
    """Result of executing a scenario to completion."""

    name: str
    success: bool
    reason: str
    frames_elapsed: int
    failures: list[str]
    metrics: dict[str, Any]
    trajectory: list[FrameRecord]
    wall_time_ms: float


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


def _metric_step_changes(trajectory: list[FrameRecord], sim: SimState) -> int:
    return sum(
        1 for r in trajectory for e in r.events if e == StepStartedEvent.__name__
    )


def _metric_interrupts(trajectory: list[FrameRecord], sim: SimState) -> int:
    return sim.interrupts


def _metric_finished_actors(
    trajectory: list[FrameRecord], sim: SimState,
) -> list[str]:
    return sorted(sim.finished)


def _metric_distance_travelled(
    trajectory: list[FrameRecord], sim: SimState,
) -> dict[str, float]:
    result: dict[str, float] = {}
    for spec in sim.level.actors:
        path = np.array(
            [(spec.x, spec.y)] + [r.positions[spec.name] for r in trajectory],
        )
        steps = np.linalg.norm(np.diff(path, axis=0), axis=1)
        result[spec.name] = float(steps.sum())
    return result


def _metric_pool_live_steps(trajectory: list[FrameRecord], sim: SimState) -> int:
    return len(sim.pool)


_METRIC_DISPATCH: dict[str, Any] = {
    "step_changes": _metric_step_changes,
    "interrupts": _metric_interrupts,
    "finished_actors": _metric_finished_actors,
    "distance_travelled": _metric_distance_travelled,
    "pool_live_steps": _metric_pool_live_steps,
}


def compute_metrics(
    requested: list[str],
    trajectory: list[FrameRecord],
    sim: SimState,
) -> dict[str, Any]:
    """Compute the requested metrics from trajectory and sim state."""
    result: dict[str, Any] = {}
    for name in requested:
        func = _METRIC_DISPATCH.get(name)
        if func is None:
            raise ValueError(
                f"Unknown metric: {name!r}. "
                f"Valid metrics: {sorted(_METRIC_DISPATCH)}"
            )
        result[name] = func(trajectory, sim)
    return result


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


def _apply_interrupt(sim: SimState, spec: InterruptSpec) -> InterruptEvent:
    actor = sim.actor(spec.actor)
    interrupt = build_timeline(
        spec.steps, actor.actor_type, actor.timeline.pool, cyclic=False,
    )
    actor.timeline.force(interrupt, from_beginning=spec.from_beginning)
    sim.interrupts += 1
    return InterruptEvent(actor.name, "scripted")


def run_scenario(scenario_def: ScenarioDef) -> ScenarioOutcome:
    """Execute a single scenario to completion.

    Creates a simulation, applies scripted player moves and interrupts at
    their frames, steps the simulation, and checks expectations after each
    frame. A scenario succeeds when no expectation fails.
    """
    sim = create_sim(scenario_def.level, ai=scenario_def.ai)

    interrupts: dict[int, list[InterruptSpec]] = defaultdict(list)
    for spec in scenario_def.interrupts:
        interrupts[spec.frame].append(spec)
    waypoints = {w.frame: w for w in scenario_def.player}

    trajectory: list[FrameRecord] = []
    failures: list[str] = []

    start_time = time.perf_counter()

    for frame in range(scenario_def.max_frames):
        waypoint = waypoints.get(frame)
        if waypoint is not None:
            sim.player_x, sim.player_y = waypoint.x, waypoint.y

        events: list = [_apply_interrupt(sim, s) for s in interrupts.get(frame, [])]
        events.extend(sim_step(sim))

        trajectory.append(
            FrameRecord(
                frame=frame,
                player=(sim.player_x, sim.player_y),
                kinds={
                    a.name: _kind_name(a.current.kind if a.current else None)
                    for a in sim.actors
                },
                positions={a.name: (a.body.x, a.body.y) for a in sim.actors},
                events=[type(e).__name__ for e in events],
            )
        )
        failures.extend(check_expectations(scenario_def.expect, sim, frame))

    wall_time = (time.perf_counter() - start_time) * 1000
    metrics = compute_metrics(scenario_def.metrics, trajectory, sim)

    return ScenarioOutcome(
        name=scenario_def.name,
        success=not failures,
        reason=failures[0] if failures else "expectations_met",
        frames_elapsed=len(trajectory),
        failures=failures,
        metrics=metrics,
        trajectory=trajectory,
        wall_time_ms=wall_time,
    )
