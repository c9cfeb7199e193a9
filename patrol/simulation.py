"""patrol/simulation.py — Headless level simulation.

Provides SimState (actors, player position, AI) and create_sim() for turning
a loaded level into a runnable state. sim_step() is the per-frame loop: AI
first, then one timeline advance per actor, then body integration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Hashable, Optional

import numpy as np

from patrol.actors import Actor, create_actor
from patrol.ai import AIController
from patrol.driver import drive_actors
from patrol.level import LevelData, load_level
from patrol.steps import StepPool


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

@dataclass
class StepStartedEvent:
    actor: str
    kind: Hashable


@dataclass
class TimelineFinishedEvent:
    actor: str


@dataclass
class InterruptEvent:
    actor: str
    reason: str


Event = StepStartedEvent | TimelineFinishedEvent | InterruptEvent


# ---------------------------------------------------------------------------
# SimState
# ---------------------------------------------------------------------------

@dataclass
class SimState:
    """Complete headless state of one running level."""

    level: LevelData
    actors: list[Actor]
    pool: StepPool
    player_x: float
    player_y: float
    ai: Optional[AIController] = None
    frame: int = 0
    interrupts: int = 0
    finished: set[str] = field(default_factory=set)

    def actor(self, name: str) -> Actor:
        for actor in self.actors:
            if actor.name == name:
                return actor
        raise KeyError(f"Unknown actor: {name!r}")

    def positions(self) -> np.ndarray:
        """(N, 2) array of actor positions, in ``actors`` order."""
        return np.array(
            [[a.body.x, a.body.y] for a in self.actors], dtype=np.float64,
        ).reshape(-1, 2)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def create_sim(level: LevelData | str | Path, *, ai: bool = True) -> SimState:
    """Build a simulation from a level (or a level name/path).

    Each actor gets a clone of its template timeline in a pool owned by the
    simulation, so the level's templates stay at frame zero.
    """
    if not isinstance(level, LevelData):
        level = load_level(level)
    pool = StepPool()
    px, py = level.player_start
    return SimState(
        level=level,
        actors=_spawn_actors(level, pool),
        pool=pool,
        player_x=px,
        player_y=py,
        ai=AIController() if ai else None,
    )


def reset_sim(sim: SimState) -> None:
    """Put every actor back at its spawn point with a fresh timeline."""
    for actor in sim.actors:
        actor.timeline.clear()
    sim.actors = _spawn_actors(sim.level, sim.pool)
    sim.player_x, sim.player_y = sim.level.player_start
    sim.frame = 0
    sim.interrupts = 0
    sim.finished.clear()
    if sim.ai is not None:
        sim.ai.reset()


def _spawn_actors(level: LevelData, pool: StepPool) -> list[Actor]:
    return [
        create_actor(
            spec.name, spec.actor_type, spec.x, spec.y, spec.heading,
            timeline=spec.timeline.clone(pool),
        )
        for spec in level.actors
    ]


# ---------------------------------------------------------------------------
# Step
# ---------------------------------------------------------------------------

def sim_step(
    sim: SimState,
    player_x: Optional[float] = None,
    player_y: Optional[float] = None,
) -> list[Event]:
    """Advance the simulation by one frame.

    Returns a list of events that occurred during this frame.
    """
    events: list[Event] = []

    if player_x is not None:
        sim.player_x = player_x
    if player_y is not None:
        sim.player_y = player_y

    # AI reacts before anyone moves
    if sim.ai is not None:
        for reaction in sim.ai.update(
            sim.actors, (sim.player_x, sim.player_y), sim.frame,
        ):
            sim.interrupts += 1
            events.append(InterruptEvent(reaction.actor, reaction.reason))

    running = [not a.timeline.is_empty() for a in sim.actors]
    for actor, was_running, resolved in zip(
        sim.actors, running, drive_actors(sim.actors),
    ):
        if resolved is not None and resolved.entered:
            events.append(StepStartedEvent(actor.name, resolved.kind))
        if was_running and actor.timeline.is_empty():
            sim.finished.add(actor.name)
            events.append(TimelineFinishedEvent(actor.name))

    # --- World boundary enforcement ---
    for actor in sim.actors:
        body = actor.body
        body.integrate()
        body.x = min(max(body.x, 0.0), sim.level.width)
        body.y = min(max(body.y, 0.0), sim.level.height)

    sim.frame += 1
    return events
