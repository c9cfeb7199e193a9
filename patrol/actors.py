"""patrol/actors.py — Actors, their bodies, and per-type behaviour tables.

An Actor binds one Timeline to one Body. The Body is a headless stand-in for
the physics body the game engine owns: behaviours only write heading and
velocity onto it, and integrate() applies one frame of motion. Rendering and
collision are someone else's job.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Hashable, Mapping, Optional

from patrol.actions import (
    CAR,
    CASTER,
    PEDESTRIAN,
    CarAction,
    CasterAction,
    PedestrianAction,
)
from patrol.constants import (
    CAR_SPEED,
    CASTER_SPEED,
    LOOK_AROUND_SWEEP,
    PEDESTRIAN_FAST_SPEED,
    PEDESTRIAN_SLOW_SPEED,
    TURN_ANGLE,
)
from patrol.steps import StepPool
from patrol.timeline import ResolvedStep, Timeline


# ---------------------------------------------------------------------------
# Body
# ---------------------------------------------------------------------------

@dataclass
class Body:
    """Kinematic state written by behaviours. Heading is in degrees,
    counterclockwise from +x."""
    x: float = 0.0
    y: float = 0.0
    heading: float = 0.0
    vx: float = 0.0
    vy: float = 0.0

    @property
    def speed(self) -> float:
        return math.hypot(self.vx, self.vy)

    def move(self, speed: float) -> None:
        """Set velocity to *speed* along the current heading."""
        rad = math.radians(self.heading)
        self.vx = speed * math.cos(rad)
        self.vy = speed * math.sin(rad)

    def stop(self) -> None:
        self.vx = 0.0
        self.vy = 0.0

    def turn(self, degrees: float) -> None:
        """Rotate the heading, carrying the current speed onto it."""
        speed = self.speed
        self.heading = (self.heading + degrees) % 360.0
        if speed:
            self.move(speed)

    def integrate(self) -> None:
        self.x += self.vx
        self.y += self.vy


# ---------------------------------------------------------------------------
# Actor
# ---------------------------------------------------------------------------

@dataclass
class Actor:
    """A moving object driven by its timeline."""
    name: str
    actor_type: str
    body: Body
    timeline: Timeline
    current: Optional[ResolvedStep] = field(default=None, repr=False)


def create_actor(
    name: str,
    actor_type: str,
    x: float,
    y: float,
    heading: float = 0.0,
    timeline: Timeline | None = None,
    pool: StepPool | None = None,
) -> Actor:
    """Create an actor at (x, y). An empty timeline is made if none is given."""
    if actor_type not in BEHAVIORS:
        raise KeyError(
            f"Unknown actor type: {actor_type!r}. Available: {sorted(BEHAVIORS)}"
        )
    if timeline is None:
        timeline = Timeline(pool)
    return Actor(
        name=name,
        actor_type=actor_type,
        body=Body(x=float(x), y=float(y), heading=float(heading) % 360.0),
        timeline=timeline,
    )


# ---------------------------------------------------------------------------
# Behaviours
# ---------------------------------------------------------------------------

Behavior = Callable[[Actor, ResolvedStep], None]
BehaviorTable = Mapping[Hashable, Behavior]


def _aim(actor: Actor, step: ResolvedStep) -> None:
    # A non-zero param on a movement step is an absolute bearing.
    if step.entered and step.param:
        actor.body.heading = step.param % 360.0


def _mover(speed: float) -> Behavior:
    def behave(actor: Actor, step: ResolvedStep) -> None:
        _aim(actor, step)
        actor.body.move(speed)
    return behave


def _turner(degrees: float) -> Behavior:
    def behave(actor: Actor, step: ResolvedStep) -> None:
        if step.entered:
            actor.body.turn(degrees)
    return behave


def _stop(actor: Actor, step: ResolvedStep) -> None:
    actor.body.stop()


def _look_around(actor: Actor, step: ResolvedStep) -> None:
    """Stand still and sweep the heading across the step's length."""
    actor.body.stop()
    sweep = step.param or LOOK_AROUND_SWEEP
    actor.body.heading = (actor.body.heading + sweep / step.length) % 360.0


PEDESTRIAN_BEHAVIORS: dict[Hashable, Behavior] = {
    PedestrianAction.WALK_FAST: _mover(PEDESTRIAN_FAST_SPEED),
    PedestrianAction.WALK_SLOW: _mover(PEDESTRIAN_SLOW_SPEED),
    PedestrianAction.STAND: _stop,
    PedestrianAction.LOOK_AROUND: _look_around,
}

CAR_BEHAVIORS: dict[Hashable, Behavior] = {
    CarAction.GO: _mover(CAR_SPEED),
    CarAction.STOP: _stop,
    CarAction.TURN_LEFT: _turner(TURN_ANGLE),
    CarAction.TURN_RIGHT: _turner(-TURN_ANGLE),
}

CASTER_BEHAVIORS: dict[Hashable, Behavior] = {
    CasterAction.GO: _mover(CASTER_SPEED),
    CasterAction.STOP: _stop,
    CasterAction.TURN_LEFT: _turner(TURN_ANGLE),
    CasterAction.TURN_RIGHT: _turner(-TURN_ANGLE),
}

BEHAVIORS: dict[str, BehaviorTable] = {
    PEDESTRIAN: PEDESTRIAN_BEHAVIORS,
    CAR: CAR_BEHAVIORS,
    CASTER: CASTER_BEHAVIORS,
}
