"""patrol/ai.py — Reactive AI layer on top of actor timelines.

Pedestrians that notice the player are interrupted with a short
look-around-and-stand reaction that stacks ahead of whatever they were
doing; once the player leaves they drop back to their default pattern.
The caster chases the player by having its pattern replaced with a
single looping "go" step aimed at the player.

Uses only the timeline's public surface: is_empty, is_interrupted, force
and reset.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from patrol.actions import CASTER, PEDESTRIAN, CasterAction, PedestrianAction
from patrol.actors import Actor
from patrol.constants import (
    CASTER_PERIOD,
    NOTICE_RADIUS,
    REACTION_LOOK_FRAMES,
    REACTION_STAND_FRAMES,
)
from patrol.steps import Step
from patrol.timeline import Timeline

NOTICED = "noticed"
CALMED = "calmed"
RETARGETED = "retargeted"
CAUGHT = "caught"


@dataclass
class Reaction:
    """One AI intervention on one actor."""
    actor: str
    reason: str


@dataclass
class AIController:
    """Per-frame AI. Call update() once per frame before driving actors."""

    radius: float = NOTICE_RADIUS
    caster_period: int = CASTER_PERIOD
    look_frames: int = REACTION_LOOK_FRAMES
    stand_frames: int = REACTION_STAND_FRAMES
    _alerted: set[str] = field(default_factory=set, repr=False)

    def reset(self) -> None:
        self._alerted.clear()

    def update(
        self,
        actors: Sequence[Actor],
        player: tuple[float, float],
        frame: int,
    ) -> list[Reaction]:
        """React to the player's position. Returns the interventions made."""
        reactions: list[Reaction] = []
        pedestrians = [a for a in actors if a.actor_type == PEDESTRIAN]
        if pedestrians:
            reactions.extend(self._update_pedestrians(pedestrians, player))
        for actor in actors:
            if actor.actor_type == CASTER:
                reaction = self._update_caster(actor, player, frame)
                if reaction is not None:
                    reactions.append(reaction)
        return reactions

    # -- pedestrians --------------------------------------------------------

    def _update_pedestrians(
        self, pedestrians: list[Actor], player: tuple[float, float],
    ) -> list[Reaction]:
        positions = np.array([[a.body.x, a.body.y] for a in pedestrians])
        distances = np.linalg.norm(positions - np.asarray(player), axis=1)

        reactions: list[Reaction] = []
        for actor, near in zip(pedestrians, distances < self.radius):
            if near and actor.name not in self._alerted:
                actor.timeline.force(self._reaction(actor), from_beginning=False)
                self._alerted.add(actor.name)
                reactions.append(Reaction(actor.name, NOTICED))
            elif not near and actor.name in self._alerted:
                self._alerted.discard(actor.name)
                if actor.timeline.is_interrupted():
                    actor.timeline.reset()
                    reactions.append(Reaction(actor.name, CALMED))
        return reactions

    def _reaction(self, actor: Actor) -> Timeline:
        return Timeline(actor.timeline.pool, [
            Step(PedestrianAction.LOOK_AROUND, self.look_frames),
            Step(PedestrianAction.STAND, self.stand_frames),
        ])

    # -- caster -------------------------------------------------------------

    def _update_caster(
        self, caster: Actor, player: tuple[float, float], frame: int,
    ) -> Reaction | None:
        if frame % self.caster_period:
            return None
        offset = np.asarray(player) - np.array([caster.body.x, caster.body.y])
        if np.hypot(*offset) < self.radius:
            chase = Step(CasterAction.STOP, 1)
            reason = CAUGHT
        else:
            # param 0 means "no bearing"; due east is 360
            bearing = float(np.degrees(np.arctan2(offset[1], offset[0])) % 360.0)
            chase = Step(CasterAction.GO, self.caster_period, param=bearing or 360.0)
            reason = RETARGETED
        caster.timeline.force(
            Timeline.from_steps([chase], cyclic=True, pool=caster.timeline.pool),
        )
        return Reaction(caster.name, reason)
