"""patrol/driver.py — Per-frame timeline driver.

Advances each actor's timeline once per simulation frame and hands the
resolved step to the behaviour registered for its kind.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional

from patrol.actors import BEHAVIORS, Actor, BehaviorTable
from patrol.timeline import ResolvedStep


def drive_actor(
    actor: Actor, table: BehaviorTable | None = None,
) -> Optional[ResolvedStep]:
    """Run one frame of *actor*'s timeline.

    An actor whose timeline is empty stands still and returns None.

    Raises:
        KeyError: If no behaviour is registered for the head step's kind.
            The timeline is left untouched in that case.
    """
    if actor.timeline.is_empty():
        actor.body.stop()
        actor.current = None
        return None

    if table is None:
        table = BEHAVIORS[actor.actor_type]
    kind = actor.timeline.peek().kind
    behavior = table.get(kind)
    if behavior is None:
        raise KeyError(f"No behaviour for {kind!r} on actor {actor.name!r}")

    resolved = actor.timeline.advance()
    behavior(actor, resolved)
    actor.current = resolved
    return resolved


def drive_actors(
    actors: Iterable[Actor],
    tables: Mapping[str, BehaviorTable] | None = None,
) -> list[Optional[ResolvedStep]]:
    """Drive every actor once, in order. Returns each actor's resolved step."""
    if tables is None:
        tables = BEHAVIORS
    return [drive_actor(actor, tables[actor.actor_type]) for actor in actors]
