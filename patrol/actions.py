"""patrol/actions.py — Step kinds for each actor type.

Level files name kinds with short strings ("walk fast", "turn left", ...).
Each actor type has its own enum; resolve_kind maps a level-file string to
the enum member the behaviour tables dispatch on.
"""

from __future__ import annotations

from enum import Enum


class PedestrianAction(Enum):
    WALK_FAST = "walk fast"
    WALK_SLOW = "walk slow"
    STAND = "stand"
    LOOK_AROUND = "look around"


class CarAction(Enum):
    GO = "go"
    STOP = "stop"
    TURN_LEFT = "turn left"
    TURN_RIGHT = "turn right"


class CasterAction(Enum):
    GO = "go"
    STOP = "stop"
    TURN_LEFT = "left"
    TURN_RIGHT = "right"


PEDESTRIAN = "pedestrian"
CAR = "car"
CASTER = "caster"

# Maps actor type to the enum of kinds it understands.
ACTION_TYPES: dict[str, type[Enum]] = {
    PEDESTRIAN: PedestrianAction,
    CAR: CarAction,
    CASTER: CasterAction,
}


def resolve_kind(actor_type: str, name: str) -> Enum:
    """Convert a level-file kind string to the actor type's enum member.

    Raises:
        KeyError: If the actor type is unknown or has no such kind.
    """
    enum_cls = ACTION_TYPES.get(actor_type)
    if enum_cls is None:
        raise KeyError(
            f"Unknown actor type: {actor_type!r}. Available: {sorted(ACTION_TYPES)}"
        )
    try:
        return enum_cls(name)
    except ValueError:
        valid = sorted(member.value for member in enum_cls)
        raise KeyError(
            f"Unknown {actor_type} action: {name!r}. Available: {valid}"
        ) from None
