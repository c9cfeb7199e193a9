"""patrol/constants.py — Tunables for actors, timelines, AI, and level files.

All speeds are in world units per frame; angles are in degrees unless a name
says otherwise.
"""

# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------

DEFAULT_STEP_PARAM = 0.0

# ---------------------------------------------------------------------------
# Actor speeds
# ---------------------------------------------------------------------------

PEDESTRIAN_FAST_SPEED = 2.0
PEDESTRIAN_SLOW_SPEED = 0.75
CAR_SPEED = 4.0
CASTER_SPEED = 2.0

TURN_ANGLE = 90.0  # car and caster turns are quarter turns
LOOK_AROUND_SWEEP = 90.0  # default sweep when a look-around step has no param

# ---------------------------------------------------------------------------
# AI
# ---------------------------------------------------------------------------

NOTICE_RADIUS = 10.0
"""Pedestrians closer than this to the player react."""

REACTION_LOOK_FRAMES = 30
REACTION_STAND_FRAMES = 60
CASTER_PERIOD = 15
"""Frames between caster re-targeting."""

# ---------------------------------------------------------------------------
# Level files
# ---------------------------------------------------------------------------

DEFAULT_CYCLING = False
"""Whether an actor with no cyclic marker at all loops its actions."""

DEFAULT_CASTER_BEARING = 270.0
