"""patrol/steps.py — Steps and the pool that owns them.

A Step is one scheduled behaviour: an opaque kind tag, a length in frames,
a countdown, and a float parameter (usually a bearing). Steps live in a
StepPool and link to each other through StepRef handles (slot index plus
generation), so a cyclic chain is reclaimed by releasing its slots rather
than by unpicking references.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Hashable, NamedTuple, Optional

from patrol.constants import DEFAULT_STEP_PARAM


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class InvalidStep(ValueError):
    """Raised when a step is built with a non-positive length or a counter
    outside ``[1, length]``."""


class StaleStepRef(LookupError):
    """Raised when a released (or foreign) StepRef is dereferenced."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

class StepRef(NamedTuple):
    """Handle to a step slot. Only valid while ``generation`` matches the pool."""
    index: int
    generation: int


@dataclass
class Step:
    """One scheduled behaviour lasting ``length`` frames."""
    kind: Hashable
    length: int
    counter: Optional[int] = None
    param: float = DEFAULT_STEP_PARAM
    next: Optional[StepRef] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.length, bool) or not isinstance(self.length, int):
            raise InvalidStep(f"Step length must be an int, got {self.length!r}")
        if self.length <= 0:
            raise InvalidStep(f"Step length must be positive, got {self.length}")
        if self.counter is None:
            self.counter = self.length
        elif isinstance(self.counter, bool) or not isinstance(self.counter, int):
            raise InvalidStep(f"Step counter must be an int, got {self.counter!r}")
        elif not 1 <= self.counter <= self.length:
            raise InvalidStep(
                f"Step counter must be in [1, {self.length}], got {self.counter}"
            )
        self.param = float(self.param)

    def rearm(self) -> None:
        """Restore the full countdown."""
        self.counter = self.length


# ---------------------------------------------------------------------------
# Pool
# ---------------------------------------------------------------------------

class StepPool:
    """Slot arena for steps with a free list and per-slot generations.

    Releasing a slot bumps its generation, so every StepRef handed out for
    the old occupant goes stale instead of silently aliasing the next one.
    """

    def __init__(self) -> None:
        self._slots: list[Step | None] = []
        self._generations: list[int] = []
        self._free: list[int] = []

    def add(self, step: Step) -> StepRef:
        """Store *step* in a free slot and return its handle."""
        if self._free:
            index = self._free.pop()
            self._slots[index] = step
        else:
            index = len(self._slots)
            self._slots.append(step)
            self._generations.append(0)
        return StepRef(index, self._generations[index])

    def get(self, ref: StepRef) -> Step:
        """Return the live step behind *ref*.

        Raises:
            StaleStepRef: If the slot was released or never allocated.
        """
        if ref not in self:
            raise StaleStepRef(f"Stale or unknown step reference: {ref}")
        step = self._slots[ref.index]
        assert step is not None
        return step

    def release(self, ref: StepRef) -> None:
        """Free the slot behind *ref*. Its outgoing link is cleared."""
        step = self.get(ref)
        step.next = None
        self._slots[ref.index] = None
        self._generations[ref.index] += 1
        self._free.append(ref.index)

    @property
    def capacity(self) -> int:
        """Number of slots ever allocated (live + free)."""
        return len(self._slots)

    def __contains__(self, ref: object) -> bool:
        if not isinstance(ref, StepRef):
            return False
        return (
            0 <= ref.index < len(self._slots)
            and self._slots[ref.index] is not None
            and self._generations[ref.index] == ref.generation
        )

    def __len__(self) -> int:
        return len(self._slots) - len(self._free)

    def __repr__(self) -> str:
        return f"StepPool(live={len(self)}, capacity={self.capacity})"
