"""patrol/timeline.py — Timelines: ordered, possibly cyclic chains of steps.

A Timeline keeps three handles into its StepPool:

    head    the step executing now
    tail    the last step before the chain either ends or loops
    anchor  the first step of the default pattern

Invariants held after every public operation:

    A. ``tail.next`` is None (finite timeline) or exactly ``anchor`` (cyclic).
    B. ``anchor`` is reachable from ``head``.
    C. Steps the timeline no longer reaches are released back to the pool.

Steps ahead of the anchor that are not part of the loop are an interruption
(or a one-shot prefix): they play once and are released as they finish.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Hashable, Iterable, Optional

from patrol.steps import Step, StepPool, StepRef

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class TimelineError(Exception):
    """Base class for timeline structure errors."""


class MalformedCycle(TimelineError, ValueError):
    """A chain loops somewhere other than its declared anchor."""


class EmptyTimelineAccess(TimelineError, RuntimeError):
    """advance() or peek() on an empty timeline. Callers check is_empty() first."""


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------

class TimelineState(Enum):
    EMPTY = "empty"
    FINITE = "finite"
    CYCLIC = "cyclic"
    INTERRUPTED = "interrupted"


@dataclass(frozen=True)
class ResolvedStep:
    """What the head step asks the actor to do on one frame."""

    kind: Hashable
    param: float
    frame: int        # frames of this step already executed before this one
    length: int
    remaining: int    # frames left after this one
    entered: bool     # first frame since the step became current

    @property
    def last_frame(self) -> bool:
        return self.remaining == 0


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------

class Timeline:
    """An actor's schedule of steps, advanced one frame at a time."""

    def __init__(
        self, pool: StepPool | None = None, steps: Iterable[Step] = (),
    ) -> None:
        self.pool = pool if pool is not None else StepPool()
        self._head: Optional[StepRef] = None
        self._tail: Optional[StepRef] = None
        self._anchor: Optional[StepRef] = None
        self._last: Optional[StepRef] = None
        for step in steps:
            self.append(step)

    @classmethod
    def from_steps(
        cls,
        steps: Iterable[Step],
        *,
        cyclic: bool = False,
        pool: StepPool | None = None,
    ) -> Timeline:
        """Build a timeline from *steps*, closing the loop if *cyclic*."""
        timeline = cls(pool, steps)
        if cyclic:
            timeline.set_cycling(True)
        return timeline

    # -- queries ------------------------------------------------------------

    def is_empty(self) -> bool:
        return self._head is None

    def is_cyclic(self) -> bool:
        return self._tail is not None and self._link(self._tail) is not None

    def is_interrupted(self) -> bool:
        """True while the head is ahead of the default pattern."""
        if self._head is None or self._head == self._anchor:
            return False
        return self._head not in self._loop()

    @property
    def state(self) -> TimelineState:
        if self._head is None:
            return TimelineState.EMPTY
        if self.is_interrupted():
            return TimelineState.INTERRUPTED
        if self.is_cyclic():
            return TimelineState.CYCLIC
        return TimelineState.FINITE

    def peek(self) -> ResolvedStep:
        """Resolve the head step without consuming a frame."""
        if self._head is None:
            raise EmptyTimelineAccess("peek() on an empty timeline")
        return self._resolve(self._head)

    def steps(self) -> list[Step]:
        """Detached copies of every owned step, in execution order from head."""
        return [replace(self.pool.get(ref), next=None) for ref in self._chain()]

    def kinds(self) -> list[Hashable]:
        return [self.pool.get(ref).kind for ref in self._chain()]

    def __len__(self) -> int:
        return len(self._chain())

    def __repr__(self) -> str:
        return (
            f"Timeline(kinds={self.kinds()!r}, state={self.state.value})"
        )

    # -- building -----------------------------------------------------------

    def append(self, step: Step | StepRef) -> StepRef:
        """Add a step at the end of the pattern.

        A Step is copied into the pool. A StepRef must already live in the
        pool; on an empty timeline it may head a pre-linked chain, whose tail
        is located by walking it. Appending to a cyclic timeline ends the loop:
        the timeline turns finite and runs out after the new step.

        Raises:
            MalformedCycle: A pre-linked chain loops past its first step, or
                a linked StepRef is appended to a non-empty timeline.
        """
        if isinstance(step, Step):
            ref = self.pool.add(replace(step, next=None))
        else:
            ref = step
            node = self.pool.get(ref)
            if self._head is not None:
                if node.next is not None:
                    raise MalformedCycle(
                        "Cannot append a linked step to a non-empty timeline; "
                        "use concat()"
                    )
                if ref in self._chain():
                    raise MalformedCycle(f"Step {ref} is already in this timeline")

        if self._head is None:
            tail = self._find_tail(ref)
            self._head = self._anchor = ref
            self._tail = tail
            self._last = None
            return ref

        owned = self._chain()
        self._open_loop()
        self.pool.get(ref).next = None
        self.pool.get(self._tail).next = ref
        self._tail = ref
        self._sweep(owned)
        return ref

    def concat(self, other: Timeline) -> None:
        """Splice *other* onto the end of this timeline, emptying *other*.

        If *other* is cyclic its loop becomes the new default pattern;
        otherwise this timeline turns finite and ends with *other*.
        """
        if other is self:
            raise ValueError("Cannot concatenate a timeline onto itself")
        if other.is_empty():
            return
        other._check_closed()
        head, tail, anchor = self._adopt(other)

        if self._head is None:
            self._reinitialize(head, tail, anchor)
            return

        owned = self._chain()
        old_tail = self.pool.get(self._tail)
        new_tail = self.pool.get(tail)
        if new_tail.next is not None:
            self._anchor = anchor
        else:
            self._open_loop()
        old_tail.next = head
        self._tail = tail
        self._sweep(owned)

    def clone(self, pool: StepPool | None = None) -> Timeline:
        """Deep copy with independent counters, preserving the loop shape."""
        copy = Timeline(pool if pool is not None else self.pool)
        if self._head is not None:
            copy._head, copy._tail, copy._anchor = self._copy_into(copy.pool)
        return copy

    def clear(self) -> None:
        """Release every owned step and leave the timeline empty."""
        for ref in self._chain():
            self.pool.release(ref)
        self._reinitialize(None, None, None)

    # -- per-frame ----------------------------------------------------------

    def advance(self) -> ResolvedStep:
        """Execute one frame of the head step.

        The counter is decremented after the step resolves, so a step of
        length 1 runs exactly once. When the counter runs out the head moves
        on: loop steps are re-armed, everything else is released.

        Raises:
            EmptyTimelineAccess: If the timeline is empty.
        """
        if self._head is None:
            raise EmptyTimelineAccess("advance() on an empty timeline")
        ref = self._head
        resolved = self._resolve(ref)
        self._last = ref
        step = self.pool.get(ref)
        step.counter -= 1
        if step.counter <= 0:
            self._finish_head()
        return resolved

    def pop(self) -> Step:
        """Drop the head step now and return a detached copy of it."""
        if self._head is None:
            raise EmptyTimelineAccess("pop() on an empty timeline")
        popped = replace(self.pool.get(self._head), next=None)
        self._finish_head()
        return popped

    # -- AI control ---------------------------------------------------------

    def force(self, interrupt: Timeline, from_beginning: bool = True) -> None:
        """Play *interrupt* ahead of the current execution point.

        A finite interrupt links back into the default pattern: to the anchor
        (re-armed, discarding any earlier unexecuted interrupt) when
        *from_beginning*, otherwise to the current head so the new interrupt
        stacks ahead of whatever was running. In that case the head also
        becomes the anchor when it sits inside the default pattern (or the
        timeline is finite), so reset() picks up where the actor left off.
        A cyclic interrupt replaces the timeline outright and the old chain
        is released. *interrupt* is emptied either way.

        Raises:
            MalformedCycle: *interrupt* loops somewhere other than its anchor.
        """
        if interrupt is self:
            raise ValueError("Cannot force a timeline into itself")
        if interrupt.is_empty():
            return
        interrupt._check_closed()
        cyclic = interrupt.is_cyclic()
        head, tail, anchor = self._adopt(interrupt)

        if self._head is None:
            self._reinitialize(head, tail, anchor)
            return

        owned = self._chain()
        if cyclic:
            self._head, self._tail, self._anchor = head, tail, anchor
        else:
            if from_beginning:
                resume = self._anchor
                self._rearm_pattern()
            else:
                resume = self._head
                self._pin_anchor()
            self.pool.get(tail).next = resume
            self._head = head
        self._last = None
        released = self._sweep(owned)
        logger.debug(
            "Forced %s interrupt (from_beginning=%s), released %d steps",
            "cyclic" if cyclic else "finite", from_beginning, released,
        )

    def reset(self) -> None:
        """Abandon any interruption and restart the default pattern."""
        if self._head is None:
            return
        owned = self._chain()
        self._head = self._anchor
        self._rearm_pattern()
        self._tail = self._find_tail(self._anchor)
        self._last = None
        self._sweep(owned)

    def set_cycling(self, on: bool) -> None:
        """Close the loop at the current head, or open it.

        Opening a loop leaves exactly one more lap, counted from the head.
        """
        if self._head is None:
            return
        head = self._head
        in_loop = head in self._loop()
        if on:
            if in_loop:
                self._anchor = head
                self._tail = self._find_tail(head)
            else:
                self.pool.get(self._tail).next = head
                self._anchor = head
            return
        if not self.is_cyclic():
            return
        if in_loop:
            self._anchor = head
            self._tail = self._find_tail(head)
        self.pool.get(self._tail).next = None

    # -- internals ----------------------------------------------------------

    def _link(self, ref: StepRef) -> Optional[StepRef]:
        return self.pool.get(ref).next

    def _resolve(self, ref: StepRef) -> ResolvedStep:
        step = self.pool.get(ref)
        return ResolvedStep(
            kind=step.kind,
            param=step.param,
            frame=step.length - step.counter,
            length=step.length,
            remaining=step.counter - 1,
            entered=ref != self._last,
        )

    def _chain(self) -> list[StepRef]:
        """Every owned step once, in execution order from the head."""
        refs: list[StepRef] = []
        seen: set[StepRef] = set()
        ref = self._head
        while ref is not None and ref not in seen:
            seen.add(ref)
            refs.append(ref)
            ref = self._link(ref)
        return refs

    def _loop(self) -> set[StepRef]:
        """Steps of the default cycle; empty for a finite timeline."""
        if not self.is_cyclic():
            return set()
        loop: set[StepRef] = set()
        ref = self._anchor
        while ref not in loop:
            loop.add(ref)
            ref = self._link(ref)
        return loop

    def _find_tail(self, start: StepRef) -> StepRef:
        """Walk from *start* to the step whose link is None or *start*."""
        tail = start
        seen = {start}
        while True:
            link = self._link(tail)
            if link is None or link == start:
                return tail
            if link in seen:
                raise MalformedCycle(
                    f"Chain starting at {start} loops back to {link}"
                )
            seen.add(link)
            tail = link

    def _check_closed(self) -> None:
        if self._head is None:
            return
        link = self._link(self._tail)
        if link is not None and link != self._anchor:
            raise MalformedCycle(
                f"Tail links to {link}, expected anchor {self._anchor} or nothing"
            )
        if self._anchor not in self._chain():
            raise MalformedCycle(f"Anchor {self._anchor} is not reachable from head")

    def _open_loop(self) -> None:
        # the loop is about to be cut; a head inside it becomes the anchor
        if self._head in self._loop():
            self._anchor = self._head

    def _pin_anchor(self) -> None:
        """Move the anchor to the head so reset() returns here."""
        if self._head in self._loop():
            self._anchor = self._head
            self._tail = self._find_tail(self._head)
        elif not self.is_cyclic():
            self._anchor = self._head

    def _rearm_pattern(self) -> None:
        for ref in self._loop() or {self._anchor}:
            self.pool.get(ref).rearm()

    def _finish_head(self) -> None:
        ref = self._head
        step = self.pool.get(ref)
        link = step.next
        self._last = None
        if ref in self._loop():
            step.rearm()
            self._head = link
            return
        if ref == self._anchor:
            self._anchor = link
        if link is None:
            self._tail = None
        self._head = link
        self.pool.release(ref)

    def _sweep(self, owned: Iterable[StepRef]) -> int:
        """Release steps of *owned* that the head no longer reaches."""
        reachable = set(self._chain())
        released = 0
        for ref in owned:
            if ref not in reachable:
                self.pool.release(ref)
                released += 1
        return released

    def _reinitialize(
        self,
        head: Optional[StepRef],
        tail: Optional[StepRef],
        anchor: Optional[StepRef],
    ) -> None:
        self._head, self._tail, self._anchor = head, tail, anchor
        self._last = None

    def _copy_into(self, pool: StepPool) -> tuple[StepRef, StepRef, StepRef]:
        chain = self._chain()
        mapping = {
            ref: pool.add(replace(self.pool.get(ref), next=None)) for ref in chain
        }
        for ref in chain:
            link = self._link(ref)
            if link is not None:
                pool.get(mapping[ref]).next = mapping[link]
        return mapping[self._head], mapping[self._tail], mapping[self._anchor]

    def _adopt(self, other: Timeline) -> tuple[StepRef, StepRef, StepRef]:
        """Take ownership of *other*'s chain in this pool, emptying *other*."""
        if other.pool is self.pool:
            refs = (other._head, other._tail, other._anchor)
            other._reinitialize(None, None, None)
        else:
            refs = other._copy_into(self.pool)
            other.clear()
        return refs
