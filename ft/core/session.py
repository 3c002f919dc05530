"""Focus/break session state and its pure transitions.

Every transition takes the current ``SessionState`` and returns a new one.
Side effects (commands to the timekeeper, rendering, notifications) are the
controller's job, so a caller can never observe a half-applied transition.
"""

from dataclasses import dataclass, field, replace
from enum import Enum

from ft.core.countdown import DEFAULT_TOLERANCE_SECONDS, correct, reconcile


class SessionKind(Enum):
    FOCUS = "focus"
    BREAK = "break"

    @property
    def other(self):
        return SessionKind.BREAK if self is SessionKind.FOCUS else SessionKind.FOCUS


class SessionPhase(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Durations:
    """Configured length in seconds of each session kind."""
    focus: int = 25 * 60
    break_: int = 5 * 60

    def __post_init__(self):
        if self.focus <= 0 or self.break_ <= 0:
            raise ValueError(f"Session durations must be positive, got focus={self.focus} break={self.break_}")

    def for_kind(self, kind: SessionKind) -> int:
        return self.focus if kind is SessionKind.FOCUS else self.break_


@dataclass(frozen=True)
class SessionState:
    remaining_seconds: int
    kind: SessionKind = SessionKind.FOCUS
    running: bool = False
    # Wall-clock ms when the current running period began, and the remaining value at that instant.
    epoch: int | None = None
    initial_at_epoch: int | None = None
    durations: Durations = field(default_factory=Durations)

    @classmethod
    def fresh(cls, durations: Durations, kind: SessionKind = SessionKind.FOCUS):
        return cls(remaining_seconds=durations.for_kind(kind), kind=kind, durations=durations)

    @property
    def duration(self) -> int:
        return self.durations.for_kind(self.kind)

    @property
    def phase(self) -> SessionPhase:
        if self.remaining_seconds <= 0:
            return SessionPhase.COMPLETED
        if self.running:
            return SessionPhase.RUNNING
        if self.remaining_seconds < self.duration:
            return SessionPhase.PAUSED
        return SessionPhase.IDLE

    def expected(self, now_ms: int) -> int:
        """Remaining seconds according to the epoch, or the stored value when not running."""
        if not self.running or self.epoch is None:
            return self.remaining_seconds
        return reconcile(self.initial_at_epoch, self.epoch, now_ms)


def start(state: SessionState, now_ms: int) -> SessionState:
    if state.running or state.remaining_seconds <= 0:
        return state
    return replace(state, running=True, epoch=now_ms, initial_at_epoch=state.remaining_seconds)


def observe(state: SessionState, tracked_seconds: int, now_ms: int,
            tolerance: int = DEFAULT_TOLERANCE_SECONDS) -> SessionState:
    """Fold a tick-derived remaining value into a running state.

    The value is drift-corrected against the epoch and never allowed to
    increase the remaining count. May return a running state at zero, which
    the caller must immediately pass through ``complete``.
    """
    if not state.running:
        return state
    value = correct(tracked_seconds, state.expected(now_ms), tolerance)
    value = max(0, min(state.remaining_seconds, value))
    return replace(state, remaining_seconds=value)


def stop(state: SessionState, now_ms: int, tolerance: int = DEFAULT_TOLERANCE_SECONDS) -> SessionState:
    if not state.running:
        return state
    settled = observe(state, state.remaining_seconds, now_ms, tolerance)
    return replace(settled, running=False, epoch=None, initial_at_epoch=None)


def adopt(state: SessionState, seconds: int) -> SessionState:
    """Take over a remaining value from elsewhere while paused. Values outside 1..duration are ignored."""
    if state.running or not 0 < seconds <= state.duration or seconds == state.remaining_seconds:
        return state
    return replace(state, remaining_seconds=seconds)


def reset(state: SessionState) -> SessionState:
    return replace(state, remaining_seconds=state.duration, running=False, epoch=None, initial_at_epoch=None)


def toggle_kind(state: SessionState, now_ms: int, tolerance: int = DEFAULT_TOLERANCE_SECONDS) -> SessionState:
    stopped = stop(state, now_ms, tolerance)
    return SessionState.fresh(stopped.durations, stopped.kind.other)


# Completed -> Idle(next kind) -> Running(next kind), as one step.
def complete(state: SessionState, now_ms: int, auto_start: bool = True) -> SessionState:
    nxt = SessionState.fresh(state.durations, state.kind.other)
    if auto_start:
        nxt = start(nxt, now_ms)
    return nxt
