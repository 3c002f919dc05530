"""Epoch-based countdown reconciliation.

Both the background timekeeper reports and the local fallback loop feed their
ticks through these functions. Tick delivery has no latency guarantee, so the
remaining time is never derived from the number of ticks received. Instead it
is recomputed from the wall-clock instant the running period began.
"""

DEFAULT_TOLERANCE_SECONDS = 2


def elapsed_seconds(epoch_ms: int, now_ms: int) -> int:
    """Whole seconds between ``epoch_ms`` and ``now_ms``. A clock that went backwards counts as zero."""
    return max(0, (now_ms - epoch_ms) // 1000)


def reconcile(initial_seconds: int, epoch_ms: int, now_ms: int) -> int:
    """Return the remaining seconds the countdown should show at ``now_ms``."""
    return max(0, initial_seconds - elapsed_seconds(epoch_ms, now_ms))


def correct(tracked_seconds: int, expected_seconds: int, tolerance: int = DEFAULT_TOLERANCE_SECONDS) -> int:
    """Pick between a tick-tracked value and the epoch-derived one.

    The tracked value is kept while it stays within ``tolerance`` of the
    expected value, otherwise the expected value wins.
    """
    if abs(tracked_seconds - expected_seconds) > tolerance:
        return expected_seconds
    return tracked_seconds
