import json
from ft.common.logger import log
from ft.core.errors import SnapshotError
from ft.core.session import SessionKind, SessionState

SNAPSHOT_KEY = "session"

# Snapshots older than this are thrown away instead of resumed. Nobody wants to come back to a session that
# "ran" for hours while the machine slept.
DEFAULT_STALE_AFTER_SECONDS = 60 * 60

# A savedAt this far in the future means the clock jumped or the file was edited; either way don't trust it.
_MAX_FUTURE_SKEW_MS = 60 * 1000

#region === Saving ===

# The snapshot is always written paused. A restored session resumes paused, regardless of what it was doing.
def build_snapshot(state, now_ms):
    return {
        "remainingSeconds": state.expected(now_ms),
        "kind": state.kind.value,
        "running": False,
        "savedAt": now_ms,
    }

def save_snapshot(store, state, now_ms):
    snapshot = build_snapshot(state, now_ms)
    store.put(SNAPSHOT_KEY, snapshot)
    log.info(f"Saved session snapshot: {snapshot['kind']} with {snapshot['remainingSeconds']}s remaining")
    return snapshot

#endregion === Saving ===

#region === Loading ===

def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)

# Turns a raw snapshot dict into a paused SessionState, raising SnapshotError on any shape problem.
def parse_snapshot(raw, durations):
    if not isinstance(raw, dict):
        raise SnapshotError(f"Snapshot must be an object, got {type(raw).__name__}")
    remaining = raw.get("remainingSeconds")
    if not _is_int(remaining) or remaining < 0:
        raise SnapshotError(f"Snapshot remainingSeconds is invalid: {remaining!r}")
    try:
        kind = SessionKind(raw.get("kind"))
    except ValueError:
        raise SnapshotError(f"Snapshot kind is invalid: {raw.get('kind')!r}") from None
    if not _is_int(raw.get("savedAt")):
        raise SnapshotError(f"Snapshot savedAt is invalid: {raw.get('savedAt')!r}")

    duration = durations.for_kind(kind)
    # Zero is a completed session that never got reaped, and anything above the duration came from an older config.
    if remaining == 0 or remaining > duration:
        log.debug(f"Snapshot remaining {remaining}s out of range for {kind.value}, using {duration}s")
        remaining = duration
    return SessionState(remaining_seconds=remaining, kind=kind, durations=durations)

# Loads the persisted session, or fresh defaults when there is nothing usable. Never raises for bad data.
def load_snapshot(store, durations, now_ms, stale_after_seconds=DEFAULT_STALE_AFTER_SECONDS):
    fresh = SessionState.fresh(durations)
    try:
        raw = store.get(SNAPSHOT_KEY)
    except (json.JSONDecodeError, UnicodeDecodeError, OSError):
        log.warning("Ran into an error while reading the session snapshot, starting a fresh session.", exc_info=True)
        return fresh
    if raw is None:
        log.info("No session snapshot found, starting a fresh session.")
        return fresh

    try:
        state = parse_snapshot(raw, durations)
    except SnapshotError:
        log.warning("Session snapshot is malformed, starting a fresh session.", exc_info=True)
        return fresh

    age_ms = now_ms - raw["savedAt"]
    if age_ms > stale_after_seconds * 1000:
        log.info(f"Session snapshot is {age_ms // 1000}s old (limit {stale_after_seconds}s), discarding it.")
        return fresh
    if age_ms < -_MAX_FUTURE_SKEW_MS:
        log.warning(f"Session snapshot is dated {-age_ms // 1000}s in the future, discarding it.")
        return fresh

    log.info(f"Restored paused {state.kind.value} session with {state.remaining_seconds}s remaining")
    return state

#endregion === Loading ===
