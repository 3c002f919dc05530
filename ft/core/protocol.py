"""Wire contract between the controller and the background timekeeper.

Commands flow controller -> timekeeper and are keyed by ``action`` (``type``
is accepted as an alias). Reports flow timekeeper -> controller and are keyed
by ``type``. Everything on the wire is a plain JSON object.
"""

import json
from dataclasses import dataclass

from ft.core.errors import ProtocolError

DEFAULT_TICK_INTERVAL_MS = 1000


#region === Commands ===

@dataclass(frozen=True)
class Start:
    initial_seconds: int
    tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS

    def to_wire(self):
        return {"action": "start", "initialTime": self.initial_seconds, "interval": self.tick_interval_ms}


@dataclass(frozen=True)
class Stop:
    def to_wire(self):
        return {"action": "stop"}


@dataclass(frozen=True)
class Reset:
    initial_seconds: int

    def to_wire(self):
        return {"action": "reset", "initialTime": self.initial_seconds}


@dataclass(frozen=True)
class Sync:
    def to_wire(self):
        return {"action": "sync"}


@dataclass(frozen=True)
class Ping:
    def to_wire(self):
        return {"action": "ping"}

#endregion === Commands ===

#region === Reports ===

@dataclass(frozen=True)
class Tick:
    remaining_seconds: int
    running: bool
    # True only on the direct reply to a Sync command.
    resync: bool = False

    def to_wire(self):
        return {"type": "tick", "remainingSeconds": self.remaining_seconds,
                "running": self.running, "resync": self.resync}


@dataclass(frozen=True)
class Completed:
    remaining_seconds: int = 0
    running: bool = False

    def to_wire(self):
        return {"type": "completed", "remainingSeconds": 0, "running": False}


@dataclass(frozen=True)
class Error:
    message: str

    def to_wire(self):
        return {"type": "error", "message": self.message}


@dataclass(frozen=True)
class Pong:
    def to_wire(self):
        return {"type": "pong"}

#endregion === Reports ===

#region === Decoding ===

def _seconds(payload, key, required=True):
    value = payload.get(key)
    if value is None and not required:
        return None
    # bool is an int subclass, but True seconds is never what the sender meant
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ProtocolError(f"Field '{key}' must be a non-negative integer, got {value!r}")
    return value


def _flag(payload, key, default=None):
    value = payload.get(key, default)
    if not isinstance(value, bool):
        raise ProtocolError(f"Field '{key}' must be a boolean, got {value!r}")
    return value


def decode_command(payload):
    if not isinstance(payload, dict):
        raise ProtocolError(f"Command must be a JSON object, got {type(payload).__name__}")
    action = payload.get("action", payload.get("type"))
    if action == "start":
        interval = _seconds(payload, "interval", required=False)
        if interval == 0:
            raise ProtocolError("Field 'interval' must be positive")
        return Start(_seconds(payload, "initialTime"), interval or DEFAULT_TICK_INTERVAL_MS)
    if action == "stop":
        return Stop()
    if action == "reset":
        return Reset(_seconds(payload, "initialTime"))
    if action == "sync":
        return Sync()
    if action == "ping":
        return Ping()
    raise ProtocolError(f"Unknown command action {action!r}")


def decode_report(payload):
    if not isinstance(payload, dict):
        raise ProtocolError(f"Report must be a JSON object, got {type(payload).__name__}")
    kind = payload.get("type")
    if kind == "tick":
        return Tick(_seconds(payload, "remainingSeconds"), _flag(payload, "running"),
                    _flag(payload, "resync", False))
    if kind == "completed":
        return Completed()
    if kind == "error":
        return Error(str(payload.get("message", "")))
    if kind == "pong":
        return Pong()
    raise ProtocolError(f"Unknown report type {kind!r}")


def dumps(message):
    return json.dumps(message.to_wire())


def loads_command(text):
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, TypeError, RecursionError) as e:
        raise ProtocolError(f"Command is not valid JSON: {e}") from e
    return decode_command(payload)


def loads_report(text):
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, TypeError, RecursionError) as e:
        raise ProtocolError(f"Report is not valid JSON: {e}") from e
    return decode_report(payload)

#endregion === Decoding ===
