"""Background timekeeper: the one authoritative countdown shared by every connected view.

The timekeeper knows nothing about threads or Qt. It is driven by a tick
scheduler (anything with ``start(interval_ms, callback)`` and ``stop()``) and
receives/sends JSON text through per-client delivery callbacks. It keeps no
persistent storage; if it is torn down its countdown is gone and a controller
has to re-issue ``Start``.
"""

from ft.common.logger import log
from ft.core.errors import ProtocolError
from ft.core.protocol import (
    DEFAULT_TICK_INTERVAL_MS,
    Completed,
    Error,
    Ping,
    Pong,
    Reset,
    Start,
    Stop,
    Sync,
    Tick,
    dumps,
    loads_command,
)


class Timekeeper:

    def __init__(self, scheduler):
        self._scheduler = scheduler
        self._clients = {}  # client_id -> deliver(text)
        self._interval_ms = DEFAULT_TICK_INTERVAL_MS
        self.remaining_seconds = 0
        self.running = False

    @property
    def clients(self):
        return list(self._clients)

    def attach(self, client_id, deliver):
        self._clients[client_id] = deliver
        log.debug(f"Timekeeper attached client '{client_id}' ({len(self._clients)} connected)")

    def detach(self, client_id):
        self._clients.pop(client_id, None)
        log.debug(f"Timekeeper detached client '{client_id}' ({len(self._clients)} connected)")

    def shutdown(self):
        self._scheduler.stop()
        self.running = False
        self._clients.clear()

    # ------------------------------------------------------------------ #
    #  Inbound commands                                                    #
    # ------------------------------------------------------------------ #

    def receive(self, client_id, text):
        """Decode one wire command from ``client_id`` and apply it."""
        try:
            command = loads_command(text)
        except ProtocolError as e:
            log.warning(f"Timekeeper rejected command from '{client_id}': {e}")
            self._send(client_id, Error(str(e)))
            return
        self.handle(client_id, command)

    def handle(self, client_id, command):
        if isinstance(command, Start):
            self._start(command.initial_seconds, command.tick_interval_ms)
        elif isinstance(command, Stop):
            self._scheduler.stop()
            self.running = False
            log.debug(f"Timekeeper stopped at {self.remaining_seconds}s")
            self._broadcast(Tick(self.remaining_seconds, False))
        elif isinstance(command, Reset):
            self._scheduler.stop()
            self.remaining_seconds = command.initial_seconds
            self.running = False
            log.debug(f"Timekeeper reset to {self.remaining_seconds}s")
            self._broadcast(Tick(self.remaining_seconds, False))
        elif isinstance(command, Sync):
            self._send(client_id, Tick(self.remaining_seconds, self.running, resync=True))
        elif isinstance(command, Ping):
            self._send(client_id, Pong())
        else:
            raise ProtocolError(f"Timekeeper cannot handle {command!r}")

    def _start(self, initial_seconds, interval_ms):
        self._scheduler.stop()
        self.remaining_seconds = initial_seconds
        self._interval_ms = interval_ms
        if initial_seconds == 0:
            self.running = False
            self._broadcast(Completed())
            return
        self.running = True
        self._scheduler.start(interval_ms, self._safe_tick)
        log.debug(f"Timekeeper started at {initial_seconds}s, ticking every {interval_ms}ms")

    # ------------------------------------------------------------------ #
    #  Tick loop                                                           #
    # ------------------------------------------------------------------ #

    def tick(self):
        if not self.running:
            self._scheduler.stop()
            return
        self.remaining_seconds = max(0, self.remaining_seconds - 1)
        if self.remaining_seconds == 0:
            self._scheduler.stop()
            self.running = False
            log.info("Timekeeper countdown reached zero")
            self._broadcast(Completed())
        else:
            self._broadcast(Tick(self.remaining_seconds, True))

    # A failing tick must never leave a half-dead loop behind, so the loop is torn down and installed again.
    def _safe_tick(self):
        try:
            self.tick()
        except Exception:
            log.exception("Timekeeper tick failed, recreating the tick loop")
            self._scheduler.stop()
            if self.running:
                self._scheduler.start(self._interval_ms, self._safe_tick)

    # ------------------------------------------------------------------ #
    #  Outbound reports                                                    #
    # ------------------------------------------------------------------ #

    def _send(self, client_id, report):
        deliver = self._clients.get(client_id)
        if deliver is None:
            log.debug(f"Dropping {type(report).__name__} for unknown client '{client_id}'")
            return
        deliver(dumps(report))

    def _broadcast(self, report):
        text = dumps(report)
        for deliver in list(self._clients.values()):
            deliver(text)
