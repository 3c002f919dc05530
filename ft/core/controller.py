"""Foreground session controller.

Owns the user-visible ``SessionState`` and keeps it consistent with whichever
clock is actually counting: the background timekeeper when it is reachable,
otherwise a local fallback tick loop. Both sources go through the same
epoch-based reconciliation (``ft.core.session.observe``), so a view that was
suspended for a while jumps straight to the right value when it wakes up.

Collaborators:

* display   - ``render(DisplayModel)``, required
* notifier  - ``notify(title, body)``, optional, failures are swallowed
* store     - ``put(key, value)`` / ``get(key)``, optional
* channel   - a ``TimekeeperChannel``, optional; without one the controller
  runs purely on its local countdown
"""

from ft.common.logger import log
from ft.core import session
from ft.core.config import build_default_settings, durations_from
from ft.core.display import build_display
from ft.core.errors import MissingCollaboratorError, ProtocolError
from ft.core.protocol import Completed, Error, Ping, Pong, Reset, Start, Stop, Sync, Tick, loads_report
from ft.core.scheduler import QtTickScheduler
from ft.core.session import SessionKind
from ft.core.snapshot import load_snapshot, save_snapshot
from ft.util.misc import now_ms

NOTIFY_TITLE = "Pomodoro Timer"
_NOTIFY_BODIES = {
    SessionKind.FOCUS: "Focus session complete! Time for a break.",
    SessionKind.BREAK: "Break time is over! Ready to focus?",
}


class SessionController:

    def __init__(self, display, notifier=None, store=None, channel=None, settings=None,
                 clock=now_ms, scheduler_factory=QtTickScheduler):
        if display is None or not callable(getattr(display, "render", None)):
            raise MissingCollaboratorError("A display with a render() method is required to start a session")

        settings = settings or build_default_settings()
        self._display = display
        self._notifier = notifier
        self._store = store
        self._clock = clock
        self._tick_interval_ms = settings["tick_interval_ms"]
        self._liveness_interval_ms = settings["liveness_interval_ms"]
        self._max_liveness_failures = settings["max_liveness_failures"]
        self._tolerance = settings["drift_tolerance_seconds"]
        durations = durations_from(settings)

        # -- Tick loops, one handle each so a new loop always replaces the old one --
        self._fallback = scheduler_factory("fallback")
        self._liveness = scheduler_factory("liveness")

        # -- Timekeeper connection --
        self._channel = channel
        self._timekeeper_lost = False
        self._awaiting_pong = False
        self._liveness_failures = 0
        self._last_report_ms = None

        # Epoch of the running period whose completion was already handled
        self._completed_epoch = None

        if store is not None:
            self._state = load_snapshot(store, durations, self._clock(), settings["stale_after_seconds"])
        else:
            self._state = session.SessionState.fresh(durations)

        self._render()
        if channel is not None:
            channel.open(self._on_report_text, self._on_channel_ready)

    # ------------------------------------------------------------------ #
    #  Read-only views                                                     #
    # ------------------------------------------------------------------ #

    @property
    def state(self):
        return self._state

    @property
    def phase(self):
        return self._state.phase

    @property
    def using_timekeeper(self):
        return self._timekeeper_usable()

    @property
    def fallback_active(self):
        return self._fallback.active

    # ------------------------------------------------------------------ #
    #  Commands                                                            #
    # ------------------------------------------------------------------ #

    def start(self):
        if self._state.running or self._state.remaining_seconds <= 0:
            log.debug(f"Ignoring start while {self._state.phase.value}")
            return
        self._set_state(session.start(self._state, self._clock()))
        log.debug(f"Started {self._state.kind.value} session at {self._state.remaining_seconds}s")
        self._begin_countdown()

    def stop(self):
        if not self._state.running:
            log.debug(f"Ignoring stop while {self._state.phase.value}")
            return
        now = self._clock()
        settled = session.observe(self._state, self._state.remaining_seconds, now, self._tolerance)
        self._fallback.stop()
        # The session ran out before anybody noticed; finish it, but leave the next one paused.
        if settled.remaining_seconds == 0:
            self._complete(settled, auto_start=False)
            return
        self._set_state(session.stop(settled, now, self._tolerance))
        log.debug(f"Stopped {self._state.kind.value} session at {self._state.remaining_seconds}s")
        self._post(Stop())

    def toggle_running(self):
        if self._state.running:
            self.stop()
        else:
            self.start()

    def reset(self):
        self._fallback.stop()
        self._set_state(session.reset(self._state))
        log.debug(f"Reset {self._state.kind.value} session to {self._state.remaining_seconds}s")
        self._post(Reset(self._state.remaining_seconds))

    def toggle_kind(self):
        was_running = self._state.running
        now = self._clock()
        self._fallback.stop()
        settled = session.observe(self._state, self._state.remaining_seconds, now, self._tolerance)
        # Same as stop(): a session that already ran out is completed, which also lands on the other kind.
        if settled.running and settled.remaining_seconds == 0:
            self._complete(settled, auto_start=False)
            return
        self._set_state(session.toggle_kind(settled, now, self._tolerance))
        log.debug(f"Switched to {self._state.kind.value} session")
        if was_running:
            self._post(Stop())
        self._post(Reset(self._state.remaining_seconds))

    def resync(self):
        """Reconcile against the wall clock right now and ask the timekeeper for its current value."""
        if self._state.running:
            self._advance(self._state.remaining_seconds)
        self._post(Sync())

    # ------------------------------------------------------------------ #
    #  Suspension / teardown                                               #
    # ------------------------------------------------------------------ #

    def on_visibility_changed(self, visible):
        if visible:
            self.resync()
        else:
            self.save()

    def save(self):
        if self._store is None:
            return None
        # Finish a session that ran out unobserved first, otherwise the snapshot would hold a dead 0s session.
        if self._state.running:
            self._advance(self._state.remaining_seconds)
        try:
            return save_snapshot(self._store, self._state, self._clock())
        except (OSError, TypeError, ValueError):
            log.warning("Failed to save the session snapshot", exc_info=True)
            return None

    def shutdown(self):
        self.save()
        self._fallback.stop()
        self._liveness.stop()
        if self._channel is not None:
            self._channel.close()
        log.info("Session controller shut down")

    # ------------------------------------------------------------------ #
    #  Countdown sources                                                   #
    # ------------------------------------------------------------------ #

    def _timekeeper_usable(self):
        return self._channel is not None and not self._timekeeper_lost and self._channel.ready

    def _post(self, command):
        if not self._timekeeper_usable():
            return False
        delivered = self._channel.post(command)
        if not delivered:
            log.debug(f"Timekeeper unreachable, {type(command).__name__} not delivered")
        return delivered

    # Hands the running countdown to the timekeeper if it takes it, otherwise runs it locally.
    def _begin_countdown(self):
        if self._post(Start(self._state.remaining_seconds, self._tick_interval_ms)):
            self._fallback.stop()
        else:
            self._arm_fallback()

    def _arm_fallback(self):
        self._fallback.start(self._tick_interval_ms, self._on_fallback_tick)
        log.info(f"Local countdown armed for {self._state.kind.value} session at {self._state.remaining_seconds}s")

    def _on_fallback_tick(self):
        try:
            if not self._state.running:
                self._fallback.stop()
                return
            self._advance(max(0, self._state.remaining_seconds - 1))
        except Exception:
            log.exception("Local countdown tick failed, recreating the tick loop")
            self._fallback.stop()
            if self._state.running and not self._timekeeper_usable():
                self._arm_fallback()

    # Folds a tick-derived value into the running state, completing the session if it hit zero.
    def _advance(self, tracked_seconds):
        nxt = session.observe(self._state, tracked_seconds, self._clock(), self._tolerance)
        if nxt.running and nxt.remaining_seconds == 0:
            self._complete(nxt, auto_start=True)
            return
        self._set_state(nxt)

    def _complete(self, finished, auto_start):
        if finished.epoch is not None and finished.epoch == self._completed_epoch:
            log.debug("Ignoring duplicate completion")
            return
        self._completed_epoch = finished.epoch
        log.info(f"{finished.kind.value.capitalize()} session complete")
        self._notify(finished.kind)

        self._fallback.stop()
        self._set_state(session.complete(finished, self._clock(), auto_start=auto_start))
        if auto_start:
            self._begin_countdown()
        else:
            self._post(Reset(self._state.remaining_seconds))

    def _notify(self, finished_kind):
        body = _NOTIFY_BODIES[finished_kind]
        if self._notifier is None:
            log.info(f"Notification (no notifier): {body}")
            return
        try:
            self._notifier.notify(NOTIFY_TITLE, body)
        except Exception:
            log.warning("Session notification failed", exc_info=True)

    # ------------------------------------------------------------------ #
    #  Timekeeper reports                                                  #
    # ------------------------------------------------------------------ #

    def _on_channel_ready(self):
        if self._timekeeper_lost:
            return
        # Rehydrate the timekeeper with our countdown; it keeps nothing across restarts.
        if self._state.running:
            self._advance(self._state.remaining_seconds)
        if self._state.running:
            if self._post(Start(self._state.remaining_seconds, self._tick_interval_ms)):
                self._fallback.stop()
                log.info("Handed the running countdown over to the timekeeper")
        else:
            self._post(Reset(self._state.remaining_seconds))
        self._liveness.start(self._liveness_interval_ms, self.check_liveness)

    def _on_report_text(self, text):
        if self._timekeeper_lost:
            log.debug("Ignoring report from an abandoned timekeeper")
            return
        try:
            report = loads_report(text)
        except ProtocolError as e:
            log.warning(f"Ignoring malformed timekeeper report: {e}")
            return

        if isinstance(report, Pong):
            self._awaiting_pong = False
            self._liveness_failures = 0
        elif isinstance(report, Error):
            log.warning(f"Timekeeper reported an error: {report.message}")
        elif isinstance(report, (Tick, Completed)):
            self._last_report_ms = self._clock()
            self._on_countdown_report(report)

    def _on_countdown_report(self, report):
        if not self._state.running:
            if isinstance(report, Tick) and report.resync:
                self._adopt_paused(report.remaining_seconds)
                return
            # Late ticks after a local stop/reset are expected; the local intent wins.
            log.debug(f"Ignoring {type(report).__name__} at {report.remaining_seconds}s while paused")
            return
        epoch = self._state.epoch
        self._advance(report.remaining_seconds)
        if self._state.epoch != epoch:
            return  # completed, and the next session already has its own countdown
        if self._state.running and not report.running:
            # The timekeeper is not counting this session (restarted, or a stale stop); give it our countdown again.
            log.info(f"Timekeeper is idle while session runs, re-issuing start at {self._state.remaining_seconds}s")
            if not self._post(Start(self._state.remaining_seconds, self._tick_interval_ms)):
                self._arm_fallback()

    # A resync reply while paused carries the shared countdown's value; take it over but stay paused.
    def _adopt_paused(self, seconds):
        adopted = session.adopt(self._state, seconds)
        if adopted is self._state:
            log.debug(f"Ignoring resync value {seconds}s for paused {self._state.kind.value} session")
            return
        self._set_state(adopted)
        log.debug(f"Adopted timekeeper value {seconds}s while paused")

    # ------------------------------------------------------------------ #
    #  Liveness                                                            #
    # ------------------------------------------------------------------ #

    def check_liveness(self):
        """One liveness round: count the previous ping if it went unanswered, then send a new one."""
        if self._channel is None or self._timekeeper_lost:
            return
        failed = self._awaiting_pong
        self._awaiting_pong = True
        if not self._post(Ping()):
            failed = True

        if failed:
            self._liveness_failures += 1
            log.warning(f"Timekeeper liveness check failed ({self._liveness_failures}/{self._max_liveness_failures})")
            if self._liveness_failures >= self._max_liveness_failures:
                self._abandon_timekeeper()
                return
        else:
            self._liveness_failures = 0

        # Running but silent for too long: the tick loop may have stalled, so ask directly.
        if self._state.running:
            last = self._last_report_ms if self._last_report_ms is not None else self._state.epoch
            if self._clock() - last > self._tick_interval_ms + self._tolerance * 1000:
                self._post(Sync())

    def _abandon_timekeeper(self):
        self._timekeeper_lost = True
        self._liveness.stop()
        self._channel.close()
        log.warning("Timekeeper unreachable, using the local countdown for the rest of this session")
        if self._state.running:
            self._advance(self._state.remaining_seconds)
        if self._state.running:
            self._arm_fallback()

    # ------------------------------------------------------------------ #
    #  Display                                                             #
    # ------------------------------------------------------------------ #

    def _set_state(self, state):
        self._state = state
        self._render()

    def _render(self):
        self._display.render(build_display(self._state))
