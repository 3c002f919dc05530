"""Controller-side transports to the background timekeeper.

A channel carries JSON text only, in both directions. ``post`` returns False
when the timekeeper could not be reached, which the controller treats as a
degraded mode rather than an error.

* ``LoopbackChannel`` talks to a ``Timekeeper`` living in the same thread.
* ``ThreadedChannel`` talks to the timekeeper hosted by a ``TimekeeperHost``,
  which runs it inside its own ``QThread`` with its own event loop and tick
  timer, so the countdown keeps going while the GUI thread is busy.
"""

import itertools

from PySide6.QtCore import QObject, QThread, Signal, Slot

from ft.common.logger import log
from ft.core.protocol import dumps
from ft.core.scheduler import QtTickScheduler
from ft.core.timekeeper import Timekeeper

_client_ids = itertools.count(1)


def new_client_id():
    return f"view-{next(_client_ids)}"


class TimekeeperChannel:
    """Common bookkeeping for both transports."""

    def __init__(self, client_id=None):
        self.client_id = client_id or new_client_id()
        self._on_report = None
        self._on_ready = None
        self._ready = False
        self._closed = False

    @property
    def ready(self):
        return self._ready and not self._closed

    def open(self, on_report, on_ready=None):
        self._on_report = on_report
        self._on_ready = on_ready
        self._connect()

    def post(self, command):
        raise NotImplementedError

    def close(self):
        if self._closed:
            return
        self._closed = True
        self._ready = False
        self._disconnect()
        log.info(f"Channel '{self.client_id}' closed")

    def _connect(self):
        raise NotImplementedError

    def _disconnect(self):
        raise NotImplementedError

    def _mark_ready(self):
        if self._closed or self._ready:
            return
        self._ready = True
        log.info(f"Channel '{self.client_id}' established")
        if self._on_ready is not None:
            self._on_ready()

    def _deliver(self, text):
        # Reports racing a close are dropped here, so a dead connection can never feed the controller.
        if self._closed or self._on_report is None:
            return
        self._on_report(text)


class LoopbackChannel(TimekeeperChannel):

    def __init__(self, timekeeper, client_id=None):
        super().__init__(client_id)
        self._timekeeper = timekeeper
        self._severed = False

    def post(self, command):
        if not self.ready or self._severed:
            return False
        self._timekeeper.receive(self.client_id, dumps(command))
        return True

    # Simulates the host killing the timekeeper: nothing is delivered either way any more, but the controller is
    # not told. It has to notice through failed liveness checks.
    def sever(self):
        self._severed = True
        self._timekeeper.detach(self.client_id)

    def _connect(self):
        self._timekeeper.attach(self.client_id, self._deliver)
        self._mark_ready()

    def _disconnect(self):
        self._timekeeper.detach(self.client_id)


#region === Threaded timekeeper ===

# Lives in the timekeeper thread. Every slot here runs on that thread's event loop.
class _TimekeeperWorker(QObject):
    report_ready = Signal(str, str)   # client_id, report json
    attached = Signal(str)

    def __init__(self):
        super().__init__()
        self._timekeeper = None

    @Slot()
    def boot(self):
        self._timekeeper = Timekeeper(QtTickScheduler("timekeeper", parent=self))
        log.info("Background timekeeper booted")

    @Slot(str)
    def attach(self, client_id):
        self._timekeeper.attach(client_id, lambda text, cid=client_id: self.report_ready.emit(cid, text))
        self.attached.emit(client_id)

    @Slot(str)
    def detach(self, client_id):
        self._timekeeper.detach(client_id)

    @Slot(str, str)
    def receive(self, client_id, text):
        self._timekeeper.receive(client_id, text)

    @Slot()
    def shutdown(self):
        if self._timekeeper is not None:
            self._timekeeper.shutdown()
        log.info("Background timekeeper shut down")


class TimekeeperHost(QObject):
    """Owns the timekeeper thread and routes reports back to the right channel on the GUI thread."""

    _attach_requested = Signal(str)
    _detach_requested = Signal(str)
    _command_posted = Signal(str, str)
    _shutdown_requested = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self._channels = {}  # client_id -> ThreadedChannel
        self._thread = QThread()
        self._thread.setObjectName("timekeeper")
        self._worker = _TimekeeperWorker()
        self._worker.moveToThread(self._thread)

        self._thread.started.connect(self._worker.boot)
        self._thread.finished.connect(self._worker.deleteLater)
        self._attach_requested.connect(self._worker.attach)
        self._detach_requested.connect(self._worker.detach)
        self._command_posted.connect(self._worker.receive)
        self._shutdown_requested.connect(self._worker.shutdown)
        self._worker.attached.connect(self._on_attached)
        self._worker.report_ready.connect(self._on_report)

    @property
    def running(self):
        return self._thread.isRunning()

    def start(self):
        if not self._thread.isRunning():
            self._thread.start()

    def stop(self, timeout_ms=2000):
        if not self._thread.isRunning():
            return
        self._shutdown_requested.emit()
        self._thread.quit()
        if not self._thread.wait(timeout_ms):
            log.warning(f"Timekeeper thread did not exit within {timeout_ms}ms")

    def channel(self, client_id=None):
        return ThreadedChannel(self, client_id)

    def _register(self, channel):
        self._channels[channel.client_id] = channel
        self._attach_requested.emit(channel.client_id)

    def _unregister(self, channel):
        self._channels.pop(channel.client_id, None)
        self._detach_requested.emit(channel.client_id)

    def _post(self, client_id, text):
        self._command_posted.emit(client_id, text)

    @Slot(str)
    def _on_attached(self, client_id):
        channel = self._channels.get(client_id)
        if channel is not None:
            channel._mark_ready()

    @Slot(str, str)
    def _on_report(self, client_id, text):
        channel = self._channels.get(client_id)
        if channel is not None:
            channel._deliver(text)


class ThreadedChannel(TimekeeperChannel):

    def __init__(self, host, client_id=None):
        super().__init__(client_id)
        self._host = host

    def post(self, command):
        if not self.ready or not self._host.running:
            return False
        self._host._post(self.client_id, dumps(command))
        return True

    def _connect(self):
        self._host._register(self)

    def _disconnect(self):
        self._host._unregister(self)

#endregion === Threaded timekeeper ===
