from PySide6.QtCore import QObject, QTimer
from ft.common.logger import log

# Handle for one repeating tick loop. Installing a new loop always cancels the previous one first, so at most one
# loop per scheduler ever fires. Each loop gets a brand new QTimer, which means a late timeout from a replaced loop
# can never reach the new callback.
class QtTickScheduler(QObject):

    def __init__(self, name="tick", parent=None):
        super().__init__(parent)
        self.name = name
        self._timer = None

    @property
    def active(self):
        return self._timer is not None and self._timer.isActive()

    def start(self, interval_ms, callback):
        self.stop()
        timer = QTimer(self)
        timer.setInterval(int(interval_ms))
        timer.timeout.connect(callback)
        timer.start()
        self._timer = timer
        log.debug(f"Scheduler '{self.name}' started loop every {interval_ms}ms")

    def stop(self):
        if self._timer is None:
            return
        self._timer.stop()
        self._timer.deleteLater()
        self._timer = None
        log.debug(f"Scheduler '{self.name}' cancelled loop")
