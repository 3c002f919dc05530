from PySide6.QtWidgets import QApplication, QStyle, QSystemTrayIcon
from ft.common.logger import log

# Notification collaborator. Uses a tray balloon when the desktop has a tray, otherwise just beeps. Fire and forget,
# the controller never waits on it.
class TrayNotifier:

    def __init__(self, parent=None):
        self._tray = None
        if QSystemTrayIcon.isSystemTrayAvailable():
            icon = QApplication.style().standardIcon(QStyle.SP_MediaPlay)
            self._tray = QSystemTrayIcon(icon, parent)
            self._tray.setToolTip("Pomodoro Timer")
            self._tray.show()
        else:
            log.info("No system tray available, session notifications will only beep")

    def notify(self, title, body):
        log.info(f"Notifying: {title} - {body}")
        if self._tray is None or not self._tray.supportsMessages():
            QApplication.beep()
            return
        self._tray.showMessage(title, body, QSystemTrayIcon.Information, 5000)

    def close(self):
        if self._tray is not None:
            self._tray.hide()
