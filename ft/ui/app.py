import sys
from PySide6.QtCore import Qt, QEvent
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)
from ft.common.logger import log
from ft.common.setup import PATHS
from ft.core import config
from ft.core.channel import TimekeeperHost
from ft.core.controller import SessionController
from ft.core.store import JsonFileStore
from ft.ui.notify import TrayNotifier

_THEME = {
    "bg": "#F5F5F7",
    "text": "#1D1D1F",
    "muted": "#6E6E73",
    "button_bg": "#FFFFFF",
    "button_text": "#1D1D1F",
    "button_active": "#E8E8ED",
    "border": 1,
}


def build_stylesheet(t=_THEME):
    return (
        f"QMainWindow, QWidget {{ background-color: {t['bg']}; }}"
        f"QLabel {{ color: {t['text']}; background: transparent; }}"
        f"QLabel#sessionLabel {{ color: {t['muted']}; }}"
        f"QPushButton {{"
        f"  color: {t['button_text']};"
        f"  background-color: {t['button_bg']};"
        f"  border: {t['border']}px solid rgba(128,128,128,0.4);"
        f"  padding: 6px 14px;"
        f"}}"
        f"QPushButton:hover, QPushButton:pressed {{"
        f"  background-color: {t['button_active']};"
        f"}}"
    )


# ---------------------------------------------------------------------------
# Main window
# ---------------------------------------------------------------------------

# Main window of the focus timer. Acts as the display collaborator for the session controller: the controller calls
# render() on every state change and the window never feeds anything back except button clicks.
class MainWindow(QMainWindow):

    def __init__(self, settings, store, host=None):
        super().__init__()
        self.setWindowTitle("Pomodoro")
        self._host = host

        # -- Build UI --
        central = QWidget()
        self.setCentralWidget(central)
        lay = QVBoxLayout(central)
        lay.setContentsMargins(24, 18, 24, 18)
        lay.setSpacing(10)

        self._session_lbl = QLabel()
        self._session_lbl.setObjectName("sessionLabel")
        self._session_lbl.setFont(QFont("Calibri", 14))
        self._session_lbl.setAlignment(Qt.AlignCenter)
        lay.addWidget(self._session_lbl)

        self._time_lbl = QLabel()
        time_font = QFont("Calibri", 48)
        time_font.setBold(True)
        self._time_lbl.setFont(time_font)
        self._time_lbl.setAlignment(Qt.AlignCenter)
        lay.addWidget(self._time_lbl)

        btn_row = QHBoxLayout()
        self._start_btn = QPushButton("Start")
        self._reset_btn = QPushButton("Reset")
        self._toggle_btn = QPushButton("Switch to Break")
        for btn in (self._start_btn, self._reset_btn, self._toggle_btn):
            btn.setFont(QFont("Calibri", 12))
            btn_row.addWidget(btn)
        lay.addLayout(btn_row)

        self.setStyleSheet(build_stylesheet())

        # -- Session controller --
        self._notifier = TrayNotifier(self)
        channel = host.channel() if host is not None else None
        self.controller = SessionController(self, notifier=self._notifier, store=store, channel=channel,
                                            settings=settings)

        self._start_btn.clicked.connect(self.controller.toggle_running)
        self._reset_btn.clicked.connect(self.controller.reset)
        self._toggle_btn.clicked.connect(self.controller.toggle_kind)

    # ------------------------------------------------------------------ #
    #  Display collaborator                                                #
    # ------------------------------------------------------------------ #

    def render(self, model):
        self._time_lbl.setText(model.display_text)
        self._session_lbl.setText(model.session_label_text)
        self._start_btn.setText(model.button_text)
        self._toggle_btn.setText(model.toggle_text)
        self.setWindowTitle(model.title_text)

    # ------------------------------------------------------------------ #
    #  Suspension and close                                                #
    # ------------------------------------------------------------------ #

    def changeEvent(self, event):
        if event.type() == QEvent.ActivationChange and hasattr(self, "controller"):
            self.controller.on_visibility_changed(self.isActiveWindow())
        elif event.type() == QEvent.WindowStateChange and hasattr(self, "controller"):
            self.controller.on_visibility_changed(not self.isMinimized())
        super().changeEvent(event)

    def closeEvent(self, event):
        try:
            self.controller.shutdown()
        except Exception as e:
            log.exception("Failed to shut down the session cleanly")
            QMessageBox.warning(self, "Save Error",
                                f"Failed to save session:\n{e}")
        self._notifier.close()
        if self._host is not None:
            self._host.stop()
        event.accept()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    app = QApplication(sys.argv)
    settings = config.load_settings()
    store = JsonFileStore(PATHS.current)

    host = None
    if settings["use_timekeeper"]:
        host = TimekeeperHost()
        host.start()
    else:
        log.info("Background timekeeper disabled in settings, running on the local countdown only")

    window = MainWindow(settings, store, host)
    window.show()
    sys.exit(app.exec())
