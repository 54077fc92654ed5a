"""Main window for the ShotBar application.

Combines the settings form, the run controls and the log view.
"""

from typing import Optional

from PySide6.QtCore import Signal, Slot
from PySide6.QtWidgets import (
    QGroupBox,
    QHBoxLayout,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from shotbar.core.logging import LogBuffer, LogEntry, get_logger
from shotbar.core.model import State
from shotbar.core.settings import SettingsStore

from .settings_panel import SettingsPanel
from .widgets import LogView, ShotCounter, StatusIndicator, WarningBanner


class MainWindow(QMainWindow):
    """Main application window."""

    # Signals for engine communication
    start_requested = Signal()
    stop_requested = Signal()
    single_shot_requested = Signal()

    # Marshals log entries written on worker threads
    _log_entry_added = Signal(object)

    def __init__(self, store: SettingsStore, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        self.setWindowTitle("ShotBar")
        self.setMinimumSize(460, 640)

        self._is_running = False
        self._logger = get_logger()

        self._setup_ui(store)
        self._connect_signals()
        self.set_log_buffer(self._logger.buffer)

    def _setup_ui(self, store: SettingsStore) -> None:
        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)

        self._banner = WarningBanner("", dismissible=True)
        self._banner.hide()
        layout.addWidget(self._banner)

        settings_box = QGroupBox("Settings")
        settings_layout = QVBoxLayout(settings_box)
        self._settings_panel = SettingsPanel(store)
        settings_layout.addWidget(self._settings_panel)
        layout.addWidget(settings_box)

        status_row = QHBoxLayout()
        self._status = StatusIndicator()
        self._counter = ShotCounter()
        status_row.addWidget(self._status, 1)
        status_row.addWidget(self._counter, 1)
        layout.addLayout(status_row)

        buttons = QHBoxLayout()
        self._start_btn = QPushButton("Start")
        self._stop_btn = QPushButton("Stop")
        self._single_btn = QPushButton("Single Shot")
        buttons.addWidget(self._start_btn)
        buttons.addWidget(self._stop_btn)
        buttons.addWidget(self._single_btn)
        layout.addLayout(buttons)

        self._log_view = LogView()
        layout.addWidget(self._log_view, 1)

        self._update_buttons()

    def _connect_signals(self) -> None:
        self._start_btn.clicked.connect(self.start_requested.emit)
        self._stop_btn.clicked.connect(self.stop_requested.emit)
        self._single_btn.clicked.connect(self.single_shot_requested.emit)
        self._log_entry_added.connect(self._log_view.add_entry)

    def set_log_buffer(self, buffer: LogBuffer) -> None:
        """Show existing entries and follow new ones."""
        self._log_view.set_entries(buffer.get_all())
        buffer.add_listener(self._on_log_entry)

    def _on_log_entry(self, entry: LogEntry) -> None:
        # Called from any thread
        self._log_entry_added.emit(entry)

    # State updates from engine

    @Slot(object)
    def update_state(self, state: State) -> None:
        self._status.set_state(state)

    @Slot(bool)
    def set_running(self, running: bool) -> None:
        """Toggle controls between idle and running."""
        self._is_running = running
        self._settings_panel.set_editable(not running)
        self._update_buttons()

    @Slot(int)
    def update_countdown(self, remaining: int) -> None:
        self._counter.set_countdown(remaining)

    @Slot(int, int)
    def update_progress(self, current: int, total: int) -> None:
        self._counter.set_progress(current, total)

    def reset_progress(self) -> None:
        self._counter.reset()

    def _update_buttons(self) -> None:
        self._start_btn.setEnabled(not self._is_running)
        self._stop_btn.setEnabled(self._is_running)

    # Banner

    def set_warning(self, warning: str) -> None:
        """Show the warning banner."""
        if warning:
            self._banner.set_message(warning)
            self._banner.show()

    # Dialogs

    def show_error_dialog(self, title: str, message: str) -> None:
        QMessageBox.critical(self, title, message)

    # Window behavior

    def closeEvent(self, event) -> None:
        """Request stop if running."""
        if self._is_running:
            self.stop_requested.emit()
        event.accept()
