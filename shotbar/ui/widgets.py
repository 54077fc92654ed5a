"""Common UI widgets for ShotBar.

Provides reusable UI components used by the main window.
"""

from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QColor, QPalette
from PySide6.QtWidgets import (
    QFrame,
    QHBoxLayout,
    QLabel,
    QPlainTextEdit,
    QPushButton,
    QWidget,
)

from shotbar.core.logging import LogEntry
from shotbar.core.model import State


class WarningBanner(QFrame):
    """A dismissible warning banner with yellow background.

    Used for the DPI warning and permission guidance.
    """

    dismissed = Signal()

    def __init__(
        self,
        message: str,
        dismissible: bool = True,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)

        self.setAutoFillBackground(True)
        self.setFrameStyle(QFrame.Shape.StyledPanel)

        palette = self.palette()
        palette.setColor(QPalette.ColorRole.Window, QColor(255, 243, 205))
        palette.setColor(QPalette.ColorRole.WindowText, QColor(133, 100, 4))
        self.setPalette(palette)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(12, 8, 12, 8)

        self._label = QLabel(message)
        self._label.setWordWrap(True)
        layout.addWidget(self._label, 1)

        if dismissible:
            close_btn = QPushButton("×")
            close_btn.setFixedSize(24, 24)
            close_btn.setFlat(True)
            close_btn.clicked.connect(self._on_dismiss)
            layout.addWidget(close_btn)

    def _on_dismiss(self) -> None:
        self.hide()
        self.dismissed.emit()

    def set_message(self, message: str) -> None:
        """Update the warning message."""
        self._label.setText(message)


class StatusIndicator(QWidget):
    """Colored dot plus state name."""

    STATE_COLORS = {
        State.Idle: QColor(128, 128, 128),        # Gray
        State.Countdown: QColor(255, 193, 7),     # Yellow
        State.Capturing: QColor(0, 123, 255),     # Blue
        State.Persisting: QColor(40, 167, 69),    # Green
        State.Stopping: QColor(255, 152, 0),      # Orange
    }

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self._dot = QLabel("●")
        self._text = QLabel()
        layout.addWidget(self._dot)
        layout.addWidget(self._text, 1)

        self.set_state(State.Idle)

    def set_state(self, state: State) -> None:
        color = self.STATE_COLORS.get(state, QColor(128, 128, 128))
        self._dot.setStyleSheet(f"color: {color.name()}; font-size: 16px;")
        self._text.setText(state.name)


class ShotCounter(QLabel):
    """Shows shots taken as i/N, or the countdown while it runs."""

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setStyleSheet("font-size: 20px; font-weight: bold;")
        self.reset()

    def reset(self) -> None:
        self.setText("-")

    def set_countdown(self, remaining: int) -> None:
        self.setText(f"Starting in {remaining}…" if remaining > 0 else "Go")

    def set_progress(self, current: int, total: int) -> None:
        self.setText(f"{current}/{total}")


class LogView(QPlainTextEdit):
    """Log viewer with circular buffer display."""

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setReadOnly(True)
        self.setMaximumBlockCount(200)
        self.setLineWrapMode(QPlainTextEdit.LineWrapMode.WidgetWidth)
        self.setStyleSheet(
            "font-family: Consolas, Menlo, monospace; font-size: 11px;"
        )

    def add_entry(self, entry: LogEntry) -> None:
        self.appendPlainText(entry.format())

    def set_entries(self, entries: list[LogEntry]) -> None:
        self.clear()
        for entry in entries:
            self.appendPlainText(entry.format())
