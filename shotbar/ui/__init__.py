"""UI components for ShotBar.

This package provides PySide6-based UI components:
- MainWindow: Main application window
- SettingsPanel: Settings form bound to the settings store
- SoundNotifier: Countdown and completion cues
- Common widgets: Banner, status indicator, shot counter, log view
"""

from .main_window import MainWindow
from .settings_panel import SettingsPanel
from .sounds import SoundNotifier
from .widgets import LogView, ShotCounter, StatusIndicator, WarningBanner

__all__ = [
    "MainWindow",
    "SettingsPanel",
    "SoundNotifier",
    "LogView",
    "ShotCounter",
    "StatusIndicator",
    "WarningBanner",
]
