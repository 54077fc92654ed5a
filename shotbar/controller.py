"""Application controller that wires UI to the capture engine.

Handles all signal connections between MainWindow and CaptureEngine,
plus settings snapshots and error dialogs.
"""

from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject, Signal, Slot

from shotbar.core.engine import CaptureEngine, EngineListener, InvalidConfig, PermissionDenied
from shotbar.core.logging import get_logger
from shotbar.core.model import RunStats, State, StopReason
from shotbar.core.settings import SettingsStore, load_run_config
from shotbar.ui.main_window import MainWindow
from shotbar.ui.sounds import SoundNotifier


class EngineBridge(QObject, EngineListener):
    """Re-emits engine callbacks as Qt signals.

    The engine calls listeners on its worker thread; connections to
    widgets are queued onto the GUI thread.
    """

    state_changed = Signal(object)
    countdown_tick = Signal(int)
    shot_taken = Signal(int, int)
    run_finished = Signal(object)

    def on_state_changed(self, state: State) -> None:
        self.state_changed.emit(state)

    def on_countdown_tick(self, remaining: int) -> None:
        self.countdown_tick.emit(remaining)

    def on_shot(self, shot_count: int, total: int, path: Optional[Path]) -> None:
        self.shot_taken.emit(shot_count, total)

    def on_finished(self, stats: RunStats) -> None:
        self.run_finished.emit(stats)


class ApplicationController(QObject):
    """Controller that connects UI to the capture engine.

    Responsibilities:
    - Snapshot the settings into a RunConfig at every Start
    - Wire engine progress to the window
    - Report permission and settings errors
    """

    def __init__(
        self,
        window: MainWindow,
        store: SettingsStore,
        engine: Optional[CaptureEngine] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)

        self._window = window
        self._store = store
        self._logger = get_logger()

        self._notifier = SoundNotifier(self)
        self._engine = engine or CaptureEngine(notifier=self._notifier)
        self._bridge = EngineBridge(self)
        self._engine.add_listener(self._bridge)

        self._connect_signals()

    @property
    def engine(self) -> CaptureEngine:
        return self._engine

    def _connect_signals(self) -> None:
        # Window -> Controller -> Engine
        self._window.start_requested.connect(self._on_start_requested)
        self._window.stop_requested.connect(self._on_stop_requested)
        self._window.single_shot_requested.connect(self._on_single_shot_requested)

        # Engine -> Controller -> Window
        self._bridge.state_changed.connect(self._window.update_state)
        self._bridge.countdown_tick.connect(self._window.update_countdown)
        self._bridge.shot_taken.connect(self._window.update_progress)
        self._bridge.run_finished.connect(self._on_run_finished)

    @Slot()
    def _on_start_requested(self) -> None:
        config = load_run_config(self._store)
        self._notifier.configure(config.countdown_sound, config.completion_sound)

        try:
            self._engine.start(config)
        except PermissionDenied:
            self._window.show_error_dialog(
                "Permission required",
                "Allow this application under System Settings > Privacy & "
                "Security > Accessibility, then press Start again.",
            )
            return
        except InvalidConfig as e:
            self._window.show_error_dialog("Invalid settings", "\n".join(e.errors))
            return

        self._window.reset_progress()
        self._window.set_running(True)

    @Slot()
    def _on_stop_requested(self) -> None:
        self._engine.stop()
        self._window.set_running(self._engine.is_running)

    @Slot()
    def _on_single_shot_requested(self) -> None:
        try:
            self._engine.take_single_shot(load_run_config(self._store))
        except PermissionDenied:
            self._window.show_error_dialog(
                "Permission required",
                "Accessibility permission is required to send keys.",
            )

    @Slot(object)
    def _on_run_finished(self, stats: RunStats) -> None:
        # A newer run may already be active
        self._window.set_running(self._engine.is_running)

        if stats.reason == StopReason.DUPLICATE:
            self._logger.info("Screen stopped changing; run ended")
        elif stats.reason == StopReason.ERROR:
            self._window.show_error_dialog(
                "Capture stopped", "The capture loop stopped unexpectedly. See the log."
            )
