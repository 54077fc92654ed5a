"""Capture engine with state machine.

Implements the capture loop:
- State machine (Idle/Countdown/Capturing/Persisting/Stopping)
- Countdown, capture -> duplicate check -> persist -> advance cycle
- Cooperative cancellation through a per-run token
- Single shot, independent of the continuous run

Each run executes on its own worker thread. The worker owns the run
state; other threads only set the run's cancel token and read
``is_running``.
"""

import itertools
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

import numpy as np

from .capture import CaptureError, MssCaptureSource
from .constants import COUNTDOWN_TICK_SEC, SINGLE_SHOT_DELAY_SEC
from .duplicate import DuplicateJudge, create_judge
from .interfaces import ActionSink, CaptureSource, NotificationPort, NullNotifier, PermissionCheck
from .logging import Logger, get_logger
from .model import NotificationEvent, RunConfig, RunStats, State, StopReason
from .storage import (
    PersistError,
    SessionFolderError,
    create_session_folder,
    default_save_dir,
    resolve_destination,
)
from .validation import validate_run_config


class PermissionDenied(Exception):
    """Raised when synthetic key input is not authorized."""

    pass


class InvalidConfig(ValueError):
    """Raised when a run configuration fails validation."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


class EngineListener:
    """Receives progress from the engine.

    Callbacks run on the worker thread. Override what you need.
    """

    def on_state_changed(self, state: State) -> None:
        pass

    def on_countdown_tick(self, remaining: int) -> None:
        pass

    def on_shot(self, shot_count: int, total: int, path: Optional[Path]) -> None:
        pass

    def on_finished(self, stats: RunStats) -> None:
        pass


class _Run:
    """State of one run.

    Only the worker thread writes the counters and the session folder;
    ``cancel`` and ``running`` are the cross-thread flags.
    """

    def __init__(
        self,
        run_id: int,
        config: RunConfig,
        judge: DuplicateJudge,
        session_folder: Optional[Path],
    ) -> None:
        self.run_id = run_id
        self.config = config
        self.judge = judge
        self.session_folder = session_folder
        self.shot_count = 0
        self.capture_failures = 0
        self.persist_failures = 0
        self.advance_failures = 0

        self.cancel = threading.Event()
        self.running = threading.Event()
        self.running.set()
        self._stop_lock = threading.Lock()

    def mark_stopped(self) -> bool:
        """Clear ``running``. Returns True only for the first call."""
        with self._stop_lock:
            if not self.running.is_set():
                return False
            self.running.clear()
            return True


class CaptureEngine:
    """Runs the capture loop.

    Public surface: start(), stop(), take_single_shot() and the
    observable ``is_running``. At most one run is active; starting a
    new one cancels the previous run and waits for it to unwind first.
    """

    def __init__(
        self,
        capture_source: Optional[CaptureSource] = None,
        action_sink: Optional[ActionSink] = None,
        notifier: Optional[NotificationPort] = None,
        permission_check: Optional[PermissionCheck] = None,
        duplicate_judge: Optional[DuplicateJudge] = None,
        default_dir: Optional[Path] = None,
        logger: Optional[Logger] = None,
        tick_interval: float = COUNTDOWN_TICK_SEC,
        single_shot_delay: float = SINGLE_SHOT_DELAY_SEC,
    ) -> None:
        """Initialize the engine.

        Args:
            capture_source: Screenshot provider (mss if None)
            action_sink: Key injection and persistence (desktop if None)
            notifier: Countdown/completion cues (silent if None)
            permission_check: Input authorization check (platform if None)
            duplicate_judge: Judge used for every run; if None one is
                created per run from the configured strategy
            default_dir: Destination when no folder is configured
            logger: Logger instance (uses global if None)
            tick_interval: Seconds per countdown tick
            single_shot_delay: Pre-delay of take_single_shot()
        """
        if capture_source is None:
            capture_source = MssCaptureSource()
        if action_sink is None:
            from .actions import DesktopActionSink

            action_sink = DesktopActionSink()
        if permission_check is None:
            from .os_adapter.permissions import check_input_permission

            permission_check = check_input_permission

        self._capture_source = capture_source
        self._action_sink = action_sink
        self._notifier = notifier or NullNotifier()
        self._permission_check = permission_check
        self._judge = duplicate_judge
        self._default_dir = default_dir or default_save_dir()
        self._logger = logger or get_logger()
        self._tick_interval = tick_interval
        self._single_shot_delay = single_shot_delay

        # Serializes start() calls
        self._lock = threading.Lock()
        self._run: Optional[_Run] = None
        self._thread: Optional[threading.Thread] = None
        self._run_ids = itertools.count(1)

        self._state = State.Idle
        self._last_stats: Optional[RunStats] = None
        self._listeners: list[EngineListener] = []

    @property
    def is_running(self) -> bool:
        """True while a run is scheduled or about to run its next iteration."""
        run = self._run
        return run is not None and run.running.is_set()

    @property
    def state(self) -> State:
        """Current state."""
        return self._state

    @property
    def shot_count(self) -> int:
        """Counted iterations of the current or last run (display only)."""
        run = self._run
        return run.shot_count if run is not None else 0

    @property
    def last_stats(self) -> Optional[RunStats]:
        """Summary of the most recently finished run."""
        return self._last_stats

    @property
    def default_dir(self) -> Path:
        return self._default_dir

    def add_listener(self, listener: EngineListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: EngineListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def start(self, config: RunConfig) -> None:
        """Start a run with a settings snapshot.

        Args:
            config: Run configuration, not re-read during the run

        Raises:
            InvalidConfig: If the configuration is invalid
            PermissionDenied: If key injection is not authorized
        """
        validation = validate_run_config(config)
        if not validation:
            self._logger.error(f"Invalid settings: {'; '.join(validation.errors)}")
            raise InvalidConfig(validation.errors)

        if not self._permission_check():
            self._logger.error("Accessibility permission is required to send keys")
            raise PermissionDenied("Input injection is not authorized")

        with self._lock:
            self._cancel_active()

            judge = self._judge or create_judge(config.duplicate_strategy)
            judge.reset()
            judge.set_threshold(config.duplicate_threshold)

            session_folder = self._prepare_session_folder(config)

            run = _Run(next(self._run_ids), config, judge, session_folder)
            self._run = run
            self._logger.set_progress(0, config.max_iterations)
            self._logger.info(
                f"Run {run.run_id} started: {config.max_iterations} shots, "
                f"key {config.advance_key.display_name}"
            )

            self._thread = threading.Thread(
                target=self._worker_main,
                args=(run,),
                name=f"shotbar-run-{run.run_id}",
                daemon=True,
            )
            self._thread.start()

    def stop(self) -> None:
        """Request the active run to stop.

        Never blocks: the worker observes the request at its next check
        point. Calling it while idle does nothing.
        """
        run = self._run
        if run is None:
            return
        run.cancel.set()
        if run.mark_stopped():
            self._logger.info("Stop requested")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for the current worker to exit.

        Returns:
            True if no worker is alive anymore
        """
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def take_single_shot(self, config: RunConfig) -> threading.Thread:
        """Capture once and advance once after a fixed 1 second delay.

        Runs beside any active run and never touches its state: no
        duplicate check, no counter, no ``is_running`` change.

        Raises:
            PermissionDenied: If key injection is not authorized
        """
        if not self._permission_check():
            self._logger.error("Accessibility permission is required to send keys")
            raise PermissionDenied("Input injection is not authorized")

        thread = threading.Thread(
            target=self._single_shot_main,
            args=(config,),
            name="shotbar-single-shot",
            daemon=True,
        )
        thread.start()
        return thread

    # Run lifecycle

    def _cancel_active(self) -> None:
        """Cancel the active run and wait until it stops producing side effects."""
        run, thread = self._run, self._thread
        if run is None:
            return

        if run.running.is_set():
            self._logger.info(f"Cancelling run {run.run_id} before starting a new one")
        run.cancel.set()
        run.mark_stopped()

        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def _prepare_session_folder(self, config: RunConfig) -> Optional[Path]:
        """Create the session folder if requested. Failure is not fatal."""
        if not config.auto_create_folder:
            return None

        if config.save_folder.strip():
            base = Path(config.save_folder).expanduser()
        else:
            base = self._default_dir

        try:
            folder = create_session_folder(base, datetime.now())
        except SessionFolderError as e:
            self._logger.warning(f"{e}; saving without a session folder")
            return None

        self._logger.session_folder(folder)
        return folder

    def _set_state(self, new_state: State) -> None:
        """Update state and notify listeners."""
        old_state = self._state
        if old_state == new_state:
            return
        self._state = new_state
        self._logger.state_change(old_state.name, new_state.name)
        for listener in list(self._listeners):
            self._call_listener(listener.on_state_changed, new_state)

    def _call_listener(self, callback, *args) -> None:
        try:
            callback(*args)
        except Exception as e:
            self._logger.exception("Listener failed", e)

    def _notify(self, run: _Run, event: NotificationEvent) -> None:
        """Emit a cue unless the run was cancelled."""
        if run.cancel.is_set():
            return
        try:
            self._notifier.emit(event)
        except Exception as e:
            self._logger.exception(f"Notification {event.value} failed", e)

    def _worker_main(self, run: _Run) -> None:
        """Thread entry point of a run."""
        reason = StopReason.ERROR
        try:
            reason = self._run_loop(run)
        except Exception as e:
            self._logger.exception("Capture loop failed", e)
        finally:
            self._finish(run, reason)

    def _finish(self, run: _Run, reason: StopReason) -> None:
        """Terminal transition of a run."""
        self._set_state(State.Stopping)
        run.mark_stopped()

        session_folder = run.session_folder
        run.session_folder = None

        stats = RunStats(
            reason=reason,
            shot_count=run.shot_count,
            capture_failures=run.capture_failures,
            persist_failures=run.persist_failures,
            advance_failures=run.advance_failures,
            session_folder=session_folder,
        )
        self._last_stats = stats
        self._logger.run_finished(reason.name.lower(), run.shot_count)
        self._set_state(State.Idle)

        for listener in list(self._listeners):
            self._call_listener(listener.on_finished, stats)

    # Capture loop

    def _run_loop(self, run: _Run) -> StopReason:
        """Countdown, then capture/advance until a terminal condition."""
        config = run.config

        if config.initial_delay > 0:
            self._set_state(State.Countdown)
            if not self._countdown(run):
                self._logger.info("Stopped during countdown")
                return StopReason.CANCELLED

        while True:
            if run.cancel.is_set():
                return StopReason.CANCELLED

            self._set_state(State.Capturing)
            image = self._capture(run)
            captured_at = datetime.now()
            if run.cancel.is_set():
                return StopReason.CANCELLED

            if image is not None:
                if config.detect_duplicate and run.judge.is_duplicate(image):
                    self._logger.info("Duplicate frame detected, stopping")
                    self._notify(run, NotificationEvent.COMPLETED)
                    return StopReason.DUPLICATE

                self._set_state(State.Persisting)
                path = self._persist(run, image, captured_at)

                # A write in flight always completes before stopping
                if run.cancel.is_set():
                    return StopReason.CANCELLED

                self._advance(run)

                run.shot_count += 1
                self._logger.set_progress(run.shot_count, config.max_iterations)
                for listener in list(self._listeners):
                    self._call_listener(
                        listener.on_shot, run.shot_count, config.max_iterations, path
                    )

                if run.shot_count >= config.max_iterations:
                    self._notify(run, NotificationEvent.COMPLETED)
                    return StopReason.COMPLETED

            if config.interval > 0 and run.cancel.wait(config.interval):
                return StopReason.CANCELLED

    def _countdown(self, run: _Run) -> bool:
        """Tick once per whole second down to and including zero.

        Returns:
            True if countdown completed, False if cancelled
        """
        for remaining in range(int(run.config.initial_delay), 0, -1):
            if run.cancel.is_set():
                return False
            self._tick(run, remaining)
            if run.cancel.wait(self._tick_interval):
                return False

        if run.cancel.is_set():
            return False
        self._tick(run, 0)
        return True

    def _tick(self, run: _Run, remaining: int) -> None:
        self._notify(run, NotificationEvent.COUNTDOWN_TICK)
        for listener in list(self._listeners):
            self._call_listener(listener.on_countdown_tick, remaining)

    def _capture(self, run: _Run) -> Optional[np.ndarray]:
        """Grab a frame; None if the capture failed."""
        try:
            return self._capture_source.capture_frame()
        except CaptureError as e:
            run.capture_failures += 1
            self._logger.warning(f"Capture failed, skipping iteration: {e}")
            return None

    def _persist(
        self,
        run: _Run,
        image: np.ndarray,
        timestamp: datetime,
    ) -> Optional[Path]:
        """Write the frame. Failure is logged and counted, never raised."""
        config = run.config
        destination = resolve_destination(
            run.session_folder, config.save_folder, self._default_dir
        )
        try:
            path = self._action_sink.persist(
                image, destination, config.effective_prefix, timestamp
            )
        except PersistError as e:
            run.persist_failures += 1
            self._logger.error(f"Save failed: {e}")
            return None

        self._logger.shot_saved(path)
        return path

    def _advance(self, run: _Run) -> None:
        """Send the navigation key. Failure is logged and counted, never raised."""
        try:
            self._action_sink.send_advance_signal(run.config.advance_key)
        except Exception as e:
            run.advance_failures += 1
            self._logger.warning(f"Advance key failed: {type(e).__name__}: {e}")

    # Single shot

    def _single_shot_main(self, config: RunConfig) -> None:
        """Thread entry point of take_single_shot()."""
        try:
            time.sleep(self._single_shot_delay)

            try:
                image = self._capture_source.capture_frame()
            except CaptureError as e:
                self._logger.warning(f"Single shot capture failed: {e}")
                return
            timestamp = datetime.now()

            destination = resolve_destination(None, config.save_folder, self._default_dir)
            try:
                path = self._action_sink.persist(
                    image, destination, config.effective_prefix, timestamp
                )
                self._logger.shot_saved(path)
            except PersistError as e:
                self._logger.error(f"Single shot save failed: {e}")

            self._action_sink.send_advance_signal(config.advance_key)
        except Exception as e:
            self._logger.exception("Single shot failed", e)
