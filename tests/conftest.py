"""Shared fakes for engine tests.

Every collaborator of the capture engine is replaced by an in-memory
fake that records what happened, in order, across threads.
"""

import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

import numpy as np
import pytest

from shotbar.core.capture import CaptureError
from shotbar.core.duplicate import DuplicateJudge
from shotbar.core.engine import CaptureEngine, EngineListener
from shotbar.core.logging import Logger
from shotbar.core.model import ArrowKey, NotificationEvent, RunStats, State
from shotbar.core.storage import PersistError, save_image


class Timeline:
    """Thread-safe ordered log of side effects."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.events: list[tuple] = []

    def record(self, *event: object) -> None:
        with self._lock:
            self.events.append(event)

    def kinds(self, kind: str) -> list[tuple]:
        with self._lock:
            return [e for e in self.events if e[0] == kind]


class FakeCaptureSource:
    """Returns a different small frame per call; can fail on given calls."""

    def __init__(self, timeline: Timeline, fail_on: Iterable[int] = (), same_frame: bool = False) -> None:
        self._timeline = timeline
        self._fail_on = set(fail_on)
        self._same_frame = same_frame
        self.calls = 0
        self.times: list[float] = []

    def capture_frame(self) -> np.ndarray:
        self.calls += 1
        self.times.append(time.monotonic())
        self._timeline.record("capture", self.calls)
        if self.calls in self._fail_on:
            raise CaptureError(f"capture {self.calls} failed")
        value = 7 if self._same_frame else self.calls % 256
        return np.full((8, 8, 4), value, dtype=np.uint8)


class FakeActionSink:
    """Records advances and persists; can write real files, fail or block."""

    def __init__(
        self,
        timeline: Timeline,
        fail_persist: bool = False,
        write: bool = False,
        fail_advance: bool = False,
        persist_gate: Optional[threading.Event] = None,
    ) -> None:
        self._timeline = timeline
        self._fail_persist = fail_persist
        self._write = write
        self._fail_advance = fail_advance
        self._persist_gate = persist_gate
        self.persist_entered = threading.Event()
        self.advances: list[ArrowKey] = []
        self.persisted: list[tuple[Path, str, datetime]] = []

    def send_advance_signal(self, key: ArrowKey) -> None:
        self._timeline.record("advance", key)
        if self._fail_advance:
            raise OSError("display connection lost")
        self.advances.append(key)

    def persist(self, image: np.ndarray, destination_dir: Path, filename_prefix: str, timestamp: datetime) -> Path:
        self._timeline.record("persist", filename_prefix)
        self.persist_entered.set()
        if self._persist_gate is not None:
            self._persist_gate.wait(5.0)
        if self._fail_persist:
            raise PersistError("disk full")
        self.persisted.append((destination_dir, filename_prefix, timestamp))
        if self._write:
            return save_image(image, destination_dir, filename_prefix, timestamp)
        return Path(destination_dir) / f"{filename_prefix}.png"


class FakeNotifier:
    """Records events; sets ``first_tick`` on the first countdown tick."""

    def __init__(self, timeline: Timeline) -> None:
        self._timeline = timeline
        self.events: list[NotificationEvent] = []
        self.first_tick = threading.Event()

    def emit(self, event: NotificationEvent) -> None:
        self.events.append(event)
        self._timeline.record("notify", event)
        if event == NotificationEvent.COUNTDOWN_TICK:
            self.first_tick.set()

    def count(self, event: NotificationEvent) -> int:
        return sum(1 for e in self.events if e == event)


class StubJudge(DuplicateJudge):
    """Judges the frames of the given call numbers as duplicates."""

    def __init__(self, duplicate_on: Iterable[int] = ()) -> None:
        self._duplicate_on = set(duplicate_on)
        self.calls = 0
        self.resets = 0
        self.thresholds: list[float] = []

    def reset(self) -> None:
        self.resets += 1
        self.calls = 0

    def set_threshold(self, value: float) -> None:
        self.thresholds.append(value)

    def is_duplicate(self, image: np.ndarray) -> bool:
        self.calls += 1
        return self.calls in self._duplicate_on


class RecordingListener(EngineListener):
    """Collects engine callbacks."""

    def __init__(self) -> None:
        self.states: list[State] = []
        self.ticks: list[int] = []
        self.shots: list[tuple[int, int]] = []
        self.finished: list[RunStats] = []
        self.first_shot = threading.Event()
        self.done = threading.Event()

    def on_state_changed(self, state: State) -> None:
        self.states.append(state)

    def on_countdown_tick(self, remaining: int) -> None:
        self.ticks.append(remaining)

    def on_shot(self, shot_count: int, total: int, path: Optional[Path]) -> None:
        self.shots.append((shot_count, total))
        self.first_shot.set()

    def on_finished(self, stats: RunStats) -> None:
        self.finished.append(stats)
        self.done.set()


class EngineHarness:
    """An engine wired to fakes."""

    def __init__(
        self,
        tmp_path: Path,
        fail_on: Iterable[int] = (),
        same_frame: bool = False,
        fail_persist: bool = False,
        fail_advance: bool = False,
        persist_gate: Optional[threading.Event] = None,
        write: bool = False,
        judge: Optional[DuplicateJudge] = None,
        permission: bool = True,
    ) -> None:
        self.timeline = Timeline()
        self.capture = FakeCaptureSource(self.timeline, fail_on=fail_on, same_frame=same_frame)
        self.sink = FakeActionSink(
            self.timeline,
            fail_persist=fail_persist,
            write=write,
            fail_advance=fail_advance,
            persist_gate=persist_gate,
        )
        self.notifier = FakeNotifier(self.timeline)
        self.listener = RecordingListener()
        self.logger = Logger()
        self.engine = CaptureEngine(
            capture_source=self.capture,
            action_sink=self.sink,
            notifier=self.notifier,
            permission_check=lambda: permission,
            duplicate_judge=judge,
            default_dir=tmp_path,
            logger=self.logger,
            tick_interval=0.05,
            single_shot_delay=0.01,
        )
        self.engine.add_listener(self.listener)

    def run_to_end(self, config, timeout: float = 5.0) -> RunStats:
        self.engine.start(config)
        assert self.engine.wait(timeout), "run did not finish"
        assert self.listener.finished, "on_finished not called"
        return self.listener.finished[-1]


@pytest.fixture
def make_harness(tmp_path: Path) -> Callable[..., EngineHarness]:
    """Factory for engine harnesses writing under tmp_path."""

    def factory(**kwargs) -> EngineHarness:
        return EngineHarness(tmp_path, **kwargs)

    return factory
