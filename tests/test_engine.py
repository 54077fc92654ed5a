"""Tests for the capture engine state machine.

Verifies that:
- A run performs exactly N capture/advance cycles, then stops
- A duplicate frame stops the run without persist or advance
- Stop during countdown or interval ends the run without side effects
- Restarting never interleaves two runs' side effects
- Capture, persist and advance failures are skipped, not fatal
- Single shot is independent of the run state
"""

import re
import threading
import time

import pytest

from shotbar.core import engine as engine_module
from shotbar.core.duplicate import ExactMatchJudge
from shotbar.core.engine import InvalidConfig, PermissionDenied
from shotbar.core.model import ArrowKey, NotificationEvent, RunConfig, State, StopReason
from shotbar.core.storage import SessionFolderError

from conftest import StubJudge


def quick_config(**overrides) -> RunConfig:
    """Config without countdown or interval."""
    values = dict(
        max_iterations=3,
        initial_delay=0.0,
        interval=0.0,
        countdown_sound="None",
        completion_sound="None",
    )
    values.update(overrides)
    return RunConfig(**values)


class TestRunCompletion:
    """A run without duplicates performs exactly N iterations."""

    @pytest.mark.parametrize("n", [1, 3, 7])
    def test_exactly_n_captures_and_advances(self, make_harness, n: int) -> None:
        """N captures, N advances, N counted shots, then idle."""
        h = make_harness()
        stats = h.run_to_end(quick_config(max_iterations=n))

        assert h.capture.calls == n
        assert len(h.sink.advances) == n
        assert len(h.sink.persisted) == n
        assert stats.shot_count == n
        assert stats.reason == StopReason.COMPLETED
        assert h.engine.is_running is False
        assert h.engine.state == State.Idle

    def test_completed_notification_once(self, make_harness) -> None:
        """Completion emits exactly one completed cue and no ticks without delay."""
        h = make_harness()
        h.run_to_end(quick_config(max_iterations=2))

        assert h.notifier.events == [NotificationEvent.COMPLETED]

    def test_no_side_effects_after_finish(self, make_harness) -> None:
        """Nothing happens once the run reported completion."""
        h = make_harness()
        h.run_to_end(quick_config(max_iterations=2))
        count = len(h.timeline.events)

        time.sleep(0.1)
        assert len(h.timeline.events) == count

    def test_advance_key_and_prefix_from_config(self, make_harness) -> None:
        """The configured key and prefix are used for every iteration."""
        h = make_harness()
        h.run_to_end(quick_config(max_iterations=2, advance_key=ArrowKey.RIGHT, filename_prefix="slide"))

        assert h.sink.advances == [ArrowKey.RIGHT, ArrowKey.RIGHT]
        assert [prefix for _, prefix, _ in h.sink.persisted] == ["slide", "slide"]

    def test_empty_prefix_falls_back_to_capture(self, make_harness) -> None:
        h = make_harness()
        h.run_to_end(quick_config(max_iterations=1, filename_prefix=""))

        assert h.sink.persisted[0][1] == "capture"

    def test_progress_reported_per_shot(self, make_harness) -> None:
        h = make_harness()
        h.run_to_end(quick_config(max_iterations=3))

        assert h.listener.shots == [(1, 3), (2, 3), (3, 3)]

    def test_order_within_iteration(self, make_harness) -> None:
        """capture -> persist -> advance for every iteration."""
        h = make_harness()
        h.run_to_end(quick_config(max_iterations=2))

        kinds = [e[0] for e in h.timeline.events if e[0] != "notify"]
        assert kinds == ["capture", "persist", "advance"] * 2

    def test_shot_count_property(self, make_harness) -> None:
        h = make_harness()
        assert h.engine.shot_count == 0

        h.run_to_end(quick_config(max_iterations=4))
        assert h.engine.shot_count == 4


class TestDuplicateStop:
    """Duplicate detection ends the run early."""

    def test_stops_on_kth_frame(self, make_harness) -> None:
        """Judge says duplicate on call 3: 3 captures, 2 persists, 2 advances."""
        judge = StubJudge(duplicate_on={3})
        h = make_harness(judge=judge)
        stats = h.run_to_end(quick_config(max_iterations=5, detect_duplicate=True))

        assert h.capture.calls == 3
        assert len(h.sink.persisted) == 2
        assert len(h.sink.advances) == 2
        assert stats.reason == StopReason.DUPLICATE
        assert stats.shot_count == 2
        assert h.engine.is_running is False

    def test_duplicate_emits_completed(self, make_harness) -> None:
        judge = StubJudge(duplicate_on={2})
        h = make_harness(judge=judge)
        h.run_to_end(quick_config(max_iterations=5, detect_duplicate=True))

        assert h.notifier.events == [NotificationEvent.COMPLETED]

    def test_judge_ignored_when_detection_disabled(self, make_harness) -> None:
        judge = StubJudge(duplicate_on={1, 2, 3})
        h = make_harness(judge=judge)
        stats = h.run_to_end(quick_config(max_iterations=3, detect_duplicate=False))

        assert judge.calls == 0
        assert stats.reason == StopReason.COMPLETED

    def test_judge_reset_and_threshold_applied_at_start(self, make_harness) -> None:
        judge = StubJudge()
        h = make_harness(judge=judge)
        h.run_to_end(quick_config(detect_duplicate=True, duplicate_threshold=0.25))

        assert judge.resets == 1
        assert judge.thresholds == [0.25]

    def test_exact_judge_stops_on_static_screen(self, make_harness) -> None:
        """An unchanging screen stops after the second capture."""
        h = make_harness(same_frame=True, judge=ExactMatchJudge())
        stats = h.run_to_end(quick_config(max_iterations=10, detect_duplicate=True))

        assert h.capture.calls == 2
        assert stats.shot_count == 1
        assert stats.reason == StopReason.DUPLICATE

    def test_judge_created_from_strategy(self, make_harness) -> None:
        """Without an injected judge the configured strategy is used."""
        h = make_harness(same_frame=True)
        stats = h.run_to_end(quick_config(max_iterations=10, detect_duplicate=True))

        assert stats.reason == StopReason.DUPLICATE


class TestCountdown:
    """Countdown phase before the first capture."""

    def test_ticks_down_to_zero(self, make_harness) -> None:
        """initial_delay=2 ticks 2, 1, 0 before capturing."""
        h = make_harness()
        h.run_to_end(quick_config(max_iterations=1, initial_delay=2.0))

        assert h.listener.ticks == [2, 1, 0]
        assert h.notifier.count(NotificationEvent.COUNTDOWN_TICK) == 3
        first_capture = h.timeline.events.index(("capture", 1))
        ticks = [i for i, e in enumerate(h.timeline.events) if e == ("notify", NotificationEvent.COUNTDOWN_TICK)]
        assert max(ticks) < first_capture

    def test_countdown_state_reported(self, make_harness) -> None:
        h = make_harness()
        h.run_to_end(quick_config(max_iterations=1, initial_delay=1.0))

        assert h.listener.states[0] == State.Countdown
        assert State.Capturing in h.listener.states
        assert h.listener.states[-1] == State.Idle

    def test_stop_during_countdown(self, make_harness) -> None:
        """Stop with ticks remaining: no capture, no advance, no more ticks."""
        h = make_harness()
        h.engine.start(quick_config(initial_delay=60.0))
        assert h.notifier.first_tick.wait(2.0)

        h.engine.stop()
        ticks_at_stop = h.notifier.count(NotificationEvent.COUNTDOWN_TICK)
        assert h.engine.is_running is False

        assert h.engine.wait(2.0)
        assert h.capture.calls == 0
        assert h.sink.advances == []
        assert h.notifier.count(NotificationEvent.COUNTDOWN_TICK) == ticks_at_stop
        assert NotificationEvent.COMPLETED not in h.notifier.events
        assert h.listener.finished[-1].reason == StopReason.CANCELLED


class TestStop:
    """stop() is non-blocking, idempotent and cooperative."""

    def test_stop_when_idle_is_noop(self, make_harness) -> None:
        h = make_harness()
        h.engine.stop()
        h.engine.stop()

        assert h.engine.is_running is False
        assert h.listener.finished == []

    def test_stop_during_interval_wait(self, make_harness) -> None:
        """A long interval is interrupted promptly."""
        h = make_harness()
        h.engine.start(quick_config(max_iterations=5, interval=10.0))
        assert h.listener.first_shot.wait(2.0)

        started = time.monotonic()
        h.engine.stop()
        h.engine.stop()
        assert h.engine.wait(2.0)

        assert time.monotonic() - started < 2.0
        assert h.capture.calls == 1
        assert len(h.listener.finished) == 1
        assert h.listener.finished[0].reason == StopReason.CANCELLED

    def test_is_running_true_while_active(self, make_harness) -> None:
        h = make_harness()
        h.engine.start(quick_config(max_iterations=5, interval=10.0))
        try:
            assert h.engine.is_running is True
        finally:
            h.engine.stop()
            h.engine.wait(2.0)

    def test_stop_while_persisting_finishes_write(self, make_harness) -> None:
        """A write in flight completes; the frame is not advanced or counted."""
        gate = threading.Event()
        h = make_harness(persist_gate=gate)
        h.engine.start(quick_config(max_iterations=5))
        assert h.sink.persist_entered.wait(2.0)

        h.engine.stop()
        assert h.engine.is_running is False
        gate.set()
        assert h.engine.wait(2.0)

        assert len(h.sink.persisted) == 1
        assert h.sink.advances == []
        assert h.engine.shot_count == 0
        stats = h.listener.finished[-1]
        assert stats.shot_count == 0
        assert stats.reason == StopReason.CANCELLED


class TestRestart:
    """start() while running cancels the previous run first."""

    def test_runs_never_interleave(self, make_harness) -> None:
        """After the new run's first side effect, the old run does nothing."""
        h = make_harness()
        h.engine.start(quick_config(max_iterations=1000, interval=0.01, filename_prefix="old", advance_key=ArrowKey.LEFT))
        deadline = time.monotonic() + 2.0
        while len(h.sink.advances) < 3 and time.monotonic() < deadline:
            time.sleep(0.01)

        h.engine.start(quick_config(max_iterations=3, filename_prefix="new", advance_key=ArrowKey.RIGHT))
        assert h.engine.wait(5.0)

        effects = [e for e in h.timeline.events if e[0] in ("persist", "advance")]
        first_new = next(i for i, e in enumerate(effects) if e in (("persist", "new"), ("advance", ArrowKey.RIGHT)))
        after = effects[first_new:]
        assert ("persist", "old") not in after
        assert ("advance", ArrowKey.LEFT) not in after
        assert h.sink.advances.count(ArrowKey.RIGHT) == 3

    def test_old_run_reports_cancelled(self, make_harness) -> None:
        h = make_harness()
        h.engine.start(quick_config(max_iterations=1000, interval=0.05))
        assert h.listener.first_shot.wait(2.0)

        h.engine.start(quick_config(max_iterations=1))
        assert h.engine.wait(5.0)

        reasons = [s.reason for s in h.listener.finished]
        assert reasons == [StopReason.CANCELLED, StopReason.COMPLETED]
        assert h.engine.is_running is False

    def test_shot_count_restarts_at_zero(self, make_harness) -> None:
        h = make_harness()
        h.run_to_end(quick_config(max_iterations=2))
        stats = h.run_to_end(quick_config(max_iterations=1))

        assert stats.shot_count == 1
        assert h.listener.shots[-1] == (1, 1)


class TestFailures:
    """Transient failures skip a step; they never end the run."""

    def test_capture_failure_not_counted(self, make_harness) -> None:
        """Failure on capture 2 of N=3: 4 captures, 3 shots, 3 advances."""
        h = make_harness(fail_on={2})
        stats = h.run_to_end(quick_config(max_iterations=3, interval=0.05))

        assert h.capture.calls == 4
        assert stats.shot_count == 3
        assert stats.capture_failures == 1
        assert len(h.sink.advances) == 3
        assert len(h.sink.persisted) == 3
        assert stats.reason == StopReason.COMPLETED

    def test_interval_wait_follows_capture_failure(self, make_harness) -> None:
        """The next capture still waits for the interval."""
        h = make_harness(fail_on={2})
        h.run_to_end(quick_config(max_iterations=3, interval=0.05))

        gap = h.capture.times[2] - h.capture.times[1]
        assert gap >= 0.045

    def test_persist_failure_still_advances(self, make_harness) -> None:
        h = make_harness(fail_persist=True)
        stats = h.run_to_end(quick_config(max_iterations=3))

        assert len(h.sink.advances) == 3
        assert stats.shot_count == 3
        assert stats.persist_failures == 3
        assert stats.reason == StopReason.COMPLETED

    def test_listener_error_does_not_stop_run(self, make_harness) -> None:
        h = make_harness()

        def broken(*args) -> None:
            raise RuntimeError("listener broke")

        h.listener.on_shot = broken  # type: ignore[method-assign]
        stats = h.run_to_end(quick_config(max_iterations=2))

        assert stats.shot_count == 2

    def test_advance_failure_does_not_end_run(self, make_harness) -> None:
        """A key injection error is logged; the run keeps going."""
        h = make_harness(fail_advance=True)
        stats = h.run_to_end(quick_config(max_iterations=3))

        assert stats.reason == StopReason.COMPLETED
        assert stats.shot_count == 3
        assert stats.advance_failures == 3
        assert len(h.sink.persisted) == 3
        assert any("Advance key failed" in e.message for e in h.logger.buffer.get_all())


class TestPreconditions:
    """start() refuses to run without permission or with bad settings."""

    def test_permission_denied(self, make_harness) -> None:
        judge = StubJudge()
        h = make_harness(permission=False, judge=judge)

        with pytest.raises(PermissionDenied):
            h.engine.start(quick_config())

        assert h.engine.is_running is False
        assert h.engine.state == State.Idle
        assert h.capture.calls == 0
        assert judge.resets == 0
        assert h.timeline.events == []

    @pytest.mark.parametrize(
        "overrides",
        [
            {"max_iterations": 0},
            {"initial_delay": -1.0},
            {"interval": -0.5},
            {"duplicate_threshold": -0.1},
        ],
    )
    def test_invalid_config(self, make_harness, overrides: dict) -> None:
        h = make_harness()

        with pytest.raises(InvalidConfig):
            h.engine.start(quick_config(**overrides))

        assert h.engine.is_running is False
        assert h.capture.calls == 0


class TestSessionFolder:
    """Per-run session folder handling."""

    def test_created_under_save_folder(self, make_harness, tmp_path) -> None:
        base = tmp_path / "out"
        h = make_harness(write=True)
        stats = h.run_to_end(quick_config(max_iterations=2, save_folder=str(base), auto_create_folder=True))

        assert stats.session_folder is not None
        assert stats.session_folder.parent == base
        assert re.fullmatch(r"\d{8}_\d{6}", stats.session_folder.name)
        assert {dest for dest, _, _ in h.sink.persisted} == {stats.session_folder}

    def test_created_under_default_dir(self, make_harness, tmp_path) -> None:
        h = make_harness()
        stats = h.run_to_end(quick_config(max_iterations=1, auto_create_folder=True))

        assert stats.session_folder is not None
        assert stats.session_folder.parent == tmp_path

    def test_creation_failure_falls_back(self, make_harness, tmp_path, monkeypatch) -> None:
        """Failure is logged and the run saves to the configured folder."""

        def failing(base, timestamp):
            raise SessionFolderError("read-only")

        monkeypatch.setattr(engine_module, "create_session_folder", failing)
        base = tmp_path / "fixed"
        h = make_harness()
        stats = h.run_to_end(quick_config(max_iterations=2, save_folder=str(base), auto_create_folder=True))

        assert stats.reason == StopReason.COMPLETED
        assert stats.session_folder is None
        assert {dest for dest, _, _ in h.sink.persisted} == {base}
        assert any("session folder" in e.message for e in h.logger.buffer.get_all())

    def test_fixed_folder_without_session(self, make_harness, tmp_path) -> None:
        base = tmp_path / "fixed"
        h = make_harness()
        h.run_to_end(quick_config(max_iterations=1, save_folder=str(base)))

        assert h.sink.persisted[0][0] == base

    def test_written_files_match_captures(self, make_harness, tmp_path) -> None:
        """Files land in the session folder with the expected names."""
        h = make_harness(write=True)
        stats = h.run_to_end(quick_config(max_iterations=1, auto_create_folder=True, filename_prefix="page"))

        files = list(stats.session_folder.iterdir())
        assert len(files) == 1
        assert re.fullmatch(r"page_\d{8}_\d{6}\.png", files[0].name)


class TestSingleShot:
    """take_single_shot() is independent of the continuous run."""

    def test_one_capture_one_advance(self, make_harness) -> None:
        h = make_harness()
        thread = h.engine.take_single_shot(quick_config(advance_key=ArrowKey.UP))
        thread.join(2.0)

        assert h.capture.calls == 1
        assert h.sink.advances == [ArrowKey.UP]
        assert len(h.sink.persisted) == 1
        assert h.engine.is_running is False
        assert h.listener.shots == []
        assert h.listener.finished == []

    def test_does_not_touch_active_run(self, make_harness) -> None:
        h = make_harness()
        h.engine.start(quick_config(max_iterations=4, interval=0.05, advance_key=ArrowKey.DOWN))
        assert h.listener.first_shot.wait(2.0)

        thread = h.engine.take_single_shot(quick_config(advance_key=ArrowKey.UP))
        thread.join(2.0)
        assert h.engine.wait(5.0)

        stats = h.listener.finished[-1]
        assert stats.shot_count == 4
        assert stats.reason == StopReason.COMPLETED
        assert h.sink.advances.count(ArrowKey.UP) == 1
        assert h.sink.advances.count(ArrowKey.DOWN) == 4

    def test_never_uses_session_folder(self, make_harness, tmp_path) -> None:
        h = make_harness()
        thread = h.engine.take_single_shot(quick_config(auto_create_folder=True))
        thread.join(2.0)

        assert h.sink.persisted[0][0] == tmp_path
        assert list(tmp_path.iterdir()) == []

    def test_permission_denied(self, make_harness) -> None:
        h = make_harness(permission=False)

        with pytest.raises(PermissionDenied):
            h.engine.take_single_shot(quick_config())
        assert h.capture.calls == 0

    def test_capture_failure_skips_advance(self, make_harness) -> None:
        h = make_harness(fail_on={1})
        thread = h.engine.take_single_shot(quick_config())
        thread.join(2.0)

        assert h.capture.calls == 1
        assert h.sink.advances == []
