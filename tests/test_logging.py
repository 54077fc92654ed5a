"""Tests for the circular log buffer and logger context."""

from datetime import datetime
from pathlib import Path

from shotbar.core.logging import LogBuffer, LogEntry, Logger, LogLevel, get_logger, set_logger


class TestLogEntryFormat:
    def test_info_plain(self) -> None:
        entry = LogEntry(datetime(2024, 1, 1, 9, 30, 5), LogLevel.INFO, "Started")
        assert entry.format() == "[09:30:05] Started"

    def test_error_with_context(self) -> None:
        entry = LogEntry(
            datetime(2024, 1, 1, 9, 30, 5),
            LogLevel.ERROR,
            "Save failed",
            state="Persisting",
            progress=(2, 10),
        )
        assert entry.format() == "[09:30:05] [ERROR] [Persisting] [2/10] Save failed"

    def test_path_appended(self) -> None:
        entry = LogEntry(datetime(2024, 1, 1), LogLevel.INFO, "Saved", path="/a/b.png")
        assert entry.format().endswith("Saved -> /a/b.png")


class TestLogBuffer:
    def test_logger_writes_to_given_empty_buffer(self) -> None:
        """An empty buffer passed in is the one the logger writes to."""
        buffer = LogBuffer()
        logger = Logger(buffer)

        assert logger.buffer is buffer
        logger.info("first")
        assert [e.message for e in buffer.get_all()] == ["first"]

    def test_keeps_most_recent_entries(self) -> None:
        buffer = LogBuffer(max_size=3)
        logger = Logger(buffer)
        for i in range(5):
            logger.info(f"m{i}")

        assert len(buffer) == 3
        assert [e.message for e in buffer.get_all()] == ["m2", "m3", "m4"]
        assert [e.message for e in buffer.get_recent(2)] == ["m3", "m4"]

    def test_listener_receives_entries(self) -> None:
        buffer = LogBuffer()
        received: list[LogEntry] = []
        buffer.add_listener(received.append)

        Logger(buffer).warning("careful")

        assert [e.message for e in received] == ["careful"]
        assert received[0].level == LogLevel.WARNING

    def test_failing_listener_does_not_break_logging(self) -> None:
        buffer = LogBuffer()

        def broken(entry: LogEntry) -> None:
            raise RuntimeError("boom")

        received: list[LogEntry] = []
        buffer.add_listener(broken)
        buffer.add_listener(received.append)

        Logger(buffer).info("still logged")

        assert len(buffer) == 1
        assert len(received) == 1

    def test_removed_listener_not_called(self) -> None:
        buffer = LogBuffer()
        received: list[LogEntry] = []
        buffer.add_listener(received.append)
        buffer.remove_listener(received.append)

        Logger(buffer).info("quiet")
        assert received == []


class TestLoggerContext:
    def test_state_and_progress_attached(self) -> None:
        logger = Logger()
        logger.state_change("Idle", "Capturing")
        logger.set_progress(3, 8)
        entry = logger.info("hello")

        assert entry.state == "Capturing"
        assert entry.progress == (3, 8)

    def test_state_change_is_debug(self) -> None:
        entry = Logger().state_change("Idle", "Countdown")
        assert entry.level == LogLevel.DEBUG
        assert entry.message == "State: Idle -> Countdown"

    def test_shot_saved_carries_path(self) -> None:
        entry = Logger().shot_saved(Path("/tmp/a.png"))
        assert entry.path == str(Path("/tmp/a.png"))

    def test_exception_names_error(self) -> None:
        entry = Logger().exception("Capture loop failed", KeyError("x"))
        assert entry.level == LogLevel.ERROR
        assert "KeyError" in entry.message

    def test_clear_context(self) -> None:
        logger = Logger()
        logger.set_state("Capturing")
        logger.set_progress(1, 2)
        logger.clear_context()
        entry = logger.info("x")
        assert entry.state is None
        assert entry.progress is None


class TestGlobalLogger:
    def test_set_logger_replaces_global(self) -> None:
        previous = get_logger()
        replacement = Logger()
        try:
            set_logger(replacement)
            assert get_logger() is replacement
        finally:
            set_logger(previous)
