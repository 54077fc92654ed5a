"""Thread-safe logging system with circular buffer.

Provides a logging interface for the capture engine that:
- Uses a circular buffer (max 200 entries) to prevent memory growth
- Is thread-safe for worker thread -> UI thread communication
- Formats log entries with timestamps, state and shot progress
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Optional

from .constants import LOG_BUFFER_SIZE


class LogLevel(Enum):
    """Log entry severity levels."""

    DEBUG = auto()
    INFO = auto()
    WARNING = auto()
    ERROR = auto()


@dataclass
class LogEntry:
    """A single log entry.

    Attributes:
        timestamp: When the entry was created
        level: Severity level
        message: Log message content
        state: Current engine state (if applicable)
        progress: Shots taken as (i, N) tuple (if applicable)
        path: File the entry refers to (if applicable)
    """

    timestamp: datetime
    level: LogLevel
    message: str
    state: Optional[str] = None
    progress: Optional[tuple[int, int]] = None
    path: Optional[str] = None

    def format(self) -> str:
        """Format the log entry as a string."""
        time_str = self.timestamp.strftime("%H:%M:%S")
        parts = [f"[{time_str}]"]

        if self.level in (LogLevel.WARNING, LogLevel.ERROR):
            parts.append(f"[{self.level.name}]")

        if self.state:
            parts.append(f"[{self.state}]")

        if self.progress:
            i, n = self.progress
            parts.append(f"[{i}/{n}]")

        parts.append(self.message)

        if self.path is not None:
            parts.append(f"-> {self.path}")

        return " ".join(parts)


@dataclass
class LogBuffer:
    """Thread-safe circular buffer for log entries.

    Uses a deque with maxlen to automatically discard old entries.
    Thread-safe for multiple writers and readers.
    """

    max_size: int = LOG_BUFFER_SIZE
    _buffer: deque[LogEntry] = field(default_factory=lambda: deque(maxlen=LOG_BUFFER_SIZE))
    _lock: Lock = field(default_factory=Lock)
    _listeners: list[Callable[[LogEntry], None]] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Reinitialize buffer with correct maxlen if max_size differs."""
        if self._buffer.maxlen != self.max_size:
            self._buffer = deque(maxlen=self.max_size)

    def add(self, entry: LogEntry) -> None:
        """Add a log entry to the buffer (thread-safe)."""
        with self._lock:
            self._buffer.append(entry)
            listeners = list(self._listeners)

        # Notify outside the lock; a listener may log again
        for listener in listeners:
            try:
                listener(entry)
            except Exception:
                pass  # A broken view must not break the capture loop

    def get_all(self) -> list[LogEntry]:
        """Get all entries in the buffer (thread-safe)."""
        with self._lock:
            return list(self._buffer)

    def get_recent(self, count: int) -> list[LogEntry]:
        """Get the most recent N entries (thread-safe)."""
        with self._lock:
            if count >= len(self._buffer):
                return list(self._buffer)
            return list(self._buffer)[-count:]

    def clear(self) -> None:
        """Clear all entries (thread-safe)."""
        with self._lock:
            self._buffer.clear()

    def add_listener(self, callback: Callable[[LogEntry], None]) -> None:
        """Add a listener to be notified of new entries."""
        with self._lock:
            self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[LogEntry], None]) -> None:
        """Remove a listener."""
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def __len__(self) -> int:
        """Return current buffer size."""
        with self._lock:
            return len(self._buffer)


class Logger:
    """Main logging interface for the capture engine.

    Provides convenience methods for logging at different levels
    with optional context (state, shot progress, file path).
    """

    def __init__(self, buffer: Optional[LogBuffer] = None) -> None:
        """Initialize logger with optional existing buffer."""
        self._buffer = buffer if buffer is not None else LogBuffer()
        self._current_state: Optional[str] = None
        self._current_progress: Optional[tuple[int, int]] = None

    @property
    def buffer(self) -> LogBuffer:
        """Access the underlying log buffer."""
        return self._buffer

    def set_state(self, state: str) -> None:
        """Set the current state for subsequent log entries."""
        self._current_state = state

    def set_progress(self, current: int, total: int) -> None:
        """Set the current progress for subsequent log entries.

        Args:
            current: Shots taken so far
            total: Configured max iterations
        """
        self._current_progress = (current, total)

    def clear_context(self) -> None:
        """Clear current state and progress context."""
        self._current_state = None
        self._current_progress = None

    def _log(
        self,
        level: LogLevel,
        message: str,
        path: Optional[Path] = None,
    ) -> LogEntry:
        """Internal logging method."""
        entry = LogEntry(
            timestamp=datetime.now(),
            level=level,
            message=message,
            state=self._current_state,
            progress=self._current_progress,
            path=str(path) if path is not None else None,
        )
        self._buffer.add(entry)
        return entry

    def debug(self, message: str, **kwargs: Any) -> LogEntry:
        """Log a debug message."""
        return self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> LogEntry:
        """Log an info message."""
        return self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> LogEntry:
        """Log a warning message."""
        return self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> LogEntry:
        """Log an error message."""
        return self._log(LogLevel.ERROR, message, **kwargs)

    def exception(self, message: str, error: BaseException) -> LogEntry:
        """Log an error together with the exception that caused it."""
        return self.error(f"{message}: {type(error).__name__}: {error}")

    def state_change(self, old_state: str, new_state: str) -> LogEntry:
        """Log a state transition."""
        self.set_state(new_state)
        return self.debug(f"State: {old_state} -> {new_state}")

    def shot_saved(self, path: Path) -> LogEntry:
        """Log a persisted frame."""
        return self.info("Saved", path=path)

    def session_folder(self, path: Path) -> LogEntry:
        """Log the session folder created for a run."""
        return self.info("Session folder created", path=path)

    def run_finished(self, reason: str, shot_count: int) -> LogEntry:
        """Log the end of a run."""
        return self.info(f"Run finished ({reason}), {shot_count} shots")


# Global logger instance for convenience
_global_logger: Optional[Logger] = None


def get_logger() -> Logger:
    """Get the global logger instance, creating one if needed."""
    global _global_logger
    if _global_logger is None:
        _global_logger = Logger()
    return _global_logger


def set_logger(logger: Logger) -> None:
    """Set the global logger instance."""
    global _global_logger
    _global_logger = logger
