"""Core data models for ShotBar.

Defines the run configuration snapshot, the state machine enums and the
summary handed out when a run ends.
"""

from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Optional

from .constants import (
    COMPLETION_SOUND_DEFAULT,
    COUNTDOWN_SOUND_DEFAULT,
    DUPLICATE_THRESHOLD_DEFAULT,
    FILENAME_PREFIX_DEFAULT,
    INITIAL_DELAY_DEFAULT,
    INTERVAL_DEFAULT,
    MAX_COUNT_DEFAULT,
)


class State(Enum):
    """Capture loop states."""

    Idle = auto()
    """Not running"""

    Countdown = auto()
    """Waiting before the first capture, one tick per second"""

    Capturing = auto()
    """Grabbing the screen and judging duplicates"""

    Persisting = auto()
    """Writing the frame and sending the advance key"""

    Stopping = auto()
    """Terminal transition back to Idle"""


class ArrowKey(Enum):
    """Navigation key sent after each capture.

    Values are the macOS virtual key codes so stored settings stay
    compatible across versions.
    """

    LEFT = 123
    RIGHT = 124
    DOWN = 125
    UP = 126

    @property
    def display_name(self) -> str:
        """Human-readable label."""
        return self.name.capitalize()

    @classmethod
    def from_value(cls, value: object, default: "ArrowKey") -> "ArrowKey":
        """Parse a stored key code or name, falling back to ``default``."""
        if isinstance(value, ArrowKey):
            return value
        try:
            return cls(int(value))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            pass
        if isinstance(value, str) and value.upper() in cls.__members__:
            return cls[value.upper()]
        return default


class DuplicateStrategy(Enum):
    """How two consecutive frames are compared."""

    EXACT = "exact"
    SIMILARITY = "similarity"


class NotificationEvent(Enum):
    """Named cues emitted to the notification port."""

    COUNTDOWN_TICK = "countdownTick"
    COMPLETED = "completed"


class StopReason(Enum):
    """Why a run ended."""

    COMPLETED = auto()
    """Reached max iterations"""

    DUPLICATE = auto()
    """Two consecutive frames judged the same"""

    CANCELLED = auto()
    """stop() or a newer start()"""

    ERROR = auto()
    """Unexpected failure inside the worker"""


@dataclass(frozen=True)
class RunConfig:
    """Settings snapshot taken once at start().

    Attributes:
        advance_key: Key sent after every captured frame
        max_iterations: Number of counted iterations before stopping (>= 1)
        initial_delay: Countdown seconds before the first capture (>= 0)
        interval: Seconds to wait between iterations (>= 0)
        detect_duplicate: Stop when two consecutive frames match
        duplicate_threshold: Strategy-specific sensitivity
        duplicate_strategy: Which duplicate judge to use
        save_folder: Fixed destination directory, empty for the default
        auto_create_folder: Create a timestamped session folder at start
        filename_prefix: Prefix of persisted file names
        countdown_sound: Cue for countdown ticks
        completion_sound: Cue when a run completes
    """

    advance_key: ArrowKey = ArrowKey.DOWN
    max_iterations: int = MAX_COUNT_DEFAULT
    initial_delay: float = INITIAL_DELAY_DEFAULT
    interval: float = INTERVAL_DEFAULT
    detect_duplicate: bool = False
    duplicate_threshold: float = DUPLICATE_THRESHOLD_DEFAULT
    duplicate_strategy: DuplicateStrategy = DuplicateStrategy.EXACT
    save_folder: str = ""
    auto_create_folder: bool = False
    filename_prefix: str = FILENAME_PREFIX_DEFAULT
    countdown_sound: str = COUNTDOWN_SOUND_DEFAULT
    completion_sound: str = COMPLETION_SOUND_DEFAULT

    @property
    def effective_prefix(self) -> str:
        """Filename prefix with the empty-string fallback applied."""
        return self.filename_prefix or FILENAME_PREFIX_DEFAULT


@dataclass(frozen=True)
class RunStats:
    """Summary of a finished run.

    Attributes:
        reason: Terminal transition that ended the run
        shot_count: Counted iterations
        capture_failures: Captures that raised and were skipped
        persist_failures: Frames that could not be written
        advance_failures: Advance keys that could not be sent
        session_folder: Session folder used by the run, if any
    """

    reason: StopReason
    shot_count: int
    capture_failures: int = 0
    persist_failures: int = 0
    advance_failures: int = 0
    session_folder: Optional[Path] = None
