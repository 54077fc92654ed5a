"""Core capture engine and utilities.

This package provides the core functionality for ShotBar:
- Data models (RunConfig, State, ArrowKey, etc.)
- Screen capture of the primary display
- Duplicate frame detection
- Capture engine with state machine
- Logging with circular buffer
- Platform-specific adapters
"""

from .constants import (
    COUNTDOWN_TICK_SEC,
    DUPLICATE_THRESHOLD_DEFAULT,
    FILENAME_PREFIX_DEFAULT,
    INITIAL_DELAY_DEFAULT,
    INTERVAL_DEFAULT,
    LOG_BUFFER_SIZE,
    MAX_COUNT_DEFAULT,
    SINGLE_SHOT_DELAY_SEC,
)
from .model import (
    ArrowKey,
    DuplicateStrategy,
    NotificationEvent,
    RunConfig,
    RunStats,
    State,
    StopReason,
)

__all__ = [
    # Constants
    "COUNTDOWN_TICK_SEC",
    "SINGLE_SHOT_DELAY_SEC",
    "MAX_COUNT_DEFAULT",
    "INITIAL_DELAY_DEFAULT",
    "INTERVAL_DEFAULT",
    "DUPLICATE_THRESHOLD_DEFAULT",
    "FILENAME_PREFIX_DEFAULT",
    "LOG_BUFFER_SIZE",
    # Models
    "State",
    "ArrowKey",
    "DuplicateStrategy",
    "NotificationEvent",
    "StopReason",
    "RunConfig",
    "RunStats",
]
