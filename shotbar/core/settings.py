"""Persistent user settings.

Settings live in a key-value store (QSettings in the application, a dict
in tests). The engine never reads the store itself: load_run_config()
takes one snapshot per start().
"""

from typing import Any, Optional, Protocol

from PySide6.QtCore import QSettings

from .constants import (
    COMPLETION_SOUND_DEFAULT,
    COUNTDOWN_SOUND_DEFAULT,
    DUPLICATE_THRESHOLD_DEFAULT,
    FILENAME_PREFIX_DEFAULT,
    INITIAL_DELAY_DEFAULT,
    INTERVAL_DEFAULT,
    MAX_COUNT_DEFAULT,
)
from .model import ArrowKey, DuplicateStrategy, RunConfig

ORGANIZATION_NAME = "ShotBar"
APPLICATION_NAME = "ShotBar"

# Setting keys
KEY_ARROW_KEY = "arrowKey"
KEY_MAX_COUNT = "maxCount"
KEY_INITIAL_DELAY = "initialDelay"
KEY_INTERVAL_DELAY = "intervalDelay"
KEY_SAVE_FOLDER = "saveFolderPath"
KEY_AUTO_CREATE_FOLDER = "autoCreateFolder"
KEY_FILENAME_PREFIX = "filenamePrefix"
KEY_DETECT_DUPLICATE = "detectDuplicate"
KEY_DUPLICATE_THRESHOLD = "duplicateThreshold"
KEY_DUPLICATE_STRATEGY = "duplicateStrategy"
KEY_COUNTDOWN_SOUND = "countDownSound"
KEY_COMPLETION_SOUND = "completionSound"


class SettingsStore(Protocol):
    """Minimal key-value store."""

    def value(self, key: str, default: Any = None) -> Any:
        """Read a value, ``default`` if missing."""

    def set_value(self, key: str, value: Any) -> None:
        """Write a value."""


class DictSettingsStore:
    """In-memory settings store."""

    def __init__(self, values: Optional[dict[str, Any]] = None) -> None:
        self._values: dict[str, Any] = dict(values or {})

    def value(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set_value(self, key: str, value: Any) -> None:
        self._values[key] = value


class QSettingsStore:
    """Settings store backed by QSettings (registry / plist / ini)."""

    def __init__(self, settings: Optional[QSettings] = None) -> None:
        self._settings = settings or QSettings(ORGANIZATION_NAME, APPLICATION_NAME)

    def value(self, key: str, default: Any = None) -> Any:
        return self._settings.value(key, default)

    def set_value(self, key: str, value: Any) -> None:
        self._settings.setValue(key, value)

    def sync(self) -> None:
        """Flush pending writes to permanent storage."""
        self._settings.sync()


# QSettings may hand back strings (ini backend, plist quirks), so every
# read goes through a tolerant coercion with a fallback.


def _as_int(value: Any, default: int) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off", ""):
            return False
    return default


def _as_str(value: Any, default: str) -> str:
    if value is None:
        return default
    return str(value)


def _as_strategy(value: Any) -> DuplicateStrategy:
    try:
        return DuplicateStrategy(str(value).lower())
    except ValueError:
        return DuplicateStrategy.EXACT


def load_run_config(store: SettingsStore) -> RunConfig:
    """Snapshot every run setting from ``store``.

    Missing or malformed values fall back to their defaults.
    """
    return RunConfig(
        advance_key=ArrowKey.from_value(
            store.value(KEY_ARROW_KEY, ArrowKey.DOWN.value), ArrowKey.DOWN
        ),
        max_iterations=_as_int(store.value(KEY_MAX_COUNT), MAX_COUNT_DEFAULT),
        initial_delay=_as_float(
            store.value(KEY_INITIAL_DELAY), INITIAL_DELAY_DEFAULT
        ),
        interval=_as_float(store.value(KEY_INTERVAL_DELAY), INTERVAL_DEFAULT),
        detect_duplicate=_as_bool(store.value(KEY_DETECT_DUPLICATE), False),
        duplicate_threshold=_as_float(
            store.value(KEY_DUPLICATE_THRESHOLD), DUPLICATE_THRESHOLD_DEFAULT
        ),
        duplicate_strategy=_as_strategy(
            store.value(KEY_DUPLICATE_STRATEGY, DuplicateStrategy.EXACT.value)
        ),
        save_folder=_as_str(store.value(KEY_SAVE_FOLDER), ""),
        auto_create_folder=_as_bool(store.value(KEY_AUTO_CREATE_FOLDER), False),
        filename_prefix=_as_str(
            store.value(KEY_FILENAME_PREFIX), FILENAME_PREFIX_DEFAULT
        ),
        countdown_sound=_as_str(
            store.value(KEY_COUNTDOWN_SOUND), COUNTDOWN_SOUND_DEFAULT
        ),
        completion_sound=_as_str(
            store.value(KEY_COMPLETION_SOUND), COMPLETION_SOUND_DEFAULT
        ),
    )


def save_run_config(store: SettingsStore, config: RunConfig) -> None:
    """Write every field of ``config`` back to ``store``."""
    store.set_value(KEY_ARROW_KEY, config.advance_key.value)
    store.set_value(KEY_MAX_COUNT, config.max_iterations)
    store.set_value(KEY_INITIAL_DELAY, config.initial_delay)
    store.set_value(KEY_INTERVAL_DELAY, config.interval)
    store.set_value(KEY_DETECT_DUPLICATE, config.detect_duplicate)
    store.set_value(KEY_DUPLICATE_THRESHOLD, config.duplicate_threshold)
    store.set_value(KEY_DUPLICATE_STRATEGY, config.duplicate_strategy.value)
    store.set_value(KEY_SAVE_FOLDER, config.save_folder)
    store.set_value(KEY_AUTO_CREATE_FOLDER, config.auto_create_folder)
    store.set_value(KEY_FILENAME_PREFIX, config.filename_prefix)
    store.set_value(KEY_COUNTDOWN_SOUND, config.countdown_sound)
    store.set_value(KEY_COMPLETION_SOUND, config.completion_sound)
