"""Collaborator interfaces consumed by the capture engine.

The engine only depends on these narrow contracts; platform adapters
(mss capture, pynput keys, Qt sounds) and test fakes implement them.
"""

from datetime import datetime
from pathlib import Path
from typing import Callable, Protocol

import numpy as np

from .model import ArrowKey, NotificationEvent

PermissionCheck = Callable[[], bool]
"""Returns True if synthetic input is authorized."""


class CaptureSource(Protocol):
    """Full-frame screenshot of the primary display."""

    def capture_frame(self) -> np.ndarray:
        """Grab one frame (BGRA uint8).

        Raises:
            CaptureError: If the screen could not be captured
        """


class ActionSink(Protocol):
    """Side effects performed for each captured frame."""

    def send_advance_signal(self, key: ArrowKey) -> None:
        """Send the navigation key. Fire-and-forget."""

    def persist(
        self,
        image: np.ndarray,
        destination_dir: Path,
        filename_prefix: str,
        timestamp: datetime,
    ) -> Path:
        """Write ``image`` and return the written path.

        Raises:
            PersistError: If the file could not be written
        """


class NotificationPort(Protocol):
    """Audible/visual cues keyed by event name."""

    def emit(self, event: NotificationEvent) -> None:
        """Play the cue for ``event``."""


class NullNotifier:
    """Notification port that ignores every event."""

    def emit(self, event: NotificationEvent) -> None:
        pass
