"""Desktop implementation of the engine's action sink.

Sends arrow keys through pynput and writes frames as PNG files.
"""

from datetime import datetime
from pathlib import Path

import numpy as np

from .model import ArrowKey
from .os_adapter.input_inject import send_arrow_key
from .storage import save_image


class DesktopActionSink:
    """Real side effects: key injection and file persistence."""

    def send_advance_signal(self, key: ArrowKey) -> None:
        """Press and release the navigation key."""
        send_arrow_key(key)

    def persist(
        self,
        image: np.ndarray,
        destination_dir: Path,
        filename_prefix: str,
        timestamp: datetime,
    ) -> Path:
        """Write the frame as PNG.

        Raises:
            PersistError: If the file could not be written
        """
        return save_image(image, destination_dir, filename_prefix, timestamp)
