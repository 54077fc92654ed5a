"""Screen capture module using mss.

Captures the primary display as a full frame. Failures are reported
as CaptureError and never retried here; the engine skips the iteration.
"""

import threading

import mss
import numpy as np

from .constants import GRAY_WEIGHT_B, GRAY_WEIGHT_G, GRAY_WEIGHT_R

# mss keeps per-thread OS handles, so each thread needs its own instance
_thread_local = threading.local()

PRIMARY_MONITOR = 1
"""mss monitor index of the primary display (0 is the virtual desktop)"""


def _get_mss() -> "mss.base.MSSBase":
    """Get or create the mss instance of the calling thread."""
    instance = getattr(_thread_local, "mss_instance", None)
    if instance is None:
        instance = mss.mss()
        _thread_local.mss_instance = instance
    return instance


def _reset_mss() -> None:
    """Drop the thread-local mss instance after an error."""
    instance = getattr(_thread_local, "mss_instance", None)
    _thread_local.mss_instance = None
    if instance is not None:
        try:
            instance.close()
        except Exception:
            pass  # Handle already broken


class CaptureError(Exception):
    """Exception raised when a screen capture fails."""

    pass


def capture_primary_display() -> np.ndarray:
    """Capture the primary display, full frame, no exclusions.

    Returns:
        Image as a BGRA uint8 array of shape (height, width, 4)

    Raises:
        CaptureError: If the grab fails
    """
    try:
        sct = _get_mss()
        monitors = sct.monitors
        monitor = monitors[PRIMARY_MONITOR] if len(monitors) > PRIMARY_MONITOR else monitors[0]
        screenshot = sct.grab(monitor)
        return np.array(screenshot)
    except Exception as e:
        # Instance may be in a bad state
        _reset_mss()
        raise CaptureError(f"Screen capture failed: {e}") from e


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert BGRA/BGR image to grayscale.

    Uses ITU-R BT.601 weights: Y = 0.299*R + 0.587*G + 0.114*B

    Args:
        image: Input image in BGR or BGRA format (from mss)

    Returns:
        Grayscale image as uint8 numpy array
    """
    if image.ndim == 2:
        # Already grayscale
        return image.astype(np.uint8)

    b = image[:, :, 0].astype(np.float32)
    g = image[:, :, 1].astype(np.float32)
    r = image[:, :, 2].astype(np.float32)

    gray = GRAY_WEIGHT_R * r + GRAY_WEIGHT_G * g + GRAY_WEIGHT_B * b

    return gray.astype(np.uint8)


class MssCaptureSource:
    """Capture source backed by mss."""

    def capture_frame(self) -> np.ndarray:
        """Capture the primary display.

        Raises:
            CaptureError: If the grab fails
        """
        return capture_primary_display()
