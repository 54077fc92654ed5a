"""Cross-platform arrow key injection using pynput.

On macOS this requires the Accessibility permission.
"""

from typing import Optional

from pynput.keyboard import Controller as KeyboardController
from pynput.keyboard import Key

from ..model import ArrowKey

_ARROW_KEYS: dict[ArrowKey, Key] = {
    ArrowKey.LEFT: Key.left,
    ArrowKey.RIGHT: Key.right,
    ArrowKey.DOWN: Key.down,
    ArrowKey.UP: Key.up,
}

# Global controller instance (reused for efficiency)
_keyboard: Optional[KeyboardController] = None


def _get_keyboard() -> KeyboardController:
    """Get or create the keyboard controller singleton."""
    global _keyboard
    if _keyboard is None:
        _keyboard = KeyboardController()
    return _keyboard


def to_pynput_key(key: ArrowKey) -> Key:
    """Map an ArrowKey to the pynput key."""
    return _ARROW_KEYS[key]


def send_key(key: Key) -> None:
    """Send a single key press and release.

    Args:
        key: The key to press (from pynput.keyboard.Key)
    """
    keyboard = _get_keyboard()
    keyboard.press(key)
    keyboard.release(key)


def send_arrow_key(key: ArrowKey) -> None:
    """Send one navigation arrow key."""
    send_key(to_pynput_key(key))
