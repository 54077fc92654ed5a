"""Windows DPI awareness setup.

MUST be called BEFORE Qt/QApplication initialization, otherwise mss
grabs a scaled-down primary display on high-DPI screens.
"""

import ctypes
from typing import Final

# Windows API constants
DPI_AWARENESS_CONTEXT_PER_MONITOR_AWARE_V2: Final[int] = -4
PROCESS_PER_MONITOR_DPI_AWARE: Final[int] = 2
E_ACCESSDENIED: Final[int] = -2147024891  # 0x80070005, awareness already set


def setup_dpi_awareness() -> tuple[bool, str]:
    """Set Per-Monitor DPI awareness for the current process.

    Tries the Windows 10 API, then the Windows 8.1 shcore API, then
    the legacy system-aware call.

    Returns:
        Tuple of (success, warning_message).
        - (True, "") if setup succeeded or was already set
        - (False, warning_message) if every API failed
    """
    try:
        user32 = ctypes.windll.user32  # type: ignore[attr-defined]
    except AttributeError:
        return False, "DPI awareness is only available on Windows"

    try:
        user32.SetProcessDpiAwarenessContext.argtypes = [ctypes.c_void_p]
        user32.SetProcessDpiAwarenessContext.restype = ctypes.c_bool
        if user32.SetProcessDpiAwarenessContext(
            ctypes.c_void_p(DPI_AWARENESS_CONTEXT_PER_MONITOR_AWARE_V2)
        ):
            return True, ""
    except AttributeError:
        pass  # Older than Windows 10 1703

    try:
        shcore = ctypes.windll.shcore  # type: ignore[attr-defined]
        result = shcore.SetProcessDpiAwareness(PROCESS_PER_MONITOR_DPI_AWARE)
        if result in (0, E_ACCESSDENIED):
            return True, ""
    except (AttributeError, OSError):
        pass  # Older than Windows 8.1

    try:
        if user32.SetProcessDPIAware():
            return True, (
                "Per-monitor DPI awareness unavailable; screenshots on "
                "secondary scaled displays may be blurry"
            )
    except AttributeError:
        pass

    return False, "Failed to set DPI awareness; screenshots may be scaled"
