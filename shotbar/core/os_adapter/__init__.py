"""Platform-specific adapters for Windows and macOS.

This module provides cross-platform abstractions for:
- DPI awareness (Windows)
- Permission checking (macOS)
- Arrow key injection
"""

import sys

# Platform detection
IS_WINDOWS: bool = sys.platform == "win32"
IS_MACOS: bool = sys.platform == "darwin"
IS_LINUX: bool = sys.platform.startswith("linux")


def check_platform_ready() -> tuple[bool, str]:
    """Check if the platform is ready for capturing.

    - macOS: Screen Recording and Accessibility permissions
    - Windows/Linux: assumed ready

    Returns:
        Tuple of (ready, message).
        - (True, "") if ready
        - (False, guidance_message) if not ready
    """
    if IS_MACOS:
        from .permissions import check_permissions

        status = check_permissions()
        if not status.all_granted:
            return False, status.guidance or "Missing required system permissions"
        return True, ""

    return True, ""


__all__ = [
    "IS_WINDOWS",
    "IS_MACOS",
    "IS_LINUX",
    "check_platform_ready",
]
