"""macOS permission checking for screen capture and key injection.

Checks required permissions and provides guidance for users. Other
platforms need no grant and always report success.
"""

from dataclasses import dataclass
from typing import Optional

from . import IS_MACOS


@dataclass
class PermissionStatus:
    """Status of required macOS permissions.

    Attributes:
        screen_recording: True if screen recording is allowed
        accessibility: True if accessibility access is allowed
        guidance: User guidance text if any permission is missing
    """

    screen_recording: bool
    accessibility: bool
    guidance: Optional[str] = None

    @property
    def all_granted(self) -> bool:
        """Check if all required permissions are granted."""
        return self.screen_recording and self.accessibility

    @property
    def missing_permissions(self) -> list[str]:
        """List of missing permission names."""
        missing = []
        if not self.screen_recording:
            missing.append("Screen Recording")
        if not self.accessibility:
            missing.append("Accessibility")
        return missing


def _guidance(missing: list[str]) -> str:
    return (
        f"Permission required: {', '.join(missing)}\n\n"
        "Open System Settings > Privacy & Security > "
        f"{' / '.join(missing)}\n"
        "and enable this application.\n\n"
        "A restart of the application may be needed afterwards."
    )


def check_permissions() -> PermissionStatus:
    """Check macOS permissions for screen capture and input injection.

    Returns:
        PermissionStatus with current permission states and guidance.
    """
    if not IS_MACOS:
        return PermissionStatus(screen_recording=True, accessibility=True)

    screen_ok = False
    accessibility_ok = False

    try:
        from ApplicationServices import AXIsProcessTrustedWithOptions
        from Quartz import CGPreflightScreenCaptureAccess

        screen_ok = bool(CGPreflightScreenCaptureAccess())
        # None checks without prompting
        accessibility_ok = bool(AXIsProcessTrustedWithOptions(None))

    except ImportError:
        # pyobjc not installed - assume permissions are fine (will fail later if not)
        return PermissionStatus(screen_recording=True, accessibility=True)

    status = PermissionStatus(
        screen_recording=screen_ok,
        accessibility=accessibility_ok,
    )
    if not status.all_granted:
        status.guidance = _guidance(status.missing_permissions)
    return status


def check_input_permission(prompt: bool = True) -> bool:
    """Check whether synthetic key input is authorized.

    Args:
        prompt: Let macOS show its Accessibility prompt when not granted

    Returns:
        True if key injection is allowed
    """
    if not IS_MACOS:
        return True

    try:
        from ApplicationServices import AXIsProcessTrustedWithOptions
        from Foundation import NSDictionary
    except ImportError:
        return True

    options = None
    if prompt:
        options = NSDictionary.dictionaryWithObject_forKey_(
            True, "AXTrustedCheckOptionPrompt"
        )
    return bool(AXIsProcessTrustedWithOptions(options))
