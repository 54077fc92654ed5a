"""ShotBar application entry point.

This module initializes the application with proper DPI awareness
(on Windows) and permission checks (on macOS) before creating the UI.

IMPORTANT: DPI awareness must be set BEFORE QApplication is created.
"""

import sys

from shotbar.core.os_adapter import IS_MACOS, IS_WINDOWS

APP_VERSION = "1.0.0"


def setup_platform() -> tuple[bool, str]:
    """Perform platform-specific setup before Qt initialization.

    Returns:
        Tuple of (success, warning_message).
    """
    if IS_WINDOWS:
        from shotbar.core.os_adapter.win_dpi import setup_dpi_awareness

        return setup_dpi_awareness()
    return True, ""


def check_macos_requirements() -> str:
    """Check macOS permissions after Qt is initialized.

    Returns:
        Guidance text if something is missing, else an empty string
    """
    if not IS_MACOS:
        return ""

    from shotbar.core.os_adapter import check_platform_ready

    ready, guidance = check_platform_ready()
    return "" if ready else guidance


def main() -> int:
    """Application entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    # Platform setup MUST happen before QApplication
    _, dpi_warning = setup_platform()

    from PySide6.QtWidgets import QApplication

    from shotbar.controller import ApplicationController
    from shotbar.core.settings import APPLICATION_NAME, ORGANIZATION_NAME, QSettingsStore
    from shotbar.ui import MainWindow

    app = QApplication(sys.argv)
    app.setApplicationName(APPLICATION_NAME)
    app.setApplicationVersion(APP_VERSION)
    app.setOrganizationName(ORGANIZATION_NAME)

    store = QSettingsStore()
    window = MainWindow(store)
    controller = ApplicationController(window, store)

    # Missing permissions are not fatal: Start asks again and reports
    warning = check_macos_requirements() or dpi_warning
    if warning:
        window.set_warning(warning)

    window.show()
    exit_code = app.exec()

    controller.engine.stop()
    store.sync()
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
