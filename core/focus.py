"""
Do-not-disturb control for study sessions.

FocusController is the authorize/enable/disable contract the focus
session depends on. Platform adapters:
- SimulatedFocusController: no OS integration, always succeeds
- MacOSShortcutsFocusController: runs user Shortcuts that switch a
  Focus mode on and off via the `shortcuts` command-line tool
"""

import sys
import subprocess
import logging
from typing import Optional, Protocol

import config
from core.models import FocusActivity

logger = logging.getLogger(__name__)


class FocusController(Protocol):
    def request_authorization(self) -> bool: ...

    def enable_focus(self, activity: FocusActivity) -> bool: ...

    def disable_focus(self) -> bool: ...


class SimulatedFocusController:
    """Stand-in used where the OS exposes no do-not-disturb control."""

    def request_authorization(self) -> bool:
        return True

    def enable_focus(self, activity: FocusActivity) -> bool:
        logger.info(f"Focus enabled (simulated) for {activity.name}")
        return True

    def disable_focus(self) -> bool:
        logger.info("Focus disabled (simulated)")
        return True


class MacOSShortcutsFocusController:
    """
    Toggles a macOS Focus via two user-created Shortcuts.

    Authorization means both Shortcuts exist; macOS itself asks the user
    to allow the first run.
    """

    def __init__(self, on_shortcut: str = "", off_shortcut: str = "") -> None:
        self.on_shortcut = on_shortcut or config.FOCUS_ON_SHORTCUT
        self.off_shortcut = off_shortcut or config.FOCUS_OFF_SHORTCUT

    def request_authorization(self) -> bool:
        if sys.platform != "darwin":
            return False
        try:
            result = subprocess.run(
                ["shortcuts", "list"],
                capture_output=True, text=True, timeout=10,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"Could not list Shortcuts: {e}")
            return False

        if result.returncode != 0:
            logger.warning(f"shortcuts list failed: {result.stderr.strip()}")
            return False
        available = {line.strip() for line in result.stdout.splitlines()}
        missing = [name for name in (self.on_shortcut, self.off_shortcut) if name not in available]
        if missing:
            logger.warning(f"Focus Shortcuts not found: {', '.join(missing)}")
            return False
        return True

    def _run_shortcut(self, name: str) -> bool:
        try:
            result = subprocess.run(
                ["shortcuts", "run", name],
                capture_output=True, text=True, timeout=15,
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"Shortcut '{name}' timed out")
            return False
        except OSError as e:
            logger.warning(f"Could not run Shortcut '{name}': {e}")
            return False

        if result.returncode != 0:
            logger.warning(f"Shortcut '{name}' failed: {result.stderr.strip()}")
            return False
        return True

    def enable_focus(self, activity: FocusActivity) -> bool:
        logger.info(f"Enabling Focus for {activity.name}")
        return self._run_shortcut(self.on_shortcut)

    def disable_focus(self) -> bool:
        return self._run_shortcut(self.off_shortcut)


def create_focus_controller(provider: Optional[str] = None) -> FocusController:
    """
    Build the controller named by config.FOCUS_PROVIDER.

    Unknown providers fall back to the simulated controller.
    """
    provider = (provider or config.FOCUS_PROVIDER).lower()
    if provider == "macos_shortcuts":
        return MacOSShortcutsFocusController()
    if provider != "simulated":
        logger.warning(f"Unknown focus provider '{provider}', using simulated")
    return SimulatedFocusController()
