"""
Focus session countdown with do-not-disturb.

Toggling focus on starts a countdown of estimated_focus_time seconds and
asks the FocusController to enable DND. The countdown ticks on a
background thread; reaching zero, an explicit end, or toggling off all
finish the session and switch DND off again.

If authorization is denied or enabling fails, the countdown still runs
with is_dnd_enabled False.

Callbacks:
    on_tick(remaining_seconds: float)
    on_session_ended()
"""

import logging
import threading
from typing import Callable, Dict, Optional

import config
from core.focus import FocusController
from core.models import FocusActivity

logger = logging.getLogger(__name__)


class FocusSession:
    """Idle <-> Active state machine for one study countdown."""

    def __init__(
        self,
        focus_controller: FocusController,
        estimated_focus_time: float = config.DEFAULT_FOCUS_TIME_SECONDS,
        tick_seconds: float = config.FOCUS_TICK_SECONDS,
        activity: Optional[FocusActivity] = None,
    ) -> None:
        self.focus_controller = focus_controller
        self.estimated_focus_time = estimated_focus_time
        self.tick_seconds = tick_seconds
        self.activity = activity or FocusActivity(name="Study Session")

        self.is_focus_mode_enabled: bool = False
        self.has_active_session: bool = False
        self.current_session_remaining_time: float = 0
        self.is_dnd_enabled: bool = False

        self._lock = threading.RLock()
        self._should_stop = threading.Event()
        self._timer_thread: Optional[threading.Thread] = None
        self._generation = 0

        self.on_tick: Optional[Callable[[float], None]] = None
        self.on_session_ended: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def toggle_focus_mode(self) -> None:
        """Start a session when idle, end it when active."""
        with self._lock:
            active = self.is_focus_mode_enabled
        if active:
            self.end_current_session()
        else:
            self._start_session()

    def end_current_session(self) -> None:
        """Finish the running session now. No-op when idle."""
        if not self._finish():
            return
        thread = self._timer_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.tick_seconds + 1)
        if self.on_session_ended:
            self.on_session_ended()

    def get_status(self) -> Dict:
        """Snapshot for UI polling."""
        with self._lock:
            return {
                "is_focus_mode_enabled": self.is_focus_mode_enabled,
                "has_active_session": self.has_active_session,
                "remaining_seconds": self.current_session_remaining_time,
                "is_dnd_enabled": self.is_dnd_enabled,
            }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _start_session(self) -> None:
        with self._lock:
            if self.is_focus_mode_enabled:
                return
            self.is_focus_mode_enabled = True
            self.has_active_session = True
            self.current_session_remaining_time = self.estimated_focus_time
            self._should_stop.clear()
            self._generation += 1
            generation = self._generation

        # Controller calls can block on the OS, so they run without the lock.
        enabled = False
        if self.focus_controller.request_authorization():
            enabled = self.focus_controller.enable_focus(self.activity)
            if not enabled:
                logger.warning("Could not enable do-not-disturb; session continues without it")
        else:
            logger.warning("Do-not-disturb authorization denied; session continues without it")

        with self._lock:
            still_running = self.has_active_session and self._generation == generation
            if still_running:
                self.is_dnd_enabled = enabled
                self._timer_thread = threading.Thread(target=self._countdown_loop, daemon=True)
                self._timer_thread.start()

        if not still_running:
            # Ended while DND was being switched on.
            if enabled and not self.focus_controller.disable_focus():
                logger.warning("Could not disable do-not-disturb")
            return

        logger.info(f"Focus session started ({int(self.estimated_focus_time)}s)")

    def _finish(self) -> bool:
        """Reset to idle and switch DND off. Returns False if already idle."""
        with self._lock:
            if not self.is_focus_mode_enabled and not self.has_active_session:
                return False
            self._should_stop.set()
            self.is_focus_mode_enabled = False
            self.has_active_session = False
            self.current_session_remaining_time = 0
            was_dnd_enabled = self.is_dnd_enabled
            self.is_dnd_enabled = False

        if was_dnd_enabled and not self.focus_controller.disable_focus():
            logger.warning("Could not disable do-not-disturb")

        logger.info("Focus session ended")
        return True

    def _countdown_loop(self) -> None:
        """Decrement the remaining time once per tick until stopped or expired."""
        while not self._should_stop.wait(self.tick_seconds):
            with self._lock:
                if not self.has_active_session:
                    return
                remaining = max(0, self.current_session_remaining_time - self.tick_seconds)
                self.current_session_remaining_time = remaining

            if self.on_tick:
                self.on_tick(remaining)
            if remaining <= 0:
                self.end_current_session()
                return
