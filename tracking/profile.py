"""
Profile and preferences controller.

Preferences are written to local settings first and then pushed to the
user service. A failed push is logged and the local value is kept.
"""

import logging
from typing import Optional

import config
from auth.session_manager import SessionManager
from core.errors import StudyPlannerError, ValidationError
from sync.user_service import UserService
from tracking.settings_store import SettingsStore

logger = logging.getLogger(__name__)


class ProfileController:
    """Cached profile fields plus the preference update operations."""

    def __init__(self, settings: SettingsStore, user_service: UserService,
                 session_manager: SessionManager) -> None:
        self.settings = settings
        self.user_service = user_service
        self.session_manager = session_manager

        self.user_name: str = ""
        self.user_email: str = ""
        self.notifications_enabled: bool = True
        self.dark_mode_enabled: bool = False
        self.default_study_duration: float = config.DEFAULT_STUDY_DURATION_SECONDS
        self.load()

    def load(self) -> None:
        """Read cached profile values from settings storage."""
        self.user_name = self.settings.get_str(config.SETTING_USER_NAME, "") or ""
        self.user_email = self.settings.get_str(config.SETTING_USER_EMAIL, "") or ""
        self.notifications_enabled = self.settings.get_bool(
            config.SETTING_NOTIFICATIONS_ENABLED, True
        )
        self.dark_mode_enabled = self.settings.get_bool(config.SETTING_DARK_MODE_ENABLED, False)
        duration = self.settings.get_number(
            config.SETTING_DEFAULT_STUDY_DURATION, config.DEFAULT_STUDY_DURATION_SECONDS
        )
        self.default_study_duration = (
            duration if duration > 0 else config.DEFAULT_STUDY_DURATION_SECONDS
        )

    @property
    def theme(self) -> str:
        return config.THEME_DARK if self.dark_mode_enabled else config.THEME_LIGHT

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def update_notification_settings(self, enabled: bool) -> bool:
        """
        Turn notifications on or off.

        Returns:
            True if the server accepted the change, False if only the local
            value was updated.
        """
        self.notifications_enabled = enabled
        self.settings.set(config.SETTING_NOTIFICATIONS_ENABLED, enabled)
        return self._push_preferences()

    def update_theme_settings(self, dark: bool) -> bool:
        """Switch between light and dark theme. Same return as above."""
        self.dark_mode_enabled = dark
        self.settings.set(config.SETTING_DARK_MODE_ENABLED, dark)
        return self._push_preferences()

    def update_default_study_duration(self, duration_seconds: float) -> bool:
        """
        Change the default study-session length.

        Raises:
            ValidationError: If the duration is not positive.
        """
        if duration_seconds <= 0:
            raise ValidationError("Study duration must be positive")
        self.default_study_duration = duration_seconds
        self.settings.set(config.SETTING_DEFAULT_STUDY_DURATION, duration_seconds)
        try:
            self.user_service.update_default_study_duration(duration_seconds)
        except StudyPlannerError as e:
            logger.warning(f"Could not sync study duration: {e.message}")
            return False
        return True

    def update_default_study_duration_minutes(self, minutes: int) -> bool:
        return self.update_default_study_duration(minutes * 60)

    def _push_preferences(self) -> bool:
        try:
            self.user_service.update_preferences(self.notifications_enabled, self.theme)
        except StudyPlannerError as e:
            logger.warning(f"Could not sync preferences: {e.message}")
            return False
        return True

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def refresh(self) -> Optional[str]:
        """
        Pull the profile from the server and cache it.

        Returns:
            None on success, otherwise the error message.
        """
        try:
            user = self.user_service.get_current_user()
        except StudyPlannerError as e:
            logger.warning(f"Could not refresh profile: {e.message}")
            return e.message

        self.settings.update({
            config.SETTING_USER_NAME: user.name,
            config.SETTING_USER_EMAIL: user.email,
            config.SETTING_NOTIFICATIONS_ENABLED: user.notification_enabled,
            config.SETTING_DARK_MODE_ENABLED: user.theme == config.THEME_DARK,
            config.SETTING_DEFAULT_STUDY_DURATION: user.default_study_duration,
        })
        self.load()
        return None

    def logout(self) -> None:
        self.session_manager.logout()
        self.user_name = ""
        self.user_email = ""
