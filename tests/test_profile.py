"""
Tests for tracking/profile.py and core/context.py.
"""

import sys
import tempfile
import unittest
import logging
from pathlib import Path
from unittest.mock import MagicMock

import httpx

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

import config
from auth.credentials import CredentialStore, FileSecretBackend
from core.context import build_context
from core.errors import NetworkError, ValidationError
from core.focus import SimulatedFocusController
from core.models import User
from tracking.profile import ProfileController
from tracking.settings_store import SettingsStore
from tracking.task_store import TaskStore

logger = logging.getLogger(__name__)


class TestProfileController(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.settings = SettingsStore(Path(self.temp_dir.name) / "settings.json")
        self.user_service = MagicMock()
        self.session_manager = MagicMock()

    def tearDown(self):
        self.temp_dir.cleanup()

    def make_profile(self):
        return ProfileController(self.settings, self.user_service, self.session_manager)

    def test_load_defaults(self):
        """An empty settings file gives the default profile."""
        profile = self.make_profile()
        self.assertEqual(profile.user_name, "")
        self.assertTrue(profile.notifications_enabled)
        self.assertEqual(profile.theme, "light")
        self.assertEqual(profile.default_study_duration, 3600)

    def test_load_cached_values(self):
        """Cached settings populate the profile."""
        self.settings.update({
            config.SETTING_USER_NAME: "A",
            config.SETTING_USER_EMAIL: "a@b.co",
            config.SETTING_NOTIFICATIONS_ENABLED: False,
            config.SETTING_DARK_MODE_ENABLED: True,
            config.SETTING_DEFAULT_STUDY_DURATION: 1500,
        })
        profile = self.make_profile()
        self.assertEqual(profile.user_email, "a@b.co")
        self.assertFalse(profile.notifications_enabled)
        self.assertEqual(profile.theme, "dark")
        self.assertEqual(profile.default_study_duration, 1500)

    def test_theme_saved_locally_then_pushed(self):
        """A theme change is saved locally, then pushed."""
        profile = self.make_profile()
        self.assertTrue(profile.update_theme_settings(True))
        self.assertTrue(self.settings.get_bool(config.SETTING_DARK_MODE_ENABLED))
        self.user_service.update_preferences.assert_called_once_with(True, "dark")

    def test_remote_failure_keeps_local_value(self):
        """A failed push keeps the local change."""
        self.user_service.update_preferences.side_effect = NetworkError()
        profile = self.make_profile()
        self.assertFalse(profile.update_notification_settings(False))
        self.assertFalse(profile.notifications_enabled)
        self.assertFalse(self.settings.get_bool(config.SETTING_NOTIFICATIONS_ENABLED, True))

    def test_study_duration_in_minutes(self):
        """Minutes are stored as seconds."""
        profile = self.make_profile()
        profile.update_default_study_duration_minutes(45)
        self.assertEqual(profile.default_study_duration, 2700)
        self.assertEqual(self.settings.get_number(config.SETTING_DEFAULT_STUDY_DURATION), 2700)
        self.user_service.update_default_study_duration.assert_called_once_with(2700)

    def test_invalid_duration_rejected(self):
        """A negative duration is rejected without a request."""
        profile = self.make_profile()
        with self.assertRaises(ValidationError):
            profile.update_default_study_duration(-5)
        self.user_service.update_default_study_duration.assert_not_called()

    def test_refresh_caches_server_profile(self):
        """Refresh caches the server profile."""
        self.user_service.get_current_user.return_value = User(
            id="u1", email="a@b.co", name="A", token="T", theme="dark",
            default_study_duration=1200,
        )
        profile = self.make_profile()
        self.assertIsNone(profile.refresh())
        self.assertEqual(profile.user_name, "A")
        self.assertTrue(profile.dark_mode_enabled)
        self.assertEqual(self.settings.get_number(config.SETTING_DEFAULT_STUDY_DURATION), 1200)

    def test_refresh_failure_returns_message(self):
        """A failed refresh returns the error message."""
        self.user_service.get_current_user.side_effect = NetworkError("offline")
        self.assertEqual(self.make_profile().refresh(), "offline")

    def test_logout_delegates(self):
        """Logout goes through the session manager and clears the cache."""
        self.settings.set(config.SETTING_USER_NAME, "A")
        profile = self.make_profile()
        profile.logout()
        self.session_manager.logout.assert_called_once()
        self.assertEqual(profile.user_name, "")


class TestBuildContext(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        root = Path(self.temp_dir.name)
        self.requests = []

        def handler(request):
            self.requests.append(request)
            user = {"id": "u1", "email": "a@b.co", "name": "A", "token": "T"}
            if request.url.path.endswith("/users/me"):
                return httpx.Response(200, json=user)
            return httpx.Response(200, json={"user": user})

        self.ctx = build_context(
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
            credential_store=CredentialStore(FileSecretBackend(root / "credentials.json")),
            settings=SettingsStore(root / "settings.json"),
            task_store=TaskStore(root / "study_tasks.json"),
            biometric_authenticator=MagicMock(),
            focus_controller=SimulatedFocusController(),
        )

    def tearDown(self):
        self.ctx.close()
        self.temp_dir.cleanup()

    def test_services_share_session_token(self):
        """Services send the token from the live session."""
        self.ctx.session_manager.login("a@b.co", "pw")
        self.ctx.user_service.get_current_user()
        self.assertEqual(self.requests[-1].headers["authorization"], "Bearer T")

    def test_focus_session_uses_controller(self):
        """Focus sessions share the context's controller."""
        session = self.ctx.focus_session(estimated_focus_time=60)
        self.assertIs(session.focus_controller, self.ctx.focus_controller)
        self.assertEqual(session.estimated_focus_time, 60)

    def test_password_reset_flow_uses_auth_client(self):
        """The reset flow uses the shared auth client."""
        flow = self.ctx.password_reset_flow()
        self.assertIs(flow.api_client, self.ctx.api_client)


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    unittest.main()
