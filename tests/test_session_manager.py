"""
Tests for auth/session_manager.py - sign-in state transitions.

Uses a real AuthAPIClient over httpx.MockTransport so request counts can
be checked, an in-memory credential backend and a temp settings file.
"""

import sys
import json
import tempfile
import threading
import unittest
import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

import config
from auth.credentials import CredentialStore
from auth.session_manager import SessionManager, SessionState, validate_registration
from core.errors import (
    AuthenticationInProgress,
    BadRequest,
    BiometricAuthFailed,
    Forbidden,
    IdentityProviderError,
    NetworkError,
    NoStoredCredentials,
    NotFound,
    ServerError,
    Unauthorized,
    ValidationError,
)
from core.models import IdentityProfile
from sync.api_client import AuthAPIClient
from sync.transport import create_http_client
from tracking.settings_store import SettingsStore

logger = logging.getLogger(__name__)

LOGIN_PAYLOAD = {
    "user": {"id": "u1", "email": "a@b.co", "name": "A", "token": "T", "theme": "dark"}
}


class InMemoryBackend:
    def __init__(self):
        self.entries = {}

    def get(self, service, key):
        return self.entries.get(service, {}).get(key)

    def set(self, service, key, value):
        self.entries.setdefault(service, {})[key] = value

    def delete_service(self, service):
        self.entries.pop(service, None)


class FakeBiometrics:
    def __init__(self, approved=True, reason=None):
        self.approved = approved
        self.reason = reason
        self.prompts = []

    def authenticate(self, reason):
        self.prompts.append(reason)
        return self.approved, self.reason


class SessionManagerTestCase(unittest.TestCase):
    """Shared fixtures: temp settings, fake server, in-memory credentials."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.settings = SettingsStore(Path(self.temp_dir.name) / "settings.json")
        self.credentials = CredentialStore(InMemoryBackend(), service="svc")
        self.requests = []
        self.status = 200
        self.payload = LOGIN_PAYLOAD
        self.api = AuthAPIClient(
            base_url="http://auth.test",
            client=create_http_client(httpx.MockTransport(self._handle)),
        )
        self.biometrics = FakeBiometrics()

    def tearDown(self):
        self.api.close()
        self.temp_dir.cleanup()

    def _handle(self, request):
        self.requests.append(request)
        return httpx.Response(self.status, json=self.payload)

    def make_manager(self):
        return SessionManager(self.api, self.credentials, self.settings,
                              biometric_authenticator=self.biometrics)


class TestInitialState(SessionManagerTestCase):

    def test_fresh_install_is_unauthenticated(self):
        """No flag and no credentials means signed out."""
        manager = self.make_manager()
        self.assertEqual(manager.state, SessionState.UNAUTHENTICATED)
        self.assertIsNone(manager.current_user)
        self.assertEqual(manager.saved_email, "")

    def test_persisted_flag_restores_authenticated(self):
        """The persisted flag restores the signed-in state without a token."""
        self.settings.set(config.SETTING_IS_AUTHENTICATED, True)
        manager = self.make_manager()
        self.assertTrue(manager.is_authenticated)
        self.assertIsNone(manager.current_user)
        self.assertIsNone(manager.token)

    def test_stored_credentials_prefill(self):
        """Stored credentials pre-fill the login form only."""
        self.credentials.save("a@b.co", "pw")
        manager = self.make_manager()
        self.assertEqual(manager.saved_email, "a@b.co")
        self.assertEqual(manager.saved_password, "pw")


class TestLogin(SessionManagerTestCase):

    def test_login_success(self):
        """A successful login stores credentials, the flag and the profile."""
        manager = self.make_manager()
        states = []
        manager.on_state_change = lambda state, user: states.append(state)

        user = manager.login("a@b.co", "pw")

        self.assertEqual(user.email, "a@b.co")
        self.assertEqual(manager.state, SessionState.AUTHENTICATED)
        self.assertEqual(manager.token, "T")
        self.assertEqual(states, [SessionState.AUTHENTICATING, SessionState.AUTHENTICATED])
        self.assertEqual(self.credentials.get(), ("a@b.co", "pw"))
        self.assertTrue(self.settings.get_bool(config.SETTING_IS_AUTHENTICATED))
        self.assertEqual(self.settings.get(config.SETTING_USER_NAME), "A")
        self.assertTrue(self.settings.get_bool(config.SETTING_DARK_MODE_ENABLED))

    def test_login_failure(self):
        """A rejected login ends unauthenticated with the error message."""
        self.status = 401
        manager = self.make_manager()

        with self.assertRaises(Unauthorized):
            manager.login("a@b.co", "wrong")

        self.assertEqual(manager.state, SessionState.UNAUTHENTICATED)
        self.assertEqual(manager.error_message, "Unauthorized")
        self.assertFalse(self.settings.get_bool(config.SETTING_IS_AUTHENTICATED))
        self.assertEqual(self.credentials.get(), (None, None))

    def test_login_status_errors_end_unauthenticated(self):
        """Every failing status leaves the session signed out with the flag cleared."""
        cases = {
            400: BadRequest,
            401: Unauthorized,
            403: Forbidden,
            404: NotFound,
            500: ServerError,
            599: ServerError,
        }
        for status, error_cls in cases.items():
            with self.subTest(status=status):
                self.status = status
                self.settings.set(config.SETTING_IS_AUTHENTICATED, True)
                manager = self.make_manager()
                with self.assertRaises(error_cls):
                    manager.login("a@b.co", "pw")
                self.assertEqual(manager.state, SessionState.UNAUTHENTICATED)
                self.assertFalse(self.settings.get_bool(config.SETTING_IS_AUTHENTICATED))
                self.assertIsNone(manager.current_user)

    def test_empty_fields_rejected_without_request(self):
        """Empty email or password is rejected before any request."""
        manager = self.make_manager()
        for email, password in (("", "pw"), ("a@b.co", "")):
            with self.assertRaises(ValidationError):
                manager.login(email, password)
        self.assertEqual(self.requests, [])
        self.assertEqual(manager.state, SessionState.UNAUTHENTICATED)
        self.assertEqual(manager.error_message, "Please enter both email and password")

    def test_credential_save_failure_does_not_fail_login(self):
        """Failing to cache credentials does not fail the login."""
        self.credentials.backend.set = MagicMock(side_effect=OSError("denied"))
        manager = self.make_manager()
        manager.login("a@b.co", "pw")
        self.assertTrue(manager.is_authenticated)

    def test_network_failure(self):
        """A transport failure surfaces as NetworkError."""
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        self.api._client = create_http_client(httpx.MockTransport(handler))
        manager = self.make_manager()
        with self.assertRaises(NetworkError):
            manager.login("a@b.co", "pw")
        self.assertEqual(manager.state, SessionState.UNAUTHENTICATED)

    def test_second_transition_rejected_while_authenticating(self):
        """A second sign-in while one is in flight is rejected."""
        entered = threading.Event()
        release = threading.Event()

        def slow_handler(request):
            entered.set()
            release.wait(timeout=5)
            return httpx.Response(200, json=LOGIN_PAYLOAD)

        self.api._client = create_http_client(httpx.MockTransport(slow_handler))
        manager = self.make_manager()
        results = []
        thread = manager.login_in_background("a@b.co", "pw", results.append)
        self.assertTrue(entered.wait(timeout=5))

        with self.assertRaises(AuthenticationInProgress):
            manager.login("a@b.co", "pw")

        release.set()
        thread.join(timeout=5)
        self.assertTrue(results[0].ok)
        self.assertTrue(manager.is_authenticated)


class TestRegistration(SessionManagerTestCase):

    def test_validate_registration(self):
        """Each invalid registration input is caught locally."""
        bad_inputs = [
            ("", "a@b.co", "secret1", "secret1"),
            ("A", "not-an-email", "secret1", "secret1"),
            ("A", "a@b.co", "short", "short"),
            ("A", "a@b.co", "secret1", "secret2"),
        ]
        for args in bad_inputs:
            with self.subTest(args=args):
                with self.assertRaises(ValidationError):
                    validate_registration(*args)
        validate_registration("A", "a@b.co", "secret1", "secret1")

    def test_register_authenticates(self):
        """Registration signs the user in like login does."""
        manager = self.make_manager()
        manager.register("A", "a@b.co", "secret1", "secret1")
        self.assertTrue(manager.is_authenticated)
        self.assertEqual(self.requests[0].url.path, "/api/auth/register")
        self.assertEqual(self.credentials.get(), ("a@b.co", "secret1"))

    def test_invalid_registration_makes_no_request(self):
        """Invalid registration input never reaches the server."""
        manager = self.make_manager()
        with self.assertRaises(ValidationError):
            manager.register("A", "a@b.co", "secret1", "different")
        self.assertEqual(self.requests, [])
        self.assertEqual(manager.error_message, "Passwords do not match")

    def test_register_status_errors_end_unauthenticated(self):
        """Every failing registration status leaves the session signed out."""
        cases = {
            400: BadRequest,
            401: Unauthorized,
            403: Forbidden,
            404: NotFound,
            500: ServerError,
            599: ServerError,
        }
        for status, error_cls in cases.items():
            with self.subTest(status=status):
                self.status = status
                manager = self.make_manager()
                with self.assertRaises(error_cls):
                    manager.register("A", "a@b.co", "secret1", "secret1")
                self.assertEqual(manager.state, SessionState.UNAUTHENTICATED)
                self.assertFalse(self.settings.get_bool(config.SETTING_IS_AUTHENTICATED))
                self.assertEqual(self.credentials.get(), (None, None))


class TestIdentitySignIn(SessionManagerTestCase):

    def test_identity_sign_in_stores_placeholder_password(self):
        """Identity sign-in stores the email with a random password."""
        manager = self.make_manager()
        manager.sign_in_with_identity("id-token", IdentityProfile(name="A", email="a@b.co"))

        self.assertTrue(manager.is_authenticated)
        email, password = self.credentials.get()
        self.assertEqual(email, "a@b.co")
        self.assertTrue(password)
        body = json.loads(self.requests[0].content)
        self.assertEqual(body["identity_token"], "id-token")

    def test_identity_email_falls_back_to_user(self):
        """Without a provider email the returned user's email is stored."""
        manager = self.make_manager()
        manager.sign_in_with_identity("id-token")
        self.assertEqual(self.credentials.get()[0], "a@b.co")

    @patch("auth.session_manager.run_identity_callback_server", return_value=None)
    def test_provider_timeout(self, mock_server):
        """A browser flow that times out raises without a request."""
        manager = self.make_manager()
        with self.assertRaises(IdentityProviderError):
            manager.sign_in_with_identity_provider(timeout=1)
        self.assertEqual(manager.state, SessionState.UNAUTHENTICATED)
        self.assertEqual(self.requests, [])

    @patch("auth.session_manager.run_identity_callback_server", return_value=None)
    def test_provider_timeout_leaves_login_in_flight(self, mock_server):
        """A provider timeout does not disturb a login already in progress."""
        entered = threading.Event()
        release = threading.Event()

        def slow_handler(request):
            entered.set()
            release.wait(timeout=5)
            return httpx.Response(200, json=LOGIN_PAYLOAD)

        self.api._client = create_http_client(httpx.MockTransport(slow_handler))
        manager = self.make_manager()
        results = []
        thread = manager.login_in_background("a@b.co", "pw", results.append)
        self.assertTrue(entered.wait(timeout=5))

        try:
            with self.assertRaises(IdentityProviderError):
                manager.sign_in_with_identity_provider(timeout=1)
            self.assertEqual(manager.state, SessionState.AUTHENTICATING)
            with self.assertRaises(AuthenticationInProgress):
                manager.login("a@b.co", "pw")
        finally:
            release.set()
            thread.join(timeout=5)

        self.assertTrue(results[0].ok)
        self.assertTrue(manager.is_authenticated)
        self.assertTrue(self.settings.get_bool(config.SETTING_IS_AUTHENTICATED))

    @patch("auth.session_manager.run_identity_callback_server")
    def test_provider_result_feeds_sign_in(self, mock_server):
        """The captured provider token is sent to the server."""
        mock_server.return_value = {"identity_token": "tok", "email": "a@b.co", "name": "A"}
        manager = self.make_manager()
        manager.sign_in_with_identity_provider(timeout=1)
        self.assertTrue(manager.is_authenticated)
        body = json.loads(self.requests[0].content)
        self.assertEqual(body, {"identity_token": "tok",
                                "user": {"name": "A", "email": "a@b.co"}})


class TestBiometricSignIn(SessionManagerTestCase):

    def test_biometric_login_uses_stored_credentials(self):
        """Approved biometrics log in with the stored pair."""
        self.credentials.save("a@b.co", "pw")
        manager = self.make_manager()
        manager.sign_in_with_biometrics()

        self.assertTrue(manager.is_authenticated)
        self.assertEqual(self.biometrics.prompts, [config.BIOMETRIC_LOGIN_REASON])
        self.assertEqual(json.loads(self.requests[0].content),
                         {"email": "a@b.co", "password": "pw"})

    def test_biometric_denied_makes_no_request(self):
        """Denied biometrics make no request and keep state."""
        self.credentials.save("a@b.co", "pw")
        self.biometrics.approved = False
        self.biometrics.reason = "User cancelled"
        manager = self.make_manager()

        with self.assertRaises(BiometricAuthFailed) as ctx:
            manager.sign_in_with_biometrics()

        self.assertEqual(ctx.exception.reason, "User cancelled")
        self.assertEqual(self.requests, [])
        self.assertEqual(manager.state, SessionState.UNAUTHENTICATED)

    def test_no_stored_credentials_makes_no_request(self):
        """Biometric sign-in without stored credentials makes no request."""
        manager = self.make_manager()
        with self.assertRaises(NoStoredCredentials):
            manager.sign_in_with_biometrics()
        self.assertEqual(self.requests, [])
        self.assertEqual(manager.error_message, "No stored credentials found")

    def test_unavailable_biometrics_by_default(self):
        """Without an authenticator biometric sign-in is refused."""
        manager = SessionManager(self.api, self.credentials, self.settings)
        with self.assertRaises(BiometricAuthFailed):
            manager.sign_in_with_biometrics()
        self.assertEqual(self.requests, [])


class TestLogout(SessionManagerTestCase):

    def test_logout_clears_local_state(self):
        """Logout clears state locally without contacting the server."""
        manager = self.make_manager()
        manager.login("a@b.co", "pw")
        request_count = len(self.requests)

        manager.logout()

        self.assertEqual(manager.state, SessionState.UNAUTHENTICATED)
        self.assertIsNone(manager.current_user)
        self.assertIsNone(self.api.token)
        self.assertEqual(self.credentials.get(), (None, None))
        self.assertFalse(self.settings.get_bool(config.SETTING_IS_AUTHENTICATED))
        self.assertEqual(len(self.requests), request_count)

    def test_logout_when_signed_out(self):
        """Logout while signed out is harmless."""
        manager = self.make_manager()
        manager.logout()
        self.assertEqual(manager.state, SessionState.UNAUTHENTICATED)


class TestCallbackVariants(SessionManagerTestCase):

    def test_validation_error_delivered_as_result(self):
        """Validation errors reach the completion as a Result."""
        manager = self.make_manager()
        results = []
        manager.login_in_background("", "", results.append).join(timeout=5)
        self.assertIsInstance(results[0].error, ValidationError)

    def test_biometric_result(self):
        """The biometric callback variant delivers the signed-in user."""
        self.credentials.save("a@b.co", "pw")
        manager = self.make_manager()
        results = []
        manager.sign_in_with_biometrics_in_background(results.append).join(timeout=5)
        self.assertEqual(results[0].value.email, "a@b.co")


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    unittest.main()
