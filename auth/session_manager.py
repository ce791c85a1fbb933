"""
SessionManager - the authoritative "is this device signed in" state.

States: unauthenticated -> authenticating -> authenticated(user).

Chains auth-service calls with local credential persistence and the
persisted isAuthenticated flag. At most one authentication transition
runs at a time; a second one is rejected with AuthenticationInProgress
rather than racing the first.

Callback:
    on_state_change(state: SessionState, user: Optional[User])
"""

import re
import uuid
import logging
import threading
from enum import Enum
from typing import Callable, Optional

import config
from auth.biometrics import BiometricAuthenticator, UnavailableBiometricAuthenticator
from auth.credentials import CredentialStore
from core.errors import (
    AuthenticationInProgress,
    BiometricAuthFailed,
    IdentityProviderError,
    NoStoredCredentials,
    StudyPlannerError,
    ValidationError,
)
from core.models import IdentityProfile, Result, User
from sync.api_client import AuthAPIClient
from sync.identity_callback import run_identity_callback_server
from sync.transport import run_in_background
from tracking.settings_store import SettingsStore

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


def validate_registration(name: str, email: str, password: str,
                          confirm_password: Optional[str] = None) -> None:
    """
    Check registration input before any network call.

    Raises:
        ValidationError: With the first problem found.
    """
    if not name.strip():
        raise ValidationError("Please enter your full name")
    if not re.fullmatch(config.EMAIL_PATTERN, email):
        raise ValidationError("Please enter a valid email address")
    if len(password) < config.MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {config.MIN_PASSWORD_LENGTH} characters long"
        )
    if confirm_password is not None and password != confirm_password:
        raise ValidationError("Passwords do not match")


class SessionManager:
    """
    Orchestrates login, registration, identity and biometric sign-in, and logout.

    All collaborators are injected; nothing here is a process-wide singleton.
    """

    def __init__(
        self,
        api_client: AuthAPIClient,
        credential_store: CredentialStore,
        settings: SettingsStore,
        biometric_authenticator: Optional[BiometricAuthenticator] = None,
        identity_provider_url: str = "",
    ) -> None:
        self.api_client = api_client
        self.credential_store = credential_store
        self.settings = settings
        self.biometrics: BiometricAuthenticator = (
            biometric_authenticator or UnavailableBiometricAuthenticator()
        )
        self.identity_provider_url = identity_provider_url or config.IDENTITY_PROVIDER_URL

        self._lock = threading.Lock()
        self.current_user: Optional[User] = None
        self.error_message: Optional[str] = None
        self.on_state_change: Optional[Callable[[SessionState, Optional[User]], None]] = None

        # The persisted flag alone restores the signed-in state (no live token).
        if settings.get_bool(config.SETTING_IS_AUTHENTICATED):
            self.state = SessionState.AUTHENTICATED
        else:
            self.state = SessionState.UNAUTHENTICATED

        # Stored credentials only pre-fill the login form.
        saved_email, saved_password = credential_store.get()
        self.saved_email: str = saved_email or ""
        self.saved_password: str = saved_password or ""

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED

    @property
    def token(self) -> Optional[str]:
        """Bearer token of the live session, if any."""
        user = self.current_user
        return user.token if user else None

    def _notify(self) -> None:
        if self.on_state_change:
            self.on_state_change(self.state, self.current_user)

    def _begin(self) -> None:
        with self._lock:
            if self.state == SessionState.AUTHENTICATING:
                raise AuthenticationInProgress()
            self.state = SessionState.AUTHENTICATING
        self._notify()

    def _complete(self, user: User, email: str, password: str) -> None:
        # Credential caching is best-effort; login succeeds either way.
        saved = self.credential_store.save(email, password)
        logger.info(f"Credentials saved for biometric login: {saved}")

        with self._lock:
            self.current_user = user
            self.state = SessionState.AUTHENTICATED
            self.error_message = None
            self.saved_email = email
            self.saved_password = password

        self.settings.update({
            config.SETTING_IS_AUTHENTICATED: True,
            config.SETTING_USER_NAME: user.name,
            config.SETTING_USER_EMAIL: user.email,
            config.SETTING_NOTIFICATIONS_ENABLED: user.notification_enabled,
            config.SETTING_DARK_MODE_ENABLED: user.theme == config.THEME_DARK,
            config.SETTING_DEFAULT_STUDY_DURATION: user.default_study_duration,
        })
        self._notify()

    def _fail(self, error: StudyPlannerError) -> None:
        logger.warning(f"Authentication failed: {error.message}")
        with self._lock:
            self.current_user = None
            self.state = SessionState.UNAUTHENTICATED
            self.error_message = error.message
        self.settings.set(config.SETTING_IS_AUTHENTICATED, False)
        self._notify()

    def _authenticate(self, operation: Callable[[], User], email: Optional[str],
                      password: str) -> User:
        """Run one guarded transition: begin, call the server, complete or fail."""
        self._begin()
        try:
            user = operation()
        except StudyPlannerError as e:
            self._fail(e)
            raise
        except Exception:
            self._fail(StudyPlannerError())
            raise
        self._complete(user, email or user.email, password)
        return user

    def _reject(self, error: StudyPlannerError) -> StudyPlannerError:
        """Record a client-side rejection without touching state."""
        self.error_message = error.message
        return error

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> User:
        """
        Log in with email and password.

        Raises:
            ValidationError: Either field is empty (state unchanged).
            AuthenticationInProgress: Another transition is in flight.
            APIError: The server call failed (state -> unauthenticated).
        """
        if not email or not password:
            raise self._reject(ValidationError("Please enter both email and password"))
        return self._authenticate(lambda: self.api_client.login(email, password), email, password)

    def register(self, name: str, email: str, password: str,
                 confirm_password: Optional[str] = None) -> User:
        """Create an account and sign in with it."""
        try:
            validate_registration(name, email, password, confirm_password)
        except ValidationError as e:
            raise self._reject(e)
        return self._authenticate(
            lambda: self.api_client.register(email, password, name.strip()), email, password
        )

    def sign_in_with_identity(self, identity_token: str,
                              profile: Optional[IdentityProfile] = None) -> User:
        """
        Sign in with a third-party identity token.

        The provider never hands out a password, so a random placeholder is
        stored alongside the email.
        """
        if not identity_token:
            raise self._reject(ValidationError("Missing identity token"))
        email = profile.email if profile and profile.email else None
        placeholder_password = str(uuid.uuid4())
        return self._authenticate(
            lambda: self.api_client.register_with_identity(identity_token, profile),
            email, placeholder_password,
        )

    def sign_in_with_identity_provider(self, timeout: Optional[float] = None) -> User:
        """Run the browser identity flow, then sign in with the captured token."""
        kwargs = {"timeout": timeout} if timeout is not None else {}
        result = run_identity_callback_server(self.identity_provider_url, **kwargs)
        if not result:
            # No transition was started, so state is left alone.
            raise self._reject(IdentityProviderError())
        profile = IdentityProfile(name=result.get("name") or None, email=result.get("email") or None)
        return self.sign_in_with_identity(result["identity_token"], profile)

    def sign_in_with_biometrics(self) -> User:
        """
        Re-login with stored credentials after biometric approval.

        Raises:
            BiometricAuthFailed: The platform denied approval.
            NoStoredCredentials: Email or password missing (no network call).
        """
        approved, reason = self.biometrics.authenticate(config.BIOMETRIC_LOGIN_REASON)
        if not approved:
            raise self._reject(BiometricAuthFailed(reason))

        email, password = self.credential_store.get()
        if not email or not password:
            raise self._reject(NoStoredCredentials())

        self.saved_email = email
        self.saved_password = password
        return self.login(email, password)

    def logout(self) -> None:
        """Forget the session locally. Never contacts the server."""
        self.settings.set(config.SETTING_IS_AUTHENTICATED, False)
        self.credential_store.delete()
        self.api_client.token = None
        with self._lock:
            self.current_user = None
            self.state = SessionState.UNAUTHENTICATED
            self.error_message = None
            self.saved_email = ""
            self.saved_password = ""
        logger.info("Logged out and cleared stored credentials")
        self._notify()

    # ------------------------------------------------------------------
    # Callback variants
    # ------------------------------------------------------------------

    def login_in_background(self, email: str, password: str,
                            completion: Callable[[Result[User]], None],
                            cancel_event: Optional[threading.Event] = None) -> threading.Thread:
        return run_in_background(lambda: self.login(email, password),
                                 completion, cancel_event, name="session-login")

    def register_in_background(self, name: str, email: str, password: str,
                               confirm_password: Optional[str],
                               completion: Callable[[Result[User]], None],
                               cancel_event: Optional[threading.Event] = None) -> threading.Thread:
        return run_in_background(lambda: self.register(name, email, password, confirm_password),
                                 completion, cancel_event, name="session-register")

    def sign_in_with_identity_in_background(
        self,
        identity_token: str,
        profile: Optional[IdentityProfile],
        completion: Callable[[Result[User]], None],
        cancel_event: Optional[threading.Event] = None,
    ) -> threading.Thread:
        return run_in_background(lambda: self.sign_in_with_identity(identity_token, profile),
                                 completion, cancel_event, name="session-identity")

    def sign_in_with_biometrics_in_background(
        self,
        completion: Callable[[Result[User]], None],
        cancel_event: Optional[threading.Event] = None,
    ) -> threading.Thread:
        return run_in_background(self.sign_in_with_biometrics,
                                 completion, cancel_event, name="session-biometrics")
