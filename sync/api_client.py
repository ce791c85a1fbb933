"""
AuthAPIClient - authentication requests against the auth service.

Handles:
- Email/password login and registration
- Registration via a third-party identity token
- The three-step password reset (request, verify OTP, reset)

Every operation is exactly one POST with a JSON body. Input validation
is the caller's job. Each operation has a blocking form (returns or
raises) and a callback form (*_in_background) that is a thin adapter
over it and delivers a Result.
"""

import logging
import threading
from typing import Callable, Optional

import httpx

import config
from core.models import (
    IdentityProfile,
    OTPResponse,
    ResetPasswordResponse,
    Result,
    User,
    VerifyOTPResponse,
)
from sync.transport import create_http_client, run_in_background, send_json

logger = logging.getLogger(__name__)


class AuthAPIClient:
    """
    HTTP client for the authentication service.

    Remembers the bearer token of the last successfully decoded user.
    """

    LOGIN_PATH = "/api/auth/login"
    REGISTER_PATH = "/api/auth/register"
    REGISTER_IDENTITY_PATH = "/register-apple"
    FORGOT_PASSWORD_PATH = "/forgot-password"
    VERIFY_OTP_PATH = "/verify-otp"
    RESET_PASSWORD_PATH = "/reset-password"

    def __init__(self, base_url: str = "", client: Optional[httpx.Client] = None) -> None:
        """
        Initialise the client.

        Args:
            base_url: Auth service base URL (falls back to config.AUTH_BASE_URL).
            client: Optional httpx client (tests inject one with a MockTransport).
        """
        self.base_url = (base_url or config.AUTH_BASE_URL).rstrip("/")
        self._client = client or create_http_client()
        self.token: Optional[str] = None

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _post(self, path: str, body: dict):
        return send_json(self._client, "POST", self._url(path), body=body)

    def _remember(self, user: User) -> User:
        self.token = user.token
        logger.info(f"Authenticated as {user.email}")
        return user

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._client.close()

    # ------------------------------------------------------------------
    # Blocking operations
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> User:
        """
        Log in with email and password.

        Returns:
            The authenticated User.

        Raises:
            APIError: Any transport, status or decode failure.
        """
        payload = self._post(self.LOGIN_PATH, {"email": email, "password": password})
        return self._remember(User.from_auth_payload(payload))

    def register(self, email: str, password: str, name: str) -> User:
        """Create an account and return the authenticated User."""
        payload = self._post(self.REGISTER_PATH, {"email": email, "password": password, "name": name})
        return self._remember(User.from_auth_payload(payload))

    def register_with_identity(self, identity_token: str,
                               profile: Optional[IdentityProfile] = None) -> User:
        """
        Sign in (creating the account if needed) with a third-party identity token.

        Args:
            identity_token: Token issued by the identity provider.
            profile: Optional name/email the provider shared.
        """
        body = {
            "identity_token": identity_token,
            "user": profile.to_dict() if profile else {},
        }
        payload = self._post(self.REGISTER_IDENTITY_PATH, body)
        return self._remember(User.from_auth_payload(payload))

    def request_password_reset(self, email: str) -> OTPResponse:
        """Ask the server to send a one-time password to the email."""
        return OTPResponse.from_dict(self._post(self.FORGOT_PASSWORD_PATH, {"email": email}))

    def verify_otp(self, otp_id: str, otp: str) -> VerifyOTPResponse:
        """Exchange an OTP for a reset token."""
        return VerifyOTPResponse.from_dict(
            self._post(self.VERIFY_OTP_PATH, {"otp_id": otp_id, "otp": otp})
        )

    def reset_password(self, reset_token: str, new_password: str) -> ResetPasswordResponse:
        """Set a new password using a reset token."""
        return ResetPasswordResponse.from_dict(
            self._post(self.RESET_PASSWORD_PATH,
                       {"reset_token": reset_token, "new_password": new_password})
        )

    # ------------------------------------------------------------------
    # Callback operations
    # ------------------------------------------------------------------

    def login_in_background(self, email: str, password: str,
                            completion: Callable[[Result[User]], None],
                            cancel_event: Optional[threading.Event] = None) -> threading.Thread:
        return run_in_background(lambda: self.login(email, password),
                                 completion, cancel_event, name="login")

    def register_in_background(self, email: str, password: str, name: str,
                               completion: Callable[[Result[User]], None],
                               cancel_event: Optional[threading.Event] = None) -> threading.Thread:
        return run_in_background(lambda: self.register(email, password, name),
                                 completion, cancel_event, name="register")

    def register_with_identity_in_background(
        self,
        identity_token: str,
        profile: Optional[IdentityProfile],
        completion: Callable[[Result[User]], None],
        cancel_event: Optional[threading.Event] = None,
    ) -> threading.Thread:
        return run_in_background(lambda: self.register_with_identity(identity_token, profile),
                                 completion, cancel_event, name="register-identity")

    def request_password_reset_in_background(
        self,
        email: str,
        completion: Callable[[Result[OTPResponse]], None],
        cancel_event: Optional[threading.Event] = None,
    ) -> threading.Thread:
        return run_in_background(lambda: self.request_password_reset(email),
                                 completion, cancel_event, name="forgot-password")

    def verify_otp_in_background(
        self,
        otp_id: str,
        otp: str,
        completion: Callable[[Result[VerifyOTPResponse]], None],
        cancel_event: Optional[threading.Event] = None,
    ) -> threading.Thread:
        return run_in_background(lambda: self.verify_otp(otp_id, otp),
                                 completion, cancel_event, name="verify-otp")

    def reset_password_in_background(
        self,
        reset_token: str,
        new_password: str,
        completion: Callable[[Result[ResetPasswordResponse]], None],
        cancel_event: Optional[threading.Event] = None,
    ) -> threading.Thread:
        return run_in_background(lambda: self.reset_password(reset_token, new_password),
                                 completion, cancel_event, name="reset-password")
