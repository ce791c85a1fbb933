"""Three-step password reset: request an OTP, verify it, set a new password."""

import logging
from typing import Optional

import config
from core.errors import ValidationError
from core.models import OTPResponse, ResetPasswordResponse, VerifyOTPResponse
from sync.api_client import AuthAPIClient

logger = logging.getLogger(__name__)


class PasswordResetFlow:
    """
    Chains the reset steps for one email address.

    The OTP id and reset token are held in memory only and dropped once
    the password has been reset.
    """

    def __init__(self, api_client: AuthAPIClient) -> None:
        self.api_client = api_client
        self.otp_id: Optional[str] = None
        self.reset_token: Optional[str] = None
        self.message: Optional[str] = None

    def request_code(self, email: str) -> OTPResponse:
        if not email.strip():
            raise ValidationError("Please enter your email address")
        response = self.api_client.request_password_reset(email.strip())
        self.otp_id = response.otp_id
        self.reset_token = None
        self.message = response.message
        logger.info("Password reset code requested")
        return response

    def verify_code(self, otp: str) -> VerifyOTPResponse:
        if self.otp_id is None:
            raise ValidationError("Request a reset code first")
        if not otp.strip():
            raise ValidationError("Please enter the code you received")
        response = self.api_client.verify_otp(self.otp_id, otp.strip())
        self.reset_token = response.reset_token
        self.message = response.message
        return response

    def reset_password(self, new_password: str,
                       confirm_password: Optional[str] = None) -> ResetPasswordResponse:
        if self.reset_token is None:
            raise ValidationError("Verify your reset code first")
        if len(new_password) < config.MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {config.MIN_PASSWORD_LENGTH} characters long"
            )
        if confirm_password is not None and new_password != confirm_password:
            raise ValidationError("Passwords do not match")

        response = self.api_client.reset_password(self.reset_token, new_password)
        self.otp_id = None
        self.reset_token = None
        self.message = response.message
        logger.info("Password reset completed")
        return response
