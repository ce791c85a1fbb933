"""User profile and preference endpoints on the user/session-data service."""

import logging
from typing import Callable, Optional

import httpx

import config
from core.errors import ValidationError
from core.models import User
from sync.transport import create_http_client, send_json

logger = logging.getLogger(__name__)


class UserService:
    """
    Reads the current user and pushes preference changes.

    The bearer token is looked up on every call through token_provider so
    the service always follows the live session.
    """

    def __init__(self, token_provider: Callable[[], Optional[str]], base_url: str = "",
                 client: Optional[httpx.Client] = None) -> None:
        self.base_url = (base_url or config.API_BASE_URL).rstrip("/")
        self._token_provider = token_provider
        self._client = client or create_http_client()

    def get_current_user(self) -> User:
        """Fetch the signed-in user (GET /users/me)."""
        token = self._token_provider()
        payload = send_json(self._client, "GET", f"{self.base_url}/users/me", token=token)
        return User.from_dict(payload, token=token or "")

    def update_preferences(self, notifications_enabled: bool, theme: str) -> None:
        """
        Push notification and theme preferences (PATCH /users/preferences).

        Raises:
            ValidationError: If theme is not "light" or "dark".
        """
        if theme not in config.VALID_THEMES:
            raise ValidationError(f"Unknown theme '{theme}'")
        send_json(
            self._client, "PATCH", f"{self.base_url}/users/preferences",
            body={"notifications_enabled": notifications_enabled, "theme": theme},
            token=self._token_provider(), expect_body=False,
        )

    def update_default_study_duration(self, duration_seconds: float) -> None:
        """
        Push the default study-session length (PATCH /users/study-duration).

        Args:
            duration_seconds: Length in seconds; must be positive.
        """
        if duration_seconds <= 0:
            raise ValidationError("Study duration must be positive")
        send_json(
            self._client, "PATCH", f"{self.base_url}/users/study-duration",
            body={"default_duration": duration_seconds},
            token=self._token_provider(), expect_body=False,
        )
