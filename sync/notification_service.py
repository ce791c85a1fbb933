"""Remote notification feed."""

import logging
from typing import Callable, List, Optional
from urllib.parse import quote

import httpx

import config
from core.errors import DecodeError
from core.models import NotificationItem
from sync.transport import create_http_client, send_json

logger = logging.getLogger(__name__)


class NotificationService:
    """Fetches recent notifications and updates their read state."""

    def __init__(self, token_provider: Callable[[], Optional[str]], base_url: str = "",
                 client: Optional[httpx.Client] = None) -> None:
        self.base_url = (base_url or config.API_BASE_URL).rstrip("/")
        self._token_provider = token_provider
        self._client = client or create_http_client()

    def get_recent_notifications(self) -> List[NotificationItem]:
        payload = send_json(self._client, "GET", f"{self.base_url}/notifications/recent",
                            token=self._token_provider())
        if not isinstance(payload, list):
            raise DecodeError("Notifications must be a list", raw_body=str(payload))
        return [NotificationItem.from_dict(item) for item in payload]

    def mark_as_read(self, notification_id: str) -> None:
        url = f"{self.base_url}/notifications/{quote(notification_id, safe='')}/read"
        send_json(self._client, "POST", url, token=self._token_provider(), expect_body=False)

    def clear_all_notifications(self) -> None:
        send_json(self._client, "POST", f"{self.base_url}/notifications/clear",
                  token=self._token_provider(), expect_body=False)
        logger.info("Cleared all notifications")
