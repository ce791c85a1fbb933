"""Remote study-session and task-search endpoints."""

import logging
from typing import Callable, List, Optional, Tuple

import httpx

import config
from core.errors import DecodeError
from core.models import StudySession, StudyTask
from sync.transport import create_http_client, send_json

logger = logging.getLogger(__name__)


class StudyService:
    """Client for scheduled sessions, weekly progress and remote task search."""

    def __init__(self, token_provider: Callable[[], Optional[str]], base_url: str = "",
                 client: Optional[httpx.Client] = None) -> None:
        self.base_url = (base_url or config.API_BASE_URL).rstrip("/")
        self._token_provider = token_provider
        self._client = client or create_http_client()

    def _get(self, path: str, params: Optional[dict] = None):
        return send_json(self._client, "GET", f"{self.base_url}{path}",
                         token=self._token_provider(), params=params)

    def get_next_session(self) -> Optional[StudySession]:
        """Return the next scheduled session, or None if nothing is scheduled."""
        payload = self._get("/sessions/next")
        if payload is None:
            return None
        return StudySession.from_dict(payload)

    def get_weekly_progress(self) -> List[Tuple[str, float]]:
        """
        Return study hours per day for the current week.

        Returns:
            List of (day label, hours) in server order.
        """
        payload = self._get("/progress/weekly")
        if not isinstance(payload, list):
            raise DecodeError("Weekly progress must be a list", raw_body=str(payload))
        progress = []
        for entry in payload:
            day = entry.get("day") if isinstance(entry, dict) else None
            hours = entry.get("hours") if isinstance(entry, dict) else None
            if not isinstance(day, str) or isinstance(hours, bool) or not isinstance(hours, (int, float)):
                raise DecodeError("Invalid weekly progress entry", raw_body=str(entry))
            progress.append((day, float(hours)))
        return progress

    def start_session(self, task_id: str, duration_seconds: float) -> None:
        """Start a study session for a task."""
        send_json(self._client, "POST", f"{self.base_url}/sessions/start",
                  body={"task_id": task_id, "duration": duration_seconds},
                  token=self._token_provider(), expect_body=False)
        logger.info(f"Started remote session for task {task_id}")

    def end_current_session(self) -> None:
        """End whichever session is running on the server."""
        send_json(self._client, "POST", f"{self.base_url}/sessions/current/end",
                  token=self._token_provider(), expect_body=False)

    def search_tasks(self, query: str) -> List[StudyTask]:
        """Search the user's tasks on the server."""
        payload = self._get("/tasks/search", params={"q": query})
        if not isinstance(payload, list):
            raise DecodeError("Task search result must be a list", raw_body=str(payload))
        return [StudyTask.from_dict(item) for item in payload]
