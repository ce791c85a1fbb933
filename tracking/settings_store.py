"""
Key-value settings storage for Smart Study Planner.

Holds small persisted state under well-known keys (see config.SETTING_*):
the authentication flag, the cached profile and the default study
duration. Data lives in one JSON file that is rewritten atomically.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional

import config
from core.storage import write_json_atomic

logger = logging.getLogger(__name__)


class SettingsStore:
    """
    Simple persistent key-value settings (thread-safe).

    Write failures are logged, not raised: settings are a cache and the
    in-memory value stays authoritative for the running process.
    """

    def __init__(self, settings_file: Optional[Path] = None) -> None:
        self.settings_file: Path = settings_file or config.SETTINGS_FILE
        self._lock = threading.Lock()
        self.data: Dict[str, Any] = self._load_data()

    def _load_data(self) -> Dict[str, Any]:
        if self.settings_file.exists():
            try:
                with open(self.settings_file, 'r') as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    return data
                logger.warning("Settings file is not a JSON object. Starting fresh.")
            except (json.JSONDecodeError, IOError, OSError, PermissionError) as e:
                logger.warning(f"Failed to load settings: {e}. Starting fresh.")
        return {}

    def _save_data(self) -> None:
        """Save settings atomically (temp file, then rename)."""
        try:
            write_json_atomic(self.settings_file, self.data, prefix='settings_')
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save settings: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self.data.get(key, default)

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key, default)
        return value if isinstance(value, bool) else default

    def get_str(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self.get(key, default)
        return value if isinstance(value, str) else default

    def get_number(self, key: str, default: float = 0) -> float:
        value = self.get(key, default)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return default
        return value

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def update(self, values: Dict[str, Any]) -> None:
        """Set several keys with a single write."""
        with self._lock:
            self.data.update(values)
            self._save_data()

    def remove(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self.data.pop(key, None)
            self._save_data()
