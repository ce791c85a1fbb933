"""
Credential storage for biometric re-login.

The email/password pair is stored as ONE serialised record under a single
key of a fixed service, so a failed save can never leave a mismatched
half of an older pair behind. At most one pair exists at a time.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple

import config
from core.storage import write_json_atomic

logger = logging.getLogger(__name__)


class SecretBackend(Protocol):
    """Platform secret store, scoped by service and key."""

    def get(self, service: str, key: str) -> Optional[str]: ...

    def set(self, service: str, key: str, value: str) -> None: ...

    def delete_service(self, service: str) -> None: ...


class FileSecretBackend:
    """
    Secret backend kept in a private JSON file in the user data directory.

    The file is written atomically and restricted to the owner (0600).
    Layout: {service: {key: value}}.
    """

    def __init__(self, secrets_file: Optional[Path] = None) -> None:
        self.secrets_file: Path = secrets_file or config.CREDENTIALS_FILE
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Dict[str, str]]:
        if not self.secrets_file.exists():
            return {}
        try:
            with open(self.secrets_file, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, ValueError, OSError) as e:
            logger.warning(f"Failed to read secret file: {e}. Starting fresh.")
            return {}
        if not isinstance(data, dict):
            logger.warning("Secret file is not a JSON object. Starting fresh.")
            return {}
        return data

    def _write(self, data: Dict[str, Dict[str, str]]) -> None:
        write_json_atomic(self.secrets_file, data, prefix='credentials_',
                          indent=None, mode=0o600)

    def get(self, service: str, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(service, {}).get(key)

    def set(self, service: str, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data.setdefault(service, {})[key] = value
            self._write(data)

    def delete_service(self, service: str) -> None:
        with self._lock:
            data = self._load()
            if service in data:
                del data[service]
                self._write(data)


class CredentialStore:
    """
    Durable, at-most-one email/password pair.

    Failures never propagate: save() reports a bool, get() degrades to
    None fields and delete() only logs.
    """

    def __init__(self, backend: Optional[SecretBackend] = None,
                 service: str = "", record_key: str = "") -> None:
        self.backend: SecretBackend = backend or FileSecretBackend()
        self.service = service or config.CREDENTIAL_SERVICE
        self.record_key = record_key or config.CREDENTIAL_RECORD_KEY
        self._lock = threading.Lock()

    def save(self, email: str, password: str) -> bool:
        """
        Replace any stored pair with (email, password).

        Returns:
            True if the pair was stored, False otherwise. On False, no
            earlier pair remains.
        """
        with self._lock:
            self._delete_unlocked()
            try:
                record = json.dumps({"email": email, "password": password})
                self.backend.set(self.service, self.record_key, record)
                return True
            except Exception as e:
                logger.warning(f"Failed to save credentials: {e}")
                return False

    def get(self) -> Tuple[Optional[str], Optional[str]]:
        """
        Read the stored pair.

        Returns:
            (email, password); a missing or unreadable field is None.
        """
        with self._lock:
            try:
                raw = self.backend.get(self.service, self.record_key)
            except Exception as e:
                logger.warning(f"Failed to read credentials: {e}")
                return None, None
        if not raw:
            return None, None
        try:
            record = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Stored credentials are unreadable: {e}")
            return None, None
        if not isinstance(record, dict):
            return None, None

        email = record.get("email")
        password = record.get("password")
        return (
            email if isinstance(email, str) else None,
            password if isinstance(password, str) else None,
        )

    def delete(self) -> None:
        """Remove every entry under the service. Idempotent."""
        with self._lock:
            self._delete_unlocked()

    def _delete_unlocked(self) -> None:
        try:
            self.backend.delete_service(self.service)
        except Exception as e:
            logger.warning(f"Failed to delete credentials: {e}")
