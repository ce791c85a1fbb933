"""
Explicit wiring of the client-core services.

build_context() constructs every service once and hands each its
collaborators. Tests and UIs construct their own pieces instead of
reaching for globals.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

import config
from auth.biometrics import BiometricAuthenticator, get_biometric_authenticator
from auth.credentials import CredentialStore, FileSecretBackend
from auth.password_reset import PasswordResetFlow
from auth.session_manager import SessionManager
from core.focus import FocusController, create_focus_controller
from sync.api_client import AuthAPIClient
from sync.notification_service import NotificationService
from sync.study_service import StudyService
from sync.transport import create_http_client
from sync.user_service import UserService
from tracking.focus_session import FocusSession
from tracking.profile import ProfileController
from tracking.settings_store import SettingsStore
from tracking.task_store import TaskStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    http_client: httpx.Client
    api_client: AuthAPIClient
    credential_store: CredentialStore
    settings: SettingsStore
    session_manager: SessionManager
    user_service: UserService
    study_service: StudyService
    notification_service: NotificationService
    task_store: TaskStore
    focus_controller: FocusController
    profile: ProfileController

    def password_reset_flow(self) -> PasswordResetFlow:
        return PasswordResetFlow(self.api_client)

    def focus_session(self, estimated_focus_time: float = config.DEFAULT_FOCUS_TIME_SECONDS) -> FocusSession:
        return FocusSession(self.focus_controller, estimated_focus_time=estimated_focus_time)

    def close(self) -> None:
        self.http_client.close()


def build_context(
    http_client: Optional[httpx.Client] = None,
    credential_store: Optional[CredentialStore] = None,
    settings: Optional[SettingsStore] = None,
    task_store: Optional[TaskStore] = None,
    biometric_authenticator: Optional[BiometricAuthenticator] = None,
    focus_controller: Optional[FocusController] = None,
) -> AppContext:
    """
    Build the full service graph from config.

    Any argument left as None gets its default, config-driven implementation.
    """
    http_client = http_client or create_http_client()
    settings = settings or SettingsStore()
    credential_store = credential_store or CredentialStore(FileSecretBackend())

    api_client = AuthAPIClient(client=http_client)
    session_manager = SessionManager(
        api_client,
        credential_store,
        settings,
        biometric_authenticator=biometric_authenticator or get_biometric_authenticator(),
    )

    def token_provider() -> Optional[str]:
        return session_manager.token or api_client.token

    user_service = UserService(token_provider, client=http_client)
    context = AppContext(
        http_client=http_client,
        api_client=api_client,
        credential_store=credential_store,
        settings=settings,
        session_manager=session_manager,
        user_service=user_service,
        study_service=StudyService(token_provider, client=http_client),
        notification_service=NotificationService(token_provider, client=http_client),
        task_store=task_store or TaskStore(),
        focus_controller=focus_controller or create_focus_controller(),
        profile=ProfileController(settings, user_service, session_manager),
    )
    logger.debug(f"Context built (auth={api_client.base_url}, api={user_service.base_url})")
    return context
