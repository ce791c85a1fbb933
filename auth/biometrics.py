"""
Biometric approval for re-login.

The session manager only depends on BiometricAuthenticator.authenticate();
platform adapters live here. On macOS the LocalAuthentication framework is
reached through PyObjC, loaded lazily the same way the other macOS
permission checks are.
"""

import sys
import threading
import logging
from typing import Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

# LAPolicy.deviceOwnerAuthenticationWithBiometrics
_LA_POLICY_BIOMETRICS = 1

# Seconds to wait for the user to answer the system prompt
_PROMPT_TIMEOUT = 60


class BiometricAuthenticator(Protocol):
    def authenticate(self, reason: str) -> Tuple[bool, Optional[str]]:
        """
        Prompt for biometric approval.

        Returns:
            (approved, failure reason). The reason is None when approved.
        """
        ...


class UnavailableBiometricAuthenticator:
    """Used on platforms without biometric support."""

    def authenticate(self, reason: str) -> Tuple[bool, Optional[str]]:
        return False, "Biometrics not available"


class MacOSBiometricAuthenticator:
    """Touch ID via LocalAuthentication.LAContext."""

    def __init__(self, timeout: float = _PROMPT_TIMEOUT) -> None:
        self.timeout = timeout

    def _context(self):
        import objc

        objc.loadBundle(
            'LocalAuthentication',
            bundle_path='/System/Library/Frameworks/LocalAuthentication.framework',
            module_globals=globals()
        )
        LAContext = objc.lookUpClass('LAContext')
        return LAContext.alloc().init()

    def authenticate(self, reason: str) -> Tuple[bool, Optional[str]]:
        if sys.platform != "darwin":
            return False, "Biometrics not available"

        try:
            context = self._context()
        except ImportError:
            logger.debug("PyObjC not available, cannot use Touch ID")
            return False, "Biometrics not available"
        except Exception as e:
            logger.debug(f"Error loading LocalAuthentication: {e}")
            return False, "Biometrics not available"

        can_evaluate, error = context.canEvaluatePolicy_error_(_LA_POLICY_BIOMETRICS, None)
        if not can_evaluate:
            return False, str(error.localizedDescription()) if error else "Biometrics not available"

        done = threading.Event()
        outcome = {"success": False, "reason": None}

        def _reply(success, auth_error) -> None:
            outcome["success"] = bool(success)
            if not success:
                outcome["reason"] = (
                    str(auth_error.localizedDescription()) if auth_error else "Authentication failed"
                )
            done.set()

        context.evaluatePolicy_localizedReason_reply_(_LA_POLICY_BIOMETRICS, reason, _reply)

        if not done.wait(timeout=self.timeout):
            logger.warning("Biometric prompt timed out")
            return False, "Authentication timed out"
        return outcome["success"], outcome["reason"]


def get_biometric_authenticator() -> BiometricAuthenticator:
    """Pick the adapter for the current platform."""
    if sys.platform == "darwin":
        return MacOSBiometricAuthenticator()
    return UnavailableBiometricAuthenticator()
