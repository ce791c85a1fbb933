"""
Auth package: credential storage, biometric approval and the session manager.
"""

from auth.session_manager import SessionManager, SessionState

__all__ = ["SessionManager", "SessionState"]
