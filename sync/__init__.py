"""
Sync package: HTTP clients for the authentication and user/session-data services.

Provides AuthAPIClient for login, registration and password reset.
"""

from sync.api_client import AuthAPIClient

__all__ = ["AuthAPIClient"]
