"""
Error taxonomy for the broker.

Each error carries the HTTP status it maps to and a short public message
that is safe to return to the client.  Components raise these (chaining
the underlying library exception); the route layer turns them into
responses.
"""

from __future__ import annotations

from typing import Optional


class BrokerError(Exception):
    """Base class for every handled failure."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail or self.message
        super().__init__(self.detail)


class Unauthenticated(BrokerError):
    status_code = 401
    message = "Not authenticated"


class UserNotFound(BrokerError):
    status_code = 401
    message = "No application user for this Google account"


class InvalidOAuthState(BrokerError):
    status_code = 400
    message = "Invalid or expired OAuth state"


class OAuthExchangeError(BrokerError):
    status_code = 500
    message = "Authentication failed."


class ProfileFetchError(BrokerError):
    status_code = 500
    message = "Failed to fetch Google profile."


class PersistenceError(BrokerError):
    status_code = 500
    message = "Failed to store Google tokens."


class ProviderNotLinked(BrokerError):
    status_code = 403
    message = "Google tokens not found"


class ProvisioningError(BrokerError):
    status_code = 500
    message = "Failed to create Google Meet."


class CredentialStoreError(BrokerError):
    status_code = 500
    message = "Failed to read Google tokens."
