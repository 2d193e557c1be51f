from __future__ import annotations

from enum import Enum


class GreenformError(Exception):
    """Base class for batch-level errors."""


class ValidationError(GreenformError):
    """No usable order identifiers in the batch input."""


class AuthErrorReason(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    NETWORK_ERROR = "network_error"
    MALFORMED_RESPONSE = "malformed_response"


class AuthError(GreenformError):
    """Login failed; no valid token can be obtained."""

    def __init__(self, reason: AuthErrorReason, message: str = "") -> None:
        self.reason = reason
        self.message = message or reason.value.replace("_", " ")
        super().__init__(f"{reason.value}: {self.message}")
