"""Domain exceptions for the ledger.

Services raise these for business rule violations; the global error handler
turns them into ``{"error": ..., "details": ...}`` JSON responses using the
``status_code`` carried by each class.
"""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Base class for all ledger domain errors."""

    status_code: int = 500
    error_code: str = "ledger_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "code": self.error_code}
        if self.details:
            body["details"] = self.details
        return body


# ---------------------------------------------------------------------------
# Client errors
# ---------------------------------------------------------------------------


class ValidationError(LedgerError):
    """Malformed input."""

    status_code = 400
    error_code = "validation_error"


class NotFound(LedgerError):
    status_code = 404
    error_code = "not_found"


class AccountNotFound(NotFound):
    error_code = "account_not_found"

    def __init__(self, **lookup: Any) -> None:
        super().__init__("User not found", lookup)


class SessionNotFound(NotFound):
    error_code = "session_not_found"

    def __init__(self, device_id: str, session_id: str) -> None:
        super().__init__(
            "Session not found or already ended",
            {"device_id": device_id, "session_id": session_id},
        )


class Conflict(LedgerError):
    """Duplicate submission of a one-time event."""

    status_code = 409
    error_code = "conflict"


class DeviceExists(Conflict):
    error_code = "device_exists"

    def __init__(self, device_id: str) -> None:
        super().__init__("Device is already registered", {"device_id": device_id})


class AlreadyReviewed(Conflict):
    status_code = 400
    error_code = "already_reviewed"

    def __init__(self, account_id: int) -> None:
        super().__init__("User has already submitted a review", {"user_id": account_id})


class DuplicateShare(Conflict):
    status_code = 400
    error_code = "duplicate_share"

    def __init__(self, account_id: int, share_id: str) -> None:
        super().__init__("Share already recorded", {"user_id": account_id, "share_id": share_id})


# ---------------------------------------------------------------------------
# Server errors
# ---------------------------------------------------------------------------


class StoreError(LedgerError):
    """Transaction or connectivity failure in the relational store."""

    status_code = 500
    error_code = "store_error"


class GenerationExhausted(StoreError):
    """No unused referral code found within the allowed attempts."""

    error_code = "generation_exhausted"


class CacheError(LedgerError):
    """Cache backend failure. Logged and treated as a miss; never reaches a client."""

    error_code = "cache_error"
