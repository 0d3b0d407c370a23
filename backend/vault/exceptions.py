"""
Vault Errors — Failure taxonomy shared by the gate, store, extractor and validators.
Each error knows the HTTP status it maps to and any extra payload the caller
needs to render guidance (remaining attempts, retry-after, selection verdict).
"""
from typing import Any, Dict, Optional


class VaultError(Exception):
    """Base class for every error the vault surfaces to a caller."""

    status_code: int = 500

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra: Dict[str, Any] = extra

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message, **self.extra}


class AuthenticationError(VaultError):
    """Wrong PIN."""

    status_code = 401

    def __init__(self, message: str = "Invalid PIN", attempts_remaining: Optional[int] = None):
        super().__init__(message, attempts_remaining=attempts_remaining)
        self.attempts_remaining = attempts_remaining


class LockedOutError(VaultError):
    """Too many failed PIN attempts; verification suspended until retry_after."""

    status_code = 423

    def __init__(self, retry_after, retry_after_minutes: int):
        super().__init__(
            f"Locker is locked due to multiple failed attempts. "
            f"Try again in {retry_after_minutes} minutes.",
            retry_after=retry_after.isoformat() if retry_after else None,
            retry_after_minutes=retry_after_minutes,
        )
        self.retry_after = retry_after
        self.retry_after_minutes = retry_after_minutes


class NotFoundError(VaultError):
    status_code = 404


class DuplicateError(VaultError):
    status_code = 409


class ConcurrentUpdateError(VaultError):
    """A record changed underneath a read-modify-write sequence."""

    status_code = 409


class ValidationError(VaultError):
    """Malformed input, bad PIN format, or an unsatisfied document selection."""

    status_code = 400

    def __init__(self, message: str, verdict: Optional[Dict[str, Any]] = None):
        if verdict is not None:
            super().__init__(message, verdict=verdict)
            self.status_code = 422
        else:
            super().__init__(message)
        self.verdict = verdict


class StorageError(VaultError):
    """Persistence failed; fatal for the current operation."""

    status_code = 500


class ExtractionFailure(VaultError):
    """OCR or preprocessing failed. Recovered inside the extractor, never surfaced."""

    status_code = 500
