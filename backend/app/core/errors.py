"""
Ledger error taxonomy.

Every error here is a precondition failure raised before any row is written.
None of them is retried; the caller re-checks from scratch if it wants to
try again. ``main.py`` renders them as ``{"error": code, "message": ...}``.
"""
from typing import Any, Optional


class LedgerError(Exception):
    """Base class for all ledger precondition failures."""

    status_code = 400
    error_code = "LEDGER_ERROR"

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class InsufficientFunds(LedgerError):
    status_code = 400
    error_code = "INSUFFICIENT_FUNDS"


class InsufficientAssets(LedgerError):
    status_code = 400
    error_code = "INSUFFICIENT_ASSETS"


class ConflictingActiveTrade(LedgerError):
    status_code = 409
    error_code = "CONFLICTING_ACTIVE_TRADE"


class AlreadyClosed(LedgerError):
    status_code = 409
    error_code = "ALREADY_CLOSED"


class AlreadySettled(LedgerError):
    status_code = 409
    error_code = "ALREADY_SETTLED"


class NotFound(LedgerError):
    status_code = 404
    error_code = "NOT_FOUND"


class NotOwner(LedgerError):
    status_code = 403
    error_code = "NOT_OWNER"


class ValidationError(LedgerError):
    """Missing or invalid required field."""

    status_code = 422
    error_code = "VALIDATION_ERROR"
