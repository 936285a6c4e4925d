# app/core/errors.py
from __future__ import annotations


class LandRegistryError(Exception):
    """
    Base of every domain failure.

    Each subclass carries a stable `code` and the HTTP status the API renders it with.
    None of these leave partial writes behind: services raise them before mutating,
    or after rolling the session back.
    """

    code = "LAND_REGISTRY_ERROR"
    status_code = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(LandRegistryError):
    code = "VALIDATION_ERROR"
    status_code = 422


class NotFound(LandRegistryError):
    code = "NOT_FOUND"
    status_code = 404


class NotOwner(LandRegistryError):
    code = "NOT_OWNER"
    status_code = 403


class NotVerified(LandRegistryError):
    code = "NOT_VERIFIED"
    status_code = 403


class Unauthorized(LandRegistryError):
    code = "UNAUTHORIZED"
    status_code = 403


class AlreadyOwned(LandRegistryError):
    code = "ALREADY_OWNED"
    status_code = 409


class InvalidTransition(LandRegistryError):
    code = "INVALID_TRANSITION"
    status_code = 409


class InvalidState(LandRegistryError):
    code = "INVALID_STATE"
    status_code = 409


class TransactionInProgress(LandRegistryError):
    code = "TRANSACTION_IN_PROGRESS"
    status_code = 409


class DuplicateIdentifier(LandRegistryError):
    """Asset id collision. Retrying draws a new timestamp/random suffix."""

    code = "DUPLICATE_IDENTIFIER"
    status_code = 409
    retryable = True


class ConcurrentModification(LandRegistryError):
    """Optimistic version check failed: another writer touched the aggregate first."""

    code = "CONCURRENT_MODIFICATION"
    status_code = 409
    retryable = True


class IntegrityViolation(LandRegistryError):
    """
    Land and BuyRequest disagree about where a transaction is.
    Never auto-corrected; logged at CRITICAL and surfaced as a server error.
    """

    code = "INTEGRITY_VIOLATION"
    status_code = 500
