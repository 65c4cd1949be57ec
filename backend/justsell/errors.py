# Overview: Error taxonomy shared by services and routes.

"""
Service-layer exceptions.

Every error carries a human-readable message, an optional ``details`` dict
for structured context (e.g. available vs. requested quantity) and the HTTP
status class routes should answer with. Routes catch ``PosError`` and
serialize it with ``to_dict()``; anything else is an unexpected 500.
"""

from __future__ import annotations


class PosError(Exception):
    """Base class for caller-visible errors."""
    status_code = 400
    code = "POS_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class AuthenticationRequiredError(PosError):
    status_code = 401
    code = "AUTH_REQUIRED"


class PermissionDeniedError(PosError):
    status_code = 403
    code = "PERMISSION_DENIED"


class ValidationError(PosError, ValueError):
    """400-level input problem."""
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(PosError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(PosError):
    """409-level business rule conflict (e.g., duplicate SKU)."""
    status_code = 409
    code = "CONFLICT"


class PolicyViolation(PosError):
    """Business policy refused the operation (stock, cash, age, points)."""
    status_code = 400
    code = "POLICY_VIOLATION"


class InsufficientStockError(PolicyViolation):
    code = "INSUFFICIENT_STOCK"


class InsufficientCashError(PolicyViolation):
    code = "INSUFFICIENT_CASH"


class InsufficientPointsError(PolicyViolation):
    code = "INSUFFICIENT_POINTS"


class AgeVerificationRequiredError(PolicyViolation):
    code = "AGE_VERIFICATION_REQUIRED"

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["requires_age_verification"] = True
        return payload


class AgeVerificationDeniedError(PolicyViolation):
    code = "AGE_VERIFICATION_DENIED"


class OverrideNotAllowedError(PolicyViolation):
    code = "OVERRIDE_NOT_ALLOWED"


class PersistenceError(PosError):
    """The atomic commit failed; nothing was written."""
    status_code = 500
    code = "PERSISTENCE_ERROR"

    def __init__(self, message: str, cause: BaseException | None = None, details: dict | None = None):
        details = dict(details or {})
        if cause is not None:
            details.setdefault("cause", str(cause))
        super().__init__(message, details)
        self.cause = cause
