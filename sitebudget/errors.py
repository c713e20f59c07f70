# sitebudget/errors.py
from typing import Any, Dict, Iterable, Optional

from sitebudget.schemas.error_type import ErrorType


class LedgerError(Exception):
    """
    Base of every error a service raises on purpose.
    The Flask error handler renders it as {"ok": false, "error_type", "message", "details"}.
    """

    error_type: ErrorType = ErrorType.SYSTEM_ERROR
    status_code: int = 500

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": False,
            "error_type": self.error_type.value,
            "message": self.message,
            "details": self.details,
        }


class InputError(LedgerError):
    error_type = ErrorType.INPUT_ERROR
    status_code = 400


class BusinessRuleError(LedgerError):
    error_type = ErrorType.BUSINESS_RULE_ERROR
    status_code = 400


class AuthRequiredError(LedgerError):
    error_type = ErrorType.AUTH_REQUIRED
    status_code = 401

    def __init__(self, message: str = "Authentication required", *, redirect_after_ms: int = 500):
        super().__init__(
            message,
            details={"redirect": "/api/login", "redirect_after_ms": redirect_after_ms},
        )


class PermissionDeniedError(LedgerError):
    """
    403. granted_by lists the roles / relationships that would have allowed the call,
    so the client can render an access-denied explanation.
    """

    error_type = ErrorType.PERMISSION_DENIED
    status_code = 403

    def __init__(self, message: str = "Access denied", *, granted_by: Iterable[str] = ()):
        super().__init__(message, details={"granted_by": list(granted_by)})


class NotFoundError(LedgerError):
    error_type = ErrorType.NOT_FOUND
    status_code = 404

    def __init__(self, entity: str, entity_id: Optional[str] = None):
        message = f"{entity} not found" if entity_id is None else f"{entity} '{entity_id}' not found"
        super().__init__(message, details={"entity": entity, "id": entity_id})


class InvalidTransitionError(LedgerError):
    """Record is no longer in an open (draft / pending) state."""

    error_type = ErrorType.IRREVERSIBLE_CONFLICT
    status_code = 409

    def __init__(self, entity: str, entity_id: str, current_status: Optional[str] = None):
        super().__init__(
            f"{entity} '{entity_id}' is {current_status or 'closed'} and can no longer be approved or rejected",
            details={"entity": entity, "id": entity_id, "status": current_status},
        )


class DuplicateError(LedgerError):
    error_type = ErrorType.IRREVERSIBLE_CONFLICT
    status_code = 409
