"""
Application exceptions for the ledger engine.

Every error carries a ``resolution`` hint so clients can tell
"nothing happened, fix your input" from "nothing happened, try again"
from "something is misconfigured, contact an administrator".
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from typing import Any, Dict
import logging

logger = logging.getLogger("errors")

FIX_INPUT = "fix_input"
TRY_AGAIN = "try_again"
CONTACT_ADMIN = "contact_admin"


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500,
                 resolution: str = FIX_INPUT, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.resolution = resolution
        self.details = details or {}
        super().__init__(message)


class ValidationError(AppException):
    """Malformed or incomplete ledger input."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class NotFoundError(AppException):
    resource = "Record"
    error_code = "ERR_NOT_FOUND"

    def __init__(self, resource_id: Any = None):
        message = f"{self.resource} not found"
        if resource_id is not None:
            message = f"{self.resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code=self.error_code,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": self.resource, "id": resource_id}
        )


class ProductNotFound(NotFoundError):
    resource = "Product"
    error_code = "ERR_PRODUCT_NOT_FOUND"


class EntityNotFound(NotFoundError):
    resource = "Business partner"
    error_code = "ERR_ENTITY_NOT_FOUND"


class LedgerEntryNotFound(NotFoundError):
    resource = "Ledger entry"
    error_code = "ERR_LEDGER_ENTRY_NOT_FOUND"


class UpdateRequestNotFound(NotFoundError):
    resource = "Update request"
    error_code = "ERR_UPDATE_REQUEST_NOT_FOUND"


class PaymentRecordNotFound(NotFoundError):
    resource = "Payment record"
    error_code = "ERR_PAYMENT_RECORD_NOT_FOUND"


class NotificationNotFound(NotFoundError):
    resource = "Notification"
    error_code = "ERR_NOTIFICATION_NOT_FOUND"


class InsufficientStock(AppException):
    """A sale (or the reversal of a purchase) would take stock below zero."""

    def __init__(self, product_name: str, available: int, requested: int):
        super().__init__(
            message=f"Insufficient stock for '{product_name}'. Available: {available}, Required: {requested}",
            error_code="ERR_INSUFFICIENT_STOCK",
            status_code=status.HTTP_409_CONFLICT,
            details={"product": product_name, "available": available, "required": requested}
        )


class ConcurrentModification(AppException):
    def __init__(self, message: str = "The records changed while the operation was running. Please try again."):
        super().__init__(
            message=message,
            error_code="ERR_CONCURRENT_MODIFICATION",
            status_code=status.HTTP_409_CONFLICT,
            resolution=TRY_AGAIN
        )


class RequestAlreadyPending(AppException):
    def __init__(self, ledger_entry_id: int, request_id: int = None):
        super().__init__(
            message=f"Ledger entry {ledger_entry_id} already has a pending change request",
            error_code="ERR_REQUEST_ALREADY_PENDING",
            status_code=status.HTTP_409_CONFLICT,
            details={"ledger_entry_id": ledger_entry_id, "request_id": request_id}
        )


class RequestNotPending(AppException):
    def __init__(self, request_id: int, current_status: str):
        super().__init__(
            message=f"Update request {request_id} is already {current_status}",
            error_code="ERR_REQUEST_NOT_PENDING",
            status_code=status.HTTP_409_CONFLICT,
            details={"request_id": request_id, "status": current_status}
        )


class PermissionDenied(AppException):
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            error_code="ERR_PERMISSION_DENIED",
            status_code=status.HTTP_403_FORBIDDEN
        )


class IndexRequired(AppException):
    """The backing store refused a query because a composite index is missing."""

    def __init__(self, query_name: str, detail: str):
        super().__init__(
            message=f"The query '{query_name}' requires a database index that is missing. Contact an administrator.",
            error_code="ERR_INDEX_REQUIRED",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            resolution=CONTACT_ADMIN,
            details={"query": query_name, "store_message": detail}
        )


class StoreUnavailable(AppException):
    def __init__(self, detail: str):
        super().__init__(
            message="The database is unavailable. Contact an administrator if this persists.",
            error_code="ERR_STORE_UNAVAILABLE",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            resolution=CONTACT_ADMIN,
            details={"store_message": detail}
        )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Render application exceptions in one envelope."""
    if exc.resolution == CONTACT_ADMIN:
        logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.details}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "resolution": exc.resolution,
            "details": exc.details
        }
    )
