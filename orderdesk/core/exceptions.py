"""
Custom exceptions for the fulfillment core.
Handles HTTP-facing errors, validation errors, and business rule violations
raised by the rotation, order and inventory services.
"""

from typing import Any, Dict, Optional, List
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Standard error detail structure"""
    code: str
    message: str
    field: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class BaseCustomException(HTTPException):
    """Base class for all custom exceptions"""

    retryable = False

    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        field: Optional[str] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code
        self.field = field

    def __str__(self) -> str:
        return str(self.detail)


# =============================================================================
# HTTP EXCEPTIONS
# =============================================================================

class NotFoundError(BaseCustomException):
    """Resource not found exception"""

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} with identifier '{identifier}' not found",
            error_code="RESOURCE_NOT_FOUND"
        )
        self.resource = resource
        self.identifier = identifier


class ForbiddenError(BaseCustomException):
    """Forbidden access exception"""

    def __init__(self, message: str = "Access denied"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=message,
            error_code="FORBIDDEN"
        )


class ConflictError(BaseCustomException):
    """Concurrent modification detected; the caller may retry."""

    retryable = True

    def __init__(self, message: str, resource: str = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=message,
            error_code="RESOURCE_CONFLICT"
        )
        self.resource = resource


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class ValidationError(BaseCustomException):
    """Base validation error"""

    def __init__(self, message: str, field: str = None, errors: List[ErrorDetail] = None):
        super().__init__(
            status_code=422,
            detail=message,
            error_code="VALIDATION_ERROR",
            field=field
        )
        self.errors = errors or []


class InvalidOrderStatusError(ValidationError):
    """Requested status change is not in the transition table"""

    def __init__(self, order_number: Any, current_status: str, requested_status: str, reason: str = None):
        message = reason or f"Cannot change order {order_number} from {current_status} to {requested_status}"
        super().__init__(
            message=message,
            field="status",
            errors=[
                ErrorDetail(
                    code="INVALID_ORDER_STATUS_TRANSITION",
                    message=message,
                    field="status",
                    details={"current_status": current_status, "requested_status": requested_status}
                )
            ]
        )
        self.error_code = "INVALID_ORDER_STATUS_TRANSITION"
        self.current_status = current_status
        self.requested_status = requested_status


# =============================================================================
# BUSINESS LOGIC ERRORS
# =============================================================================

class BusinessLogicError(BaseCustomException):
    """Base business logic error"""

    def __init__(self, message: str, error_code: str):
        super().__init__(
            status_code=422,
            detail=message,
            error_code=error_code
        )


class NoEligibleRepError(BusinessLogicError):
    """Nobody is active and included in the rotation"""

    def __init__(self, message: str = "No active sales representatives available"):
        super().__init__(message=message, error_code="NO_ELIGIBLE_REP")


class InvalidReversalError(BusinessLogicError):
    """Restore requested for an order whose deduction is not in effect"""

    def __init__(self, order_id: Any):
        super().__init__(
            message=f"Inventory for order {order_id} was never deducted; nothing to restore",
            error_code="INVALID_INVENTORY_REVERSAL"
        )
        self.order_id = order_id


class InvalidDeductionError(BusinessLogicError):
    """Deduction requested while a previous deduction is still in effect"""

    def __init__(self, order_id: Any):
        super().__init__(
            message=f"Inventory for order {order_id} is already deducted",
            error_code="DUPLICATE_INVENTORY_DEDUCTION"
        )
        self.order_id = order_id


class InsufficientStockError(BusinessLogicError):
    """Insufficient stock error"""

    def __init__(self, product_code: Any, requested_qty: int, available_qty: int):
        super().__init__(
            message=f"Insufficient stock for product {product_code}. Requested: {requested_qty}, Available: {available_qty}",
            error_code="INSUFFICIENT_STOCK"
        )
        self.requested_qty = requested_qty
        self.available_qty = available_qty


def format_error_response(error: BaseCustomException) -> Dict[str, Any]:
    """Format error response for consistent API responses"""
    response = {
        "error": True,
        "error_code": getattr(error, 'error_code', None) or 'UNKNOWN_ERROR',
        "message": error.detail,
        "status_code": error.status_code
    }

    if getattr(error, 'retryable', False):
        response["retryable"] = True

    if getattr(error, 'field', None):
        response["field"] = error.field

    if getattr(error, 'errors', None):
        response["errors"] = [err.model_dump() for err in error.errors]

    return response


async def custom_exception_handler(request: Request, exc: BaseCustomException) -> JSONResponse:
    """Render custom exceptions with the structured error body"""
    return JSONResponse(
        status_code=exc.status_code,
        content=format_error_response(exc),
        headers=exc.headers
    )


def get_exception_by_code(error_code: str) -> type:
    """Get exception class by error code"""
    exception_mapping = {
        "RESOURCE_NOT_FOUND": NotFoundError,
        "FORBIDDEN": ForbiddenError,
        "RESOURCE_CONFLICT": ConflictError,
        "VALIDATION_ERROR": ValidationError,
        "INVALID_ORDER_STATUS_TRANSITION": InvalidOrderStatusError,
        "NO_ELIGIBLE_REP": NoEligibleRepError,
        "INVALID_INVENTORY_REVERSAL": InvalidReversalError,
        "DUPLICATE_INVENTORY_DEDUCTION": InvalidDeductionError,
        "INSUFFICIENT_STOCK": InsufficientStockError,
    }

    return exception_mapping.get(error_code, BaseCustomException)
