"""
Custom exception classes and error handlers
Provides consistent error responses across the application
"""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from typing import Any, Dict, List, Optional

class RentalOrdersException(HTTPException):
    """Base exception class for the rental orders application"""

    def __init__(
        self,
        status_code: int,
        detail: Any,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code

class ForbiddenException(RentalOrdersException):
    """403 Forbidden"""

    def __init__(self, detail: str = "Forbidden", error_code: str = "FORBIDDEN"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code=error_code
        )

class NotFoundException(RentalOrdersException):
    """404 Not Found"""

    def __init__(self, detail: str = "Not found", error_code: str = "NOT_FOUND"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code=error_code
        )

class ConflictException(RentalOrdersException):
    """409 Conflict"""

    def __init__(self, detail: Any, error_code: str = "CONFLICT"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code=error_code
        )

class ValidationException(RentalOrdersException):
    """422 Unprocessable Entity"""

    def __init__(self, detail: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code=error_code
        )

# Malformed input
class InvalidLineItemException(ValidationException):
    """Order line cannot be priced"""

    def __init__(self, detail: str):
        super().__init__(
            detail=detail,
            error_code="INVALID_LINE_ITEM"
        )

class InconsistentRentalWindowException(ValidationException):
    """Rental dates are inverted or disagree with the declared day count"""

    def __init__(self, detail: str = "Rental end date must be after the start date"):
        super().__init__(
            detail=detail,
            error_code="INCONSISTENT_RENTAL_WINDOW"
        )

class InvalidOrderContextException(ValidationException):
    """Coupon cannot be evaluated against the supplied order"""

    def __init__(self, detail: str):
        super().__init__(
            detail=detail,
            error_code="INVALID_ORDER_CONTEXT"
        )

# Consistency and authorization failures
class OrderNotAssignedToWorkerException(ForbiddenException):
    """Delivery partner acting on an order assigned to someone else"""

    def __init__(self, order_number: str, worker_id: str):
        super().__init__(
            detail=f"Order {order_number} is not assigned to delivery partner {worker_id}",
            error_code="ORDER_NOT_ASSIGNED_TO_WORKER"
        )

class IllegalStatusTransitionException(ConflictException):
    """Requested status change is not allowed from the current state"""

    def __init__(self, rejections: List[Dict[str, Any]]):
        super().__init__(
            detail={"message": "Illegal status transition", "rejections": rejections},
            error_code="ILLEGAL_STATUS_TRANSITION"
        )

class StaleOrderException(ConflictException):
    """Order changed since it was read"""

    def __init__(self, order_id: Any, expected_version: int):
        super().__init__(
            detail=f"Order {order_id} was modified concurrently (expected version {expected_version})",
            error_code="STALE_ORDER"
        )

class CouponNotFoundException(NotFoundException):
    """Coupon code does not exist"""

    def __init__(self, detail: str = "Invalid coupon code"):
        super().__init__(
            detail=detail,
            error_code="COUPON_NOT_FOUND"
        )

class CouponExhaustedException(ConflictException):
    """Conditional usage increment matched no row"""

    def __init__(self, code: str):
        super().__init__(
            detail=f"Coupon {code} cannot be redeemed: usage limit reached or coupon inactive",
            error_code="COUPON_EXHAUSTED"
        )

async def rental_orders_exception_handler(request: Request, exc: RentalOrdersException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.error_code, "detail": exc.detail}},
        headers=exc.headers,
    )
