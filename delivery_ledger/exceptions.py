from typing import Any, Optional


class BaseAPIException(Exception):
    """
    Base exception for all API errors.

    Provides consistent structure with status_code, error_code, and details.
    """

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}


class ValidationException(BaseAPIException):
    """Invalid input data (HTTP 422)."""

    status_code = 422
    error_code = "VALIDATION_ERROR"


class BusinessException(BaseAPIException):
    """Business rule violation (HTTP 409)."""

    status_code = 409
    error_code = "BUSINESS_RULE_VIOLATION"


class NotFoundException(BaseAPIException):
    """Resource not found (HTTP 404)."""

    status_code = 404
    error_code = "RESOURCE_NOT_FOUND"


class ForbiddenException(BaseAPIException):
    """Caller is not allowed to perform the operation (HTTP 403)."""

    status_code = 403
    error_code = "FORBIDDEN"


class SystemException(BaseAPIException):
    """Internal system error (HTTP 500)."""

    status_code = 500
    error_code = "SYSTEM_ERROR"


# Domain-specific exceptions
class OrderNotFoundException(NotFoundException):
    error_code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: int):
        super().__init__(
            message="Order not found",
            details={"order_id": order_id},
        )


class UserNotFoundException(NotFoundException):
    error_code = "USER_NOT_FOUND"

    def __init__(self, user_id: int):
        super().__init__(
            message="User not found",
            details={"user_id": user_id},
        )


class InvalidTransitionException(BusinessException):
    """Requested status change is not an edge of the order state machine."""

    error_code = "ORDER_INVALID_TRANSITION"

    def __init__(self, order_id: int, current_status: str, target_status: str):
        super().__init__(
            message=(
                f"Cannot move order {order_id} from '{current_status}' "
                f"to '{target_status}'"
            ),
            details={
                "order_id": order_id,
                "current_status": current_status,
                "target_status": target_status,
            },
        )


class MissingDriverForAssignmentException(ValidationException):
    error_code = "ORDER_MISSING_DRIVER"

    def __init__(self, order_id: int):
        super().__init__(
            message=f"Assigning order {order_id} requires a driver_id",
            details={"order_id": order_id},
        )


class InvalidDriverException(ValidationException):
    """Referenced user does not exist or is not an active driver."""

    error_code = "ORDER_INVALID_DRIVER"

    def __init__(self, driver_id: int):
        super().__init__(
            message=f"User {driver_id} is not an active driver",
            details={"driver_id": driver_id},
        )


class InvalidRestaurantException(ValidationException):
    error_code = "ORDER_INVALID_RESTAURANT"

    def __init__(self, restaurant_id: int):
        super().__init__(
            message=f"User {restaurant_id} is not a restaurant",
            details={"restaurant_id": restaurant_id},
        )


class OrderClosedException(BusinessException):
    """Details edit attempted on a delivered or cancelled order."""

    error_code = "ORDER_CLOSED"

    def __init__(self, order_id: int, status: str):
        super().__init__(
            message=f"Order {order_id} is {status} and can no longer be edited",
            details={"order_id": order_id, "status": status},
        )


class TransitionForbiddenException(ForbiddenException):
    error_code = "ORDER_TRANSITION_FORBIDDEN"

    def __init__(self, order_id: int, actor_id: int, role: str, action: str):
        super().__init__(
            message=f"Role '{role}' may not {action} order {order_id}",
            details={"order_id": order_id, "actor_id": actor_id, "role": role},
        )


class DuplicateEmailException(BusinessException):
    error_code = "USER_EMAIL_EXISTS"

    def __init__(self, email: str):
        super().__init__(
            message="User already exists",
            details={"email": email},
        )


class InsufficientBalanceException(BusinessException):
    """Withdrawal amount exceeds the user's balance."""

    error_code = "LEDGER_INSUFFICIENT_BALANCE"

    def __init__(self, user_id: int, available: int, required: int):
        super().__init__(
            message="Insufficient balance for withdrawal",
            details={
                "user_id": user_id,
                "available": available,
                "required": required,
            },
        )


class InvalidAdjustmentTypeException(ValidationException):
    error_code = "LEDGER_INVALID_ADJUSTMENT_TYPE"

    def __init__(self, transaction_type: str):
        super().__init__(
            message=f"Transaction type '{transaction_type}' cannot be posted manually",
            details={"type": transaction_type},
        )


class DuplicateRatingException(BusinessException):
    error_code = "RATING_ALREADY_EXISTS"

    def __init__(self, order_id: int):
        super().__init__(
            message=f"Order {order_id} has already been rated",
            details={"order_id": order_id},
        )


class RatingNotAllowedException(BusinessException):
    error_code = "RATING_NOT_ALLOWED"

    def __init__(self, order_id: int, reason: str):
        super().__init__(
            message=f"Order {order_id} cannot be rated: {reason}",
            details={"order_id": order_id},
        )


class LedgerWriteFailureException(SystemException):
    """Atomic order/ledger unit failed and was rolled back. Safe to retry."""

    status_code = 503
    error_code = "LEDGER_WRITE_FAILURE"

    def __init__(self, order_id: int, operation: Optional[str] = None):
        details: dict[str, Any] = {"retryable": True}
        if operation:
            details["operation"] = operation
        super().__init__(
            message="The request could not be completed, please retry",
            details=details,
        )
        self.order_id = order_id


class SettlementConflict(Exception):
    """Conditional status update matched no row: a concurrent request won.

    Never surfaced to callers; the state machine logs it and returns the
    order as persisted by the winning request.
    """

    def __init__(self, order_id: int, expected_status: str):
        super().__init__(
            f"Order {order_id} is no longer in status '{expected_status}'"
        )
        self.order_id = order_id
        self.expected_status = expected_status


class NotificationFailure(Exception):
    """Push notification could not be delivered. Logged only."""
