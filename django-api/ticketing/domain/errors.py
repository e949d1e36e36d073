"""Domain error codes for the ticketing module.

Every error carries a stable code and a user-safe message. Errors are grouped
into four categories that handlers map to HTTP statuses: validation, not found,
conflict and permission.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    INVALID_ID = "INVALID_ID"
    INVALID_ORDER = "INVALID_ORDER"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    TICKET_TYPE_MISMATCH = "TICKET_TYPE_MISMATCH"
    EVENT_ALREADY_STARTED = "EVENT_ALREADY_STARTED"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    INVALID_PROMOTION = "INVALID_PROMOTION"
    INVALID_COUPON = "INVALID_COUPON"
    INSUFFICIENT_POINTS = "INSUFFICIENT_POINTS"
    MULTIPLE_DISCOUNTS = "MULTIPLE_DISCOUNTS"
    INVALID_STATE = "INVALID_STATE"
    DEADLINE_PASSED = "DEADLINE_PASSED"
    NOT_TRANSACTION_OWNER = "NOT_TRANSACTION_OWNER"
    NOT_EVENT_ORGANIZER = "NOT_EVENT_ORGANIZER"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(DomainError):
    """Malformed or missing input. No side effects were attempted."""


class NotFoundError(DomainError):
    """A referenced entity is absent or not visible to the caller."""


class ConflictError(DomainError):
    """The request is well-formed but conflicts with current state."""


class PermissionDeniedError(DomainError):
    """The caller is not allowed to act on the referenced entity."""


class InvalidIdentifierError(ValidationError):
    """Raised when an identifier is not a valid UUID."""

    def __init__(self, field: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_ID,
            message=f"Invalid {field} format",
        )
        self.field = field


class InvalidOrderError(ValidationError):
    """Raised when order lines or discount inputs are malformed."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_ORDER, message=message)


class EventNotFoundError(NotFoundError):
    """Raised when an event is not found or has been deleted."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message="Event not found",
        )
        self.event_id = event_id


class TransactionNotFoundError(NotFoundError):
    """Raised when a transaction is not found."""

    def __init__(self, transaction_id: str) -> None:
        super().__init__(
            code=ErrorCode.TRANSACTION_NOT_FOUND,
            message="Transaction not found",
        )
        self.transaction_id = transaction_id


class TicketTypeMismatchError(NotFoundError):
    """Raised when ticket types are missing or belong to another event."""

    def __init__(self, ticket_type_ids: list[str]) -> None:
        super().__init__(
            code=ErrorCode.TICKET_TYPE_MISMATCH,
            message="One or more ticket types not found or don't belong to this event",
        )
        self.ticket_type_ids = ticket_type_ids


class EventAlreadyStartedError(ConflictError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.EVENT_ALREADY_STARTED,
            message="Cannot purchase tickets for events that have already started",
        )


class OutOfStockError(ConflictError):
    """Raised when a ticket type or the event has too few seats left."""

    def __init__(self, name: str, available: int | None = None) -> None:
        message = f'Not enough tickets available for "{name}"'
        if available is not None:
            message = f"{message}. Available: {available}"
        super().__init__(code=ErrorCode.OUT_OF_STOCK, message=message)


class InvalidPromotionError(ConflictError):
    def __init__(self, reason: str = "Invalid or expired promotion code") -> None:
        super().__init__(code=ErrorCode.INVALID_PROMOTION, message=reason)


class InvalidCouponError(ConflictError):
    def __init__(self, reason: str = "Invalid, expired, or already used coupon") -> None:
        super().__init__(code=ErrorCode.INVALID_COUPON, message=reason)


class InsufficientPointsError(ConflictError):
    def __init__(self, available: int, requested: int) -> None:
        super().__init__(
            code=ErrorCode.INSUFFICIENT_POINTS,
            message=f"Insufficient points. Available: {available}, Requested: {requested}",
        )
        self.available = available
        self.requested = requested


class MultipleDiscountsError(ConflictError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.MULTIPLE_DISCOUNTS,
            message=(
                "Only one discount option can be used per transaction: "
                "promotion_code, coupon_code, or points_to_use"
            ),
        )


class InvalidStateError(ConflictError):
    """Raised when a transition is attempted from the wrong status."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_STATE, message=message)


class DeadlinePassedError(ConflictError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.DEADLINE_PASSED,
            message="Payment deadline has passed. Transaction has expired.",
        )


class NotTransactionOwnerError(PermissionDeniedError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.NOT_TRANSACTION_OWNER,
            message="You don't have permission to access this transaction",
        )


class NotEventOrganizerError(PermissionDeniedError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.NOT_EVENT_ORGANIZER,
            message="You don't have permission to update this transaction",
        )
