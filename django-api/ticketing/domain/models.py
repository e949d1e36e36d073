"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in ticketing/models.py (persistence layer).
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ticketing.domain.value_objects import (
    Capacity,
    EventId,
    Money,
    TicketTypeId,
    TransactionId,
    UserId,
)


class TransactionStatus(str, Enum):
    """Lifecycle states of a purchase."""

    WAITING_PAYMENT = "WAITING_PAYMENT"
    WAITING_CONFIRMATION = "WAITING_CONFIRMATION"
    DONE = "DONE"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self not in (
            TransactionStatus.WAITING_PAYMENT,
            TransactionStatus.WAITING_CONFIRMATION,
        )


def _check_single_discount(percentage: Decimal | None, amount: Money | None) -> None:
    if (percentage is None) == (amount is None):
        raise ValueError("Exactly one of discount_percentage or discount_amount must be set")
    if percentage is not None and not 0 < percentage <= 100:
        raise ValueError("discount_percentage must be within (0, 100]")


def _discount_off(total: Money, percentage: Decimal | None, amount: Money | None) -> Money:
    if percentage is not None:
        return total.percentage(percentage)
    return amount


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event."""

    id: EventId
    organizer_id: UserId
    name: str
    total_seats: Capacity
    available_seats: Capacity
    start_date: datetime
    end_date: datetime
    deleted_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.available_seats.value > self.total_seats.value:
            raise ValueError("available_seats cannot exceed total_seats")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def has_started(self, now: datetime) -> bool:
        return self.start_date <= now


@dataclass(frozen=True)
class TicketType:
    """Domain representation of a TicketType."""

    id: TicketTypeId
    event_id: EventId
    name: str
    price: Money
    quantity: Capacity
    available_quantity: Capacity

    def __post_init__(self) -> None:
        if self.available_quantity.value > self.quantity.value:
            raise ValueError("available_quantity cannot exceed quantity")


@dataclass(frozen=True)
class Promotion:
    """Event-scoped discount code with a shared usage cap."""

    id: UUID
    event_id: EventId
    code: str
    discount_percentage: Decimal | None
    discount_amount: Money | None
    max_usage: int
    current_usage: int
    valid_from: datetime
    valid_until: datetime

    def __post_init__(self) -> None:
        _check_single_discount(self.discount_percentage, self.discount_amount)
        if not 0 <= self.current_usage <= self.max_usage:
            raise ValueError("current_usage must be within [0, max_usage]")

    def is_active(self, now: datetime) -> bool:
        return self.valid_from <= now <= self.valid_until

    @property
    def is_exhausted(self) -> bool:
        return self.current_usage >= self.max_usage

    def discount_for(self, total: Money) -> Money:
        return _discount_off(total, self.discount_percentage, self.discount_amount)


@dataclass(frozen=True)
class Coupon:
    """Single-use discount code owned by one user."""

    id: UUID
    user_id: UserId
    code: str
    discount_percentage: Decimal | None
    discount_amount: Money | None
    valid_from: datetime
    valid_until: datetime
    is_used: bool = False
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        _check_single_discount(self.discount_percentage, self.discount_amount)

    def is_active(self, now: datetime) -> bool:
        return self.valid_from <= now <= self.valid_until

    def is_redeemable(self, now: datetime) -> bool:
        return not self.is_used and self.is_active(now)

    def discount_for(self, total: Money) -> Money:
        return _discount_off(total, self.discount_percentage, self.discount_amount)


@dataclass(frozen=True)
class PointGrant:
    """A batch of loyalty points with its own expiry."""

    id: UUID
    user_id: UserId
    amount: int
    remaining_amount: int
    expires_at: datetime
    created_at: datetime

    def __post_init__(self) -> None:
        if not 0 <= self.remaining_amount <= self.amount:
            raise ValueError("remaining_amount must be within [0, amount]")

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def is_spendable(self, now: datetime) -> bool:
        return self.remaining_amount > 0 and not self.is_expired(now)


@dataclass(frozen=True)
class OrderLine:
    """A requested ticket type and quantity, before pricing."""

    ticket_type_id: TicketTypeId
    quantity: int


@dataclass(frozen=True)
class TransactionItem:
    """Priced line item, immutable once the transaction exists."""

    ticket_type_id: TicketTypeId
    quantity: int
    unit_price: Money
    subtotal: Money

    @classmethod
    def price(cls, ticket_type: TicketType, quantity: int) -> "TransactionItem":
        return cls(
            ticket_type_id=ticket_type.id,
            quantity=quantity,
            unit_price=ticket_type.price,
            subtotal=ticket_type.price.times(quantity),
        )


@dataclass(frozen=True)
class Transaction:
    """Domain representation of a purchase."""

    id: TransactionId
    user_id: UserId
    event_id: EventId
    invoice_number: str
    items: tuple[TransactionItem, ...]
    total_amount: Money
    discount_amount: Money
    points_used: int
    final_amount: Money
    status: TransactionStatus
    payment_deadline: datetime
    created_at: datetime
    updated_at: datetime
    promotion_id: UUID | None = None
    coupon_id: UUID | None = None
    payment_proof: str | None = None

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    def seconds_remaining(self, now: datetime) -> int:
        """Seconds left to upload a payment proof, 0 once not applicable."""
        if self.status is not TransactionStatus.WAITING_PAYMENT:
            return 0
        return max(0, int((self.payment_deadline - now).total_seconds()))


@dataclass(frozen=True)
class ReservationLine:
    ticket_type_id: TicketTypeId
    quantity: int


@dataclass(frozen=True)
class Reservation:
    """Inventory held for one transaction."""

    event_id: EventId
    lines: tuple[ReservationLine, ...]

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self.lines)

    @classmethod
    def of_transaction(cls, transaction: Transaction) -> "Reservation":
        return cls(
            event_id=transaction.event_id,
            lines=tuple(
                ReservationLine(item.ticket_type_id, item.quantity)
                for item in transaction.items
            ),
        )
