"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Every counter mutation is a
single conditional write so that concurrent callers cannot drive a counter out
of bounds between a read and a write.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from uuid import UUID

from ticketing.domain import (
    Coupon,
    Event,
    EventId,
    PointGrant,
    Promotion,
    TicketType,
    TicketTypeId,
    Transaction,
    TransactionId,
    TransactionStatus,
    UserId,
)


class LedgerStore(ABC):
    """Interface for events, inventory, discounts, points and transactions."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Open an atomic unit. All writes inside it commit together or not at all.

        Nested units behave like savepoints of the enclosing unit.
        """
        ...

    # Events and inventory

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID (including soft-deleted ones), or None."""
        ...

    @abstractmethod
    def get_ticket_type(self, ticket_type_id: TicketTypeId) -> TicketType | None:
        """Return a ticket type by ID, or None."""
        ...

    @abstractmethod
    def get_ticket_types(
        self, event_id: EventId, ticket_type_ids: list[TicketTypeId]
    ) -> list[TicketType]:
        """Return the ticket types among `ticket_type_ids` that belong to the event."""
        ...

    @abstractmethod
    def try_decrement_ticket_type(self, ticket_type_id: TicketTypeId, quantity: int) -> bool:
        """Decrement availability only if at least `quantity` remain."""
        ...

    @abstractmethod
    def increment_ticket_type(self, ticket_type_id: TicketTypeId, quantity: int) -> None:
        """Increment availability, never beyond the ticket type's quantity."""
        ...

    @abstractmethod
    def try_decrement_event_seats(self, event_id: EventId, seats: int) -> bool:
        """Decrement available seats only if at least `seats` remain."""
        ...

    @abstractmethod
    def increment_event_seats(self, event_id: EventId, seats: int) -> None:
        """Increment available seats, never beyond total seats."""
        ...

    # Promotions

    @abstractmethod
    def find_promotion(self, event_id: EventId, code: str) -> Promotion | None:
        """Return the event's promotion with the given upper-cased code, or None."""
        ...

    @abstractmethod
    def try_claim_promotion(self, promotion_id: UUID) -> bool:
        """Increment usage only while current_usage < max_usage."""
        ...

    @abstractmethod
    def release_promotion(self, promotion_id: UUID) -> None:
        """Decrement usage, never below zero."""
        ...

    # Coupons

    @abstractmethod
    def add_coupon(self, coupon: Coupon) -> Coupon:
        """Persist a new coupon."""
        ...

    @abstractmethod
    def get_coupon(self, coupon_id: UUID) -> Coupon | None:
        """Return a coupon by ID, or None."""
        ...

    @abstractmethod
    def find_coupon(self, code: str) -> Coupon | None:
        """Return the coupon with the given code, or None."""
        ...

    @abstractmethod
    def list_coupons(self, user_id: UserId) -> list[Coupon]:
        """Return a user's coupons, newest first."""
        ...

    @abstractmethod
    def try_claim_coupon(self, coupon_id: UUID) -> bool:
        """Mark the coupon used only if it is currently unused."""
        ...

    @abstractmethod
    def release_coupon(self, coupon_id: UUID) -> None:
        """Clear the coupon's used flag."""
        ...

    # Points

    @abstractmethod
    def list_point_grants(
        self,
        user_id: UserId,
        *,
        spendable_at: datetime | None = None,
        for_update: bool = False,
    ) -> list[PointGrant]:
        """Return a user's point grants.

        With `spendable_at`, only grants unexpired at that instant and with a
        positive remaining amount, ordered by soonest expiry. Otherwise all
        grants, newest first. `for_update` locks the returned rows until the
        enclosing atomic unit ends.
        """
        ...

    @abstractmethod
    def try_deduct_point_grant(self, grant_id: UUID, points: int) -> bool:
        """Deduct `points` only if the grant still has that many remaining."""
        ...

    @abstractmethod
    def add_point_grant(self, grant: PointGrant) -> PointGrant:
        """Persist a new point grant."""
        ...

    # Transactions

    @abstractmethod
    def add_transaction(self, transaction: Transaction) -> Transaction:
        """Persist a new transaction together with its items."""
        ...

    @abstractmethod
    def invoice_number_exists(self, invoice_number: str) -> bool:
        ...

    @abstractmethod
    def get_transaction(self, transaction_id: TransactionId) -> Transaction | None:
        """Return a transaction by ID, or None."""
        ...

    @abstractmethod
    def transition_transaction(
        self,
        transaction_id: TransactionId,
        expected: TransactionStatus,
        new: TransactionStatus,
        *,
        updated_at: datetime,
        payment_proof: str | None = None,
    ) -> Transaction | None:
        """Compare-and-set the status.

        Returns the updated transaction, or None if its status was no longer
        `expected` at write time.
        """
        ...

    @abstractmethod
    def list_transactions(
        self,
        status: TransactionStatus,
        *,
        deadline_before: datetime | None = None,
        updated_before: datetime | None = None,
    ) -> list[Transaction]:
        """Return transactions in `status`, oldest first, optionally filtered."""
        ...
