"""In-memory ledger store.

Useful for testing and development. Not suitable for production as all state
is lost when the process terminates.

Thread-safety:
    A re-entrant lock is held for the duration of each atomic unit, so units
    are fully serialized. Each unit snapshots every table on entry and
    restores the snapshot if the unit raises.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from uuid import UUID

from ticketing.domain import (
    Capacity,
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
from ticketing.stores.interfaces import LedgerStore

_TABLES = ("_events", "_ticket_types", "_promotions", "_coupons", "_point_grants", "_transactions")


class InMemoryLedgerStore(LedgerStore):
    """Dictionary-backed store holding frozen domain objects."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._events: dict[EventId, Event] = {}
        self._ticket_types: dict[TicketTypeId, TicketType] = {}
        self._promotions: dict[UUID, Promotion] = {}
        self._coupons: dict[UUID, Coupon] = {}
        self._point_grants: dict[UUID, PointGrant] = {}
        self._transactions: dict[TransactionId, Transaction] = {}

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            snapshot = {name: dict(getattr(self, name)) for name in _TABLES}
            try:
                yield
            except BaseException:
                for name, table in snapshot.items():
                    setattr(self, name, table)
                raise

    # Seeding helpers for catalog data owned by other modules.

    def add_event(self, event: Event) -> Event:
        with self._lock:
            self._events[event.id] = event
        return event

    def add_ticket_type(self, ticket_type: TicketType) -> TicketType:
        with self._lock:
            self._ticket_types[ticket_type.id] = ticket_type
        return ticket_type

    def add_promotion(self, promotion: Promotion) -> Promotion:
        with self._lock:
            self._promotions[promotion.id] = promotion
        return promotion

    def get_promotion(self, promotion_id: UUID) -> Promotion | None:
        with self._lock:
            return self._promotions.get(promotion_id)

    # Events and inventory

    def get_event(self, event_id: EventId) -> Event | None:
        with self._lock:
            return self._events.get(event_id)

    def get_ticket_type(self, ticket_type_id: TicketTypeId) -> TicketType | None:
        with self._lock:
            return self._ticket_types.get(ticket_type_id)

    def get_ticket_types(
        self, event_id: EventId, ticket_type_ids: list[TicketTypeId]
    ) -> list[TicketType]:
        with self._lock:
            found = (self._ticket_types.get(tid) for tid in dict.fromkeys(ticket_type_ids))
            return [tt for tt in found if tt is not None and tt.event_id == event_id]

    def try_decrement_ticket_type(self, ticket_type_id: TicketTypeId, quantity: int) -> bool:
        with self._lock:
            ticket_type = self._ticket_types.get(ticket_type_id)
            if ticket_type is None or ticket_type.available_quantity.value < quantity:
                return False
            self._ticket_types[ticket_type_id] = replace(
                ticket_type,
                available_quantity=Capacity(ticket_type.available_quantity.value - quantity),
            )
            return True

    def increment_ticket_type(self, ticket_type_id: TicketTypeId, quantity: int) -> None:
        with self._lock:
            ticket_type = self._ticket_types.get(ticket_type_id)
            if ticket_type is None:
                return
            restored = min(ticket_type.available_quantity.value + quantity, ticket_type.quantity.value)
            self._ticket_types[ticket_type_id] = replace(
                ticket_type, available_quantity=Capacity(restored)
            )

    def try_decrement_event_seats(self, event_id: EventId, seats: int) -> bool:
        with self._lock:
            event = self._events.get(event_id)
            if event is None or event.available_seats.value < seats:
                return False
            self._events[event_id] = replace(
                event, available_seats=Capacity(event.available_seats.value - seats)
            )
            return True

    def increment_event_seats(self, event_id: EventId, seats: int) -> None:
        with self._lock:
            event = self._events.get(event_id)
            if event is None:
                return
            restored = min(event.available_seats.value + seats, event.total_seats.value)
            self._events[event_id] = replace(event, available_seats=Capacity(restored))

    # Promotions

    def find_promotion(self, event_id: EventId, code: str) -> Promotion | None:
        with self._lock:
            for promotion in self._promotions.values():
                if promotion.event_id == event_id and promotion.code == code.upper():
                    return promotion
            return None

    def try_claim_promotion(self, promotion_id: UUID) -> bool:
        with self._lock:
            promotion = self._promotions.get(promotion_id)
            if promotion is None or promotion.is_exhausted:
                return False
            self._promotions[promotion_id] = replace(
                promotion, current_usage=promotion.current_usage + 1
            )
            return True

    def release_promotion(self, promotion_id: UUID) -> None:
        with self._lock:
            promotion = self._promotions.get(promotion_id)
            if promotion is None or promotion.current_usage == 0:
                return
            self._promotions[promotion_id] = replace(
                promotion, current_usage=promotion.current_usage - 1
            )

    # Coupons

    def add_coupon(self, coupon: Coupon) -> Coupon:
        with self._lock:
            if any(existing.code == coupon.code for existing in self._coupons.values()):
                raise ValueError(f"Coupon code {coupon.code} already exists")
            self._coupons[coupon.id] = coupon
        return coupon

    def get_coupon(self, coupon_id: UUID) -> Coupon | None:
        with self._lock:
            return self._coupons.get(coupon_id)

    def find_coupon(self, code: str) -> Coupon | None:
        with self._lock:
            return next((c for c in self._coupons.values() if c.code == code), None)

    def list_coupons(self, user_id: UserId) -> list[Coupon]:
        with self._lock:
            owned = [c for c in self._coupons.values() if c.user_id == user_id]
        return sorted(owned, key=lambda c: c.created_at or c.valid_from, reverse=True)

    def try_claim_coupon(self, coupon_id: UUID) -> bool:
        with self._lock:
            coupon = self._coupons.get(coupon_id)
            if coupon is None or coupon.is_used:
                return False
            self._coupons[coupon_id] = replace(coupon, is_used=True)
            return True

    def release_coupon(self, coupon_id: UUID) -> None:
        with self._lock:
            coupon = self._coupons.get(coupon_id)
            if coupon is not None:
                self._coupons[coupon_id] = replace(coupon, is_used=False)

    # Points

    def list_point_grants(
        self,
        user_id: UserId,
        *,
        spendable_at: datetime | None = None,
        for_update: bool = False,
    ) -> list[PointGrant]:
        with self._lock:
            grants = [g for g in self._point_grants.values() if g.user_id == user_id]
        if spendable_at is None:
            return sorted(grants, key=lambda g: g.created_at, reverse=True)
        spendable = [g for g in grants if g.is_spendable(spendable_at)]
        return sorted(spendable, key=lambda g: (g.expires_at, g.created_at))

    def try_deduct_point_grant(self, grant_id: UUID, points: int) -> bool:
        with self._lock:
            grant = self._point_grants.get(grant_id)
            if grant is None or grant.remaining_amount < points:
                return False
            self._point_grants[grant_id] = replace(
                grant, remaining_amount=grant.remaining_amount - points
            )
            return True

    def add_point_grant(self, grant: PointGrant) -> PointGrant:
        with self._lock:
            self._point_grants[grant.id] = grant
        return grant

    # Transactions

    def add_transaction(self, transaction: Transaction) -> Transaction:
        with self._lock:
            if self.invoice_number_exists(transaction.invoice_number):
                raise ValueError(f"Invoice number {transaction.invoice_number} already exists")
            self._transactions[transaction.id] = transaction
        return transaction

    def invoice_number_exists(self, invoice_number: str) -> bool:
        with self._lock:
            return any(t.invoice_number == invoice_number for t in self._transactions.values())

    def get_transaction(self, transaction_id: TransactionId) -> Transaction | None:
        with self._lock:
            return self._transactions.get(transaction_id)

    def transition_transaction(
        self,
        transaction_id: TransactionId,
        expected: TransactionStatus,
        new: TransactionStatus,
        *,
        updated_at: datetime,
        payment_proof: str | None = None,
    ) -> Transaction | None:
        with self._lock:
            transaction = self._transactions.get(transaction_id)
            if transaction is None or transaction.status is not expected:
                return None
            changes: dict = {"status": new, "updated_at": updated_at}
            if payment_proof is not None:
                changes["payment_proof"] = payment_proof
            updated = replace(transaction, **changes)
            self._transactions[transaction_id] = updated
            return updated

    def list_transactions(
        self,
        status: TransactionStatus,
        *,
        deadline_before: datetime | None = None,
        updated_before: datetime | None = None,
    ) -> list[Transaction]:
        with self._lock:
            matches = [t for t in self._transactions.values() if t.status is status]
        if deadline_before is not None:
            matches = [t for t in matches if t.payment_deadline < deadline_before]
        if updated_before is not None:
            matches = [t for t in matches if t.updated_at < updated_before]
        return sorted(matches, key=lambda t: t.created_at)
