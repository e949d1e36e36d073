"""Transaction service - the purchase state machine.

Services:
- Depend only on interfaces (stores and collaborators)
- Validate input before any atomic unit is opened
- Perform orchestration and error mapping
- Return domain models or raise domain errors

Every status change is a compare-and-set on the expected prior status. The
rollback path (inventory restore plus discount reversal) runs in the same
atomic unit as the winning compare-and-set, so concurrent transitions on one
transaction can never roll it back twice.
"""

import logging
import secrets
import string
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from django.core.files import File

from ticketing.clock import Clock
from ticketing.domain import (
    DiscountSelection,
    Event,
    EventId,
    Money,
    NoDiscount,
    OrderLine,
    Reservation,
    TicketTypeId,
    Transaction,
    TransactionId,
    TransactionItem,
    TransactionStatus,
    UserId,
)
from ticketing.domain.errors import (
    DeadlinePassedError,
    EventAlreadyStartedError,
    EventNotFoundError,
    InvalidIdentifierError,
    InvalidOrderError,
    InvalidStateError,
    NotEventOrganizerError,
    NotTransactionOwnerError,
    TransactionNotFoundError,
)
from ticketing.services.discount_resolver import DiscountResolver, PricedOrder
from ticketing.services.inventory import InventoryReservationEngine
from ticketing.services.notifications import (
    NO_REASON_GIVEN,
    NotificationSender,
    RefundSummary,
    TicketLine,
    TransactionDetails,
)
from ticketing.services.proof_storage import PaymentProofStorage
from ticketing.stores.interfaces import LedgerStore

logger = logging.getLogger(__name__)

INVOICE_ALPHABET = string.ascii_uppercase + string.digits
INVOICE_ATTEMPTS = 5
DECISIONS = (TransactionStatus.DONE, TransactionStatus.REJECTED)

ItemInput = OrderLine | tuple[str | UUID, int]


@dataclass(frozen=True)
class TransactionView:
    transaction: Transaction
    seconds_remaining: int


@dataclass(frozen=True)
class ExpirySweepResult:
    expired_count: int


@dataclass(frozen=True)
class StaleSweepResult:
    cancelled_count: int


def _parse_id(kind: type, value: Any, field: str):
    if isinstance(value, kind):
        return value
    try:
        if isinstance(value, UUID):
            return kind(value)
        return kind.from_string(str(value))
    except (TypeError, ValueError):
        raise InvalidIdentifierError(field) from None


def _parse_lines(items: Sequence[ItemInput]) -> list[OrderLine]:
    if not items:
        raise InvalidOrderError("items must be a non-empty array")
    lines: list[OrderLine] = []
    for item in items:
        if isinstance(item, OrderLine):
            raw_id, quantity = item.ticket_type_id, item.quantity
        else:
            raw_id, quantity = item
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidOrderError("Each item quantity must be an integer >= 1")
        lines.append(OrderLine(_parse_id(TicketTypeId, raw_id, "ticket_type_id"), quantity))
    if len({line.ticket_type_id for line in lines}) != len(lines):
        raise InvalidOrderError("Each ticket type may appear only once per order")
    return lines


class TransactionService:
    """Creates purchases and drives them through their lifecycle."""

    def __init__(
        self,
        store: LedgerStore,
        clock: Clock,
        inventory: InventoryReservationEngine,
        discounts: DiscountResolver,
        notifier: NotificationSender | None = None,
        proof_storage: PaymentProofStorage | None = None,
        payment_window: timedelta = timedelta(hours=2),
        stale_after: timedelta = timedelta(days=3),
    ) -> None:
        self._store = store
        self._clock = clock
        self._inventory = inventory
        self._discounts = discounts
        self._notifier = notifier
        self._proof_storage = proof_storage
        self._payment_window = payment_window
        self._stale_after = stale_after

    def create_transaction(
        self,
        buyer_id: str | UUID | UserId,
        event_id: str | UUID | EventId,
        items: Sequence[ItemInput],
        discount: DiscountSelection | None = None,
    ) -> Transaction:
        """Purchase tickets.

        Raises:
            InvalidIdentifierError: If an ID is not a valid UUID.
            InvalidOrderError: If items are empty, duplicated or have bad quantities.
            EventNotFoundError: If the event does not exist or was deleted.
            EventAlreadyStartedError: If the event has already started.
            TicketTypeMismatchError: If a ticket type is not part of the event.
            OutOfStockError: If availability is insufficient.
            InvalidPromotionError, InvalidCouponError, InsufficientPointsError:
                If the discount cannot be applied.
        """
        buyer = _parse_id(UserId, buyer_id, "buyer_id")
        event_key = _parse_id(EventId, event_id, "event_id")
        lines = _parse_lines(items)
        discount = discount or NoDiscount()
        now = self._clock.now()

        event = self._store.get_event(event_key)
        if event is None or event.is_deleted:
            raise EventNotFoundError(str(event_key))
        if event.has_started(now):
            raise EventAlreadyStartedError()

        ticket_types = self._inventory.check_availability(event_key, lines)
        priced = tuple(
            TransactionItem.price(ticket_types[line.ticket_type_id], line.quantity)
            for line in lines
        )
        total = sum((item.subtotal for item in priced), Money.zero())
        outcome = self._discounts.resolve(PricedOrder(event_key, buyer, total), discount)
        final_amount = outcome.final_amount(total)
        status = (
            TransactionStatus.WAITING_CONFIRMATION
            if final_amount.is_zero()
            else TransactionStatus.WAITING_PAYMENT
        )

        with self._store.atomic():
            self._inventory.reserve(event_key, lines)
            self._discounts.consume(buyer, outcome)
            transaction = self._store.add_transaction(
                Transaction(
                    id=TransactionId(uuid.uuid4()),
                    user_id=buyer,
                    event_id=event_key,
                    invoice_number=self._new_invoice_number(now),
                    items=priced,
                    total_amount=total,
                    discount_amount=outcome.discount_amount,
                    points_used=outcome.points_used,
                    final_amount=final_amount,
                    status=status,
                    payment_deadline=now + self._payment_window,
                    created_at=now,
                    updated_at=now,
                    promotion_id=outcome.promotion_id,
                    coupon_id=outcome.coupon_id,
                )
            )

        logger.info(
            "Created transaction %s (%s) for user %s: final %s, status %s",
            transaction.id,
            transaction.invoice_number,
            buyer,
            final_amount,
            status.value,
        )
        return transaction

    def get_transaction(
        self, transaction_id: str | UUID | TransactionId, buyer_id: str | UUID | UserId
    ) -> TransactionView:
        """Return a buyer's transaction with the time left to pay.

        Raises:
            TransactionNotFoundError: If the transaction does not exist.
            NotTransactionOwnerError: If it belongs to another buyer.
        """
        transaction = self._get_owned(transaction_id, buyer_id)
        return TransactionView(transaction, transaction.seconds_remaining(self._clock.now()))

    def upload_payment_proof(
        self,
        transaction_id: str | UUID | TransactionId,
        buyer_id: str | UUID | UserId,
        upload: File,
    ) -> Transaction:
        """Store an uploaded proof file and attach it to the transaction.

        The state and deadline are checked before the file is stored so that
        rejected uploads leave nothing behind. If a concurrent transition wins
        between storing and attaching, the stored file is deleted again.
        """
        if self._proof_storage is None:
            raise RuntimeError("No payment proof storage configured")
        transaction = self._get_owned(transaction_id, buyer_id)
        self._check_accepts_proof(transaction, self._clock.now())
        stored = self._proof_storage.save(transaction.id, upload)
        try:
            return self.attach_payment_proof(transaction.id, transaction.user_id, stored.url)
        except (InvalidStateError, DeadlinePassedError):
            self._proof_storage.delete(stored.name)
            logger.info(
                "Discarded payment proof %s for transaction %s", stored.name, transaction.id
            )
            raise

    def attach_payment_proof(
        self,
        transaction_id: str | UUID | TransactionId,
        buyer_id: str | UUID | UserId,
        proof_ref: str,
    ) -> Transaction:
        """Record a stored proof reference and await organizer confirmation.

        Raises:
            TransactionNotFoundError: If the transaction does not exist.
            NotTransactionOwnerError: If it belongs to another buyer.
            InvalidStateError: If it is not waiting for payment.
            DeadlinePassedError: If the payment deadline has passed.
        """
        if not proof_ref:
            raise InvalidOrderError("A payment proof reference is required")
        transaction = self._get_owned(transaction_id, buyer_id)
        now = self._clock.now()
        self._check_accepts_proof(transaction, now)
        updated = self._store.transition_transaction(
            transaction.id,
            TransactionStatus.WAITING_PAYMENT,
            TransactionStatus.WAITING_CONFIRMATION,
            updated_at=now,
            payment_proof=proof_ref,
        )
        if updated is None:
            raise InvalidStateError("Transaction is no longer waiting for payment")
        logger.info("Payment proof attached to transaction %s", transaction.id)
        return updated

    def cancel_transaction(
        self, transaction_id: str | UUID | TransactionId, buyer_id: str | UUID | UserId
    ) -> Transaction:
        """Buyer cancels an unpaid transaction; everything reserved is given back.

        Raises:
            TransactionNotFoundError: If the transaction does not exist.
            NotTransactionOwnerError: If it belongs to another buyer.
            InvalidStateError: If it is not waiting for payment.
        """
        message = "Can only cancel transactions that are waiting for payment"
        transaction = self._get_owned(transaction_id, buyer_id)
        self._require_status(transaction, TransactionStatus.WAITING_PAYMENT, message)
        rolled_back = self._roll_back(
            transaction, TransactionStatus.WAITING_PAYMENT, TransactionStatus.CANCELLED
        )
        if rolled_back is None:
            raise InvalidStateError(message)
        logger.info("Transaction %s cancelled by buyer", transaction.id)
        return rolled_back[0]

    def decide_transaction(
        self,
        transaction_id: str | UUID | TransactionId,
        organizer_id: str | UUID | UserId,
        decision: TransactionStatus | str,
        reason: str | None = None,
    ) -> Transaction:
        """Organizer accepts (DONE) or rejects (REJECTED) a confirmed payment.

        Rejection rolls back every side effect before the status is written.
        The buyer is notified afterwards; notification failures are logged
        and never undo the decision.

        Raises:
            InvalidOrderError: If the decision is not DONE or REJECTED.
            TransactionNotFoundError: If the transaction does not exist.
            EventNotFoundError: If the transaction's event no longer exists.
            NotEventOrganizerError: If the caller does not organize the event.
            InvalidStateError: If it is not waiting for confirmation.
        """
        try:
            decision = TransactionStatus(decision)
        except ValueError:
            decision = None
        if decision not in DECISIONS:
            raise InvalidOrderError("status must be either 'DONE' or 'REJECTED'")
        organizer = _parse_id(UserId, organizer_id, "organizer_id")
        transaction = self._get(transaction_id)
        event = self._store.get_event(transaction.event_id)
        if event is None:
            raise EventNotFoundError(str(transaction.event_id))
        if event.organizer_id != organizer:
            raise NotEventOrganizerError()

        message = "Can only accept/reject transactions that are waiting for confirmation"
        self._require_status(transaction, TransactionStatus.WAITING_CONFIRMATION, message)

        if decision is TransactionStatus.DONE:
            updated = self._store.transition_transaction(
                transaction.id,
                TransactionStatus.WAITING_CONFIRMATION,
                TransactionStatus.DONE,
                updated_at=self._clock.now(),
            )
            if updated is None:
                raise InvalidStateError(message)
            logger.info("Transaction %s accepted by organizer %s", updated.id, organizer)
            details = self._details(updated, event)
            self._notify("accepted", updated, lambda n: n.send_accepted(updated.user_id, details))
            return updated

        rolled_back = self._roll_back(
            transaction, TransactionStatus.WAITING_CONFIRMATION, TransactionStatus.REJECTED
        )
        if rolled_back is None:
            raise InvalidStateError(message)
        updated, refund = rolled_back
        logger.info("Transaction %s rejected by organizer %s", updated.id, organizer)
        details = self._details(updated, event)
        reason = (reason or "").strip() or NO_REASON_GIVEN
        self._notify(
            "rejected",
            updated,
            lambda n: n.send_rejected(updated.user_id, details, reason, refund),
        )
        return updated

    def run_expiry_sweep(self) -> ExpirySweepResult:
        """Expire unpaid transactions whose payment deadline has passed."""
        now = self._clock.now()
        candidates = self._store.list_transactions(
            TransactionStatus.WAITING_PAYMENT, deadline_before=now
        )
        expired = self._sweep(
            candidates, TransactionStatus.WAITING_PAYMENT, TransactionStatus.EXPIRED
        )
        if expired:
            logger.info("Expired %s unpaid transactions", expired)
        return ExpirySweepResult(expired_count=expired)

    def run_stale_sweep(self) -> StaleSweepResult:
        """Cancel transactions left unconfirmed for longer than the stale window."""
        now = self._clock.now()
        candidates = self._store.list_transactions(
            TransactionStatus.WAITING_CONFIRMATION, updated_before=now - self._stale_after
        )
        cancelled = self._sweep(
            candidates, TransactionStatus.WAITING_CONFIRMATION, TransactionStatus.CANCELLED
        )
        if cancelled:
            logger.info("Cancelled %s stale transactions", cancelled)
        return StaleSweepResult(cancelled_count=cancelled)

    def _sweep(
        self,
        candidates: list[Transaction],
        expected: TransactionStatus,
        new: TransactionStatus,
    ) -> int:
        processed = 0
        for transaction in candidates:
            try:
                if self._roll_back(transaction, expected, new) is not None:
                    processed += 1
            except Exception:
                logger.exception(
                    "Failed to move transaction %s from %s to %s",
                    transaction.id,
                    expected.value,
                    new.value,
                )
        return processed

    def _roll_back(
        self,
        transaction: Transaction,
        expected: TransactionStatus,
        new: TransactionStatus,
    ) -> tuple[Transaction, RefundSummary] | None:
        """Transition and compensate in one atomic unit.

        Returns None without touching anything if the status was no longer
        `expected` when the write happened.
        """
        with self._store.atomic():
            updated = self._store.transition_transaction(
                transaction.id, expected, new, updated_at=self._clock.now()
            )
            if updated is None:
                return None
            self._inventory.restore(Reservation.of_transaction(updated))
            reversal = self._discounts.reverse(updated)
        refund = RefundSummary(
            points_refunded=reversal.points_refunded,
            coupon_restored=reversal.coupon_restored,
            seats_restored=updated.total_quantity,
        )
        logger.info(
            "Rolled back transaction %s to %s: %s seats, %s points",
            updated.id,
            new.value,
            refund.seats_restored,
            refund.points_refunded,
        )
        return updated, refund

    def _get(self, transaction_id: str | UUID | TransactionId) -> Transaction:
        key = _parse_id(TransactionId, transaction_id, "transaction_id")
        transaction = self._store.get_transaction(key)
        if transaction is None:
            raise TransactionNotFoundError(str(key))
        return transaction

    def _get_owned(
        self, transaction_id: str | UUID | TransactionId, buyer_id: str | UUID | UserId
    ) -> Transaction:
        buyer = _parse_id(UserId, buyer_id, "buyer_id")
        transaction = self._get(transaction_id)
        if transaction.user_id != buyer:
            raise NotTransactionOwnerError()
        return transaction

    @staticmethod
    def _require_status(
        transaction: Transaction, expected: TransactionStatus, message: str
    ) -> None:
        if transaction.status is not expected:
            raise InvalidStateError(f"{message}. Current status: {transaction.status.value}")

    def _check_accepts_proof(self, transaction: Transaction, now: datetime) -> None:
        self._require_status(
            transaction, TransactionStatus.WAITING_PAYMENT, "Cannot upload payment proof"
        )
        if transaction.payment_deadline < now:
            raise DeadlinePassedError()

    def _new_invoice_number(self, now: datetime) -> str:
        for _ in range(INVOICE_ATTEMPTS):
            suffix = "".join(secrets.choice(INVOICE_ALPHABET) for _ in range(6))
            candidate = f"INV-{now:%Y%m%d}-{suffix}"
            if not self._store.invoice_number_exists(candidate):
                return candidate
        raise RuntimeError("Could not allocate a unique invoice number")

    def _details(self, transaction: Transaction, event: Event) -> TransactionDetails:
        tickets = []
        for item in transaction.items:
            ticket_type = self._store.get_ticket_type(item.ticket_type_id)
            name = ticket_type.name if ticket_type else str(item.ticket_type_id)
            tickets.append(TicketLine(name, item.quantity, item.unit_price))
        return TransactionDetails(
            invoice_number=transaction.invoice_number,
            event_name=event.name,
            event_start=event.start_date,
            tickets=tuple(tickets),
            total_amount=transaction.total_amount,
            final_amount=transaction.final_amount,
        )

    def _notify(
        self,
        kind: str,
        transaction: Transaction,
        send: Callable[[NotificationSender], None],
    ) -> None:
        if self._notifier is None:
            return
        try:
            send(self._notifier)
        except Exception:
            logger.exception("Failed to send %s notification for transaction %s", kind, transaction.id)
