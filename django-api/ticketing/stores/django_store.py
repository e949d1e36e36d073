"""Django ORM implementation of the LedgerStore.

Counters are only ever changed through `QuerySet.update()` with `F()`
expressions guarded by a filter, i.e. a single conditional UPDATE per row.
The database serializes concurrent writers on the row lock, and the filter
is re-evaluated against the committed value, so a decrement that would
overdraw a counter matches zero rows instead of succeeding.
"""

from contextlib import AbstractContextManager
from datetime import datetime
from uuid import UUID

from django.db import transaction as db_transaction
from django.db.models import F, PositiveIntegerField
from django.db.models.functions import Least

from ticketing import models
from ticketing.domain import (
    Capacity,
    Coupon,
    Event,
    EventId,
    Money,
    PointGrant,
    Promotion,
    TicketType,
    TicketTypeId,
    Transaction,
    TransactionId,
    TransactionItem,
    TransactionStatus,
    UserId,
)
from ticketing.stores.interfaces import LedgerStore


def _money(value) -> Money | None:
    return Money(value) if value is not None else None


def _to_event(row: models.Event) -> Event:
    return Event(
        id=EventId(row.id),
        organizer_id=UserId(row.organizer_id),
        name=row.name,
        total_seats=Capacity(row.total_seats),
        available_seats=Capacity(row.available_seats),
        start_date=row.start_date,
        end_date=row.end_date,
        deleted_at=row.deleted_at,
    )


def _to_ticket_type(row: models.TicketType) -> TicketType:
    return TicketType(
        id=TicketTypeId(row.id),
        event_id=EventId(row.event_id),
        name=row.name,
        price=Money(row.price),
        quantity=Capacity(row.quantity),
        available_quantity=Capacity(row.available_quantity),
    )


def _to_promotion(row: models.Promotion) -> Promotion:
    return Promotion(
        id=row.id,
        event_id=EventId(row.event_id),
        code=row.code,
        discount_percentage=row.discount_percentage,
        discount_amount=_money(row.discount_amount),
        max_usage=row.max_usage,
        current_usage=row.current_usage,
        valid_from=row.valid_from,
        valid_until=row.valid_until,
    )


def _to_coupon(row: models.Coupon) -> Coupon:
    return Coupon(
        id=row.id,
        user_id=UserId(row.user_id),
        code=row.code,
        discount_percentage=row.discount_percentage,
        discount_amount=_money(row.discount_amount),
        valid_from=row.valid_from,
        valid_until=row.valid_until,
        is_used=row.is_used,
        created_at=row.created_at,
    )


def _to_point_grant(row: models.PointGrant) -> PointGrant:
    return PointGrant(
        id=row.id,
        user_id=UserId(row.user_id),
        amount=row.amount,
        remaining_amount=row.remaining_amount,
        expires_at=row.expires_at,
        created_at=row.created_at,
    )


def _to_transaction(row: models.Transaction) -> Transaction:
    return Transaction(
        id=TransactionId(row.id),
        user_id=UserId(row.user_id),
        event_id=EventId(row.event_id),
        invoice_number=row.invoice_number,
        items=tuple(
            TransactionItem(
                ticket_type_id=TicketTypeId(item.ticket_type_id),
                quantity=item.quantity,
                unit_price=Money(item.price_at_buy),
                subtotal=Money(item.subtotal),
            )
            for item in row.items.all()
        ),
        total_amount=Money(row.total_amount),
        discount_amount=Money(row.discount_amount),
        points_used=row.points_used,
        final_amount=Money(row.final_amount),
        status=TransactionStatus(row.status),
        payment_deadline=row.payment_deadline,
        created_at=row.created_at,
        updated_at=row.updated_at,
        promotion_id=row.promotion_id,
        coupon_id=row.coupon_id,
        payment_proof=row.payment_proof,
    )


class DjangoLedgerStore(LedgerStore):
    """Relational ledger store using Django ORM."""

    def __init__(self, using: str = "default") -> None:
        self._using = using

    def atomic(self) -> AbstractContextManager[None]:
        return db_transaction.atomic(using=self._using)

    # Events and inventory

    def get_event(self, event_id: EventId) -> Event | None:
        row = models.Event.objects.using(self._using).filter(pk=event_id.value).first()
        return _to_event(row) if row else None

    def get_ticket_type(self, ticket_type_id: TicketTypeId) -> TicketType | None:
        row = models.TicketType.objects.using(self._using).filter(pk=ticket_type_id.value).first()
        return _to_ticket_type(row) if row else None

    def get_ticket_types(
        self, event_id: EventId, ticket_type_ids: list[TicketTypeId]
    ) -> list[TicketType]:
        rows = models.TicketType.objects.using(self._using).filter(
            event_id=event_id.value, pk__in=[tid.value for tid in ticket_type_ids]
        )
        return [_to_ticket_type(row) for row in rows]

    def try_decrement_ticket_type(self, ticket_type_id: TicketTypeId, quantity: int) -> bool:
        updated = (
            models.TicketType.objects.using(self._using)
            .filter(pk=ticket_type_id.value, available_quantity__gte=quantity)
            .update(available_quantity=F("available_quantity") - quantity)
        )
        return updated == 1

    def increment_ticket_type(self, ticket_type_id: TicketTypeId, quantity: int) -> None:
        models.TicketType.objects.using(self._using).filter(pk=ticket_type_id.value).update(
            available_quantity=Least(
                F("available_quantity") + quantity,
                F("quantity"),
                output_field=PositiveIntegerField(),
            )
        )

    def try_decrement_event_seats(self, event_id: EventId, seats: int) -> bool:
        updated = (
            models.Event.objects.using(self._using)
            .filter(pk=event_id.value, available_seats__gte=seats)
            .update(available_seats=F("available_seats") - seats)
        )
        return updated == 1

    def increment_event_seats(self, event_id: EventId, seats: int) -> None:
        models.Event.objects.using(self._using).filter(pk=event_id.value).update(
            available_seats=Least(
                F("available_seats") + seats,
                F("total_seats"),
                output_field=PositiveIntegerField(),
            )
        )

    # Promotions

    def find_promotion(self, event_id: EventId, code: str) -> Promotion | None:
        row = (
            models.Promotion.objects.using(self._using)
            .filter(event_id=event_id.value, code=code.upper())
            .first()
        )
        return _to_promotion(row) if row else None

    def try_claim_promotion(self, promotion_id: UUID) -> bool:
        updated = (
            models.Promotion.objects.using(self._using)
            .filter(pk=promotion_id, current_usage__lt=F("max_usage"))
            .update(current_usage=F("current_usage") + 1)
        )
        return updated == 1

    def release_promotion(self, promotion_id: UUID) -> None:
        models.Promotion.objects.using(self._using).filter(
            pk=promotion_id, current_usage__gt=0
        ).update(current_usage=F("current_usage") - 1)

    # Coupons

    def add_coupon(self, coupon: Coupon) -> Coupon:
        row = models.Coupon.objects.using(self._using).create(
            id=coupon.id,
            user_id=coupon.user_id.value,
            code=coupon.code,
            discount_percentage=coupon.discount_percentage,
            discount_amount=coupon.discount_amount.amount if coupon.discount_amount else None,
            valid_from=coupon.valid_from,
            valid_until=coupon.valid_until,
            is_used=coupon.is_used,
        )
        return _to_coupon(row)

    def get_coupon(self, coupon_id: UUID) -> Coupon | None:
        row = models.Coupon.objects.using(self._using).filter(pk=coupon_id).first()
        return _to_coupon(row) if row else None

    def find_coupon(self, code: str) -> Coupon | None:
        row = models.Coupon.objects.using(self._using).filter(code=code).first()
        return _to_coupon(row) if row else None

    def list_coupons(self, user_id: UserId) -> list[Coupon]:
        rows = models.Coupon.objects.using(self._using).filter(user_id=user_id.value)
        return [_to_coupon(row) for row in rows.order_by("-created_at")]

    def try_claim_coupon(self, coupon_id: UUID) -> bool:
        updated = (
            models.Coupon.objects.using(self._using)
            .filter(pk=coupon_id, is_used=False)
            .update(is_used=True)
        )
        return updated == 1

    def release_coupon(self, coupon_id: UUID) -> None:
        models.Coupon.objects.using(self._using).filter(pk=coupon_id).update(is_used=False)

    # Points

    def list_point_grants(
        self,
        user_id: UserId,
        *,
        spendable_at: datetime | None = None,
        for_update: bool = False,
    ) -> list[PointGrant]:
        rows = models.PointGrant.objects.using(self._using).filter(user_id=user_id.value)
        if spendable_at is None:
            rows = rows.order_by("-created_at")
        else:
            rows = rows.filter(expires_at__gt=spendable_at, remaining_amount__gt=0).order_by(
                "expires_at", "created_at"
            )
        if for_update:
            rows = rows.select_for_update()
        return [_to_point_grant(row) for row in rows]

    def try_deduct_point_grant(self, grant_id: UUID, points: int) -> bool:
        updated = (
            models.PointGrant.objects.using(self._using)
            .filter(pk=grant_id, remaining_amount__gte=points)
            .update(remaining_amount=F("remaining_amount") - points)
        )
        return updated == 1

    def add_point_grant(self, grant: PointGrant) -> PointGrant:
        row = models.PointGrant.objects.using(self._using).create(
            id=grant.id,
            user_id=grant.user_id.value,
            amount=grant.amount,
            remaining_amount=grant.remaining_amount,
            expires_at=grant.expires_at,
            created_at=grant.created_at,
        )
        return _to_point_grant(row)

    # Transactions

    def add_transaction(self, transaction: Transaction) -> Transaction:
        with self.atomic():
            row = models.Transaction.objects.using(self._using).create(
                id=transaction.id.value,
                user_id=transaction.user_id.value,
                event_id=transaction.event_id.value,
                invoice_number=transaction.invoice_number,
                total_amount=transaction.total_amount.amount,
                discount_amount=transaction.discount_amount.amount,
                points_used=transaction.points_used,
                final_amount=transaction.final_amount.amount,
                promotion_id=transaction.promotion_id,
                coupon_id=transaction.coupon_id,
                status=transaction.status.value,
                payment_deadline=transaction.payment_deadline,
                payment_proof=transaction.payment_proof,
                created_at=transaction.created_at,
                updated_at=transaction.updated_at,
            )
            models.TransactionItem.objects.using(self._using).bulk_create(
                models.TransactionItem(
                    transaction=row,
                    ticket_type_id=item.ticket_type_id.value,
                    quantity=item.quantity,
                    price_at_buy=item.unit_price.amount,
                    subtotal=item.subtotal.amount,
                    position=position,
                )
                for position, item in enumerate(transaction.items)
            )
        return transaction

    def invoice_number_exists(self, invoice_number: str) -> bool:
        return (
            models.Transaction.objects.using(self._using)
            .filter(invoice_number=invoice_number)
            .exists()
        )

    def get_transaction(self, transaction_id: TransactionId) -> Transaction | None:
        row = (
            models.Transaction.objects.using(self._using)
            .prefetch_related("items")
            .filter(pk=transaction_id.value)
            .first()
        )
        return _to_transaction(row) if row else None

    def transition_transaction(
        self,
        transaction_id: TransactionId,
        expected: TransactionStatus,
        new: TransactionStatus,
        *,
        updated_at: datetime,
        payment_proof: str | None = None,
    ) -> Transaction | None:
        changes = {"status": new.value, "updated_at": updated_at}
        if payment_proof is not None:
            changes["payment_proof"] = payment_proof
        updated = (
            models.Transaction.objects.using(self._using)
            .filter(pk=transaction_id.value, status=expected.value)
            .update(**changes)
        )
        if updated == 0:
            return None
        return self.get_transaction(transaction_id)

    def list_transactions(
        self,
        status: TransactionStatus,
        *,
        deadline_before: datetime | None = None,
        updated_before: datetime | None = None,
    ) -> list[Transaction]:
        rows = models.Transaction.objects.using(self._using).filter(status=status.value)
        if deadline_before is not None:
            rows = rows.filter(payment_deadline__lt=deadline_before)
        if updated_before is not None:
            rows = rows.filter(updated_at__lt=updated_before)
        rows = rows.prefetch_related("items").order_by("created_at")
        return [_to_transaction(row) for row in rows]
