"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
Check constraints back the counter invariants so that a faulty write fails at
the database rather than corrupting inventory.
"""

import uuid

from django.db import models
from django.db.models import F, Q

from ticketing.domain import TransactionStatus

SINGLE_DISCOUNT = Q(discount_percentage__isnull=False, discount_amount__isnull=True) | Q(
    discount_percentage__isnull=True, discount_amount__isnull=False
)


class Event(models.Model):
    """Persistence model for events. Authoring happens outside this app."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organizer_id = models.UUIDField(db_index=True)
    name = models.CharField(max_length=255)
    total_seats = models.PositiveIntegerField()
    available_seats = models.PositiveIntegerField()
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    deleted_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["start_date"]
        constraints = [
            models.CheckConstraint(
                condition=Q(available_seats__lte=F("total_seats")),
                name="event_available_seats_within_total",
            ),
        ]

    def __str__(self) -> str:
        return self.name


class TicketType(models.Model):
    """Persistence model for ticket types."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="ticket_types")
    name = models.CharField(max_length=100)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    quantity = models.PositiveIntegerField()
    available_quantity = models.PositiveIntegerField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["event"], name="ticket_type_event_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(available_quantity__lte=F("quantity")),
                name="ticket_type_available_within_quantity",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} - {self.price}"


class Promotion(models.Model):
    """Persistence model for event promotion codes."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="promotions")
    code = models.CharField(max_length=50, unique=True)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, blank=True, null=True)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, blank=True, null=True)
    max_usage = models.PositiveIntegerField()
    current_usage = models.PositiveIntegerField(default=0)
    valid_from = models.DateTimeField()
    valid_until = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(current_usage__lte=F("max_usage")),
                name="promotion_usage_within_max",
            ),
            models.CheckConstraint(condition=SINGLE_DISCOUNT, name="promotion_single_discount"),
        ]

    def save(self, *args, **kwargs):
        self.code = self.code.upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.code


class Coupon(models.Model):
    """Persistence model for single-use user coupons."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.UUIDField(db_index=True)
    code = models.CharField(max_length=50, unique=True)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, blank=True, null=True)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, blank=True, null=True)
    valid_from = models.DateTimeField()
    valid_until = models.DateTimeField()
    is_used = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(condition=SINGLE_DISCOUNT, name="coupon_single_discount"),
        ]

    def __str__(self) -> str:
        return self.code


class PointGrant(models.Model):
    """Persistence model for loyalty point grants."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.UUIDField()
    amount = models.PositiveIntegerField()
    remaining_amount = models.PositiveIntegerField()
    expires_at = models.DateTimeField()
    created_at = models.DateTimeField()

    class Meta:
        indexes = [
            models.Index(fields=["user_id", "expires_at"], name="point_grant_user_expiry_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(remaining_amount__lte=F("amount")),
                name="point_grant_remaining_within_amount",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.remaining_amount}/{self.amount} until {self.expires_at}"


class Transaction(models.Model):
    """Persistence model for purchases. Rows are never deleted."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.UUIDField(db_index=True)
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="transactions")
    invoice_number = models.CharField(max_length=32, unique=True)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2)
    points_used = models.PositiveIntegerField(default=0)
    final_amount = models.DecimalField(max_digits=12, decimal_places=2)
    promotion = models.ForeignKey(
        Promotion, on_delete=models.PROTECT, related_name="transactions", blank=True, null=True
    )
    coupon = models.ForeignKey(
        Coupon, on_delete=models.PROTECT, related_name="transactions", blank=True, null=True
    )
    status = models.CharField(
        max_length=32,
        choices=[(status.value, status.name) for status in TransactionStatus],
    )
    payment_deadline = models.DateTimeField()
    payment_proof = models.URLField(max_length=500, blank=True, null=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "payment_deadline"], name="txn_status_deadline_idx"),
            models.Index(fields=["status", "updated_at"], name="txn_status_updated_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(final_amount__gte=0),
                name="transaction_final_amount_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return self.invoice_number


class TransactionItem(models.Model):
    """Persistence model for transaction line items."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    transaction = models.ForeignKey(Transaction, on_delete=models.CASCADE, related_name="items")
    ticket_type = models.ForeignKey(TicketType, on_delete=models.PROTECT, related_name="sold_items")
    quantity = models.PositiveIntegerField()
    price_at_buy = models.DecimalField(max_digits=12, decimal_places=2)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    position = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ["position"]

    def __str__(self) -> str:
        return f"{self.quantity} x {self.ticket_type_id}"
