"""Serializers for request parsing and for rendering domain models."""

from rest_framework import serializers

from ticketing.domain import TransactionStatus


class OrderLineSerializer(serializers.Serializer):
    ticket_type_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class CreateTransactionSerializer(serializers.Serializer):
    """Input for a purchase. Discount exclusivity is enforced by the domain."""

    event_id = serializers.UUIDField()
    items = OrderLineSerializer(many=True, allow_empty=False)
    promotion_code = serializers.CharField(required=False, allow_blank=True, max_length=50)
    coupon_code = serializers.CharField(required=False, allow_blank=True, max_length=50)
    points_to_use = serializers.IntegerField(required=False, min_value=0)


class DecisionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[TransactionStatus.DONE.value, TransactionStatus.REJECTED.value]
    )
    rejection_reason = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class PaymentProofSerializer(serializers.Serializer):
    payment_proof = serializers.FileField()


class TransactionItemSerializer(serializers.Serializer):
    """Serializer for TransactionItem domain model."""

    ticket_type_id = serializers.UUIDField(source="ticket_type_id.value")
    quantity = serializers.IntegerField()
    price_at_buy = serializers.DecimalField(
        source="unit_price.amount", max_digits=12, decimal_places=2
    )
    subtotal = serializers.DecimalField(source="subtotal.amount", max_digits=12, decimal_places=2)


class TransactionSerializer(serializers.Serializer):
    """Serializer for Transaction domain model."""

    id = serializers.UUIDField(source="id.value")
    user_id = serializers.UUIDField(source="user_id.value")
    event_id = serializers.UUIDField(source="event_id.value")
    invoice_number = serializers.CharField()
    items = TransactionItemSerializer(many=True)
    total_amount = serializers.DecimalField(
        source="total_amount.amount", max_digits=12, decimal_places=2
    )
    discount_amount = serializers.DecimalField(
        source="discount_amount.amount", max_digits=12, decimal_places=2
    )
    points_used = serializers.IntegerField()
    final_amount = serializers.DecimalField(
        source="final_amount.amount", max_digits=12, decimal_places=2
    )
    promotion_id = serializers.UUIDField(allow_null=True)
    coupon_id = serializers.UUIDField(allow_null=True)
    status = serializers.CharField(source="status.value")
    payment_deadline = serializers.DateTimeField()
    payment_proof = serializers.CharField(allow_null=True)
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


class PointGrantSerializer(serializers.Serializer):
    """Serializer for PointGrant domain model."""

    id = serializers.UUIDField()
    amount = serializers.IntegerField()
    remaining_amount = serializers.IntegerField()
    expires_at = serializers.DateTimeField()
    created_at = serializers.DateTimeField()


class PointHistoryEntrySerializer(serializers.Serializer):
    id = serializers.UUIDField(source="grant.id")
    amount = serializers.IntegerField(source="grant.amount")
    remaining_amount = serializers.IntegerField(source="grant.remaining_amount")
    expires_at = serializers.DateTimeField(source="grant.expires_at")
    created_at = serializers.DateTimeField(source="grant.created_at")
    is_expired = serializers.BooleanField()


class PointsSummarySerializer(serializers.Serializer):
    total_balance = serializers.IntegerField()
    points = PointGrantSerializer(source="grants", many=True)


class CouponSerializer(serializers.Serializer):
    """Serializer for Coupon domain model."""

    id = serializers.UUIDField()
    code = serializers.CharField()
    discount_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, allow_null=True
    )
    discount_amount = serializers.DecimalField(
        source="discount_amount.amount", max_digits=12, decimal_places=2, allow_null=True
    )
    valid_from = serializers.DateTimeField()
    valid_until = serializers.DateTimeField()
    is_used = serializers.BooleanField()


class CouponStatusSerializer(serializers.Serializer):
    coupon = CouponSerializer()
    is_expired = serializers.BooleanField()
    is_valid = serializers.BooleanField()
