"""Discount resolver.

Prices exactly one discount selection against an order total. Resolution is
read-only and happens before any inventory work; the claims that make a
discount stick (promotion usage, coupon flag, point deductions) are applied by
`consume` inside the caller's atomic unit, each as a conditional write that
fails if a concurrent purchase got there first.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from ticketing.clock import Clock
from ticketing.domain import (
    CouponCode,
    DiscountOutcome,
    DiscountSelection,
    EventId,
    Money,
    NoDiscount,
    PointsRedemption,
    PromotionCode,
    Transaction,
    UserId,
)
from ticketing.domain.errors import (
    InsufficientPointsError,
    InvalidCouponError,
    InvalidPromotionError,
)
from ticketing.services.points_ledger import PointsLedger
from ticketing.stores.interfaces import LedgerStore

logger = logging.getLogger(__name__)

PROMOTION_EXHAUSTED = "Promotion code has reached maximum usage"


@dataclass(frozen=True)
class PricedOrder:
    """The part of an order a discount is computed against."""

    event_id: EventId
    buyer_id: UserId
    total: Money


@dataclass(frozen=True)
class DiscountReversal:
    """What a rollback handed back to the buyer."""

    points_refunded: int = 0
    coupon_restored: str | None = None


class DiscountResolver:
    """Validates, prices, claims and reverses discounts."""

    def __init__(self, store: LedgerStore, points: PointsLedger, clock: Clock) -> None:
        self._store = store
        self._points = points
        self._clock = clock

    def resolve(self, order: PricedOrder, selection: DiscountSelection) -> DiscountOutcome:
        """Price `selection` against `order` without side effects.

        Raises:
            InvalidPromotionError: Unknown, out-of-window or exhausted promotion.
            InvalidCouponError: Unknown, foreign, used or out-of-window coupon.
            InsufficientPointsError: Requested points exceed the balance.
        """
        now = self._clock.now()
        if isinstance(selection, NoDiscount):
            return DiscountOutcome.none()
        if isinstance(selection, PromotionCode):
            return self._resolve_promotion(order, selection, now)
        if isinstance(selection, CouponCode):
            return self._resolve_coupon(order, selection, now)
        if isinstance(selection, PointsRedemption):
            return self._resolve_points(order, selection)
        raise TypeError(f"Unsupported discount selection: {selection!r}")

    def _resolve_promotion(
        self, order: PricedOrder, selection: PromotionCode, now: datetime
    ) -> DiscountOutcome:
        promotion = self._store.find_promotion(order.event_id, selection.code)
        if promotion is None or not promotion.is_active(now):
            raise InvalidPromotionError()
        if promotion.is_exhausted:
            raise InvalidPromotionError(PROMOTION_EXHAUSTED)
        return DiscountOutcome(
            discount_amount=_clamp(promotion.discount_for(order.total), order.total),
            promotion_id=promotion.id,
        )

    def _resolve_coupon(
        self, order: PricedOrder, selection: CouponCode, now: datetime
    ) -> DiscountOutcome:
        coupon = self._store.find_coupon(selection.code)
        if coupon is None or coupon.user_id != order.buyer_id or not coupon.is_redeemable(now):
            raise InvalidCouponError()
        return DiscountOutcome(
            discount_amount=_clamp(coupon.discount_for(order.total), order.total),
            coupon_id=coupon.id,
        )

    def _resolve_points(self, order: PricedOrder, selection: PointsRedemption) -> DiscountOutcome:
        available = self._points.balance(order.buyer_id)
        if available < selection.points:
            raise InsufficientPointsError(available=available, requested=selection.points)
        # Points cover whole currency units only, so final_amount never goes negative.
        usable = min(selection.points, order.total.whole_units())
        return DiscountOutcome(discount_amount=Money.zero(), points_used=usable)

    def consume(self, buyer_id: UserId, outcome: DiscountOutcome) -> None:
        """Claim the resolved discount. Must run inside the purchase's atomic unit.

        Raises:
            InvalidPromotionError: The last promotion slot was taken concurrently.
            InvalidCouponError: The coupon was redeemed concurrently.
            InsufficientPointsError: Points were spent concurrently.
        """
        if outcome.promotion_id is not None and not self._store.try_claim_promotion(
            outcome.promotion_id
        ):
            raise InvalidPromotionError(PROMOTION_EXHAUSTED)
        if outcome.coupon_id is not None and not self._store.try_claim_coupon(outcome.coupon_id):
            raise InvalidCouponError("Coupon has already been used")
        if outcome.points_used:
            self._points.consume(buyer_id, outcome.points_used)

    def reverse(self, transaction: Transaction) -> DiscountReversal:
        """Undo every discount side effect of `transaction`."""
        coupon_code = None
        if transaction.coupon_id is not None:
            self._store.release_coupon(transaction.coupon_id)
            coupon = self._store.get_coupon(transaction.coupon_id)
            coupon_code = coupon.code if coupon else None
        if transaction.promotion_id is not None:
            self._store.release_promotion(transaction.promotion_id)
        if transaction.points_used:
            self._points.refund(transaction.user_id, transaction.points_used)
        return DiscountReversal(
            points_refunded=transaction.points_used,
            coupon_restored=coupon_code,
        )


def _clamp(discount: Money, total: Money) -> Money:
    return discount if discount.amount <= total.amount else total
