"""Tests for discount resolution, claiming and reversal."""

import uuid
from datetime import timedelta

import pytest

from ticketing.domain import (
    CouponCode,
    Money,
    NoDiscount,
    PointsRedemption,
    PromotionCode,
    UserId,
)
from ticketing.domain.errors import (
    InsufficientPointsError,
    InvalidCouponError,
    InvalidPromotionError,
)
from ticketing.services import DiscountResolver, PointsLedger, PricedOrder


@pytest.fixture
def resolver(store, clock) -> DiscountResolver:
    return DiscountResolver(store, PointsLedger(store, clock), clock)


@pytest.fixture
def order(catalog, buyer_id) -> PricedOrder:
    return PricedOrder(event_id=catalog.event.id, buyer_id=buyer_id, total=Money.of("250.00"))


class TestResolvePromotion:
    """Tests for promotion code pricing."""

    def test_percentage_promotion(self, resolver, order, make_promotion):
        """A 10% promotion takes 10% off the total."""
        promotion = make_promotion(percentage="10")
        outcome = resolver.resolve(order, PromotionCode("save10"))
        assert outcome.discount_amount == Money.of("25.00")
        assert outcome.promotion_id == promotion.id
        assert outcome.final_amount(order.total) == Money.of("225.00")

    def test_fixed_promotion_is_clamped_to_total(self, resolver, order, make_promotion):
        """A fixed discount larger than the total makes the order free."""
        make_promotion(percentage=None, amount="400.00")
        outcome = resolver.resolve(order, PromotionCode("SAVE10"))
        assert outcome.discount_amount == order.total
        assert outcome.final_amount(order.total).is_zero()

    def test_unknown_code(self, resolver, order):
        """An unknown promotion code is invalid."""
        with pytest.raises(InvalidPromotionError):
            resolver.resolve(order, PromotionCode("NOPE"))

    def test_outside_window(self, resolver, order, make_promotion, clock):
        """A promotion past its window is invalid."""
        make_promotion(valid_until=clock.now() - timedelta(seconds=1))
        with pytest.raises(InvalidPromotionError):
            resolver.resolve(order, PromotionCode("SAVE10"))

    def test_exhausted(self, resolver, order, make_promotion):
        """A promotion at its usage cap is rejected with a specific reason."""
        make_promotion(max_usage=3, current_usage=3)
        with pytest.raises(InvalidPromotionError, match="maximum usage"):
            resolver.resolve(order, PromotionCode("SAVE10"))

    def test_resolve_has_no_side_effects(self, resolver, order, make_promotion, store):
        """Pricing a promotion does not claim a slot."""
        promotion = make_promotion()
        resolver.resolve(order, PromotionCode("SAVE10"))
        assert store.get_promotion(promotion.id).current_usage == 0


class TestResolveCoupon:
    """Tests for coupon pricing."""

    def test_fixed_coupon(self, resolver, order, make_coupon):
        """A fixed coupon takes its amount off."""
        coupon = make_coupon(amount="20.00")
        outcome = resolver.resolve(order, CouponCode("WELCOME-1"))
        assert outcome.discount_amount == Money.of("20.00")
        assert outcome.coupon_id == coupon.id

    def test_foreign_coupon(self, resolver, order, make_coupon):
        """A coupon owned by another user is invalid."""
        make_coupon(user_id=UserId(uuid.uuid4()))
        with pytest.raises(InvalidCouponError):
            resolver.resolve(order, CouponCode("WELCOME-1"))

    def test_used_coupon(self, resolver, order, make_coupon):
        """A coupon that was already redeemed is invalid."""
        make_coupon(is_used=True)
        with pytest.raises(InvalidCouponError):
            resolver.resolve(order, CouponCode("WELCOME-1"))

    def test_not_yet_valid_coupon(self, resolver, order, make_coupon, clock):
        """A coupon before its window is invalid."""
        make_coupon(valid_from=clock.now() + timedelta(days=1))
        with pytest.raises(InvalidCouponError):
            resolver.resolve(order, CouponCode("WELCOME-1"))


class TestResolvePoints:
    """Tests for points redemption pricing."""

    def test_points_reduce_final_amount(self, resolver, order, give_points):
        """Each point is worth one currency unit."""
        give_points(100)
        outcome = resolver.resolve(order, PointsRedemption(60))
        assert outcome.points_used == 60
        assert outcome.discount_amount.is_zero()
        assert outcome.final_amount(order.total) == Money.of("190.00")

    def test_points_capped_at_total(self, resolver, catalog, buyer_id, give_points):
        """Points beyond the whole-unit total are not spent."""
        give_points(500)
        small = PricedOrder(catalog.event.id, buyer_id, Money.of("49.50"))
        outcome = resolver.resolve(small, PointsRedemption(500))
        assert outcome.points_used == 49
        assert outcome.final_amount(small.total) == Money.of("0.50")

    def test_insufficient_points(self, resolver, order, give_points):
        """Asking for more points than the balance fails."""
        give_points(10)
        with pytest.raises(InsufficientPointsError):
            resolver.resolve(order, PointsRedemption(11))


class TestConsumeAndReverse:
    """Tests for claiming a resolved discount and undoing it."""

    def test_no_discount(self, resolver, order):
        """No selection yields a zero outcome."""
        outcome = resolver.resolve(order, NoDiscount())
        assert outcome.discount_amount.is_zero()
        assert outcome.final_amount(order.total) == order.total

    def test_promotion_claim_fails_when_taken_concurrently(
        self, resolver, order, make_promotion, store, buyer_id
    ):
        """The conditional claim fails if the last slot went elsewhere."""
        promotion = make_promotion(max_usage=1)
        outcome = resolver.resolve(order, PromotionCode("SAVE10"))
        assert store.try_claim_promotion(promotion.id)
        with pytest.raises(InvalidPromotionError):
            resolver.consume(buyer_id, outcome)

    def test_coupon_claim_is_single_use(self, resolver, order, make_coupon, store, buyer_id):
        """A claimed coupon is marked used and cannot be claimed twice."""
        coupon = make_coupon()
        outcome = resolver.resolve(order, CouponCode("WELCOME-1"))
        resolver.consume(buyer_id, outcome)
        assert store.get_coupon(coupon.id).is_used

        with pytest.raises(InvalidCouponError):
            resolver.consume(buyer_id, outcome)
