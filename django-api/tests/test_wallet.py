"""Tests for the points summary and coupon wallet."""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest

from ticketing.domain import UserId
from ticketing.domain.errors import InvalidCouponError, InvalidIdentifierError
from ticketing.services.points_ledger import add_months


class TestPointsSummary:
    """Tests for WalletService.points_summary."""

    def test_balance_and_grants(self, wallet, give_points, buyer_id, clock):
        """The summary lists spendable grants soonest-expiring first."""
        late = give_points(40, expires_in=timedelta(days=80))
        soon = give_points(25, expires_in=timedelta(days=5))
        give_points(99, expires_in=timedelta(hours=1))
        clock.advance(hours=2)

        summary = wallet.points_summary(buyer_id.value)

        assert summary.total_balance == 65
        assert [g.id for g in summary.grants] == [soon.id, late.id]

    def test_history_keeps_expired(self, wallet, give_points, buyer_id, clock):
        """History still shows grants that expired."""
        give_points(10, expires_in=timedelta(hours=1))
        clock.advance(days=1)
        [entry] = wallet.points_history(str(buyer_id))
        assert entry.is_expired is True

    def test_history_flags_only_past_expiry(self, wallet, give_points, buyer_id, clock):
        """A grant expiring right now is not yet expired."""
        give_points(10, expires_in=timedelta(hours=1))
        clock.advance(hours=1)
        [entry] = wallet.points_history(str(buyer_id))
        assert entry.is_expired is False
        assert entry.grant.remaining_amount == 10

    def test_invalid_user_id(self, wallet):
        """A malformed user id is a validation error."""
        with pytest.raises(InvalidIdentifierError):
            wallet.points_summary("someone")


class TestCoupons:
    """Tests for listing and validating coupons."""

    def test_list_flags(self, wallet, make_coupon, buyer_id, clock):
        """Each coupon reports whether it is expired and usable."""
        make_coupon(code="FRESH")
        make_coupon(code="USED", is_used=True)
        make_coupon(code="OLD", valid_until=clock.now() - timedelta(days=1))

        statuses = {s.coupon.code: (s.is_expired, s.is_valid) for s in wallet.coupons(buyer_id)}

        assert statuses == {
            "FRESH": (False, True),
            "USED": (False, False),
            "OLD": (True, False),
        }

    def test_validate_ok(self, wallet, make_coupon, buyer_id):
        """A redeemable coupon validates for its owner."""
        coupon = make_coupon()
        assert wallet.validate_coupon(" WELCOME-1 ", buyer_id) == coupon

    @pytest.mark.parametrize(
        ("overrides", "reason"),
        [
            ({"is_used": True}, "already been used"),
            ({"valid_from_days": 2}, "not yet valid"),
            ({"valid_until_days": -2}, "expired"),
        ],
    )
    def test_validate_reasons(self, wallet, make_coupon, buyer_id, clock, overrides, reason):
        """Unusable coupons fail with the specific reason."""
        make_coupon(
            is_used=overrides.get("is_used", False),
            valid_from=clock.now() + timedelta(days=overrides.get("valid_from_days", -1)),
            valid_until=clock.now() + timedelta(days=overrides.get("valid_until_days", 30)),
        )
        with pytest.raises(InvalidCouponError, match=reason):
            wallet.validate_coupon("WELCOME-1", buyer_id)

    def test_validate_foreign(self, wallet, make_coupon, buyer_id):
        """Someone else's coupon does not validate."""
        make_coupon(user_id=UserId(uuid.uuid4()))
        with pytest.raises(InvalidCouponError, match="does not belong"):
            wallet.validate_coupon("WELCOME-1", buyer_id)

    def test_validate_unknown(self, wallet, buyer_id):
        """An unknown code does not validate."""
        with pytest.raises(InvalidCouponError, match="not found"):
            wallet.validate_coupon("NOPE", buyer_id)

    def test_issue_referral_coupon(self, wallet, buyer_id, clock):
        """Referral coupons are 10% off for three months."""
        coupon = wallet.issue_referral_coupon(buyer_id)
        assert coupon.code.startswith("REF-") and len(coupon.code) == 12
        assert coupon.discount_percentage == Decimal("10")
        assert coupon.valid_until == add_months(clock.now(), 3)
        assert wallet.validate_coupon(coupon.code, buyer_id) == coupon
