"""Tests for the loyalty points ledger."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone

import pytest

from ticketing.domain.errors import InsufficientPointsError
from ticketing.services import PointsLedger
from ticketing.services.points_ledger import add_months


@pytest.fixture
def ledger(store, clock) -> PointsLedger:
    return PointsLedger(store, clock, refund_validity_months=3)


class TestAddMonths:
    """Tests for calendar month arithmetic."""

    def test_plain_shift(self):
        """Day and time are kept when the target month is long enough."""
        moment = datetime(2026, 1, 15, 8, 30, tzinfo=dt_timezone.utc)
        assert add_months(moment, 3) == datetime(2026, 4, 15, 8, 30, tzinfo=dt_timezone.utc)

    def test_clamps_to_month_end(self):
        """Jan 31st plus one month lands on the last day of February."""
        moment = datetime(2026, 1, 31, tzinfo=dt_timezone.utc)
        assert add_months(moment, 1) == datetime(2026, 2, 28, tzinfo=dt_timezone.utc)

    def test_crosses_year(self):
        """Shifting past December rolls the year over."""
        moment = datetime(2026, 11, 30, tzinfo=dt_timezone.utc)
        assert add_months(moment, 3) == datetime(2027, 2, 28, tzinfo=dt_timezone.utc)


class TestBalance:
    """Tests for PointsLedger.balance."""

    def test_sums_unexpired_grants(self, ledger, give_points, buyer_id):
        """Balance counts every grant that has not expired."""
        give_points(100)
        give_points(50, expires_in=timedelta(days=10))
        assert ledger.balance(buyer_id) == 150

    def test_ignores_expired_grants(self, ledger, give_points, buyer_id, clock):
        """Expired grants contribute nothing."""
        give_points(100, expires_in=timedelta(days=1))
        give_points(30, expires_in=timedelta(days=60))
        clock.advance(days=2)
        assert ledger.balance(buyer_id) == 30

    def test_grant_expiring_now_is_excluded(self, ledger, give_points, buyer_id, clock):
        """A grant is unusable from its expiry instant on."""
        give_points(100, expires_in=timedelta(hours=1))
        clock.advance(hours=1)
        assert ledger.balance(buyer_id) == 0


class TestConsume:
    """Tests for PointsLedger.consume."""

    def test_drains_soonest_expiry_first(self, ledger, store, give_points, buyer_id):
        """Points come out of the grant expiring first."""
        late = give_points(100, expires_in=timedelta(days=60))
        soon = give_points(40, expires_in=timedelta(days=5))

        deductions = ledger.consume(buyer_id, 60)

        assert [(d.grant_id, d.points) for d in deductions] == [(soon.id, 40), (late.id, 20)]
        remaining = {g.id: g.remaining_amount for g in store.list_point_grants(buyer_id)}
        assert remaining == {soon.id: 0, late.id: 80}

    def test_insufficient_balance_changes_nothing(self, ledger, give_points, buyer_id):
        """A failed consume leaves every grant untouched."""
        give_points(30)
        with pytest.raises(InsufficientPointsError) as exc_info:
            ledger.consume(buyer_id, 31)
        assert exc_info.value.available == 30
        assert ledger.balance(buyer_id) == 30

    def test_zero_is_a_no_op(self, ledger, buyer_id):
        """Consuming nothing needs no grants."""
        assert ledger.consume(buyer_id, 0) == []

    def test_concurrent_spends_never_overdraw(self, ledger, give_points, buyer_id):
        """Parallel consumers cannot spend more than the balance."""
        give_points(100)

        def spend():
            try:
                ledger.consume(buyer_id, 30)
                return True
            except InsufficientPointsError:
                return False

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: spend(), range(8)))

        assert results.count(True) == 3
        assert ledger.balance(buyer_id) == 10

    def test_equal_expiry_drains_oldest_grant_first(self, ledger, give_points, buyer_id, clock):
        """Grants expiring together are spent in creation order."""
        start = clock.now()
        clock.advance(hours=1)
        newer = give_points(20, expires_in=timedelta(days=10) - timedelta(hours=1))
        clock.current = start
        older = give_points(20, expires_in=timedelta(days=10))

        deductions = ledger.consume(buyer_id, 5)

        assert older.expires_at == newer.expires_at
        assert [(d.grant_id, d.points) for d in deductions] == [(older.id, 5)]


class TestRefund:
    """Tests for PointsLedger.refund."""

    def test_issues_new_grant_with_fresh_expiry(self, ledger, store, give_points, buyer_id, clock):
        """Refunded points arrive as a new grant valid for three months."""
        original = give_points(50, expires_in=timedelta(days=1))
        ledger.consume(buyer_id, 50)

        refund = ledger.refund(buyer_id, 50)

        assert refund.amount == refund.remaining_amount == 50
        assert refund.expires_at == add_months(clock.now(), 3)
        assert refund.id != original.id
        assert store.list_point_grants(buyer_id, spendable_at=clock.now()) == [refund]
        assert ledger.balance(buyer_id) == 50

    def test_refund_survives_original_expiry(self, ledger, give_points, buyer_id, clock):
        """Points refunded after the original grant expired are spendable."""
        give_points(20, expires_in=timedelta(days=1))
        ledger.consume(buyer_id, 20)
        clock.advance(days=2)

        ledger.refund(buyer_id, 20)

        assert ledger.balance(buyer_id) == 20

    def test_zero_refund_creates_nothing(self, ledger, buyer_id):
        """No grant is written for a zero refund."""
        assert ledger.refund(buyer_id, 0) is None
        assert ledger.history(buyer_id) == []


class TestHistory:
    """Tests for PointsLedger.history."""

    def test_includes_expired_and_exhausted(self, ledger, give_points, buyer_id, clock):
        """History lists every grant, not only spendable ones."""
        give_points(10, expires_in=timedelta(days=1))
        give_points(10, remaining=0)
        clock.advance(days=2)
        assert len(ledger.history(buyer_id)) == 2
        assert ledger.active_grants(buyer_id) == []
