"""Loyalty points ledger.

Points live in grants, each with its own expiry. Spending drains the grant
that expires soonest first (FIFO by expiry). Refunds never resurrect an old
grant: they issue a fresh one with a forward-looking expiry.
"""

import calendar
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from ticketing.clock import Clock
from ticketing.domain import PointGrant, UserId
from ticketing.domain.errors import InsufficientPointsError
from ticketing.stores.interfaces import LedgerStore

logger = logging.getLogger(__name__)


def add_months(moment: datetime, months: int) -> datetime:
    """Shift by calendar months, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


@dataclass(frozen=True)
class PointDeduction:
    grant_id: uuid.UUID
    points: int


class PointsLedger:
    """Balance, FIFO consumption and refunds of loyalty points."""

    def __init__(self, store: LedgerStore, clock: Clock, refund_validity_months: int = 3) -> None:
        self._store = store
        self._clock = clock
        self._refund_validity_months = refund_validity_months

    def balance(self, user_id: UserId) -> int:
        """Sum of remaining points across the user's unexpired grants."""
        grants = self._store.list_point_grants(user_id, spendable_at=self._clock.now())
        return sum(grant.remaining_amount for grant in grants)

    def active_grants(self, user_id: UserId) -> list[PointGrant]:
        """Spendable grants in the order they would be consumed."""
        return self._store.list_point_grants(user_id, spendable_at=self._clock.now())

    def history(self, user_id: UserId) -> list[PointGrant]:
        """All grants including expired and exhausted ones, newest first."""
        return self._store.list_point_grants(user_id)

    def consume(self, user_id: UserId, amount: int) -> list[PointDeduction]:
        """Deduct `amount` points, soonest-expiring grant first.

        Raises:
            InsufficientPointsError: If the balance is lower than `amount`, or a
                concurrent spend drained a grant between the read and the write.
        """
        if amount <= 0:
            return []
        with self._store.atomic():
            grants = self._store.list_point_grants(
                user_id, spendable_at=self._clock.now(), for_update=True
            )
            available = sum(grant.remaining_amount for grant in grants)
            if available < amount:
                raise InsufficientPointsError(available=available, requested=amount)

            deductions: list[PointDeduction] = []
            outstanding = amount
            for grant in grants:
                if outstanding == 0:
                    break
                take = min(grant.remaining_amount, outstanding)
                if not self._store.try_deduct_point_grant(grant.id, take):
                    raise InsufficientPointsError(available=available - take, requested=amount)
                deductions.append(PointDeduction(grant_id=grant.id, points=take))
                outstanding -= take

        logger.info("Consumed %s points for user %s across %s grants", amount, user_id, len(deductions))
        return deductions

    def grant(self, user_id: UserId, amount: int, expires_at: datetime) -> PointGrant:
        """Issue a new grant of `amount` points."""
        if amount <= 0:
            raise ValueError("Point grants must be positive")
        return self._store.add_point_grant(
            PointGrant(
                id=uuid.uuid4(),
                user_id=user_id,
                amount=amount,
                remaining_amount=amount,
                expires_at=expires_at,
                created_at=self._clock.now(),
            )
        )

    def refund(self, user_id: UserId, amount: int) -> PointGrant | None:
        """Return spent points as a fresh grant.

        The original grants keep their reduced balances; the refund expires a
        fixed number of months from now regardless of the original expiry.
        """
        if amount <= 0:
            return None
        expires_at = add_months(self._clock.now(), self._refund_validity_months)
        grant = self.grant(user_id, amount, expires_at)
        logger.info("Refunded %s points to user %s, expiring %s", amount, user_id, expires_at)
        return grant
