"""Read-side of a buyer's discounts: points summary and coupon wallet.

Also issues referral coupons, which the sign-up flow hands to new users.
"""

import logging
import secrets
import string
import uuid
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from ticketing.clock import Clock
from ticketing.domain import Coupon, PointGrant, UserId
from ticketing.domain.errors import InvalidCouponError, InvalidIdentifierError
from ticketing.services.points_ledger import PointsLedger, add_months
from ticketing.stores.interfaces import LedgerStore

logger = logging.getLogger(__name__)

REFERRAL_ALPHABET = string.ascii_uppercase + string.digits
REFERRAL_DISCOUNT_PERCENTAGE = Decimal("10")
REFERRAL_VALIDITY_MONTHS = 3


@dataclass(frozen=True)
class PointsSummary:
    total_balance: int
    grants: list[PointGrant]


@dataclass(frozen=True)
class PointHistoryEntry:
    grant: PointGrant
    is_expired: bool


@dataclass(frozen=True)
class CouponStatus:
    coupon: Coupon
    is_expired: bool
    is_valid: bool


class WalletService:
    """Points and coupons as seen by their owner."""

    def __init__(self, store: LedgerStore, points: PointsLedger, clock: Clock) -> None:
        self._store = store
        self._points = points
        self._clock = clock

    def points_summary(self, user_id: str | UUID) -> PointsSummary:
        grants = self._points.active_grants(_user(user_id))
        return PointsSummary(
            total_balance=sum(grant.remaining_amount for grant in grants),
            grants=grants,
        )

    def points_history(self, user_id: str | UUID) -> list[PointHistoryEntry]:
        """Every grant the user ever received, newest first, flagged once expired."""
        now = self._clock.now()
        return [
            PointHistoryEntry(grant=grant, is_expired=grant.expires_at < now)
            for grant in self._points.history(_user(user_id))
        ]

    def coupons(self, user_id: str | UUID) -> list[CouponStatus]:
        now = self._clock.now()
        return [
            CouponStatus(
                coupon=coupon,
                is_expired=coupon.valid_until < now,
                is_valid=coupon.is_redeemable(now),
            )
            for coupon in self._store.list_coupons(_user(user_id))
        ]

    def validate_coupon(self, code: str, user_id: str | UUID) -> Coupon:
        """Return the caller's coupon if it can be redeemed right now.

        Raises:
            InvalidCouponError: With the specific reason the coupon is unusable.
        """
        owner = _user(user_id)
        now = self._clock.now()
        coupon = self._store.find_coupon(code.strip())
        if coupon is None:
            raise InvalidCouponError("Coupon not found")
        if coupon.user_id != owner:
            raise InvalidCouponError("This coupon does not belong to you")
        if coupon.is_used:
            raise InvalidCouponError("Coupon has already been used")
        if coupon.valid_from > now:
            raise InvalidCouponError("Coupon is not yet valid")
        if coupon.valid_until < now:
            raise InvalidCouponError("Coupon has expired")
        return coupon

    def issue_referral_coupon(
        self,
        user_id: str | UUID,
        discount_percentage: Decimal = REFERRAL_DISCOUNT_PERCENTAGE,
    ) -> Coupon:
        """Give a user a fresh single-use percentage coupon valid for three months.

        Called by the sign-up flow and by the `issue_referral_coupon` command.
        """
        now = self._clock.now()
        while True:
            code = "REF-" + "".join(secrets.choice(REFERRAL_ALPHABET) for _ in range(8))
            if self._store.find_coupon(code) is None:
                break
        coupon = self._store.add_coupon(
            Coupon(
                id=uuid.uuid4(),
                user_id=_user(user_id),
                code=code,
                discount_percentage=discount_percentage,
                discount_amount=None,
                valid_from=now,
                valid_until=add_months(now, REFERRAL_VALIDITY_MONTHS),
                created_at=now,
            )
        )
        logger.info("Issued referral coupon %s to user %s", coupon.code, coupon.user_id)
        return coupon


def _user(user_id: str | UUID | UserId) -> UserId:
    if isinstance(user_id, UserId):
        return user_id
    try:
        return UserId(user_id) if isinstance(user_id, UUID) else UserId.from_string(str(user_id))
    except ValueError:
        raise InvalidIdentifierError("user_id") from None
