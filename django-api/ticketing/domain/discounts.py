"""Discount selection and outcome types.

A purchase applies at most one discount mechanism. The selection is a tagged
variant so that callers inside the codebase cannot express two at once;
`select_discount` is the runtime gate for raw external input.
"""

from dataclasses import dataclass
from uuid import UUID

from ticketing.domain.errors import InvalidOrderError, MultipleDiscountsError
from ticketing.domain.value_objects import Money


@dataclass(frozen=True)
class NoDiscount:
    """No discount requested."""


@dataclass(frozen=True)
class PromotionCode:
    """An event promotion code, matched case-insensitively."""

    code: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", self.code.strip().upper())


@dataclass(frozen=True)
class CouponCode:
    """A user-owned single-use coupon code."""

    code: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", self.code.strip())


@dataclass(frozen=True)
class PointsRedemption:
    """Loyalty points the buyer wants to spend."""

    points: int

    def __post_init__(self) -> None:
        if self.points <= 0:
            raise ValueError("points must be positive")


DiscountSelection = NoDiscount | PromotionCode | CouponCode | PointsRedemption


def select_discount(
    promotion_code: str | None = None,
    coupon_code: str | None = None,
    points_to_use: int | None = None,
) -> DiscountSelection:
    """Build a discount selection from optional raw inputs.

    Blank codes and a zero point amount count as absent.

    Raises:
        InvalidOrderError: If points_to_use is negative.
        MultipleDiscountsError: If more than one input is present.
    """
    if points_to_use is not None and points_to_use < 0:
        raise InvalidOrderError("points_to_use must be a non-negative integer")

    candidates: list[DiscountSelection] = []
    if promotion_code and promotion_code.strip():
        candidates.append(PromotionCode(promotion_code))
    if coupon_code and coupon_code.strip():
        candidates.append(CouponCode(coupon_code))
    if points_to_use:
        candidates.append(PointsRedemption(points_to_use))

    if len(candidates) > 1:
        raise MultipleDiscountsError()
    return candidates[0] if candidates else NoDiscount()


@dataclass(frozen=True)
class DiscountOutcome:
    """Priced result of applying a discount selection to an order total."""

    discount_amount: Money
    points_used: int = 0
    promotion_id: UUID | None = None
    coupon_id: UUID | None = None

    @classmethod
    def none(cls) -> "DiscountOutcome":
        return cls(discount_amount=Money.zero())

    def final_amount(self, total: Money) -> Money:
        return total.minus_clamped(self.discount_amount).minus_points(self.points_used)
