from ticketing.domain.discounts import (
    CouponCode,
    DiscountOutcome,
    DiscountSelection,
    NoDiscount,
    PointsRedemption,
    PromotionCode,
    select_discount,
)
from ticketing.domain.models import (
    Coupon,
    Event,
    OrderLine,
    PointGrant,
    Promotion,
    Reservation,
    ReservationLine,
    TicketType,
    Transaction,
    TransactionItem,
    TransactionStatus,
)
from ticketing.domain.value_objects import (
    Capacity,
    EventId,
    Money,
    TicketTypeId,
    TransactionId,
    UserId,
)

__all__ = [
    "Event",
    "TicketType",
    "Promotion",
    "Coupon",
    "PointGrant",
    "OrderLine",
    "Transaction",
    "TransactionItem",
    "TransactionStatus",
    "Reservation",
    "ReservationLine",
    "EventId",
    "TicketTypeId",
    "TransactionId",
    "UserId",
    "Money",
    "Capacity",
    "DiscountSelection",
    "DiscountOutcome",
    "NoDiscount",
    "PromotionCode",
    "CouponCode",
    "PointsRedemption",
    "select_discount",
]
