from ticketing.handlers.views import (
    CouponListView,
    CouponValidateView,
    PaymentProofView,
    PointsHistoryView,
    PointsSummaryView,
    TransactionCancelView,
    TransactionCreateView,
    TransactionDecisionView,
    TransactionDetailView,
)

__all__ = [
    "CouponListView",
    "CouponValidateView",
    "PaymentProofView",
    "PointsHistoryView",
    "PointsSummaryView",
    "TransactionCancelView",
    "TransactionCreateView",
    "TransactionDecisionView",
    "TransactionDetailView",
]
