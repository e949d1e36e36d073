from django.urls import path

from ticketing.handlers import (
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

urlpatterns = [
    path("transactions", TransactionCreateView.as_view(), name="transaction-create"),
    path(
        "transactions/<str:transaction_id>",
        TransactionDetailView.as_view(),
        name="transaction-detail",
    ),
    path(
        "transactions/<str:transaction_id>/payment-proof",
        PaymentProofView.as_view(),
        name="transaction-payment-proof",
    ),
    path(
        "transactions/<str:transaction_id>/cancel",
        TransactionCancelView.as_view(),
        name="transaction-cancel",
    ),
    path(
        "transactions/<str:transaction_id>/decision",
        TransactionDecisionView.as_view(),
        name="transaction-decision",
    ),
    path("points", PointsSummaryView.as_view(), name="points-summary"),
    path("points/history", PointsHistoryView.as_view(), name="points-history"),
    path("coupons", CouponListView.as_view(), name="coupon-list"),
    path("coupons/validate/<str:code>", CouponValidateView.as_view(), name="coupon-validate"),
]
