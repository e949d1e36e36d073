"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Leave domain error mapping to the exception handler
- Never contain business logic
"""

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from ticketing.domain import OrderLine, TicketTypeId, select_discount
from ticketing.handlers.auth import IsCustomer, IsOrganizer
from ticketing.handlers.serializers import (
    CouponSerializer,
    CouponStatusSerializer,
    CreateTransactionSerializer,
    DecisionSerializer,
    PaymentProofSerializer,
    PointHistoryEntrySerializer,
    PointsSummarySerializer,
    TransactionSerializer,
)
from ticketing.services import build_transaction_service, build_wallet_service


class TransactionCreateView(APIView):
    """Handler for POST /api/transactions"""

    permission_classes = [IsCustomer]

    def post(self, request: Request) -> Response:
        serializer = CreateTransactionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        discount = select_discount(
            promotion_code=data.get("promotion_code") or None,
            coupon_code=data.get("coupon_code") or None,
            points_to_use=data.get("points_to_use"),
        )
        lines = [
            OrderLine(TicketTypeId(item["ticket_type_id"]), item["quantity"])
            for item in data["items"]
        ]
        transaction = build_transaction_service().create_transaction(
            request.user.user_id, data["event_id"], lines, discount
        )
        return Response(TransactionSerializer(transaction).data, status=status.HTTP_201_CREATED)


class TransactionDetailView(APIView):
    """Handler for GET /api/transactions/{transaction_id}"""

    permission_classes = [IsCustomer]

    def get(self, request: Request, transaction_id: str) -> Response:
        view = build_transaction_service().get_transaction(transaction_id, request.user.user_id)
        body = TransactionSerializer(view.transaction).data
        body["seconds_remaining"] = view.seconds_remaining
        return Response(body)


class PaymentProofView(APIView):
    """Handler for POST /api/transactions/{transaction_id}/payment-proof"""

    permission_classes = [IsCustomer]

    def post(self, request: Request, transaction_id: str) -> Response:
        serializer = PaymentProofSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        transaction = build_transaction_service().upload_payment_proof(
            transaction_id, request.user.user_id, serializer.validated_data["payment_proof"]
        )
        return Response(TransactionSerializer(transaction).data)


class TransactionCancelView(APIView):
    """Handler for POST /api/transactions/{transaction_id}/cancel"""

    permission_classes = [IsCustomer]

    def post(self, request: Request, transaction_id: str) -> Response:
        transaction = build_transaction_service().cancel_transaction(
            transaction_id, request.user.user_id
        )
        return Response(TransactionSerializer(transaction).data)


class TransactionDecisionView(APIView):
    """Handler for POST /api/transactions/{transaction_id}/decision"""

    permission_classes = [IsOrganizer]

    def post(self, request: Request, transaction_id: str) -> Response:
        serializer = DecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        transaction = build_transaction_service().decide_transaction(
            transaction_id,
            request.user.user_id,
            serializer.validated_data["status"],
            serializer.validated_data.get("rejection_reason"),
        )
        return Response(TransactionSerializer(transaction).data)


class PointsSummaryView(APIView):
    """Handler for GET /api/points"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        summary = build_wallet_service().points_summary(request.user.user_id)
        return Response(PointsSummarySerializer(summary).data)


class PointsHistoryView(APIView):
    """Handler for GET /api/points/history"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        entries = build_wallet_service().points_history(request.user.user_id)
        return Response(PointHistoryEntrySerializer(entries, many=True).data)


class CouponListView(APIView):
    """Handler for GET /api/coupons"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        coupons = build_wallet_service().coupons(request.user.user_id)
        return Response(CouponStatusSerializer(coupons, many=True).data)


class CouponValidateView(APIView):
    """Handler for GET /api/coupons/validate/{code}"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request, code: str) -> Response:
        coupon = build_wallet_service().validate_coupon(code, request.user.user_id)
        return Response({"valid": True, "coupon": CouponSerializer(coupon).data})
