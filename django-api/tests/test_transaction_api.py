"""HTTP tests for the transaction and wallet endpoints."""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone

from ticketing import models

pytestmark = pytest.mark.django_db


@pytest.fixture(autouse=True)
def in_memory_files(settings):
    settings.STORAGES = {
        "default": {"BACKEND": "django.core.files.storage.InMemoryStorage"},
        "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
    }


@pytest.fixture
def event():
    event = models.Event.objects.create(
        organizer_id=uuid.uuid4(),
        name="Summit Open Air",
        total_seats=50,
        available_seats=50,
        start_date=timezone.now() + timedelta(days=20),
        end_date=timezone.now() + timedelta(days=21),
    )
    models.TicketType.objects.create(
        event=event, name="General", price=Decimal("150.00"), quantity=50, available_quantity=50
    )
    return event


@pytest.fixture
def general(event):
    return event.ticket_types.get()


@pytest.fixture
def buyer():
    return uuid.uuid4()


@pytest.fixture
def as_buyer(api_client, buyer):
    api_client.credentials(HTTP_X_USER_ID=str(buyer), HTTP_X_USER_ROLE="CUSTOMER")
    return api_client


@pytest.fixture
def purchase(as_buyer, event, general):
    def submit(**extra):
        body = {
            "event_id": str(event.id),
            "items": [{"ticket_type_id": str(general.id), "quantity": 1}],
            **extra,
        }
        return as_buyer.post("/api/transactions", body, format="json")

    return submit


class TestCreateTransaction:
    """Tests for POST /api/transactions."""

    def test_created(self, purchase, buyer):
        """A purchase returns 201 with the priced transaction."""
        response = purchase()
        assert response.status_code == 201
        body = response.json()
        assert body["user_id"] == str(buyer)
        assert body["status"] == "WAITING_PAYMENT"
        assert body["final_amount"] == "150.00"
        assert body["invoice_number"].startswith("INV-")
        assert body["items"][0]["quantity"] == 1

    def test_requires_identity(self, api_client, event):
        """Requests without gateway headers are unauthenticated."""
        response = api_client.post("/api/transactions", {}, format="json")
        assert response.status_code == 401

    def test_organizers_cannot_buy(self, api_client, event, general):
        """Only customers can purchase."""
        api_client.credentials(HTTP_X_USER_ID=str(uuid.uuid4()), HTTP_X_USER_ROLE="ORGANIZER")
        response = api_client.post(
            "/api/transactions",
            {"event_id": str(event.id), "items": [{"ticket_type_id": str(general.id), "quantity": 1}]},
            format="json",
        )
        assert response.status_code == 403

    def test_empty_items(self, purchase):
        """An empty item list fails request validation."""
        response = purchase(items=[])
        assert response.status_code == 400

    def test_multiple_discounts(self, purchase):
        """Two discount fields are a conflict."""
        response = purchase(promotion_code="SAVE", points_to_use=10)
        assert response.status_code == 409
        assert response.json()["code"] == "MULTIPLE_DISCOUNTS"

    def test_unknown_event(self, as_buyer, general):
        """An unknown event is 404."""
        response = as_buyer.post(
            "/api/transactions",
            {"event_id": str(uuid.uuid4()), "items": [{"ticket_type_id": str(general.id), "quantity": 1}]},
            format="json",
        )
        assert response.status_code == 404
        assert response.json() == {"code": "EVENT_NOT_FOUND", "message": "Event not found"}

    def test_out_of_stock(self, purchase, general):
        """Asking for more than is left is a conflict."""
        response = purchase(items=[{"ticket_type_id": str(general.id), "quantity": 51}])
        assert response.status_code == 409
        assert response.json()["code"] == "OUT_OF_STOCK"


class TestTransactionLifecycle:
    """Tests for detail, proof upload, cancel and decision endpoints."""

    def test_detail(self, purchase, as_buyer):
        """The owner sees the transaction and the time left to pay."""
        transaction_id = purchase().json()["id"]
        response = as_buyer.get(f"/api/transactions/{transaction_id}")
        assert response.status_code == 200
        assert 0 < response.json()["seconds_remaining"] <= 2 * 60 * 60

    def test_detail_of_other_buyer(self, purchase, api_client):
        """Another customer cannot read the transaction."""
        transaction_id = purchase().json()["id"]
        api_client.credentials(HTTP_X_USER_ID=str(uuid.uuid4()), HTTP_X_USER_ROLE="CUSTOMER")
        response = api_client.get(f"/api/transactions/{transaction_id}")
        assert response.status_code == 403
        assert response.json()["code"] == "NOT_TRANSACTION_OWNER"

    def test_malformed_id(self, as_buyer):
        """A non-UUID path parameter is a validation error."""
        response = as_buyer.get("/api/transactions/not-a-uuid")
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_ID"

    def test_upload_then_accept(self, purchase, as_buyer, api_client, event):
        """A proof upload hands the transaction to the organizer."""
        transaction_id = purchase().json()["id"]
        upload = SimpleUploadedFile("receipt.jpg", b"\xff\xd8\xff", content_type="image/jpeg")

        response = as_buyer.post(
            f"/api/transactions/{transaction_id}/payment-proof",
            {"payment_proof": upload},
            format="multipart",
        )
        assert response.status_code == 200
        assert response.json()["status"] == "WAITING_CONFIRMATION"
        assert f"payment_{transaction_id}_" in response.json()["payment_proof"]

        api_client.credentials(HTTP_X_USER_ID=str(event.organizer_id), HTTP_X_USER_ROLE="ORGANIZER")
        response = api_client.post(
            f"/api/transactions/{transaction_id}/decision", {"status": "DONE"}, format="json"
        )
        assert response.status_code == 200
        assert response.json()["status"] == "DONE"

    def test_invalid_decision_value(self, purchase, api_client, event):
        """Only DONE and REJECTED are accepted as decisions."""
        transaction_id = purchase().json()["id"]
        api_client.credentials(HTTP_X_USER_ID=str(event.organizer_id), HTTP_X_USER_ROLE="ORGANIZER")
        response = api_client.post(
            f"/api/transactions/{transaction_id}/decision", {"status": "EXPIRED"}, format="json"
        )
        assert response.status_code == 400

    def test_cancel(self, purchase, as_buyer, general):
        """Cancelling returns the seats."""
        transaction_id = purchase().json()["id"]
        response = as_buyer.post(f"/api/transactions/{transaction_id}/cancel")
        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"
        general.refresh_from_db()
        assert general.available_quantity == 50

    def test_cancel_twice(self, purchase, as_buyer):
        """A second cancel is a state conflict."""
        transaction_id = purchase().json()["id"]
        as_buyer.post(f"/api/transactions/{transaction_id}/cancel")
        response = as_buyer.post(f"/api/transactions/{transaction_id}/cancel")
        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_STATE"


class TestWallet:
    """Tests for the points and coupon endpoints."""

    def test_points_summary(self, as_buyer, buyer):
        """The summary totals unexpired grants."""
        models.PointGrant.objects.create(
            user_id=buyer,
            amount=120,
            remaining_amount=80,
            expires_at=timezone.now() + timedelta(days=30),
            created_at=timezone.now(),
        )
        response = as_buyer.get("/api/points")
        assert response.status_code == 200
        assert response.json()["total_balance"] == 80
        assert len(response.json()["points"]) == 1

    def test_points_history_flags_expired(self, as_buyer, buyer):
        """History lists expired grants with their flag set."""
        models.PointGrant.objects.create(
            user_id=buyer,
            amount=40,
            remaining_amount=40,
            expires_at=timezone.now() - timedelta(days=1),
            created_at=timezone.now() - timedelta(days=91),
        )
        response = as_buyer.get("/api/points/history")
        assert response.status_code == 200
        [entry] = response.json()
        assert entry["amount"] == 40
        assert entry["is_expired"] is True

    def test_coupons_and_validation(self, as_buyer, buyer):
        """Owned coupons are listed and validate by code."""
        models.Coupon.objects.create(
            user_id=buyer,
            code="THANKS-7",
            discount_amount=Decimal("10.00"),
            valid_from=timezone.now() - timedelta(days=1),
            valid_until=timezone.now() + timedelta(days=7),
        )
        listed = as_buyer.get("/api/coupons").json()
        assert [entry["coupon"]["code"] for entry in listed] == ["THANKS-7"]
        assert listed[0]["is_valid"] is True

        response = as_buyer.get("/api/coupons/validate/THANKS-7")
        assert response.status_code == 200
        assert response.json()["valid"] is True

    def test_validate_unknown_coupon(self, as_buyer):
        """An unknown coupon code is reported with its reason."""
        response = as_buyer.get("/api/coupons/validate/NOPE")
        assert response.status_code == 409
        assert response.json() == {"code": "INVALID_COUPON", "message": "Coupon not found"}
