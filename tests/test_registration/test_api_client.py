"""Tests for the HTTP settlement client in django_eventpass.registration.api_client."""

import json
from decimal import Decimal

import httpx
import pytest

from django_eventpass.registration.api_client import HttpSettlement
from django_eventpass.registration.errors import (
    AuthenticationError,
    NotFoundError,
    PaymentConflictError,
    SignatureError,
    UpstreamError,
    ValidationError,
)
from django_eventpass.registration.services.flow import PaymentConfirmation
from django_eventpass.registration.services.order import CreatedOrder

BASE_URL = "https://tesseract.test/payments"
CONFIRMATION = PaymentConfirmation(order_id="order_abc", payment_id="pay_xyz", signature="deadbeef")


def _settlement(handler, **kwargs):
    return HttpSettlement(
        BASE_URL,
        access_token="token-123",
        api_key="anon-key",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def _failure(status, error):
    def handler(request):
        return httpx.Response(status, json={"success": False, "error": error})

    return handler


# =============================================================================
# TestCreateOrder
# =============================================================================


@pytest.mark.unit
class TestCreateOrder:
    def test_posts_to_create_order_endpoint(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={"success": True, "order_id": "order_abc", "amount": 50000, "currency": "INR"},
            )

        order = _settlement(handler).create_order(amount=Decimal("500.00"), user_id="7", registration_id="r-1")

        assert order == CreatedOrder(order_id="order_abc", amount=50000, currency="INR")
        assert seen["url"] == "https://tesseract.test/payments/create-order/"
        assert seen["headers"]["Authorization"] == "Bearer token-123"
        assert seen["headers"]["apikey"] == "anon-key"
        assert seen["body"] == {"amount": "500.00", "user_id": "7", "registration_id": "r-1"}

    def test_omits_api_key_header_when_blank(self):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            return httpx.Response(200, json={"success": True, "order_id": "o", "amount": 1, "currency": "INR"})

        HttpSettlement(BASE_URL, access_token="t", transport=httpx.MockTransport(handler)).create_order(
            amount=Decimal("0.01"),
            user_id="7",
            registration_id="r-1",
        )

        assert "apikey" not in seen["headers"]

    def test_gateway_failure(self):
        settlement = _settlement(_failure(500, "Failed to create order: Authentication failed"))

        with pytest.raises(UpstreamError, match="Authentication failed"):
            settlement.create_order(amount=Decimal("500"), user_id="7", registration_id="r-1")

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        with pytest.raises(UpstreamError, match="connection error"):
            _settlement(handler).create_order(amount=Decimal("500"), user_id="7", registration_id="r-1")

    def test_non_json_response(self):
        def handler(request):
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        with pytest.raises(UpstreamError, match="non-JSON"):
            _settlement(handler).create_order(amount=Decimal("500"), user_id="7", registration_id="r-1")


# =============================================================================
# TestVerifyPayment
# =============================================================================


@pytest.mark.unit
class TestVerifyPayment:
    def test_posts_confirmation(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "message": "Payment already processed"})

        message = _settlement(handler).verify_payment(CONFIRMATION, registration_id="r-1")

        assert message == "Payment already processed"
        assert seen["url"] == "https://tesseract.test/payments/verify-payment/"
        assert seen["body"] == {
            "razorpay_order_id": "order_abc",
            "razorpay_payment_id": "pay_xyz",
            "razorpay_signature": "deadbeef",
            "registration_id": "r-1",
        }

    @pytest.mark.parametrize(
        ("status", "error", "expected"),
        [
            (400, "Invalid payment signature", SignatureError),
            (400, "Missing required fields: registration_id", ValidationError),
            (401, "Invalid or expired access token", AuthenticationError),
            (404, "Registration not found", NotFoundError),
            (409, "Registration already confirmed with a different payment", PaymentConflictError),
            (500, "Failed to confirm registration", UpstreamError),
        ],
    )
    def test_failure_envelope_maps_to_error(self, status, error, expected):
        with pytest.raises(expected) as exc_info:
            _settlement(_failure(status, error)).verify_payment(CONFIRMATION, registration_id="r-1")

        assert exc_info.value.message == error
