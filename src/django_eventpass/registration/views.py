"""JSON endpoints for the payment settlement flow.

Two browser-facing endpoints, both ``POST`` and CORS-enabled:

* ``create_order_view`` starts payment for a pending registration.
* ``verify_payment_view`` confirms it after the payment widget completes.

Every response is a JSON envelope: ``{"success": true, ...}`` on success,
``{"success": false, "error": "..."}`` otherwise. Settlement errors are mapped
to their HTTP status here and nowhere else.
"""

from __future__ import annotations

import functools
import http
import json
import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt

from django_eventpass.registration.auth import authenticate_request
from django_eventpass.registration.errors import SettlementError, UpstreamError, ValidationError
from django_eventpass.registration.services.order import OrderService
from django_eventpass.registration.services.verification import VerificationService
from django_eventpass.settings import get_config

if TYPE_CHECKING:
    from collections.abc import Callable

    from django.contrib.auth.models import AbstractBaseUser
    from django.http import HttpRequest

    JsonHandler = Callable[[HttpRequest, dict[str, object], AbstractBaseUser], dict[str, object]]

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"


def _with_cors(response: HttpResponse) -> HttpResponse:
    response["Access-Control-Allow-Origin"] = get_config().cors_allow_origin
    response["Access-Control-Allow-Headers"] = CORS_ALLOW_HEADERS
    response["Access-Control-Allow-Methods"] = "POST, OPTIONS"
    return response


def _failure(error: str, status: int) -> HttpResponse:
    return _with_cors(JsonResponse({"success": False, "error": error}, status=status))


def _parse_body(request: HttpRequest) -> dict[str, object]:
    """Decode the JSON request body, keeping decimals exact.

    Raises:
        ValidationError: If the body is not a JSON object.
    """
    try:
        data = json.loads(request.body or b"{}", parse_float=Decimal)
    except (ValueError, UnicodeDecodeError):  # fmt: skip
        raise ValidationError("Invalid JSON body") from None
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON body")
    return data


def settlement_endpoint(failure_message: str) -> Callable[[JsonHandler], Callable[[HttpRequest], HttpResponse]]:
    """Wrap a handler with CORS, method, authentication, and error mapping.

    The wrapped handler receives the decoded body and the authenticated user
    and returns the success payload without the ``success`` key.

    Args:
        failure_message: Generic message used for unexpected exceptions and
            prefixed to upstream gateway errors.
    """

    def decorator(handler: JsonHandler) -> Callable[[HttpRequest], HttpResponse]:
        @csrf_exempt
        @functools.wraps(handler)
        def view(request: HttpRequest) -> HttpResponse:
            if request.method == "OPTIONS":
                return _with_cors(HttpResponse("ok"))
            if request.method != "POST":
                return _failure("Method not allowed", http.HTTPStatus.METHOD_NOT_ALLOWED)

            try:
                user = authenticate_request(request)
                payload = handler(request, _parse_body(request), user)
            except UpstreamError as exc:
                logger.error("%s: %s", failure_message, exc.message)
                return _failure(f"{failure_message}: {exc.public_message}", exc.status_code)
            except SettlementError as exc:
                return _failure(exc.public_message, exc.status_code)
            except Exception:
                logger.exception("Unhandled error in %s", handler.__name__)
                return _failure(failure_message, http.HTTPStatus.INTERNAL_SERVER_ERROR)

            return _with_cors(JsonResponse({"success": True, **payload}))

        return view

    return decorator


@settlement_endpoint("Failed to create order")
def create_order_view(request: HttpRequest, data: dict[str, object], user: AbstractBaseUser) -> dict[str, object]:  # noqa: ARG001
    """Create a gateway order for a pending registration.

    Request body: ``{"amount", "user_id", "registration_id"}``.
    Response: ``{"success": true, "order_id", "amount", "currency"}``.
    """
    order = OrderService.create_order(
        amount=data.get("amount"),
        user_id=data.get("user_id"),
        registration_id=data.get("registration_id"),
    )
    return {"order_id": order.order_id, "amount": order.amount, "currency": order.currency}


@settlement_endpoint("Payment verification failed")
def verify_payment_view(request: HttpRequest, data: dict[str, object], user: AbstractBaseUser) -> dict[str, object]:  # noqa: ARG001
    """Verify a completed payment and confirm its registration.

    Request body: ``{"razorpay_order_id", "razorpay_payment_id",
    "razorpay_signature", "registration_id"}``.
    Response: ``{"success": true, "message"}``.
    """
    result = VerificationService.verify_payment(
        order_id=data.get("razorpay_order_id"),
        payment_id=data.get("razorpay_payment_id"),
        signature=data.get("razorpay_signature"),
        registration_id=data.get("registration_id"),
    )
    return {"message": result.message}
