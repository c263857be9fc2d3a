"""HTTP client for the settlement JSON endpoints.

:class:`HttpSettlement` lets a :class:`~django_eventpass.registration.services.flow.RegistrationFlow`
running outside the web process (a kiosk, a test harness, another service)
drive payment through the public ``create-order`` and ``verify-payment``
endpoints exactly as the browser does. Failure envelopes are turned back
into the matching settlement errors.
"""

from __future__ import annotations

import http
import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import httpx

from django_eventpass.registration.errors import (
    AuthenticationError,
    NotFoundError,
    PaymentConflictError,
    SettlementError,
    SignatureError,
    UpstreamError,
    ValidationError,
)
from django_eventpass.registration.services.order import CreatedOrder

if TYPE_CHECKING:
    from django_eventpass.registration.services.flow import PaymentConfirmation

logger = logging.getLogger(__name__)

_ERRORS_BY_STATUS: dict[int, type[SettlementError]] = {
    http.HTTPStatus.BAD_REQUEST: ValidationError,
    http.HTTPStatus.UNAUTHORIZED: AuthenticationError,
    http.HTTPStatus.NOT_FOUND: NotFoundError,
    http.HTTPStatus.CONFLICT: PaymentConflictError,
}


def _error_for(status_code: int, message: str) -> SettlementError:
    """Map a failure envelope back to a settlement error instance."""
    if status_code == http.HTTPStatus.BAD_REQUEST and message == SignatureError.default_message:
        return SignatureError(message)
    error_class = _ERRORS_BY_STATUS.get(status_code, UpstreamError)
    return error_class(message)


class HttpSettlement:
    """Settlement backend that calls the JSON endpoints over HTTP.

    Args:
        base_url: URL the registration URLs are mounted under, e.g.
            ``"https://example.com/payments/"``.
        access_token: Bearer token identifying the user.
        api_key: Service API key sent in the ``apikey`` header.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport, used to stub the network in tests.
    """

    def __init__(
        self,
        base_url: str,
        *,
        access_token: str,
        api_key: str = "",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.headers: dict[str, str] = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        if api_key:
            self.headers["apikey"] = api_key
        self.timeout = timeout
        self._transport = transport

    def _post(self, endpoint: str, payload: dict[str, object]) -> dict[str, Any]:
        """POST *payload* and return the success envelope.

        Raises:
            SettlementError: The subclass matching the failure envelope, or
                ``UpstreamError`` for transport problems and unreadable
                responses.
        """
        url = f"{self.base_url}{endpoint}"
        try:
            with httpx.Client(timeout=self.timeout, headers=self.headers, transport=self._transport) as client:
                response = client.post(url, json=payload)
        except httpx.RequestError as exc:
            msg = f"Settlement API connection error for URL {url}: {exc}"
            raise UpstreamError(msg) from exc

        try:
            data = response.json()
        except ValueError as exc:
            msg = f"Settlement API returned a non-JSON response ({response.status_code})"
            raise UpstreamError(msg) from exc

        if not isinstance(data, dict) or not data.get("success"):
            message = str(data.get("error") or "Request failed") if isinstance(data, dict) else "Request failed"
            logger.debug("Settlement API %s failed with %s: %s", endpoint, response.status_code, message)
            raise _error_for(response.status_code, message)
        return data

    def create_order(self, *, amount: Decimal, user_id: str, registration_id: str) -> CreatedOrder:
        """Request a gateway order for a pending registration."""
        data = self._post(
            "create-order/",
            {"amount": str(amount), "user_id": user_id, "registration_id": registration_id},
        )
        return CreatedOrder(
            order_id=str(data["order_id"]),
            amount=int(data["amount"]),
            currency=str(data["currency"]),
        )

    def verify_payment(self, confirmation: PaymentConfirmation, *, registration_id: str) -> str:
        """Submit a payment confirmation and return the success message."""
        data = self._post(
            "verify-payment/",
            {
                "razorpay_order_id": confirmation.order_id,
                "razorpay_payment_id": confirmation.payment_id,
                "razorpay_signature": confirmation.signature,
                "registration_id": registration_id,
            },
        )
        return str(data.get("message", ""))
