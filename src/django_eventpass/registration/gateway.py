"""HTTP client for the Razorpay Orders API.

Provides :class:`RazorpayClient`, a thin wrapper issuing one authenticated
HTTPS request per call. Responses are returned as :class:`GatewayOrder`
dataclasses rather than raw dicts. The client performs no retries; callers
decide whether a failed call is worth repeating.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from django_eventpass.registration.currency import obfuscate_key
from django_eventpass.registration.errors import ConfigurationError, UpstreamError
from django_eventpass.settings import get_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GatewayOrder:
    """An order record from the Razorpay API.

    Attributes:
        id: Opaque gateway order id (``order_...``).
        amount: Order amount in minor currency units.
        currency: ISO 4217 currency code.
        receipt: Caller-supplied receipt identifier.
        status: Gateway order status (``created``, ``attempted``, ``paid``).
        notes: Free-form key/value metadata attached at creation.
    """

    id: str
    amount: int
    currency: str
    receipt: str = ""
    status: str = ""
    notes: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> GatewayOrder:
        """Construct a ``GatewayOrder`` from a raw Razorpay order dict.

        Razorpay returns ``notes`` as an empty list rather than an empty
        object when no notes were attached.

        Args:
            data: A single order object from the Razorpay orders endpoint.

        Returns:
            A populated ``GatewayOrder`` instance.

        Raises:
            UpstreamError: If the payload has no order id or amount.
        """
        order_id = data.get("id")
        amount = data.get("amount")
        if not order_id or amount is None:
            msg = "Payment gateway returned an order without an id or amount"
            raise UpstreamError(msg)
        notes = data.get("notes") or {}
        return cls(
            id=str(order_id),
            amount=int(amount),
            currency=str(data.get("currency") or ""),
            receipt=str(data.get("receipt") or ""),
            status=str(data.get("status") or ""),
            notes={str(k): str(v) for k, v in notes.items()} if isinstance(notes, dict) else {},
        )


def _error_description(response: httpx.Response, default: str) -> str:
    """Pull ``error.description`` out of a gateway error payload, if any."""
    try:
        payload = response.json()
    except ValueError:
        return default
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("description"):
            return str(error["description"])
    return default


class RazorpayClient:
    """HTTP client for the Razorpay Orders API.

    Every request authenticates with HTTP basic auth built from the key pair
    and is bounded by *timeout*; a timeout surfaces as
    :class:`~django_eventpass.registration.errors.UpstreamError` like any other
    transport failure.

    Args:
        key_id: The Razorpay key id.
        key_secret: The Razorpay key secret.
        api_base: Root URL of the Razorpay API.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport, used to stub the network in tests.

    Example::

        client = RazorpayClient("rzp_test_abc", "secret")
        order = client.create_order(50000, "INR", "reg_1a2b3c4d_1718000000000")
    """

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        *,
        api_base: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not key_id or not key_secret:
            msg = "Razorpay key id and key secret are both required"
            raise ConfigurationError(msg)
        self.key_id = key_id
        self._auth = httpx.BasicAuth(key_id, key_secret)
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls) -> RazorpayClient:
        """Build a client from ``DJANGO_EVENTPASS['gateway']``.

        Raises:
            ConfigurationError: If the key id or key secret is not configured.
        """
        gateway = get_config().gateway
        if not gateway.key_id or not gateway.key_secret:
            logger.error("Missing Razorpay credentials")
            raise ConfigurationError("Payment service not configured")
        client = cls(
            gateway.key_id,
            gateway.key_secret,
            api_base=gateway.api_base,
            timeout=gateway.timeout,
        )
        logger.debug("Initialized RazorpayClient with key %s", obfuscate_key(gateway.key_id))
        return client

    def _request(self, method: str, path: str, *, default_error: str, **kwargs: Any) -> dict[str, Any]:
        """Issue one request and return the decoded JSON body.

        Raises:
            UpstreamError: On transport failure, a non-success status, or an
                ``error`` object in the response body.
        """
        url = f"{self.api_base}{path}"
        logger.debug("%s %s", method, url)
        try:
            with httpx.Client(timeout=self.timeout, auth=self._auth, transport=self._transport) as client:
                response = client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            msg = f"Payment gateway timed out: {exc}"
            raise UpstreamError(msg) from exc
        except httpx.RequestError as exc:
            msg = f"Payment gateway connection error: {exc}"
            raise UpstreamError(msg) from exc

        if response.is_error:
            description = _error_description(response, default_error)
            logger.warning("Razorpay %s %s returned %s: %s", method, path, response.status_code, description)
            raise UpstreamError(description)

        try:
            data = response.json()
        except ValueError as exc:
            msg = f"{default_error}: gateway returned a non-JSON response"
            raise UpstreamError(msg) from exc
        if not isinstance(data, dict):
            msg = f"{default_error}: unexpected gateway response"
            raise UpstreamError(msg)
        error = data.get("error")
        if error:
            description = error.get("description") if isinstance(error, dict) else None
            raise UpstreamError(str(description or default_error))
        return data

    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict[str, str] | None = None,
    ) -> GatewayOrder:
        """Create a gateway order for *amount* minor units.

        Args:
            amount: Amount in minor currency units.
            currency: ISO 4217 currency code.
            receipt: Receipt identifier for gateway-side bookkeeping.
            notes: Optional metadata stored on the order.

        Returns:
            The created :class:`GatewayOrder`.
        """
        payload: dict[str, object] = {"amount": amount, "currency": currency, "receipt": receipt}
        if notes is not None:
            payload["notes"] = notes
        data = self._request("POST", "/orders", json=payload, default_error="Failed to create order")
        return GatewayOrder.from_api(data)

    def fetch_order(self, order_id: str) -> GatewayOrder:
        """Fetch an existing gateway order by id.

        Args:
            order_id: The gateway order id.

        Returns:
            The :class:`GatewayOrder` as currently known to the gateway.
        """
        data = self._request("GET", f"/orders/{order_id}", default_error="Failed to fetch order")
        return GatewayOrder.from_api(data)
