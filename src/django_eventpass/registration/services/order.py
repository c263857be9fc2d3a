"""Order service for starting a gateway payment.

Creates a Razorpay order for a pending registration and records the order
id on the registration row. The order id write is best-effort: once the
gateway has created the order the caller needs it to proceed with payment,
so a failed write is logged rather than surfaced.
"""

import logging
import time
from dataclasses import dataclass
from decimal import Decimal

from django.db import DatabaseError

from django_eventpass.registration.currency import parse_amount, to_minor_units
from django_eventpass.registration.errors import ValidationError
from django_eventpass.registration.gateway import RazorpayClient
from django_eventpass.registration.models import Registration
from django_eventpass.registration.services.common import (
    parse_registration_id,
    require_database,
    require_fields,
)
from django_eventpass.settings import get_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CreatedOrder:
    """The result handed back to the checkout page.

    Attributes:
        order_id: Gateway order id to open the payment widget with.
        amount: Order amount in minor currency units.
        currency: ISO 4217 currency code.
    """

    order_id: str
    amount: int
    currency: str


def _build_receipt(registration_id: str) -> str:
    """Return a receipt id like ``reg_1a2b3c4d_1718000000000``.

    Receipts only help match orders in the gateway dashboard; they are not
    used for idempotency.
    """
    return f"reg_{registration_id[:8]}_{int(time.time() * 1000)}"


def _record_order_id(registration_id: str, order_id: str) -> None:
    """Store *order_id* on the registration, logging instead of raising."""
    try:
        updated = Registration.objects.filter(pk=registration_id).update(razorpay_order_id=order_id)
    except DatabaseError:
        logger.exception(
            "Failed to update registration %s with order ID %s",
            registration_id,
            order_id,
        )
        return
    if updated == 0:
        logger.error(
            "Failed to update registration with order ID: registration %s not found (order %s)",
            registration_id,
            order_id,
        )


class OrderService:
    """Stateless service creating gateway orders for registrations."""

    @staticmethod
    def create_order(
        *,
        amount: object,
        user_id: object,
        registration_id: object,
        client: RazorpayClient | None = None,
    ) -> CreatedOrder:
        """Create a gateway order for a pending registration.

        Args:
            amount: Ticket price in major units (e.g. ``Decimal("500.00")``).
            user_id: Id of the user paying.
            registration_id: UUID of the pending registration.
            client: Optional gateway client; built from settings when omitted.

        Returns:
            The created order's id, amount in minor units, and currency.

        Raises:
            ValidationError: If an input is missing, the amount is not a
                positive number or is too large, or the registration id is malformed.
            ConfigurationError: If gateway credentials or the database are
                not configured.
            UpstreamError: If the gateway rejects the order or cannot be
                reached. Nothing is written in that case.
        """
        require_fields(amount=amount, user_id=user_id, registration_id=registration_id)
        try:
            decimal_amount = parse_amount(amount)
        except ValueError as exc:
            raise ValidationError("Amount must be a number") from exc
        if decimal_amount <= Decimal("0"):
            raise ValidationError("Amount must be greater than zero")
        try:
            minor_units = to_minor_units(decimal_amount)
        except ValueError as exc:
            raise ValidationError("Amount is too large") from exc
        registration_key = str(parse_registration_id(registration_id))

        if client is None:
            client = RazorpayClient.from_config()
        require_database()

        config = get_config()
        order = client.create_order(
            minor_units,
            config.currency,
            _build_receipt(registration_key),
            {"registration_id": registration_key, "user_id": str(user_id)},
        )
        logger.info("Order created: %s for registration: %s", order.id, registration_key)

        _record_order_id(registration_key, order.id)

        return CreatedOrder(
            order_id=order.id,
            amount=order.amount,
            currency=order.currency or config.currency,
        )
