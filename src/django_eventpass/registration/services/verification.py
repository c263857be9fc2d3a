"""Verification service for completed gateway payments.

Checks the signature the payment widget returned and moves the registration
from PENDING to CONFIRMED exactly once. The confirming write is a
compare-and-set on the stored payment id, so duplicate callbacks and client
retries bearing the same payment id converge on one confirmation, while a
different payment id for an already-paid registration is rejected instead of
overwriting the first.
"""

import logging
from dataclasses import dataclass

from django.db import DatabaseError, transaction
from django.utils import timezone

from django_eventpass.registration.errors import (
    ConfigurationError,
    NotFoundError,
    PaymentConflictError,
    PersistenceError,
    SignatureError,
)
from django_eventpass.registration.models import Registration
from django_eventpass.registration.services.common import (
    parse_registration_id,
    require_database,
    require_fields,
)
from django_eventpass.registration.signals import registration_confirmed
from django_eventpass.registration.signature import verify_payment_signature
from django_eventpass.settings import get_config

logger = logging.getLogger(__name__)

CONFIRMED_MESSAGE = "Payment verified and registration confirmed"
REPLAYED_MESSAGE = "Payment already processed"


@dataclass(frozen=True, slots=True)
class VerificationResult:
    """Outcome of a successful verification call.

    Attributes:
        registration_id: The confirmed registration's primary key.
        payment_id: The gateway payment id now stored on it.
        replayed: ``True`` when the payment had already been recorded and
            nothing was written.
    """

    registration_id: str
    payment_id: str
    replayed: bool = False

    @property
    def message(self) -> str:
        """Return the caller-facing success message."""
        return REPLAYED_MESSAGE if self.replayed else CONFIRMED_MESSAGE


def _send_confirmed_signal(registration_id: str, payment_id: str) -> None:
    registration = Registration.objects.get(pk=registration_id)
    registration_confirmed.send(sender=Registration, registration=registration, payment_id=payment_id)


def _apply_confirmation(registration_id: str, payment_id: str) -> VerificationResult:
    """Confirm the registration unless a payment id is already recorded.

    The update only matches a row whose payment id is still empty. When it
    matches nothing, the row is re-read to tell a concurrent identical
    confirmation (a replay) apart from a conflicting payment or a deleted row.

    Raises:
        PaymentConflictError: If a different payment id is already stored.
        PersistenceError: If the row vanished or the database write failed.
    """
    try:
        with transaction.atomic():
            updated = Registration.objects.filter(pk=registration_id, razorpay_payment_id="").update(
                status=Registration.Status.CONFIRMED,
                razorpay_payment_id=payment_id,
                updated_at=timezone.now(),
            )
            if updated == 1:
                transaction.on_commit(lambda: _send_confirmed_signal(registration_id, payment_id))
                return VerificationResult(registration_id=registration_id, payment_id=payment_id)

            stored = Registration.objects.filter(pk=registration_id).values_list("razorpay_payment_id", flat=True).first()
    except DatabaseError as exc:
        logger.exception("Failed to update registration %s", registration_id)
        raise PersistenceError from exc

    if stored is None:
        logger.error("Registration %s disappeared before it could be confirmed", registration_id)
        raise PersistenceError
    if stored == payment_id:
        logger.info(
            "Payment %s already processed for registration %s",
            payment_id,
            registration_id,
        )
        return VerificationResult(registration_id=registration_id, payment_id=payment_id, replayed=True)

    logger.warning(
        "Rejected payment %s for registration %s: already confirmed with payment %s",
        payment_id,
        registration_id,
        stored,
    )
    raise PaymentConflictError


class VerificationService:
    """Stateless service confirming registrations after payment."""

    @staticmethod
    def verify_payment(
        *,
        order_id: object,
        payment_id: object,
        signature: object,
        registration_id: object,
    ) -> VerificationResult:
        """Validate a payment confirmation and confirm its registration.

        Safe to call any number of times with the same arguments: after the
        first success, repeats return a replayed result without writing.

        Args:
            order_id: Gateway order id from the payment widget.
            payment_id: Gateway payment id from the payment widget.
            signature: Hex HMAC signature from the payment widget.
            registration_id: UUID of the registration being paid for.

        Returns:
            A :class:`VerificationResult`.

        Raises:
            ValidationError: If an input is missing or the registration id is
                malformed. Raised before any signature or database work.
            ConfigurationError: If the key secret or database is not
                configured.
            SignatureError: If the signature does not verify. Nothing is
                written.
            NotFoundError: If the registration does not exist.
            PaymentConflictError: If the registration already holds a
                different payment id.
            PersistenceError: If the confirming write did not apply.
        """
        require_fields(
            razorpay_order_id=order_id,
            razorpay_payment_id=payment_id,
            razorpay_signature=signature,
            registration_id=registration_id,
        )
        registration_key = str(parse_registration_id(registration_id))
        order_key = str(order_id)
        payment_key = str(payment_id)

        key_secret = get_config().gateway.key_secret
        if not key_secret:
            logger.error("Missing Razorpay key secret")
            raise ConfigurationError("Payment service not configured")
        require_database()

        if not verify_payment_signature(order_key, payment_key, str(signature), key_secret):
            logger.warning(
                "Invalid signature for payment %s (order %s, registration %s): possible forgery attempt",
                payment_key,
                order_key,
                registration_key,
            )
            raise SignatureError

        logger.info("Payment signature verified: %s", payment_key)

        try:
            registration = Registration.objects.only("pk", "status", "razorpay_payment_id").get(pk=registration_key)
        except Registration.DoesNotExist:
            logger.error("Registration not found: %s", registration_key)
            raise NotFoundError from None
        except DatabaseError as exc:
            logger.exception("Failed to load registration %s", registration_key)
            raise PersistenceError("Payment verification failed") from exc

        if registration.razorpay_payment_id == payment_key:
            logger.info(
                "Payment %s already processed for registration %s",
                payment_key,
                registration_key,
            )
            return VerificationResult(registration_id=registration_key, payment_id=payment_key, replayed=True)

        result = _apply_confirmation(registration_key, payment_key)
        if not result.replayed:
            logger.info("Registration %s confirmed with payment %s", registration_key, payment_key)
        return result
