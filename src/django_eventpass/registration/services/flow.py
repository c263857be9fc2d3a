"""Registration flow controller.

Sequences the user-facing steps of registering for a ticket: validate the
form, create the registration, and for priced tickets request a gateway
order, open the payment widget, and submit the widget's confirmation for
verification. The controller makes no trust decisions of its own; the order
and verification services do.

The flow's progress is a single :class:`FlowState` value changed only through
:meth:`RegistrationFlow._transition`, which rejects moves the table below does
not allow. A submit is refused while a previous one is still in progress.

Usage::

    flow = RegistrationFlow(user, ticket, settlement=LocalSettlement(), widget=widget)
    result = flow.submit({"college": "IIT"}, referral_code="FRIEND10")
    result.state  # FlowState.DONE, FAILED or CANCELLED
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from django_eventpass.registration.errors import SettlementError, ValidationError
from django_eventpass.registration.models import Profile
from django_eventpass.registration.services.order import CreatedOrder, OrderService
from django_eventpass.registration.services.registration import create_registration
from django_eventpass.registration.services.verification import VerificationService
from django_eventpass.settings import get_config

if TYPE_CHECKING:
    from decimal import Decimal

    from django.contrib.auth.models import AbstractBaseUser

    from django_eventpass.registration.models import Registration, Ticket

logger = logging.getLogger(__name__)


class FlowState(enum.StrEnum):
    """Steps of the registration flow."""

    IDLE = "idle"
    FORM_VALIDATED = "form_validated"
    REGISTRATION_CREATED = "registration_created"
    ORDER_REQUESTED = "order_requested"
    WIDGET_OPEN = "widget_open"
    VERIFYING = "verifying"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


RESTING_STATES = frozenset({FlowState.IDLE, FlowState.DONE, FlowState.FAILED, FlowState.CANCELLED})

ALLOWED_TRANSITIONS: dict[FlowState, frozenset[FlowState]] = {
    FlowState.IDLE: frozenset({FlowState.FORM_VALIDATED, FlowState.FAILED}),
    FlowState.FORM_VALIDATED: frozenset({FlowState.REGISTRATION_CREATED, FlowState.FAILED}),
    FlowState.REGISTRATION_CREATED: frozenset({FlowState.DONE, FlowState.ORDER_REQUESTED, FlowState.FAILED}),
    FlowState.ORDER_REQUESTED: frozenset({FlowState.WIDGET_OPEN, FlowState.FAILED}),
    FlowState.WIDGET_OPEN: frozenset({FlowState.VERIFYING, FlowState.CANCELLED, FlowState.FAILED}),
    FlowState.VERIFYING: frozenset({FlowState.DONE, FlowState.FAILED}),
    FlowState.DONE: frozenset({FlowState.IDLE}),
    FlowState.FAILED: frozenset({FlowState.IDLE}),
    FlowState.CANCELLED: frozenset({FlowState.IDLE}),
}


class FlowBusyError(RuntimeError):
    """Raised when a submit arrives while another is still in progress."""


class InvalidTransitionError(RuntimeError):
    """Raised when the flow is asked to make a move it does not allow."""


@dataclass(frozen=True, slots=True)
class PaymentConfirmation:
    """The signed triple the payment widget returns after a successful payment."""

    order_id: str
    payment_id: str
    signature: str


@dataclass(frozen=True, slots=True)
class CheckoutRequest:
    """Everything the payment widget needs to collect payment for an order."""

    key_id: str
    order_id: str
    amount: int
    currency: str
    name: str
    description: str
    prefill: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class PaymentCompleted:
    """The payer finished checkout and the widget produced a confirmation."""

    confirmation: PaymentConfirmation


@dataclass(frozen=True, slots=True)
class PaymentDismissed:
    """The payer closed the widget without paying."""


@dataclass(frozen=True, slots=True)
class PaymentFailed:
    """The gateway reported the payment attempt as failed."""

    description: str = "Payment failed"


WidgetOutcome = PaymentCompleted | PaymentDismissed | PaymentFailed


class PaymentWidget(Protocol):
    """The hosted payment UI, reduced to its three possible outcomes."""

    def open(self, request: CheckoutRequest) -> WidgetOutcome:
        """Show checkout for *request* and block until the payer is done."""
        ...


class Settlement(Protocol):
    """Server-side settlement calls the flow depends on."""

    def create_order(self, *, amount: Decimal, user_id: str, registration_id: str) -> CreatedOrder:
        """Create a gateway order for a pending registration."""
        ...

    def verify_payment(self, confirmation: PaymentConfirmation, *, registration_id: str) -> str:
        """Verify *confirmation* and return the success message."""
        ...


class LocalSettlement:
    """Settlement backend calling the order and verification services in-process."""

    def create_order(self, *, amount: Decimal, user_id: str, registration_id: str) -> CreatedOrder:
        return OrderService.create_order(amount=amount, user_id=user_id, registration_id=registration_id)

    def verify_payment(self, confirmation: PaymentConfirmation, *, registration_id: str) -> str:
        result = VerificationService.verify_payment(
            order_id=confirmation.order_id,
            payment_id=confirmation.payment_id,
            signature=confirmation.signature,
            registration_id=registration_id,
        )
        return result.message


@dataclass(frozen=True, slots=True)
class FlowResult:
    """What to tell the user once a submit settles.

    Attributes:
        state: The resting state the flow ended in.
        registration: The registration created by this submit, if any.
        level: ``"success"``, ``"info"`` or ``"error"``.
        title: Short heading for the notice.
        message: Body text for the notice.
    """

    state: FlowState
    registration: Registration | None
    level: str
    title: str
    message: str

    @property
    def ok(self) -> bool:
        """Return whether the registration ended up confirmed."""
        return self.state == FlowState.DONE


_RETRY_ORDER_MESSAGE = "We could not start the payment. Please try again in a moment."
_RETRY_VERIFY_MESSAGE = "We could not confirm your payment yet. Please try again in a moment."


class RegistrationFlow:
    """Drives one user's registration for one ticket.

    Args:
        user: The registering user.
        ticket: The ticket being registered for.
        settlement: Backend used to create and verify gateway orders.
        widget: The payment UI.
    """

    def __init__(
        self,
        user: AbstractBaseUser,
        ticket: Ticket,
        *,
        settlement: Settlement,
        widget: PaymentWidget,
    ) -> None:
        self.user = user
        self.ticket = ticket
        self.settlement = settlement
        self.widget = widget
        self.state = FlowState.IDLE
        self.registration: Registration | None = None

    @property
    def busy(self) -> bool:
        """Return whether a submit is in progress."""
        return self.state not in RESTING_STATES

    def _transition(self, target: FlowState) -> None:
        if target not in ALLOWED_TRANSITIONS[self.state]:
            msg = f"Cannot move registration flow from {self.state} to {target}"
            raise InvalidTransitionError(msg)
        logger.debug("Registration flow %s -> %s", self.state, target)
        self.state = target

    def _finish(self, state: FlowState, level: str, title: str, message: str) -> FlowResult:
        self._transition(state)
        return FlowResult(state=state, registration=self.registration, level=level, title=title, message=message)

    def _fail(self, title: str, exc: SettlementError, retry_message: str) -> FlowResult:
        message = retry_message if exc.retryable else exc.public_message
        return self._finish(FlowState.FAILED, "error", title, message)

    def submit(self, form_data: dict[str, object], referral_code: str = "") -> FlowResult:
        """Register the user and, for a priced ticket, take payment.

        Args:
            form_data: Answers keyed by form field id.
            referral_code: Optional referral code.

        Returns:
            A :class:`FlowResult` in state ``DONE``, ``FAILED`` or ``CANCELLED``.

        Raises:
            FlowBusyError: If a previous submit has not settled yet.
        """
        if self.busy:
            raise FlowBusyError("A registration is already being processed")
        if self.state != FlowState.IDLE:
            self._transition(FlowState.IDLE)
        self.registration = None

        try:
            return self._run(form_data, referral_code)
        except Exception:
            if self.busy:
                self._transition(FlowState.FAILED)
            raise

    def _run(self, form_data: dict[str, object], referral_code: str) -> FlowResult:
        try:
            self._transition(FlowState.FORM_VALIDATED)
            self.registration = create_registration(
                user=self.user,
                ticket=self.ticket,
                form_data=form_data,
                referral_code=referral_code,
            )
        except ValidationError as exc:
            return self._finish(FlowState.FAILED, "error", "Validation Error", exc.public_message)
        except SettlementError as exc:
            return self._fail("Error", exc, "Failed to create registration. Please try again.")
        self._transition(FlowState.REGISTRATION_CREATED)

        code = self.registration.registration_code
        if self.ticket.is_free:
            return self._finish(
                FlowState.DONE,
                "success",
                "Registration Successful!",
                f"Your registration ID is {code}",
            )
        return self._pay(self.registration)

    def _pay(self, registration: Registration) -> FlowResult:
        registration_id = str(registration.pk)

        self._transition(FlowState.ORDER_REQUESTED)
        try:
            order = self.settlement.create_order(
                amount=self.ticket.price,
                user_id=str(self.user.pk),
                registration_id=registration_id,
            )
        except SettlementError as exc:
            logger.warning("Order creation failed for registration %s: %s", registration_id, exc.message)
            return self._fail("Payment Error", exc, _RETRY_ORDER_MESSAGE)

        self._transition(FlowState.WIDGET_OPEN)
        outcome = self.widget.open(self._checkout_request(order))

        if isinstance(outcome, PaymentDismissed):
            logger.info("Payment cancelled for registration %s", registration_id)
            return self._finish(
                FlowState.CANCELLED,
                "info",
                "Payment Cancelled",
                "You can retry payment from your dashboard.",
            )
        if isinstance(outcome, PaymentFailed):
            logger.info("Payment failed for registration %s: %s", registration_id, outcome.description)
            return self._finish(FlowState.FAILED, "error", "Payment Failed", outcome.description)

        self._transition(FlowState.VERIFYING)
        confirmation = PaymentConfirmation(
            order_id=order.order_id,
            payment_id=outcome.confirmation.payment_id,
            signature=outcome.confirmation.signature,
        )
        try:
            self.settlement.verify_payment(confirmation, registration_id=registration_id)
        except SettlementError as exc:
            logger.warning("Payment verification failed for registration %s: %s", registration_id, exc.message)
            return self._fail("Verification Error", exc, _RETRY_VERIFY_MESSAGE)

        registration.refresh_from_db()
        return self._finish(
            FlowState.DONE,
            "success",
            "Payment Successful!",
            f"Your registration ID is {registration.registration_code}",
        )

    def _checkout_request(self, order: CreatedOrder) -> CheckoutRequest:
        config = get_config()
        profile = Profile.objects.filter(user=self.user).first()
        prefill = {
            "name": profile.full_name if profile else "",
            "email": getattr(self.user, "email", "") or "",
            "contact": profile.phone if profile else "",
        }
        return CheckoutRequest(
            key_id=config.gateway.key_id or "",
            order_id=order.order_id,
            amount=order.amount,
            currency=order.currency,
            name=config.gateway.checkout_name,
            description=f"Registration for {self.ticket.title}",
            prefill=prefill,
        )
