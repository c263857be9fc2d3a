"""Registration creation: form checks, referral lookup, and code assignment.

Free tickets produce a CONFIRMED registration immediately. Priced tickets
produce a PENDING one that only the verification service can confirm.
"""

from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.db import IntegrityError, transaction

from django_eventpass.registration.errors import PersistenceError, ValidationError
from django_eventpass.registration.models import Profile, Registration, Ticket
from django_eventpass.settings import get_config

if TYPE_CHECKING:
    from django.contrib.auth.models import AbstractBaseUser

logger = logging.getLogger(__name__)

REGISTRATION_CODE_ALPHABET = string.ascii_uppercase + string.digits


@dataclass(frozen=True, slots=True)
class FormField:
    """A single question on a ticket's registration form."""

    id: str
    label: str
    type: str = "text"
    required: bool = False
    options: tuple[str, ...] = ()
    placeholder: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FormField:
        """Build a field from one entry of ``Ticket.form_fields``."""
        field_id = str(data.get("id", ""))
        return cls(
            id=field_id,
            label=str(data.get("label") or field_id),
            type=str(data.get("type") or "text"),
            required=bool(data.get("required", False)),
            options=tuple(str(o) for o in data.get("options") or ()),
            placeholder=str(data.get("placeholder") or ""),
        )


def ticket_form_fields(ticket: Ticket) -> list[FormField]:
    """Return the parsed form definition for *ticket*, skipping malformed entries."""
    raw = ticket.form_fields or []
    return [FormField.from_dict(item) for item in raw if isinstance(item, dict) and item.get("id")]


def initial_form_data(ticket: Ticket) -> dict[str, object]:
    """Return empty answers for every field: ``False`` for checkboxes, ``""`` otherwise."""
    return {f.id: False if f.type == "checkbox" else "" for f in ticket_form_fields(ticket)}


def missing_required_fields(ticket: Ticket, form_data: dict[str, object]) -> list[FormField]:
    """Return the required fields whose answer in *form_data* is empty or unchecked."""
    missing = []
    for form_field in ticket_form_fields(ticket):
        if not form_field.required:
            continue
        value = form_data.get(form_field.id)
        if isinstance(value, str):
            value = value.strip()
        if not value:
            missing.append(form_field)
    return missing


def resolve_referral_code(referral_code: str) -> str | None:
    """Return the trimmed referral code if it belongs to a profile.

    Args:
        referral_code: The code entered by the registrant; may be blank.

    Returns:
        The trimmed code, or ``None`` if none was entered.

    Raises:
        ValidationError: If a code was entered but no profile owns it.
    """
    code = (referral_code or "").strip()
    if not code:
        return None
    if not Profile.objects.filter(referral_code=code).exists():
        raise ValidationError("The referral code you entered does not exist.")
    return code


def generate_registration_code(length: int | None = None) -> str:
    """Generate a random registration code like ``7QK2M9XA1B``."""
    if length is None:
        length = get_config().registration_code_length
    return "".join(secrets.choice(REGISTRATION_CODE_ALPHABET) for _ in range(length))


def _check_capacity(ticket: Ticket) -> None:
    """Raise ``ValidationError`` if *ticket* has no seats left.

    Locks the ticket row via ``select_for_update()`` so concurrent submits for
    the last seat are serialized. The caller **must** already be inside a
    ``transaction.atomic`` block and must create the registration in that
    same block.
    """
    locked = Ticket.objects.select_for_update().get(pk=ticket.pk)
    if locked.max_registrations is None:
        return
    taken = locked.registrations.exclude(status=Registration.Status.CANCELLED).count()
    if taken >= locked.max_registrations:
        raise ValidationError("This ticket is sold out.")


def create_registration(
    *,
    user: AbstractBaseUser,
    ticket: Ticket,
    form_data: dict[str, object],
    referral_code: str = "",
) -> Registration:
    """Validate the answers and create the registration row.

    The capacity check and the insert run in one transaction holding a lock
    on the ticket row. The registration code carries a unique constraint; on
    the rare collision a fresh code is drawn, up to
    ``registration_code_attempts`` times. Any other integrity failure is not
    retried.

    Args:
        user: The registering user.
        ticket: The ticket being registered for.
        form_data: Answers keyed by form field id.
        referral_code: Optional referral code entered by the user.

    Returns:
        The created registration, CONFIRMED for free tickets and PENDING
        otherwise.

    Raises:
        ValidationError: If the ticket is inactive or sold out, a required
            answer is missing, or the referral code is unknown.
        PersistenceError: If no unique registration code could be assigned
            or the row could not be written.
    """
    if not ticket.is_active:
        raise ValidationError("Ticket not found or unavailable")

    missing = missing_required_fields(ticket, form_data)
    if missing:
        msg = f"Please fill in: {', '.join(f.label for f in missing)}"
        raise ValidationError(msg)

    referred_by = resolve_referral_code(referral_code)

    status = Registration.Status.CONFIRMED if ticket.is_free else Registration.Status.PENDING
    attempts = get_config().registration_code_attempts
    for attempt in range(1, attempts + 1):
        code = generate_registration_code()
        try:
            with transaction.atomic():
                _check_capacity(ticket)
                registration = Registration.objects.create(
                    user=user,
                    ticket=ticket,
                    registration_code=code,
                    form_data=dict(form_data),
                    status=status,
                    referred_by=referred_by,
                )
        except Ticket.DoesNotExist:
            raise ValidationError("Ticket not found or unavailable") from None
        except IntegrityError as exc:
            if not Registration.objects.filter(registration_code=code).exists():
                logger.exception("Failed to create registration for ticket %s", ticket.pk)
                raise PersistenceError("Failed to create registration") from exc
            logger.warning("Registration code collision on attempt %d/%d", attempt, attempts)
            continue
        logger.info(
            "Created %s registration %s (%s) for ticket %s",
            status,
            registration.pk,
            code,
            ticket.pk,
        )
        return registration

    logger.error("Could not assign a unique registration code after %d attempts", attempts)
    raise PersistenceError("Failed to create registration")
