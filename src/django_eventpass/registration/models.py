"""Ticket, registration, and profile models for django-eventpass."""

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models


class Ticket(models.Model):
    """A ticket category attendees can register for.

    Each ticket defines its own registration form through ``form_fields``, a
    JSON list of field definitions::

        [{"id": "college", "label": "College", "type": "text", "required": true}]

    Supported field types are ``text``, ``email``, ``tel``, ``number``,
    ``textarea``, ``select`` (with ``options``) and ``checkbox``.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    is_active = models.BooleanField(default=True)
    form_fields = models.JSONField(default=list, blank=True)
    max_registrations = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Maximum number of non-cancelled registrations. Empty means unlimited.",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["price", "title"]

    def __str__(self) -> str:
        return self.title

    @property
    def is_free(self) -> bool:
        """Return whether registering for this ticket skips payment."""
        return self.price == Decimal("0.00")


class Registration(models.Model):
    """An attendee's registration for a ticket.

    Free registrations are created ``CONFIRMED``. Paid registrations start
    ``PENDING`` and only the verification service moves them to
    ``CONFIRMED``, recording the gateway payment id at the same time. An
    empty ``razorpay_payment_id`` means no payment has been recorded; once
    set it is never overwritten.
    """

    class Status(models.TextChoices):
        """Lifecycle states for a registration."""

        PENDING = "pending", "Pending"
        CONFIRMED = "confirmed", "Confirmed"
        CANCELLED = "cancelled", "Cancelled"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="eventpass_registrations",
    )
    ticket = models.ForeignKey(
        Ticket,
        on_delete=models.PROTECT,
        related_name="registrations",
    )
    registration_code = models.CharField(
        max_length=32,
        unique=True,
        help_text='Human-facing registration code, e.g. "7QK2M9XA1B".',
    )
    form_data = models.JSONField(default=dict, blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    referred_by = models.CharField(max_length=100, null=True, blank=True)
    razorpay_order_id = models.CharField(max_length=100, blank=True, default="")
    razorpay_payment_id = models.CharField(max_length=100, blank=True, default="")
    checked_in = models.BooleanField(default=False)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.registration_code} ({self.status})"

    @property
    def is_paid(self) -> bool:
        """Return whether a gateway payment has been recorded."""
        return bool(self.razorpay_payment_id)


class Profile(models.Model):
    """Attendee contact details and their shareable referral code."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="eventpass_profile",
    )
    full_name = models.CharField(max_length=200, blank=True, default="")
    phone = models.CharField(max_length=30, blank=True, default="")
    referral_code = models.CharField(max_length=100, unique=True, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return self.full_name or str(self.user)
