"""Management command to reconcile pending registrations with the gateway.

Looks up the gateway order of every PENDING registration that has one and
reports orders the gateway already considers paid. Such registrations lost
their verification call (the payer closed the tab, the network dropped) and
need follow-up: without the payment id and signature they cannot be
confirmed automatically. The command never modifies registrations.

Usage::

    manage.py reconcile_orders
    manage.py reconcile_orders --older-than 60
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from django_eventpass.registration.currency import from_minor_units
from django_eventpass.registration.errors import ConfigurationError, UpstreamError
from django_eventpass.registration.gateway import RazorpayClient
from django_eventpass.registration.models import Registration

if TYPE_CHECKING:
    import argparse


class Command(BaseCommand):
    """Report pending registrations whose gateway order is already paid."""

    help = "Report pending registrations whose gateway order is already paid"

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        """Register command-line arguments.

        Args:
            parser: The argument parser to add arguments to.
        """
        parser.add_argument(
            "--older-than",
            type=int,
            default=15,
            dest="older_than",
            help="Only check registrations created at least this many minutes ago.",
        )

    def handle(self, **options: object) -> None:
        """Execute the reconciliation."""
        older_than = int(options["older_than"])  # type: ignore[arg-type]
        if older_than < 0:
            msg = "--older-than must not be negative"
            raise CommandError(msg)

        try:
            client = RazorpayClient.from_config()
        except ConfigurationError as exc:
            raise CommandError(exc.message) from exc

        cutoff = timezone.now() - timedelta(minutes=older_than)
        pending = (
            Registration.objects.filter(
                status=Registration.Status.PENDING,
                created_at__lte=cutoff,
            )
            .exclude(razorpay_order_id="")
            .order_by("created_at")
        )

        checked = 0
        paid = 0
        failed = 0
        for registration in pending.iterator():
            checked += 1
            try:
                order = client.fetch_order(registration.razorpay_order_id)
            except UpstreamError as exc:
                failed += 1
                self.stderr.write(
                    f"Could not fetch order {registration.razorpay_order_id} "
                    f"for {registration.registration_code}: {exc.message}"
                )
                continue
            if order.status == "paid":
                paid += 1
                self.stdout.write(
                    self.style.WARNING(
                        f"{registration.registration_code} ({registration.pk}) is pending but order "
                        f"{order.id} is paid ({from_minor_units(order.amount)} {order.currency})"
                    )
                )

        self.stdout.write(
            self.style.SUCCESS(
                f"Checked {checked} pending registrations: {paid} paid at gateway, {failed} lookups failed"
            )
        )
