"""Tests for the reconcile_orders management command."""

from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest.mock import MagicMock, patch

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import override_settings
from django.utils import timezone

from django_eventpass.registration.errors import UpstreamError
from django_eventpass.registration.gateway import GatewayOrder, RazorpayClient
from django_eventpass.registration.models import Registration, Ticket

User = get_user_model()

FROM_CONFIG = "django_eventpass.registration.management.commands.reconcile_orders.RazorpayClient.from_config"


# -- Fixtures -----------------------------------------------------------------


@pytest.fixture
def user(db):
    return User.objects.create_user(username="reconciler", password="testpass123")


@pytest.fixture
def ticket(db):
    return Ticket.objects.create(title="Hackathon", price=Decimal("500.00"))


@pytest.fixture
def make_registration(user, ticket):
    def _make(code, *, order_id="", status=Registration.Status.PENDING, age=timedelta(hours=1)):
        registration = Registration.objects.create(
            user=user,
            ticket=ticket,
            registration_code=code,
            status=status,
            razorpay_order_id=order_id,
        )
        Registration.objects.filter(pk=registration.pk).update(created_at=timezone.now() - age)
        return registration

    return _make


@pytest.fixture
def gateway():
    return MagicMock(spec=RazorpayClient)


def _run(*args):
    stdout = StringIO()
    stderr = StringIO()
    call_command("reconcile_orders", *args, stdout=stdout, stderr=stderr)
    return stdout.getvalue(), stderr.getvalue()


def _order(order_id, status):
    return GatewayOrder(id=order_id, amount=50000, currency="INR", status=status)


# =============================================================================
# TestReconcileOrders
# =============================================================================


@pytest.mark.integration
class TestReconcileOrders:
    def test_reports_paid_orders(self, make_registration, gateway):
        paid = make_registration("PAID000001", order_id="order_paid")
        make_registration("OPEN000001", order_id="order_open")
        gateway.fetch_order.side_effect = lambda order_id: _order(
            order_id, "paid" if order_id == "order_paid" else "attempted"
        )

        with patch(FROM_CONFIG, return_value=gateway):
            out, err = _run()

        assert f"PAID000001 ({paid.pk}) is pending but order order_paid is paid (500.00 INR)" in out
        assert "OPEN000001" not in out
        assert "Checked 2 pending registrations: 1 paid at gateway, 0 lookups failed" in out
        assert err == ""

    def test_never_modifies_registrations(self, make_registration, gateway):
        registration = make_registration("PAID000001", order_id="order_paid")
        gateway.fetch_order.return_value = _order("order_paid", "paid")

        with patch(FROM_CONFIG, return_value=gateway):
            _run()

        registration.refresh_from_db()
        assert registration.status == Registration.Status.PENDING
        assert registration.razorpay_payment_id == ""

    def test_skips_registrations_without_order_or_not_pending(self, make_registration, gateway):
        make_registration("NOORDER001")
        make_registration("CONFIRMED1", order_id="order_done", status=Registration.Status.CONFIRMED)
        make_registration("CANCELLED1", order_id="order_gone", status=Registration.Status.CANCELLED)

        with patch(FROM_CONFIG, return_value=gateway):
            out, _ = _run()

        gateway.fetch_order.assert_not_called()
        assert "Checked 0 pending registrations" in out

    def test_older_than_filters_recent_registrations(self, make_registration, gateway):
        make_registration("RECENT0001", order_id="order_recent", age=timedelta(minutes=5))
        make_registration("OLDER00001", order_id="order_older", age=timedelta(minutes=90))
        gateway.fetch_order.return_value = _order("order_older", "created")

        with patch(FROM_CONFIG, return_value=gateway):
            out, _ = _run("--older-than", "60")

        gateway.fetch_order.assert_called_once_with("order_older")
        assert "Checked 1 pending registrations" in out

    def test_lookup_failure_is_reported_and_counted(self, make_registration, gateway):
        make_registration("BROKEN0001", order_id="order_broken")
        gateway.fetch_order.side_effect = UpstreamError("Payment gateway timed out: read timeout")

        with patch(FROM_CONFIG, return_value=gateway):
            out, err = _run()

        assert "Could not fetch order order_broken for BROKEN0001" in err
        assert "0 paid at gateway, 1 lookups failed" in out

    def test_negative_older_than(self, db):
        with pytest.raises(CommandError, match="must not be negative"):
            _run("--older-than", "-1")

    def test_missing_credentials(self, db):
        with override_settings(DJANGO_EVENTPASS={}):
            with pytest.raises(CommandError, match="Payment service not configured"):
                _run()
