"""Tests for payment signature checks in django_eventpass.registration.signature."""

import hashlib
import hmac
from unittest.mock import patch

import pytest

from django_eventpass.registration.signature import compute_signature, verify_payment_signature

SECRET = "test_key_secret"


def _reference_signature(order_id: str, payment_id: str, secret: str) -> str:
    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


@pytest.mark.unit
class TestComputeSignature:
    def test_matches_hmac_sha256_of_order_and_payment(self):
        expected = _reference_signature("order_abc", "pay_xyz", SECRET)

        assert compute_signature("order_abc", "pay_xyz", SECRET) == expected

    def test_is_lowercase_hex_of_sha256_length(self):
        signature = compute_signature("order_abc", "pay_xyz", SECRET)

        assert len(signature) == 64
        assert signature == signature.lower()
        int(signature, 16)

    def test_depends_on_secret(self):
        assert compute_signature("order_abc", "pay_xyz", "one") != compute_signature("order_abc", "pay_xyz", "two")

    def test_separator_is_part_of_message(self):
        # "ab|c" and "a|bc" must not collide.
        assert compute_signature("ab", "c", SECRET) != compute_signature("a", "bc", SECRET)

    def test_handles_non_ascii_input(self):
        expected = _reference_signature("order_ü", "pay_✓", "sécret")

        assert compute_signature("order_ü", "pay_✓", "sécret") == expected


@pytest.mark.unit
class TestVerifyPaymentSignature:
    @pytest.mark.parametrize(
        ("order_id", "payment_id"),
        [
            ("order_abc", "pay_xyz"),
            ("order_N9mJ2kQ1", "pay_N9mK3lR2"),
            ("o", "p"),
        ],
    )
    def test_accepts_genuine_signature(self, order_id, payment_id):
        signature = _reference_signature(order_id, payment_id, SECRET)

        assert verify_payment_signature(order_id, payment_id, signature, SECRET) is True

    def test_rejects_every_single_bit_flip(self):
        signature = compute_signature("order_abc", "pay_xyz", SECRET)
        raw = bytes.fromhex(signature)

        for byte_index in range(len(raw)):
            for bit in range(8):
                mutated = bytearray(raw)
                mutated[byte_index] ^= 1 << bit
                assert verify_payment_signature("order_abc", "pay_xyz", mutated.hex(), SECRET) is False

    def test_rejects_signature_for_other_payment(self):
        signature = compute_signature("order_abc", "pay_other", SECRET)

        assert verify_payment_signature("order_abc", "pay_xyz", signature, SECRET) is False

    def test_rejects_signature_made_with_other_secret(self):
        signature = compute_signature("order_abc", "pay_xyz", "attacker_guess")

        assert verify_payment_signature("order_abc", "pay_xyz", signature, SECRET) is False

    def test_comparison_is_exact_not_case_insensitive(self):
        signature = compute_signature("order_abc", "pay_xyz", SECRET)

        assert verify_payment_signature("order_abc", "pay_xyz", signature.upper(), SECRET) is False

    def test_rejects_truncated_signature(self):
        signature = compute_signature("order_abc", "pay_xyz", SECRET)

        assert verify_payment_signature("order_abc", "pay_xyz", signature[:-1], SECRET) is False

    @pytest.mark.parametrize("signature", ["", None, 12345])
    def test_rejects_empty_or_non_string_signature(self, signature):
        assert verify_payment_signature("order_abc", "pay_xyz", signature, SECRET) is False

    def test_uses_constant_time_comparison(self):
        signature = compute_signature("order_abc", "pay_xyz", SECRET)

        with patch(
            "django_eventpass.registration.signature.hmac.compare_digest",
            wraps=hmac.compare_digest,
        ) as mock_compare:
            assert verify_payment_signature("order_abc", "pay_xyz", signature, SECRET) is True

        mock_compare.assert_called_once()
