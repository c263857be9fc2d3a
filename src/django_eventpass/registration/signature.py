"""Payment confirmation signature checks.

The gateway signs every completed checkout with HMAC-SHA256 over
``"{order_id}|{payment_id}"`` keyed by the account's key secret, and hands the
hex digest to the browser. Recomputing it server-side is the only thing that
stops a client from posting a made-up payment id, so the comparison must not
leak how many leading characters matched.
"""

import hashlib
import hmac


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    """Return the hex HMAC-SHA256 the gateway issues for a payment.

    Args:
        order_id: The gateway order id.
        payment_id: The gateway payment id.
        secret: The gateway key secret.

    Returns:
        The lowercase hex digest.
    """
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_payment_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """Check a claimed payment signature in constant time.

    Args:
        order_id: The gateway order id.
        payment_id: The gateway payment id.
        signature: The hex signature claimed by the client.
        secret: The gateway key secret.

    Returns:
        ``True`` only when *signature* exactly equals the expected digest.
    """
    if not isinstance(signature, str) or not signature:
        return False
    expected = compute_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected.encode(), signature.encode())
