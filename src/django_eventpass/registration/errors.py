"""Error taxonomy for the payment settlement core.

Every failure the order and verification services can report is a
:class:`SettlementError` subclass. Each class carries the HTTP status the
JSON endpoints answer with and a ``public_message`` that is safe to show the
caller. Services raise these; only the view boundary and the flow controller
catch them.
"""

import http


class SettlementError(Exception):
    """Base class for payment settlement failures.

    Attributes:
        status_code: HTTP status used by the JSON endpoints.
        default_message: Message used when none is passed to the constructor.
        retryable: Whether the caller may simply try again later.
    """

    status_code: int = http.HTTPStatus.INTERNAL_SERVER_ERROR
    default_message: str = "Payment processing failed"
    retryable: bool = False

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        """Return the message that may be sent back to the caller."""
        return self.message


class ValidationError(SettlementError):
    """Bad or missing input supplied by the caller."""

    status_code = http.HTTPStatus.BAD_REQUEST
    default_message = "Missing required fields"


class ConfigurationError(SettlementError):
    """The deployment is missing gateway or database configuration."""

    default_message = "Payment service not configured"
    retryable = True


class UpstreamError(SettlementError):
    """The payment gateway rejected the request or could not be reached."""

    default_message = "Payment gateway request failed"
    retryable = True


class SignatureError(SettlementError):
    """The payment confirmation signature did not verify."""

    status_code = http.HTTPStatus.BAD_REQUEST
    default_message = "Invalid payment signature"


class NotFoundError(SettlementError):
    """The registration referenced by the request does not exist."""

    status_code = http.HTTPStatus.NOT_FOUND
    default_message = "Registration not found"


class PaymentConflictError(SettlementError):
    """The registration is already confirmed with a different payment id."""

    status_code = http.HTTPStatus.CONFLICT
    default_message = "Registration already confirmed with a different payment"


class PersistenceError(SettlementError):
    """A database write that the operation depends on did not apply."""

    default_message = "Failed to confirm registration"
    retryable = True


class AuthenticationError(SettlementError):
    """The request carried no valid access token or service API key."""

    status_code = http.HTTPStatus.UNAUTHORIZED
    default_message = "Authentication required"
