"""Input and configuration guards shared by the settlement services."""

import logging
import uuid

from django_eventpass.registration.errors import ConfigurationError, ValidationError
from django_eventpass.settings import database_configured

logger = logging.getLogger(__name__)


def require_fields(**values: object) -> None:
    """Raise ``ValidationError`` if any keyword value is missing.

    ``None``, empty or whitespace-only strings, and numeric zero all count as
    missing.

    Raises:
        ValidationError: Listing the missing field names.
    """
    missing = [name for name, value in values.items() if _is_missing(value)]
    if missing:
        msg = f"Missing required fields: {', '.join(missing)}"
        raise ValidationError(msg)


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == 0
    return False


def parse_registration_id(value: object) -> uuid.UUID:
    """Parse a registration primary key, rejecting malformed values.

    Raises:
        ValidationError: If *value* is not a UUID.
    """
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError("Invalid registration_id") from None


def require_database() -> None:
    """Raise ``ConfigurationError`` when the configured database is unavailable."""
    if not database_configured():
        logger.error("Missing database configuration for registration storage")
        raise ConfigurationError("Database service not configured")
