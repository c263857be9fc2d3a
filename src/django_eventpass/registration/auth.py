"""Access checks for the settlement JSON endpoints.

Both endpoints require a service API key in the ``apikey`` header and an
``Authorization: Bearer <token>`` header identifying the caller. The token is
resolved to a user by the callable named in
``DJANGO_EVENTPASS['identity_resolver']``. The default resolver accepts tokens
signed with Django's :class:`~django.core.signing.TimestampSigner`, as issued
by :func:`issue_access_token`.
"""

from __future__ import annotations

import hmac
import logging
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.core import signing
from django.utils.module_loading import import_string

from django_eventpass.registration.errors import AuthenticationError, ConfigurationError
from django_eventpass.settings import get_config

if TYPE_CHECKING:
    from collections.abc import Callable

    from django.contrib.auth.models import AbstractBaseUser
    from django.http import HttpRequest

logger = logging.getLogger(__name__)

_TOKEN_SALT = "django_eventpass.access_token"
_BEARER_PREFIX = "bearer "


def issue_access_token(user: AbstractBaseUser) -> str:
    """Return a signed, timestamped access token for *user*."""
    return signing.TimestampSigner(salt=_TOKEN_SALT).sign(str(user.pk))


def resolve_signed_token(token: str) -> AbstractBaseUser | None:
    """Resolve a token from :func:`issue_access_token` to an active user.

    Args:
        token: The bearer token.

    Returns:
        The user, or ``None`` if the token is invalid, expired, or names an
        inactive or unknown user.
    """
    max_age = get_config().access_token_max_age
    try:
        user_pk = signing.TimestampSigner(salt=_TOKEN_SALT).unsign(token, max_age=max_age)
    except signing.SignatureExpired:
        logger.info("Rejected expired access token")
        return None
    except signing.BadSignature:
        return None

    user_model = get_user_model()
    try:
        user = user_model._default_manager.get(pk=user_pk)
    except (user_model.DoesNotExist, ValueError):  # fmt: skip
        return None
    if not getattr(user, "is_active", True):
        return None
    return user


def _bearer_token(request: HttpRequest) -> str:
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith(_BEARER_PREFIX):
        return ""
    return header[len(_BEARER_PREFIX) :].strip()


def authenticate_request(request: HttpRequest) -> AbstractBaseUser:
    """Check the service API key and bearer token on *request*.

    Requests are refused when no ``api_key`` is configured.

    Returns:
        The user the bearer token identifies.

    Raises:
        ConfigurationError: If no service API key is configured.
        AuthenticationError: If either credential is missing or invalid.
    """
    config = get_config()
    if not config.api_key:
        logger.error("Missing service API key; refusing settlement request")
        raise ConfigurationError("Payment service not configured")
    supplied = request.headers.get("apikey", "")
    if not hmac.compare_digest(supplied.encode(), config.api_key.encode()):
        raise AuthenticationError("Invalid API key")

    token = _bearer_token(request)
    if not token:
        raise AuthenticationError("Missing bearer token")

    resolver: Callable[[str], AbstractBaseUser | None] = import_string(config.identity_resolver)
    user = resolver(token)
    if user is None:
        raise AuthenticationError("Invalid or expired access token")
    return user
