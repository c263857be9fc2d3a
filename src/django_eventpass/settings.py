"""Typed configuration for django-eventpass.

Reads a single ``DJANGO_EVENTPASS`` dict from Django settings and exposes it as
composed, frozen dataclasses with sensible defaults.

Usage::

    from django_eventpass.settings import get_config

    config = get_config()
    config.gateway.key_id
    config.currency

Missing gateway credentials are deliberately not a startup error. The
payment services check for them per request and raise
:class:`~django_eventpass.registration.errors.ConfigurationError`.
"""

import functools
from collections.abc import Mapping
from dataclasses import dataclass, field

from django.conf import settings
from django.test.signals import setting_changed


@dataclass(frozen=True, slots=True)
class GatewayConfig:
    """Razorpay payment gateway configuration."""

    key_id: str | None = None
    key_secret: str | None = None
    api_base: str = "https://api.razorpay.com/v1"
    timeout: float = 10.0
    checkout_name: str = "TESSERACT"


@dataclass(frozen=True, slots=True)
class EventpassConfig:
    """Top-level django-eventpass configuration."""

    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    currency: str = "INR"
    api_key: str | None = None
    cors_allow_origin: str = "*"
    identity_resolver: str = "django_eventpass.registration.auth.resolve_signed_token"
    access_token_max_age: int = 3600
    database_alias: str = "default"
    registration_code_length: int = 10
    registration_code_attempts: int = 5


@functools.lru_cache(maxsize=1)
def get_config() -> EventpassConfig:
    """Build and return the eventpass configuration.

    Reads ``settings.DJANGO_EVENTPASS`` (a plain dict) and returns a frozen
    :class:`EventpassConfig`.  The result is cached; the cache is cleared
    automatically when Django's ``setting_changed`` signal fires (e.g. inside
    ``override_settings``).
    """
    raw = getattr(settings, "DJANGO_EVENTPASS", {})
    if not isinstance(raw, Mapping):
        msg = "DJANGO_EVENTPASS must be a mapping (dict-like object)"
        raise TypeError(msg)
    raw_data = dict(raw)

    gateway_data = raw_data.pop("gateway", {})
    if not isinstance(gateway_data, Mapping):
        msg = "DJANGO_EVENTPASS['gateway'] must be a mapping (dict-like object)"
        raise TypeError(msg)

    config = EventpassConfig(
        gateway=GatewayConfig(**dict(gateway_data)),
        **raw_data,
    )
    _validate_eventpass_config(config)
    return config


def _validate_eventpass_config(config: EventpassConfig) -> None:
    """Validate high-impact configuration values with clear error messages."""
    if not isinstance(config.currency, str) or not config.currency.strip():
        msg = "DJANGO_EVENTPASS['currency'] must be a non-empty string"
        raise ValueError(msg)
    timeout = config.gateway.timeout
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        msg = "DJANGO_EVENTPASS['gateway']['timeout'] must be a positive number"
        raise ValueError(msg)
    if not isinstance(config.access_token_max_age, int) or config.access_token_max_age <= 0:
        msg = "DJANGO_EVENTPASS['access_token_max_age'] must be a positive integer"
        raise ValueError(msg)
    if not isinstance(config.registration_code_length, int) or config.registration_code_length <= 0:
        msg = "DJANGO_EVENTPASS['registration_code_length'] must be a positive integer"
        raise ValueError(msg)
    if not isinstance(config.registration_code_attempts, int) or config.registration_code_attempts <= 0:
        msg = "DJANGO_EVENTPASS['registration_code_attempts'] must be a positive integer"
        raise ValueError(msg)
    if not isinstance(config.identity_resolver, str) or "." not in config.identity_resolver:
        msg = "DJANGO_EVENTPASS['identity_resolver'] must be a dotted import path"
        raise ValueError(msg)


def database_configured(config: EventpassConfig | None = None) -> bool:
    """Return whether the configured database alias exists in ``DATABASES``."""
    alias = (config or get_config()).database_alias
    databases = getattr(settings, "DATABASES", {}) or {}
    return bool(databases.get(alias))


def _clear_config_cache(*, setting: str, **kwargs: object) -> None:  # noqa: ARG001
    """Clear the cached config when Django settings change during tests."""
    if setting == "DJANGO_EVENTPASS":
        get_config.cache_clear()


setting_changed.connect(_clear_config_cache, dispatch_uid="django_eventpass.settings.clear_config_cache")
