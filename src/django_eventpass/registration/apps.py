"""Django app configuration for the registration app."""

from django.apps import AppConfig


class EventpassRegistrationConfig(AppConfig):
    """Configuration for the registration app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "django_eventpass.registration"
    label = "eventpass_registration"
    verbose_name = "Registration"
