"""Minimal URL configuration for tests."""

from django.urls import include, path

urlpatterns = [
    path("payments/", include("django_eventpass.registration.urls")),
]
