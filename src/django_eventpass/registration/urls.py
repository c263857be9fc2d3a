"""URL configuration for the registration app.

Exposes the two settlement endpoints. Mount them under any prefix in the
host project::

    urlpatterns = [
        path("payments/", include("django_eventpass.registration.urls")),
    ]
"""

from django.urls import path

from django_eventpass.registration.views import create_order_view, verify_payment_view

app_name = "eventpass"

urlpatterns = [
    path("create-order/", create_order_view, name="create-order"),
    path("verify-payment/", verify_payment_view, name="verify-payment"),
]
