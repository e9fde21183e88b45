from django.urls import include, path

from . import views, webhooks

app_name = "payments"

urlpatterns = [
    path("payments/return/", views.payment_return, name="payment_return"),
    path("payments/webhooks/", include(webhooks.urlpatterns)),
    path("dashboard/payments/", views.payment_settings, name="payment_settings"),
]
