from django.conf import settings
from django.urls import reverse


def order_page_url(customer_token: str) -> str:
    """Return an absolute URL for the customer's order page."""
    base = (getattr(settings, "SITE_BASE_URL", "") or "").rstrip("/")
    path = reverse("ordering:order_status", args=[customer_token])
    return f"{base}{path}" if base else path


def dashboard_url(name: str, *args) -> str:
    base = (getattr(settings, "DASHBOARD_BASE_URL", "") or "").rstrip("/")
    path = reverse(name, args=list(args))
    return f"{base}{path}" if base else path
