from decimal import Decimal, InvalidOperation

from django import template
from django.conf import settings

register = template.Library()


@register.filter
def money(value, currency=None):
    """Format a decimal amount as shillings (e.g., 1234.5 -> KES 1,234.50)."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return value
    code = currency or getattr(settings, "DEFAULT_CURRENCY", "KES")
    return f"{code} {amount:,.2f}"
