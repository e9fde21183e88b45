import logging

from django.conf import settings
from django.core.exceptions import ValidationError

from apps.cart.store import CartStore

from .models import CustomerLead

log = logging.getLogger(__name__)


def lead_session_key(restaurant_id) -> str:
    return f"lead_{restaurant_id}"


def build_order_context(cart: CartStore) -> dict:
    """Snapshot of what the customer had in the cart when they left their details."""
    items = [
        {"id": line.id, "name": line.name or "Item", "quantity": line.quantity, "unit_price": float(line.price)}
        for line in cart.cart_items
    ]
    return {
        "items": items,
        "itemCount": cart.get_cart_count(),
        "subtotal": float(cart.get_cart_total()),
        "currency": getattr(settings, "DEFAULT_CURRENCY", "KES"),
    }


def link_first_order(lead_id, order) -> bool:
    """Attach the first order placed after capture. Later orders leave the lead alone."""
    try:
        updated = CustomerLead.objects.filter(
            pk=lead_id, restaurant_id=order.restaurant_id, first_order__isnull=True
        ).update(first_order=order, converted_to_order=True)
    except (ValidationError, ValueError, TypeError):
        updated = 0
    if updated:
        log.info("[leads] lead=%s converted order=%s", lead_id, order.code)
    return bool(updated)
