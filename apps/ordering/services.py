from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from apps.cart.store import CartItem, CartStore
from apps.menu.models import MenuItem
from apps.payments.services import PaymentOutcome, begin_payment

from .models import Order, OrderItem, WaiterCall
from .notify import notify_new_order, notify_status_change, notify_waiter_call

log = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


class CheckoutError(Exception):
    message = "We could not place your order."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class EmptyCartError(CheckoutError):
    message = "Your cart is empty."


class ItemUnavailableError(CheckoutError):
    message = "Some items in your cart are no longer available."


class OrderingClosedError(CheckoutError):
    message = "This restaurant is not taking orders right now."


class OrderCreationError(CheckoutError):
    message = "We could not save your order. Nothing was charged; please try again."


class OrderTransitionError(Exception):
    pass


@dataclass
class CheckoutResult:
    order: Order
    outcome: PaymentOutcome | None
    created: bool = True


def amount_due(total: Decimal, order_type: str) -> Decimal:
    """Whole total for "now" orders, the upfront deposit for "later" ones."""
    total = Decimal(total)
    if order_type == "later":
        rate = Decimal(str(getattr(settings, "DEPOSIT_RATE", "0.40")))
        return (total * rate).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    return total.quantize(TWO_PLACES)


def create_order_with_items(restaurant, items: list[CartItem], *, menu_items: dict | None = None, **fields) -> Order:
    """Insert the order and its lines in one transaction.

    Either every row lands or none does; failures surface as
    `OrderCreationError`.
    """
    menu_items = menu_items or {}
    try:
        with transaction.atomic():
            order = Order.objects.create(restaurant=restaurant, **fields)
            OrderItem.objects.bulk_create(
                [
                    OrderItem(
                        order=order,
                        menu_item=menu_items.get(line.id),
                        name=line.name,
                        quantity=line.quantity,
                        unit_price=line.price,
                        line_total=line.line_total,
                        customizations=line.customizations or "",
                        special_instructions=line.special_instructions or "",
                    )
                    for line in items
                ]
            )
    except DatabaseError as e:
        log.error("[checkout] order insert rolled back restaurant=%s error=%s", restaurant.id, e)
        raise OrderCreationError() from e
    return order


def _available_menu_items(restaurant, items: list[CartItem]) -> dict[str, MenuItem]:
    ids = {line.id for line in items}
    try:
        found = {
            str(mi.id): mi
            for mi in MenuItem.objects.filter(restaurant=restaurant, pk__in=ids, is_available=True, category__is_active=True)
        }
    except (ValidationError, ValueError):
        found = {}
    missing = [line.name for line in items if line.id not in found]
    if missing:
        raise ItemUnavailableError(f"No longer available: {', '.join(missing)}. Please remove them from your cart.")
    return found


def place_order(
    restaurant,
    cart: CartStore,
    data: dict,
    *,
    checkout_key: str | None = None,
    build_url: Callable[[str], str] | None = None,
    lead_id: str | None = None,
) -> CheckoutResult:
    if not restaurant.is_accepting_orders:
        raise OrderingClosedError()

    if checkout_key:
        existing = Order.objects.filter(restaurant=restaurant, checkout_key=checkout_key).first()
        if existing:
            log.info("[checkout] duplicate submit order=%s", existing.code)
            return CheckoutResult(order=existing, outcome=None, created=False)

    state = cart.validate_cart_state()
    if not state.in_sync:
        log.warning("[checkout] cart diverged from storage restaurant=%s; using storage", restaurant.id)
        cart.force_refresh()
    items = state.latest
    if not items:
        raise EmptyCartError()
    menu_items = _available_menu_items(restaurant, items)

    order_type = data.get("order_type") or "now"
    total = cart.get_cart_total(items)
    fields = {
        "checkout_key": checkout_key or None,
        "order_type": order_type,
        "table_number": data.get("table_number") or "",
        "customer_name": data.get("customer_name") or "",
        "customer_phone": data.get("customer_phone") or "",
        "customer_email": data.get("customer_email") or "",
        "scheduled_time": data.get("scheduled_time") if order_type == "later" else None,
        "payment_method": data.get("payment_method") or "cash",
        "total_amount": total,
        "amount_due": amount_due(total, order_type),
        "currency": getattr(settings, "DEFAULT_CURRENCY", "KES"),
        "notes": data.get("notes") or "",
    }
    try:
        order = create_order_with_items(restaurant, items, menu_items=menu_items, **fields)
    except OrderCreationError:
        # lost a race on checkout_key with a concurrent submit
        existing = Order.objects.filter(restaurant=restaurant, checkout_key=checkout_key).first() if checkout_key else None
        if existing:
            return CheckoutResult(order=existing, outcome=None, created=False)
        raise
    log.info(
        "[checkout] order created order=%s restaurant=%s lines=%s total=%s due=%s method=%s",
        order.code,
        restaurant.id,
        len(items),
        order.total_amount,
        order.amount_due,
        order.payment_method,
    )

    cart.reset_cart()
    if lead_id:
        from apps.leads.services import link_first_order

        link_first_order(lead_id, order)
    notify_new_order(order)
    outcome = begin_payment(order, build_url=build_url)
    return CheckoutResult(order=order, outcome=outcome)


ALLOWED_TRANSITIONS = {
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("preparing", "cancelled"),
    "preparing": ("ready", "cancelled"),
    "ready": ("completed",),
}


def transition_order(order: Order, to_status: str, *, source: str = "staff", note: str = "") -> Order:
    allowed = ALLOWED_TRANSITIONS.get(order.order_status, ())
    if to_status not in allowed:
        raise OrderTransitionError(f"Cannot move order from {order.order_status} to {to_status}")
    order.set_status(to_status, source=source, note=note)
    log.info("[checkout] order=%s status=%s source=%s", order.code, to_status, source)
    notify_status_change(order)
    return order


def set_table_number(order: Order, table_number: str) -> Order:
    """Staff correction of the table an order is served to; blank clears it."""
    previous = order.table_number
    order.table_number = (table_number or "").strip()[:20]
    order.save(update_fields=["table_number", "updated_at"])
    log.info("[checkout] order=%s table %r -> %r", order.code, previous, order.table_number)
    return order


def call_waiter(restaurant, *, table_number: str, customer_name: str = "", notes: str = "") -> WaiterCall:
    call = WaiterCall.objects.create(
        restaurant=restaurant,
        table_number=table_number.strip()[:20],
        customer_name=customer_name.strip()[:160],
        notes=notes.strip()[:255],
    )
    log.info("[checkout] waiter called restaurant=%s table=%s", restaurant.id, call.table_number)
    notify_waiter_call(call)
    return call


def update_waiter_call(call: WaiterCall, status: str) -> WaiterCall:
    now = timezone.now()
    if status == "acknowledged" and call.status == "pending":
        call.status = "acknowledged"
        call.acknowledged_at = now
    elif status == "completed" and call.status != "completed":
        call.status = "completed"
        call.completed_at = now
        if not call.acknowledged_at:
            call.acknowledged_at = now
    else:
        raise OrderTransitionError(f"Cannot move waiter call from {call.status} to {status}")
    call.save(update_fields=["status", "acknowledged_at", "completed_at", "updated_at"])
    return call
