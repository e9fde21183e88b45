"""Outbound SMS/e-mail triggered by order events (best effort)."""
import logging

from apps.common.phone import mask_phone
from apps.common.urls import dashboard_url, order_page_url
from apps.notifications.api import Enqueue, enqueue_many

log = logging.getLogger(__name__)


STATUS_MESSAGES = {
    "confirmed": "{restaurant}: your order {code} has been confirmed.",
    "preparing": "{restaurant}: your order {code} is being prepared.",
    "ready": "{restaurant}: your order {code} is ready!",
    "completed": "{restaurant}: order {code} complete. Thank you!",
    "cancelled": "{restaurant}: your order {code} has been cancelled.",
}


def _send(items: list, what: str, order_code: str) -> None:
    try:
        enqueue_many(items)
    except Exception:
        log.warning("[checkout] could not queue %s notification order=%s", what, order_code, exc_info=True)


def notify_new_order(order) -> None:
    restaurant = order.restaurant
    owner_payload = {
        "code": order.code,
        "total": f"{order.total_amount}",
        "currency": order.currency,
        "table": order.table_number,
        "orders_url": dashboard_url("ordering:orders_page"),
    }
    link_payload = {
        "restaurant": restaurant.name,
        "code": order.code,
        "url": order_page_url(order.customer_token),
    }
    items = [
        Enqueue(
            type="sms",
            to=restaurant.notification_phone,
            template_code="owner_new_order",
            payload=owner_payload,
            idempotency_key=f"owner_new_order:{order.id}",
            restaurant=restaurant,
        )
        if restaurant.notification_phone
        else None,
        Enqueue(
            type="sms",
            to=order.customer_phone,
            template_code="order_link",
            payload=link_payload,
            idempotency_key=f"orderlink:sms:{order.id}",
            restaurant=restaurant,
        )
        if order.customer_phone
        else None,
        Enqueue(
            type="email",
            to=order.customer_email,
            template_code="order_link",
            payload=link_payload,
            idempotency_key=f"orderlink:email:{order.id}",
            restaurant=restaurant,
        )
        if order.customer_email
        else None,
    ]
    _send(items, "new order", order.code)


def notify_status_change(order) -> None:
    restaurant = order.restaurant
    if not order.customer_phone:
        return
    template = STATUS_MESSAGES.get(order.order_status)
    if not template:
        return
    payload = {
        "code": order.code,
        "status": order.order_status,
        "message": template.format(code=order.code, restaurant=restaurant.name),
        "url": order_page_url(order.customer_token),
    }
    log.info("[checkout] status update order=%s status=%s to=%s", order.code, order.order_status, mask_phone(order.customer_phone))
    _send(
        [
            Enqueue(
                type="sms",
                to=order.customer_phone,
                template_code="order_status_update",
                payload=payload,
                idempotency_key=f"order_status:{order.id}:{order.order_status}",
                restaurant=restaurant,
            )
        ],
        "status",
        order.code,
    )


def notify_waiter_call(call) -> None:
    restaurant = call.restaurant
    if not restaurant.notification_phone:
        return
    payload = {"table": call.table_number, "name": call.customer_name, "notes": call.notes}
    _send(
        [
            Enqueue(
                type="sms",
                to=restaurant.notification_phone,
                template_code="owner_waiter_call",
                payload=payload,
                idempotency_key=f"waiter_call:{call.id}",
                restaurant=restaurant,
            )
        ],
        "waiter call",
        call.table_number,
    )
