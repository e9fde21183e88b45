from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Callable
from urllib.parse import urlencode

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured, ValidationError
from django.db import transaction
from django.urls import reverse

from apps.ordering.models import Order
from apps.ordering.notify import notify_status_change
from apps.restaurants.models import payment_settings_for

from .gateways import GatewayError, PaymentRequest, PaymentStatusResult, get_gateway
from .models import MANUAL_METHODS, ONLINE_METHODS, MpesaCallback, PaymentMethod, PaymentStatus

log = logging.getLogger(__name__)


@dataclass
class PaymentOutcome:
    """What the customer sees next after an order is placed.

    kind is one of: redirect, stk_push, instructions, none, error.
    """

    kind: str
    payment_url: str = ""
    checkout_request_id: str = ""
    instructions: dict | None = None
    message: str = ""

    @property
    def failed(self) -> bool:
        return self.kind == "error"


def _config(order: Order) -> dict:
    return payment_settings_for(order.restaurant).config_for(order.payment_method)


def _payment_request(order: Order, build_url: Callable[[str], str] | None) -> PaymentRequest:
    query = urlencode({"token": order.customer_token, "restaurant": str(order.restaurant_id)})
    return_path = f"{reverse('payments:payment_return')}?{query}"
    cancel_path = reverse("ordering:order_status", args=[order.customer_token])
    absolute = build_url or (lambda p: f"{(settings.SITE_BASE_URL or '').rstrip('/')}{p}")
    return PaymentRequest(
        amount=order.amount_due,
        currency=order.currency,
        order_id=str(order.id),
        description=f"{order.restaurant.name} order {order.code}",
        customer_name=order.customer_name,
        customer_email=order.customer_email,
        customer_phone=order.customer_phone,
        callback_url=absolute(return_path),
        cancel_url=absolute(cancel_path),
    )


def payment_instructions(order: Order, config: dict | None = None) -> dict:
    """Fields the customer needs to pay by hand, taken from the payment settings."""
    config = _config(order) if config is None else config
    gateway = get_gateway(order.payment_method)
    fields = [
        {"label": f.label.replace(" (optional)", ""), "value": str(config.get(f.name) or "").strip()}
        for f in gateway.get_credential_fields()
    ]
    return {
        "method": order.payment_method,
        "method_label": PaymentMethod(order.payment_method).label,
        "amount": order.amount_due,
        "currency": order.currency,
        "reference": order.code,
        "fields": [f for f in fields if f["value"]],
    }


def _start_redirect(order, config, build_url) -> PaymentOutcome:
    response = get_gateway(order.payment_method).initialize_payment(_payment_request(order, build_url), config)
    order.payment_reference = response.transaction_id
    order.save(update_fields=["payment_reference", "updated_at"])
    return PaymentOutcome(kind="redirect", payment_url=response.payment_url)


def _start_stk_push(order, config, build_url) -> PaymentOutcome:
    response = get_gateway(order.payment_method).initialize_payment(_payment_request(order, build_url), config)
    order.payment_reference = response.transaction_id
    order.save(update_fields=["payment_reference", "updated_at"])
    return PaymentOutcome(kind="stk_push", checkout_request_id=response.transaction_id, message=response.message)


def _show_instructions(order, config, build_url) -> PaymentOutcome:
    response = get_gateway(order.payment_method).initialize_payment(_payment_request(order, build_url), config)
    order.payment_reference = response.transaction_id
    order.save(update_fields=["payment_reference", "updated_at"])
    return PaymentOutcome(kind="instructions", instructions=payment_instructions(order, config), message=response.message)


def _pay_on_collection(order, config, build_url) -> PaymentOutcome:
    return PaymentOutcome(kind="none", message="Pay with cash when you collect your order.")


PAYMENT_HANDLERS = {
    PaymentMethod.PESAPAL: _start_redirect,
    PaymentMethod.MPESA_DARAJA: _start_stk_push,
    PaymentMethod.MPESA_MANUAL: _show_instructions,
    PaymentMethod.BANK_TRANSFER: _show_instructions,
    PaymentMethod.CASH: _pay_on_collection,
}

if set(PAYMENT_HANDLERS) != set(PaymentMethod):
    raise ImproperlyConfigured("PAYMENT_HANDLERS must cover every PaymentMethod")


def begin_payment(order: Order, *, build_url: Callable[[str], str] | None = None) -> PaymentOutcome:
    """Run the online step for the order's payment method.

    A gateway failure leaves the order pending and comes back as an
    `error` outcome the customer can retry from the order page.
    """
    method = PaymentMethod(order.payment_method)
    handler = PAYMENT_HANDLERS[method]
    try:
        outcome = handler(order, _config(order), build_url)
    except GatewayError as e:
        log.warning("[payments] start failed order=%s method=%s error=%s", order.code, method.value, e)
        return PaymentOutcome(
            kind="error",
            message="We could not start the payment. Your order is saved; you can try again.",
        )
    log.info("[payments] started order=%s method=%s outcome=%s", order.code, method.value, outcome.kind)
    return outcome


def apply_verification(order: Order, result: PaymentStatusResult, *, source: str) -> bool:
    """Apply a gateway answer to the order. Returns True when something changed.

    A completed payment is never downgraded and a pending answer is a no-op.
    """
    status = result.status
    if status == PaymentStatus.PENDING or order.payment_status == PaymentStatus.COMPLETED:
        return False
    if status == order.payment_status:
        return False
    with transaction.atomic():
        order.set_payment_status(status, reference=result.transaction_id or None)
        confirmed = status == PaymentStatus.COMPLETED and order.order_status == "pending"
        if confirmed:
            order.set_status("confirmed", source=source, note="payment completed")
    log.info("[payments] order=%s payment_status=%s source=%s", order.code, status, source)
    if confirmed:
        transaction.on_commit(lambda: notify_status_change(order), robust=True)
    return True


def verify_order_payment(order: Order, *, source: str = "verify") -> PaymentStatusResult | None:
    """Ask the gateway about an online payment and apply the answer."""
    if order.payment_method not in ONLINE_METHODS or not order.payment_reference:
        return None
    result = get_gateway(order.payment_method).verify_payment(order.payment_reference, _config(order))
    apply_verification(order, result, source=source)
    return result


def _order_by_reference(merchant_reference: str, tracking_id: str) -> Order | None:
    order = None
    try:
        order = Order.objects.select_related("restaurant").filter(pk=merchant_reference).first()
    except (ValueError, ValidationError):
        order = None
    if order is None and tracking_id:
        order = Order.objects.select_related("restaurant").filter(payment_reference=tracking_id).first()
    return order


def handle_pesapal_notification(tracking_id: str, merchant_reference: str, notification_type: str) -> Order | None:
    log.info(
        "[payments] pesapal ipn type=%s tracking=%s ref=%s", notification_type, tracking_id, merchant_reference
    )
    kind = (notification_type or "").upper()
    if kind == "COMPLETED":
        status = PaymentStatus.COMPLETED
    elif kind == "FAILED":
        status = PaymentStatus.FAILED
    else:
        log.warning("[payments] pesapal ipn unhandled type=%s", notification_type)
        return None
    order = _order_by_reference(merchant_reference, tracking_id)
    if order is None:
        log.warning("[payments] pesapal ipn for unknown order ref=%s", merchant_reference)
        return None
    apply_verification(order, PaymentStatusResult(transaction_id=tracking_id, status=status), source="pesapal_ipn")
    return order


def _callback_metadata(callback: dict) -> dict:
    items = ((callback.get("CallbackMetadata") or {}).get("Item")) or []
    return {i.get("Name"): i.get("Value") for i in items if isinstance(i, dict)}


def record_mpesa_callback(payload: dict) -> MpesaCallback | None:
    """Log an STK push callback and settle the matching order."""
    callback = ((payload or {}).get("Body") or {}).get("stkCallback")
    if not isinstance(callback, dict):
        return None
    try:
        result_code = int(callback.get("ResultCode"))
    except (TypeError, ValueError):
        result_code = None
    success = result_code == 0
    meta = _callback_metadata(callback) if success else {}
    try:
        amount = Decimal(str(meta["Amount"])) if meta.get("Amount") is not None else None
    except InvalidOperation:
        amount = None
    checkout_id = str(callback.get("CheckoutRequestID") or "")
    entry = MpesaCallback.objects.create(
        checkout_request_id=checkout_id,
        merchant_request_id=str(callback.get("MerchantRequestID") or ""),
        result_code=result_code,
        result_desc=str(callback.get("ResultDesc") or "")[:255],
        success=success,
        amount=amount,
        mpesa_receipt_number=str(meta.get("MpesaReceiptNumber") or ""),
        phone_number=str(meta.get("PhoneNumber") or ""),
        transaction_date=str(meta.get("TransactionDate") or ""),
        callback_data=payload,
    )
    log.info("[payments] mpesa callback checkout=%s result=%s", checkout_id, result_code)
    order = (
        Order.objects.select_related("restaurant")
        .filter(payment_method=PaymentMethod.MPESA_DARAJA, payment_reference=checkout_id)
        .first()
        if checkout_id
        else None
    )
    if order is None:
        log.warning("[payments] mpesa callback without matching order checkout=%s", checkout_id)
        return entry
    status = PaymentStatus.COMPLETED if success else PaymentStatus.FAILED
    apply_verification(order, PaymentStatusResult(transaction_id=checkout_id, status=status), source="mpesa_callback")
    return entry


def confirm_manual_payment(order: Order) -> bool:
    """Customer says "I have paid"; staff still has to check the till."""
    if order.payment_method not in MANUAL_METHODS:
        return False
    if order.payment_status not in (PaymentStatus.PENDING, PaymentStatus.FAILED):
        return False
    order.set_payment_status(PaymentStatus.AWAITING_VERIFICATION)
    log.info("[payments] customer reported payment order=%s method=%s", order.code, order.payment_method)
    return True


def mark_payment_received(order: Order) -> bool:
    """Staff confirms money arrived for an offline method."""
    if order.payment_method in ONLINE_METHODS or order.payment_status == PaymentStatus.COMPLETED:
        return False
    order.set_payment_status(PaymentStatus.COMPLETED)
    log.info("[payments] staff marked paid order=%s method=%s", order.code, order.payment_method)
    return True
