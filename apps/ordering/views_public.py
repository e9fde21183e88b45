from __future__ import annotations

import logging
import uuid

from django.db.models import Prefetch
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404, render
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET, require_POST

from apps.cart.store import CartStore
from apps.common.flash import flash_error, flash_success, with_flash
from apps.common.rate_limit import rate_limit, session_ident
from apps.leads.services import lead_session_key
from apps.menu.models import MenuCategory, MenuItem
from apps.payments.gateways import GatewayError
from apps.payments.models import MANUAL_METHODS, PaymentMethod, PaymentStatus
from apps.payments.services import begin_payment, confirm_manual_payment, payment_instructions, verify_order_payment
from apps.restaurants.models import payment_settings_for
from apps.restaurants.selectors import get_public_restaurant

from .forms import CheckoutForm
from .models import Order
from .services import CheckoutError, call_waiter, place_order

log = logging.getLogger(__name__)


def _table_key(restaurant_id) -> str:
    return f"table_{restaurant_id}"


def _order_by_token(token: str) -> Order:
    return get_object_or_404(Order.objects.select_related("restaurant"), customer_token=token)


def _checkout_form(restaurant, table_number: str) -> CheckoutForm:
    return CheckoutForm(
        restaurant=restaurant,
        enabled_methods=payment_settings_for(restaurant).enabled_methods(),
        initial={
            "order_type": "now",
            "table_number": table_number,
            "checkout_key": uuid.uuid4().hex,
        },
    )


@ensure_csrf_cookie
def menu_home(request, slug: str):
    restaurant = get_public_restaurant(slug)
    # QR codes on the tables carry ?table= (or ?qr=) so the order is dine-in
    table = (request.GET.get("table") or request.GET.get("qr") or "").strip()[:20]
    if table:
        request.session[_table_key(restaurant.id)] = table
    table = request.session.get(_table_key(restaurant.id), "")

    categories = (
        MenuCategory.objects.filter(restaurant=restaurant, is_active=True)
        .prefetch_related(Prefetch("items", queryset=MenuItem.objects.filter(is_available=True)))
        .order_by("display_order", "created_at")
    )
    cart = CartStore(request.session, restaurant.id)
    enabled = payment_settings_for(restaurant).enabled_methods()
    return render(
        request,
        "public/menu.html",
        {
            "restaurant": restaurant,
            "categories": categories,
            "lines": cart.cart_items,
            "count": cart.get_cart_count(),
            "total": cart.get_cart_total(),
            "table_number": table,
            "form": _checkout_form(restaurant, table),
            "payment_methods": [m for m in PaymentMethod if m.value in enabled or m == PaymentMethod.CASH],
        },
    )


def _outcome_response(request, order: Order, outcome, *, status: int = 200) -> HttpResponse:
    if outcome is not None and outcome.kind == "redirect":
        resp = HttpResponse(status=204)
        resp["HX-Redirect"] = outcome.payment_url
        return resp
    resp = render(
        request,
        "public/checkout_confirm.html",
        {"restaurant": order.restaurant, "order": order, "outcome": outcome},
        status=status,
    )
    if outcome is not None and outcome.failed:
        with_flash(resp, "error", "Payment not started", outcome.message)
    return resp


@require_POST
def checkout_submit(request, slug: str):
    restaurant = get_public_restaurant(slug)
    form = CheckoutForm(
        request.POST,
        restaurant=restaurant,
        enabled_methods=payment_settings_for(restaurant).enabled_methods(),
    )
    if not form.is_valid():
        return flash_error(form.first_error())

    data = form.cleaned_data
    if not data.get("table_number"):
        data["table_number"] = request.session.get(_table_key(restaurant.id), "")
    cart = CartStore(request.session, restaurant.id)
    try:
        result = place_order(
            restaurant,
            cart,
            data,
            checkout_key=data.get("checkout_key") or None,
            build_url=request.build_absolute_uri,
            lead_id=request.session.get(lead_session_key(restaurant.id)),
        )
    except CheckoutError as e:
        log.info("[checkout] refused restaurant=%s reason=%s", restaurant.id, type(e).__name__)
        return flash_error(e.message, title="Checkout")
    return _outcome_response(request, result.order, result.outcome)


@require_GET
def order_status(request, token: str):
    order = _order_by_token(token)
    polling = request.GET.get("mpesa_checkout") or ""
    ctx = {
        "restaurant": order.restaurant,
        "order": order,
        "items": order.items.all(),
        "poll_mpesa": bool(polling) and polling == order.payment_reference and order.payment_status == PaymentStatus.PENDING,
        "can_retry": order.payment_method != PaymentMethod.CASH
        and order.payment_status in (PaymentStatus.PENDING, PaymentStatus.FAILED),
        "can_report_paid": order.payment_method in MANUAL_METHODS
        and order.payment_status in (PaymentStatus.PENDING, PaymentStatus.FAILED),
    }
    if order.payment_method in MANUAL_METHODS:
        ctx["instructions"] = payment_instructions(order)
    return render(request, "public/order_status.html", ctx)


@require_GET
def order_lookup(request, token: str):
    """Customer-safe view of an order; contact details never leave the server."""
    order = _order_by_token(token)
    return JsonResponse(
        {
            "code": order.code,
            "restaurant": order.restaurant.name,
            "order_type": order.order_type,
            "order_status": order.order_status,
            "payment_status": order.payment_status,
            "payment_method": order.payment_method,
            "total_amount": str(order.total_amount),
            "amount_due": str(order.amount_due),
            "currency": order.currency,
            "table_number": order.table_number,
            "scheduled_time": order.scheduled_time.isoformat() if order.scheduled_time else None,
            "created_at": order.created_at.isoformat(),
            "items": [
                {
                    "name": i.name,
                    "quantity": i.quantity,
                    "unit_price": str(i.unit_price),
                    "line_total": str(i.line_total),
                    "customizations": i.customizations,
                }
                for i in order.items.all()
            ],
        }
    )


@require_POST
def retry_payment(request, token: str):
    order = _order_by_token(token)
    if order.payment_method == PaymentMethod.CASH or order.payment_status not in (
        PaymentStatus.PENDING,
        PaymentStatus.FAILED,
    ):
        return flash_error("This order does not need a payment right now.", title="Payment", status=400)
    rl = rate_limit("pay_retry", order.customer_token, limit=5, window_seconds=600)
    if not rl.allowed:
        return flash_error(
            "Too many attempts. Please wait a few minutes.", title="Payment", status=429, retry_after=rl.retry_after
        )
    if order.payment_status == PaymentStatus.FAILED:
        order.set_payment_status(PaymentStatus.PENDING)
    outcome = begin_payment(order, build_url=request.build_absolute_uri)
    return _outcome_response(request, order, outcome)


@require_POST
def report_paid(request, token: str):
    order = _order_by_token(token)
    if not confirm_manual_payment(order):
        return flash_error("We could not record that payment.", title="Payment", status=400)
    resp = render(request, "public/order_status.html", {"restaurant": order.restaurant, "order": order, "items": order.items.all()})
    return with_flash(resp, "success", "Thank you", "The restaurant will confirm your payment shortly.")


@require_GET
def mpesa_status(request, token: str):
    order = _order_by_token(token)
    if order.payment_method == PaymentMethod.MPESA_DARAJA and order.payment_status == PaymentStatus.PENDING:
        rl = rate_limit("mpesa_poll", order.customer_token, limit=30, window_seconds=60)
        if rl.allowed:
            try:
                verify_order_payment(order, source="customer_poll")
            except GatewayError as e:
                log.info("[payments] mpesa poll inconclusive order=%s error=%s", order.code, e)
            order.refresh_from_db()
    return JsonResponse({"payment_status": order.payment_status, "order_status": order.order_status})


@require_POST
def waiter_call(request, slug: str):
    restaurant = get_public_restaurant(slug)
    table = (request.POST.get("table_number") or request.session.get(_table_key(restaurant.id)) or "").strip()
    if not table:
        return flash_error("Tell us your table number.", title="Call waiter")
    rl = rate_limit("waiter", session_ident(request), limit=3, window_seconds=300)
    if not rl.allowed:
        return flash_error(
            "A waiter is already on the way.", title="Call waiter", status=429, retry_after=rl.retry_after
        )
    call_waiter(
        restaurant,
        table_number=table,
        customer_name=request.POST.get("customer_name") or "",
        notes=request.POST.get("notes") or "",
    )
    return flash_success("A waiter will be with you shortly.", title="Waiter called")
