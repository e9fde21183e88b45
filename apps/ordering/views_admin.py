from django.contrib.auth.decorators import login_required
from django.core.paginator import EmptyPage, Paginator
from django.shortcuts import get_object_or_404, render
from django.views.decorators.http import require_POST

from apps.common.flash import flash_error, with_flash
from apps.payments.services import mark_payment_received
from apps.restaurants.selectors import current_restaurant

from .models import Order, WaiterCall
from .services import OrderTransitionError, set_table_number, transition_order, update_waiter_call


@login_required
def orders_page(request):
    restaurant = current_restaurant(request)
    tab = (request.GET.get("tab") or "active").lower()
    if tab not in {"active", "completed"}:
        tab = "active"
    if tab == "active":
        qs = Order.objects.filter(restaurant=restaurant, order_status__in=Order.ACTIVE_STATUSES)
    else:
        qs = Order.objects.filter(restaurant=restaurant, order_status__in=["completed", "cancelled"])
    qs = qs.prefetch_related("items").order_by("-created_at")

    try:
        page = int(request.GET.get("page", "1") or 1)
    except ValueError:
        page = 1
    paginator = Paginator(qs, 15)
    try:
        page_obj = paginator.page(page)
    except EmptyPage:
        page_obj = paginator.page(max(1, paginator.num_pages))

    calls = WaiterCall.objects.filter(restaurant=restaurant).exclude(status="completed")[:20]
    ctx = {
        "restaurant": restaurant,
        "tab": tab,
        "page_obj": page_obj,
        "orders": page_obj.object_list,
        "waiter_calls": calls,
    }
    return render(request, "dashboard/orders_page.html", ctx)


@login_required
@require_POST
def update_order_status(request, order_id):
    order = get_object_or_404(Order.objects.select_related("restaurant"), id=order_id, restaurant__owner=request.user)
    status = request.POST.get("status") or ""
    if status not in dict(Order.STATUS_CHOICES):
        return flash_error("Unknown status.", status=400)
    try:
        transition_order(order, status, source="staff", note=(request.POST.get("note") or "")[:200])
    except OrderTransitionError:
        return flash_error(f"Order {order.code} cannot move to {status}.", title="Not allowed", status=400)
    resp = render(request, "dashboard/_order_row.html", {"o": order})
    return with_flash(resp, "success", "Updated", f"Order {order.code} is now {order.get_order_status_display().lower()}.")


@login_required
@require_POST
def update_table_number(request, order_id):
    order = get_object_or_404(Order.objects.select_related("restaurant"), id=order_id, restaurant__owner=request.user)
    if order.order_status in ("completed", "cancelled"):
        return flash_error(f"Order {order.code} is closed.", title="Not allowed", status=400)
    set_table_number(order, request.POST.get("table_number") or "")
    resp = render(request, "dashboard/_order_row.html", {"o": order})
    label = f"table {order.table_number}" if order.table_number else "no table"
    return with_flash(resp, "success", "Updated", f"Order {order.code} now has {label}.")


@login_required
@require_POST
def mark_paid(request, order_id):
    order = get_object_or_404(Order.objects.select_related("restaurant"), id=order_id, restaurant__owner=request.user)
    if not mark_payment_received(order):
        return flash_error("This payment is confirmed by the gateway, not by hand.", title="Not allowed", status=400)
    resp = render(request, "dashboard/_order_row.html", {"o": order})
    return with_flash(resp, "success", "Payment recorded", f"Order {order.code} marked as paid.")


@login_required
@require_POST
def waiter_call_update(request, call_id):
    call = get_object_or_404(WaiterCall, id=call_id, restaurant__owner=request.user)
    try:
        update_waiter_call(call, request.POST.get("status") or "")
    except OrderTransitionError:
        return flash_error("That waiter call was already handled.", status=400)
    resp = render(request, "dashboard/_waiter_call.html", {"call": call})
    return with_flash(resp, "success", "Updated", f"Table {call.table_number}: {call.get_status_display().lower()}.")
