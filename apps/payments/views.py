import logging

from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.http import Http404
from django.shortcuts import redirect, render
from django.views.decorators.http import require_GET, require_http_methods

from apps.common.flash import flash_error, with_flash
from apps.ordering.models import Order
from apps.restaurants.models import payment_settings_for
from apps.restaurants.selectors import current_restaurant

from .gateways import GATEWAYS, GatewayError, UnknownPaymentMethod, get_gateway
from .services import verify_order_payment

log = logging.getLogger(__name__)


@require_GET
def payment_return(request):
    """Landing page after the hosted Pesapal page sends the customer back."""
    token = request.GET.get("token") or ""
    try:
        order = Order.objects.select_related("restaurant").filter(
            customer_token=token, restaurant_id=request.GET.get("restaurant") or None
        ).first()
    except ValidationError:
        order = None
    if not token or order is None:
        raise Http404("Order not found")
    tracking_id = request.GET.get("OrderTrackingId") or ""
    if tracking_id and order.payment_reference and tracking_id != order.payment_reference:
        log.warning("[payments] return with foreign tracking id order=%s", order.code)
    else:
        try:
            verify_order_payment(order, source="return")
        except GatewayError as e:
            log.info("[payments] return verification inconclusive order=%s error=%s", order.code, e)
    return redirect("ordering:order_status", token=order.customer_token)


def _method_rows(ps) -> list[dict]:
    rows = []
    for method, gateway in GATEWAYS.items():
        config = ps.config_for(method.value)
        rows.append(
            {
                "method": method.value,
                "label": method.label,
                "enabled": bool(config.get("enabled")),
                "configured": gateway.is_configured(config),
                "fields": [
                    {
                        "name": f.name,
                        "input_name": f"{method.value}__{f.name}",
                        "label": f.label,
                        "type": f.type,
                        "required": f.required,
                        "choices": f.choices,
                        # secrets are never echoed back to the browser
                        "value": "" if f.type == "password" else config.get(f.name, ""),
                        "is_set": bool(config.get(f.name)),
                    }
                    for f in gateway.get_credential_fields()
                ],
            }
        )
    return rows


@login_required
@require_http_methods(["GET", "POST"])
def payment_settings(request):
    restaurant = current_restaurant(request)
    ps = payment_settings_for(restaurant)
    if request.method == "POST":
        try:
            gateway = get_gateway(request.POST.get("method") or "")
        except UnknownPaymentMethod:
            return flash_error("Unknown payment method.", status=400)
        method = gateway.method.value
        current = ps.config_for(method)
        values = {"enabled": request.POST.get("enabled") in ("1", "on", "true")}
        for f in gateway.get_credential_fields():
            raw = (request.POST.get(f"{method}__{f.name}") or "").strip()
            if f.type == "password" and not raw:
                raw = current.get(f.name, "")
            if f.choices and raw and raw not in dict(f.choices):
                return flash_error(f"Invalid value for {f.label}.")
            if raw:
                values[f.name] = raw
        if values["enabled"] and not gateway.is_configured(values):
            return flash_error(f"Fill in the required {gateway.name} details before enabling it.")
        ps.update_method(method, values)
        log.info("[payments] settings updated restaurant=%s method=%s enabled=%s", restaurant.id, method, values["enabled"])
        resp = render(request, "dashboard/payment_settings.html", {"restaurant": restaurant, "rows": _method_rows(ps)})
        return with_flash(resp, "success", "Saved", f"{gateway.name} settings updated.")
    return render(request, "dashboard/payment_settings.html", {"restaurant": restaurant, "rows": _method_rows(ps)})
