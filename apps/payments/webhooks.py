import json
import logging

from django.http import HttpResponse, HttpResponseBadRequest, JsonResponse
from django.urls import path
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from .services import handle_pesapal_notification, record_mpesa_callback

log = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def pesapal_ipn(request):
    if "application/json" not in (request.content_type or ""):
        return HttpResponse("Unsupported Media Type", status=415)
    try:
        data = json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return HttpResponseBadRequest("Invalid JSON")
    if not isinstance(data, dict):
        return HttpResponseBadRequest("Bad Request")
    tracking_id = data.get("OrderTrackingId")
    reference = data.get("OrderMerchantReference")
    kind = data.get("OrderNotificationType")
    if not all(isinstance(v, str) and v for v in (tracking_id, reference, kind)):
        log.warning("[payments] pesapal ipn missing required fields")
        return HttpResponseBadRequest("Bad Request")
    handle_pesapal_notification(tracking_id, reference, kind)
    return JsonResponse(
        {
            "orderNotificationType": kind,
            "orderTrackingId": tracking_id,
            "orderMerchantReference": reference,
            "status": 200,
        }
    )


@csrf_exempt
@require_POST
def mpesa_callback(request):
    # Safaricom retries anything that is not a 200
    try:
        payload = json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        log.warning("[payments] mpesa callback with invalid JSON")
        return JsonResponse({"ResultCode": 1, "ResultDesc": "Invalid callback"})
    try:
        entry = record_mpesa_callback(payload)
    except Exception:
        log.exception("[payments] mpesa callback processing failed")
        return JsonResponse({"ResultCode": 1, "ResultDesc": "Callback processing failed"})
    if entry is None:
        return JsonResponse({"ResultCode": 1, "ResultDesc": "Invalid callback"})
    return JsonResponse({"ResultCode": 0, "ResultDesc": "Callback received successfully"})


urlpatterns = [
    path("pesapal/ipn/", pesapal_ipn, name="pesapal_ipn"),
    path("mpesa/callback/", mpesa_callback, name="mpesa_callback"),
]
