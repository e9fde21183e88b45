import json

from django.contrib.auth.decorators import login_required
from django.http import HttpResponse, JsonResponse
from django.shortcuts import render
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from apps.common.flash import flash_error, with_flash
from apps.restaurants.selectors import current_restaurant

from .models import RestaurantNotificationSettings
from .services import get_feed, mark_all_read, notification_settings_for

RINGTONES = dict(RestaurantNotificationSettings.RINGTONE_CHOICES)


@login_required
@require_GET
def feed(request):
    restaurant = current_restaurant(request)
    try:
        since = float(request.GET["since"]) if request.GET.get("since") else None
    except ValueError:
        since = None
    return JsonResponse(get_feed(restaurant, since))


@login_required
@require_POST
def mark_read(request):
    restaurant = current_restaurant(request)
    mark_all_read(restaurant)
    return JsonResponse({"unread_count": 0})


@login_required
@require_http_methods(["GET", "POST"])
def alert_settings(request):
    restaurant = current_restaurant(request)
    ns = notification_settings_for(restaurant)
    if request.method == "POST":
        ringtone = request.POST.get("ringtone") or ns.ringtone
        if ringtone not in RINGTONES:
            return flash_error("Unknown ringtone.")
        try:
            volume = int(request.POST.get("volume", ns.volume))
        except (TypeError, ValueError):
            return flash_error("Volume must be a number between 0 and 100.")
        ns.ringtone = ringtone
        ns.volume = max(0, min(100, volume))
        ns.notifications_enabled = request.POST.get("notifications_enabled") in ("1", "on", "true")
        ns.save(update_fields=["ringtone", "volume", "notifications_enabled", "updated_at"])
        resp = render(request, "dashboard/_alert_settings.html", {"ns": ns, "ringtones": RINGTONES.items()})
        return with_flash(resp, "success", "Saved", "Notification settings updated.")
    if request.headers.get("Accept", "").startswith("application/json"):
        return JsonResponse(
            {"ringtone": ns.ringtone, "volume": ns.volume, "notifications_enabled": ns.notifications_enabled}
        )
    return render(request, "dashboard/_alert_settings.html", {"ns": ns, "ringtones": RINGTONES.items()})


@login_required
@require_POST
def test_ringtone(request):
    restaurant = current_restaurant(request)
    ns = notification_settings_for(restaurant)
    ringtone = request.POST.get("ringtone") or ns.ringtone
    if ringtone not in RINGTONES:
        ringtone = ns.ringtone
    resp = HttpResponse(status=204)
    resp["HX-Trigger"] = json.dumps({"playRingtone": {"ringtone": ringtone, "volume": ns.volume}})
    return resp
