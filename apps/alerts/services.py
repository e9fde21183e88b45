"""Staff alert feed kept in the cache and polled by the dashboard.

Three keys per restaurant: an unread counter, a bounded list of recent
events and the moment the bell icon stops pulsing. A cache flush loses all
three; nothing here is durable.
"""
from __future__ import annotations

import logging
import time
import uuid

from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

from .models import RestaurantNotificationSettings

log = logging.getLogger(__name__)


def _keys(restaurant_id) -> tuple[str, str, str]:
    base = f"alerts:{restaurant_id}"
    return f"{base}:unread", f"{base}:events", f"{base}:pulse"


def notification_settings_for(restaurant) -> RestaurantNotificationSettings:
    ns, _ = RestaurantNotificationSettings.objects.get_or_create(restaurant=restaurant)
    return ns


def push_event(restaurant, kind: str, title: str, message: str = "", ref: str = "") -> dict:
    ns = notification_settings_for(restaurant)
    unread_key, events_key, pulse_key = _keys(restaurant.id)
    now = time.time()
    event = {
        "id": uuid.uuid4().hex,
        "kind": kind,
        "title": title,
        "message": message,
        "ref": ref,
        "at": now,
        "cue": ns.cue if ns.notifications_enabled else None,
    }
    cache.add(unread_key, 0, timeout=None)
    try:
        cache.incr(unread_key)
    except ValueError:
        # key evicted between add and incr
        cache.set(unread_key, 1, timeout=None)
    size = int(getattr(settings, "ALERT_FEED_SIZE", 20))
    events = (cache.get(events_key) or []) + [event]
    cache.set(events_key, events[-size:], timeout=None)
    cache.set(pulse_key, now + float(getattr(settings, "ALERT_PULSE_SECONDS", 1.5)), timeout=None)
    if ns.notifications_enabled:
        RestaurantNotificationSettings.objects.filter(pk=ns.pk).update(last_notification_at=timezone.now())
    log.info("[alerts] %s restaurant=%s ref=%s", kind, restaurant.id, ref)
    return event


def get_feed(restaurant, since: float | None = None) -> dict:
    unread_key, events_key, pulse_key = _keys(restaurant.id)
    events = cache.get(events_key) or []
    now = time.time()
    fresh = [e for e in events if since is None or e["at"] > since]
    cue = next((e["cue"] for e in reversed(fresh) if e.get("cue")), None) if since is not None else None
    return {
        "unread_count": int(cache.get(unread_key) or 0),
        "pulse": now < float(cache.get(pulse_key) or 0),
        "events": list(reversed(events)),
        "cue": cue,
        "now": now,
    }


def mark_all_read(restaurant) -> None:
    unread_key, _, _ = _keys(restaurant.id)
    cache.set(unread_key, 0, timeout=None)
