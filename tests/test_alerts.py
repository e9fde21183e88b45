import json
from decimal import Decimal

import pytest
from django.test import override_settings
from django.urls import reverse

from apps.alerts.models import RestaurantNotificationSettings
from apps.alerts.services import get_feed, mark_all_read, notification_settings_for, push_event
from apps.ordering.models import Order, WaiterCall
from apps.ordering.services import call_waiter


@pytest.mark.django_db
def test_push_event_counts_and_cues(restaurant):
    event = push_event(restaurant, "order", "New order #ABC123")
    assert event["cue"] == {"ringtone": "classic-bell", "volume": 90}
    feed = get_feed(restaurant)
    assert feed["unread_count"] == 1
    assert feed["pulse"] is True
    assert feed["events"][0]["title"] == "New order #ABC123"
    assert feed["cue"] is None
    assert notification_settings_for(restaurant).last_notification_at is not None


@pytest.mark.django_db
def test_muted_restaurant_gets_no_cue(restaurant):
    ns = notification_settings_for(restaurant)
    ns.notifications_enabled = False
    ns.save()
    push_event(restaurant, "order", "New order")
    feed = get_feed(restaurant, since=0)
    assert feed["unread_count"] == 1
    assert feed["cue"] is None
    ns.refresh_from_db()
    assert ns.last_notification_at is None


@pytest.mark.django_db
def test_feed_since_only_cues_fresh_events(restaurant):
    first = push_event(restaurant, "order", "First")
    assert get_feed(restaurant, since=first["at"] - 1)["cue"] is not None
    assert get_feed(restaurant, since=first["at"])["cue"] is None


@pytest.mark.django_db
@override_settings(ALERT_FEED_SIZE=3)
def test_feed_is_bounded_newest_first(restaurant):
    for i in range(5):
        push_event(restaurant, "order", f"Order {i}")
    feed = get_feed(restaurant)
    assert [e["title"] for e in feed["events"]] == ["Order 4", "Order 3", "Order 2"]
    assert feed["unread_count"] == 5
    mark_all_read(restaurant)
    assert get_feed(restaurant)["unread_count"] == 0


@pytest.mark.django_db
def test_new_orders_and_waiter_calls_reach_the_feed(restaurant, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        order = Order.objects.create(
            restaurant=restaurant, total_amount=Decimal("450.00"), amount_due=Decimal("450.00"), table_number="5"
        )
        call_waiter(restaurant, table_number="5", notes="bill please")
    events = get_feed(restaurant)["events"]
    assert [e["kind"] for e in events] == ["waiter_call", "order"]
    assert events[1]["ref"] == str(order.id)
    assert "table 5" in events[1]["message"]


@pytest.mark.django_db(transaction=True)
def test_unreachable_cache_does_not_lose_the_waiter_call(restaurant, monkeypatch):
    def cache_down(*args, **kwargs):
        raise ConnectionError("redis unreachable")

    monkeypatch.setattr("apps.alerts.signals.push_event", cache_down)
    call = call_waiter(restaurant, table_number="7")
    assert WaiterCall.objects.get() == call


@pytest.mark.django_db
def test_status_updates_do_not_alert(restaurant, django_capture_on_commit_callbacks):
    order = Order.objects.create(restaurant=restaurant, total_amount=Decimal("1"), amount_due=Decimal("1"))
    with django_capture_on_commit_callbacks(execute=True):
        order.set_status("confirmed", source="staff")
    assert get_feed(restaurant)["events"] == []


@pytest.mark.django_db
def test_feed_and_read_views(owner_client, restaurant):
    push_event(restaurant, "order", "New order")
    data = owner_client.get(reverse("alerts:feed"), {"since": "0"}).json()
    assert data["unread_count"] == 1
    assert data["cue"]["ringtone"] == "classic-bell"
    assert owner_client.post(reverse("alerts:mark_read")).json() == {"unread_count": 0}
    assert owner_client.get(reverse("alerts:feed")).json()["unread_count"] == 0


@pytest.mark.django_db
def test_alert_settings_update(owner_client, restaurant):
    url = reverse("alerts:settings")
    resp = owner_client.post(url, {"ringtone": "chime", "volume": "150", "notifications_enabled": "on"})
    assert resp.status_code == 200
    ns = RestaurantNotificationSettings.objects.get(restaurant=restaurant)
    assert (ns.ringtone, ns.volume, ns.notifications_enabled) == ("chime", 100, True)

    assert owner_client.post(url, {"ringtone": "airhorn"}).status_code == 422
    data = owner_client.get(url, HTTP_ACCEPT="application/json").json()
    assert data == {"ringtone": "chime", "volume": 100, "notifications_enabled": True}


@pytest.mark.django_db
def test_test_ringtone_triggers_client_event(owner_client, restaurant):
    resp = owner_client.post(reverse("alerts:test_ringtone"), {"ringtone": "service-bell"})
    assert resp.status_code == 204
    assert json.loads(resp["HX-Trigger"]) == {"playRingtone": {"ringtone": "service-bell", "volume": 90}}
