from decimal import Decimal

import pytest

from apps.notifications import tasks
from apps.notifications.api import Enqueue, enqueue, enqueue_many
from apps.notifications.models import Notification, NotificationAttempt, Template
from apps.ordering.models import Order
from apps.ordering.notify import notify_new_order


class FakeResponse:
    def __init__(self, status_code, data=None, headers=None, text=""):
        self.status_code = status_code
        self._data = data or {}
        self.headers = headers or {}
        self.text = text

    def json(self):
        return self._data


@pytest.mark.django_db
def test_enqueue_is_idempotent():
    a = enqueue(type="sms", to="+254712345678", template_code="order_link", payload={"code": "#A"}, idempotency_key="k1")
    b = enqueue(type="sms", to="+254712345678", template_code="order_link", payload={"code": "#B"}, idempotency_key="k1")
    assert a.pk == b.pk
    assert Notification.objects.count() == 1


@pytest.mark.django_db
def test_enqueue_many_skips_empty_slots():
    out = enqueue_many([None, Enqueue(type="email", to="a@example.com", template_code="order_link", payload={})])
    assert len(out) == 1


@pytest.mark.django_db
def test_dispatch_happens_on_commit(django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        n = enqueue(
            type="sms",
            to="+254712345678",
            template_code="order_link",
            payload={"restaurant": "Mama Oliech", "code": "#A1", "url": "https://menu.test/o/t/"},
        )
    n.refresh_from_db()
    assert n.status == "sent"
    assert n.provider == "dev"
    assert n.attempts == 1
    assert NotificationAttempt.objects.get(notification=n).result == "ok"


@pytest.mark.django_db
def test_render_falls_back_to_default_template():
    text = tasks.render_template("owner_new_order", "sms", {"code": "#A1", "currency": "KES", "total": "450.00", "table": "4", "orders_url": "u"})
    assert text == {"text": "New order #A1 (KES 450.00), table 4. Orders: u"}


@pytest.mark.django_db
def test_database_template_wins():
    Template.objects.create(code="order_link", channel="sms", body_txt="Karibu! {{ code }}")
    assert tasks.render_template("order_link", "sms", {"code": "#A1"}) == {"text": "Karibu! #A1"}


@pytest.mark.django_db
def test_invalid_recipient_fails_permanently():
    n = Notification.objects.create(type="sms", to="12", template_code="order_link")
    tasks.send_notification(str(n.id))
    n.refresh_from_db()
    assert n.status == "failed"
    assert n.error_message == "invalid phone"


@pytest.mark.django_db
def test_twilio_delivery(monkeypatch):
    monkeypatch.setenv("NOTIF_DEV_MODE", "false")
    monkeypatch.setenv("TWILIO_ACCOUNT_SID", "AC1")
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", "tok")
    monkeypatch.setenv("TWILIO_SMS_FROM", "+15005550006")
    sent = {}

    def fake_post(url, data=None, auth=None, timeout=None, **kw):
        sent.update(url=url, data=data)
        return FakeResponse(201, {"sid": "SM123"})

    monkeypatch.setattr(tasks.requests, "post", fake_post)
    n = Notification.objects.create(
        type="sms", to="+254712345678", template_code="order_status_update", payload_json={"message": "Ready!", "url": "u"}
    )
    tasks.send_notification(str(n.id))
    n.refresh_from_db()
    assert n.status == "sent"
    assert n.provider == "twilio"
    assert n.provider_message_id == "SM123"
    assert sent["data"]["To"] == "+254712345678"
    assert sent["data"]["Body"] == "Ready! u"


@pytest.mark.django_db
def test_provider_4xx_is_permanent(monkeypatch):
    monkeypatch.setenv("NOTIF_DEV_MODE", "false")
    monkeypatch.setenv("SENDGRID_API_KEY", "SG.key")
    monkeypatch.setenv("SENDGRID_FROM_EMAIL", "orders@menuhub.test")
    monkeypatch.setattr(tasks.requests, "post", lambda *a, **kw: FakeResponse(400, text="bad address"))
    n = Notification.objects.create(type="email", to="guest@example.com", template_code="order_link", payload_json={})
    tasks.send_notification(str(n.id))
    n.refresh_from_db()
    assert n.status == "failed"
    assert "bad address" in n.error_message


@pytest.mark.django_db
def test_new_order_notifications(restaurant):
    order = Order.objects.create(
        restaurant=restaurant,
        total_amount=Decimal("450.00"),
        amount_due=Decimal("450.00"),
        customer_email="guest@example.com",
    )
    notify_new_order(order)
    notify_new_order(order)
    rows = {n.template_code + ":" + n.type: n for n in Notification.objects.all()}
    assert set(rows) == {"owner_new_order:sms", "order_link:email"}
    assert all(n.restaurant_id == restaurant.id for n in rows.values())
    assert rows["owner_new_order:sms"].payload_json["orders_url"] == "https://dash.test/dashboard/orders/"
    assert rows["order_link:email"].payload_json["url"] == f"https://menu.test/o/{order.customer_token}/"
