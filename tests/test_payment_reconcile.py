import datetime as dt
from decimal import Decimal

import pytest
from django.urls import reverse
from django.utils import timezone

from apps.ordering.models import Order
from apps.payments import functions
from apps.payments.services import confirm_manual_payment, mark_payment_received
from apps.payments.tasks import pending_online_orders, reverify_pending_payments


def _order(restaurant, minutes_ago=30, **kw):
    data = {
        "total_amount": Decimal("450.00"),
        "amount_due": Decimal("450.00"),
        "payment_method": "pesapal",
        "payment_reference": "trk-1",
    }
    data.update(kw)
    order = Order.objects.create(restaurant=restaurant, **data)
    Order.objects.filter(pk=order.pk).update(created_at=timezone.now() - dt.timedelta(minutes=minutes_ago))
    return order


@pytest.mark.django_db
def test_candidates_are_old_enough_online_and_referenced(restaurant):
    due = _order(restaurant)
    _order(restaurant, minutes_ago=2, payment_reference="trk-new")
    _order(restaurant, minutes_ago=60 * 72, payment_reference="trk-old")
    _order(restaurant, payment_reference="")
    _order(restaurant, payment_method="bank_transfer", payment_reference="bank_1")
    _order(restaurant, payment_reference="trk-done", payment_status="completed")
    assert list(pending_online_orders()) == [due]


@pytest.mark.django_db
def test_reverify_settles_definitive_answers_only(restaurant, enable_method, fake_functions):
    enable_method("pesapal", consumer_key="ck", consumer_secret="cs")
    paid = _order(restaurant, payment_reference="trk-paid")
    silent = _order(restaurant, payment_reference="trk-silent")
    answers = {
        "trk-paid": {"payment_status_description": "Completed"},
        "trk-silent": {"payment_status_description": ""},
    }

    fake_functions.answers["pesapal-verify"] = lambda body: answers[body["order_tracking_id"]]
    summary = reverify_pending_payments()

    assert summary == {"checked": 2, "settled": 1, "errors": 0}
    paid.refresh_from_db()
    silent.refresh_from_db()
    assert paid.payment_status == "completed"
    assert paid.order_status == "confirmed"
    assert silent.payment_status == "pending"


@pytest.mark.django_db
def test_reverify_counts_gateway_errors_and_keeps_order_pending(restaurant, fake_functions):
    order = _order(restaurant)
    fake_functions.answers["pesapal-verify"] = functions.FunctionError("down", transient=True)
    assert reverify_pending_payments() == {"checked": 1, "settled": 0, "errors": 1}
    order.refresh_from_db()
    assert order.payment_status == "pending"


@pytest.mark.django_db
def test_payment_return_verifies_then_redirects(client, restaurant, fake_functions):
    order = _order(restaurant)
    fake_functions.answers["pesapal-verify"] = {"payment_status_description": "Completed"}
    resp = client.get(
        reverse("payments:payment_return"),
        {"token": order.customer_token, "restaurant": str(restaurant.id), "OrderTrackingId": "trk-1"},
    )
    assert resp.status_code == 302
    assert resp["Location"] == reverse("ordering:order_status", args=[order.customer_token])
    order.refresh_from_db()
    assert order.payment_status == "completed"


@pytest.mark.django_db
def test_payment_return_ignores_foreign_tracking_id(client, restaurant, fake_functions):
    order = _order(restaurant)
    resp = client.get(
        reverse("payments:payment_return"),
        {"token": order.customer_token, "restaurant": str(restaurant.id), "OrderTrackingId": "someone-else"},
    )
    assert resp.status_code == 302
    assert fake_functions.calls == []


@pytest.mark.django_db
def test_payment_return_unknown_order_is_404(client, restaurant):
    assert client.get(reverse("payments:payment_return"), {"token": "nope", "restaurant": "bad"}).status_code == 404


@pytest.mark.django_db
def test_manual_payment_flow(restaurant):
    order = _order(restaurant, payment_method="mpesa_manual", payment_reference="manual_1")
    assert confirm_manual_payment(order)
    assert order.payment_status == "awaiting_verification"
    assert not confirm_manual_payment(order)
    assert mark_payment_received(order)
    order.refresh_from_db()
    assert order.payment_status == "completed"
    assert order.paid_at is not None
    assert not mark_payment_received(order)


@pytest.mark.django_db
def test_online_payments_cannot_be_marked_by_hand(restaurant):
    order = _order(restaurant)
    assert not mark_payment_received(order)
    assert not confirm_manual_payment(order)
    assert order.payment_status == "pending"


@pytest.mark.django_db
def test_customer_reports_manual_payment(client, restaurant, enable_method):
    enable_method("bank_transfer", bank_name="KCB", account_number="1100223344", account_name="Mama Oliech Ltd")
    order = _order(restaurant, payment_method="bank_transfer", payment_reference="bank_1")
    page = client.get(reverse("ordering:order_status", args=[order.customer_token]))
    assert page.status_code == 200
    assert page.context["can_report_paid"]
    assert b"1100223344" in page.content

    resp = client.post(reverse("ordering:report_paid", args=[order.customer_token]))
    assert resp.status_code == 200
    order.refresh_from_db()
    assert order.payment_status == "awaiting_verification"


@pytest.mark.django_db
def test_order_lookup_hides_contact_details(client, restaurant):
    order = _order(restaurant, customer_phone="+254712345678", customer_email="guest@example.com", payment_method="cash")
    data = client.get(reverse("ordering:order_lookup", args=[order.customer_token])).json()
    assert data["code"] == order.code
    assert data["amount_due"] == "450.00"
    assert "customer_phone" not in data and "customer_email" not in data
    assert "+254712345678" not in str(data)


@pytest.mark.django_db
def test_mpesa_status_poll_verifies_pending_payment(client, restaurant, fake_functions):
    order = _order(restaurant, payment_method="mpesa_daraja", payment_reference="ws_CO_1")
    fake_functions.answers["mpesa-verify"] = {"success": True, "status": "completed"}
    data = client.get(reverse("ordering:mpesa_status", args=[order.customer_token])).json()
    assert data == {"payment_status": "completed", "order_status": "confirmed"}
