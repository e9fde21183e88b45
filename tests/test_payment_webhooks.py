import json
from decimal import Decimal

import pytest
from django.urls import reverse

from apps.notifications.models import Notification
from apps.ordering.models import Order
from apps.payments.models import MpesaCallback


def _order(restaurant, **kw):
    data = {
        "total_amount": Decimal("450.00"),
        "amount_due": Decimal("450.00"),
        "payment_method": "pesapal",
        "payment_reference": "trk-1",
        "customer_phone": "+254712345678",
    }
    data.update(kw)
    return Order.objects.create(restaurant=restaurant, **data)


def _ipn(client, **fields):
    body = {
        "OrderTrackingId": "trk-1",
        "OrderMerchantReference": "",
        "OrderNotificationType": "COMPLETED",
        **fields,
    }
    return client.post(reverse("payments:pesapal_ipn"), data=json.dumps(body), content_type="application/json")


def _stk_callback(checkout_id="ws_CO_1", code=0, **meta):
    callback = {
        "MerchantRequestID": "m-1",
        "CheckoutRequestID": checkout_id,
        "ResultCode": code,
        "ResultDesc": "The service request is processed successfully." if code == 0 else "Request cancelled by user",
    }
    if code == 0:
        items = {"Amount": 450, "MpesaReceiptNumber": "QGH123XYZ", "TransactionDate": 20250101120000, "PhoneNumber": 254712345678}
        items.update(meta)
        callback["CallbackMetadata"] = {"Item": [{"Name": k, "Value": v} for k, v in items.items()]}
    return {"Body": {"stkCallback": callback}}


@pytest.mark.django_db
def test_pesapal_ipn_completes_and_confirms_order(client, restaurant, django_capture_on_commit_callbacks):
    order = _order(restaurant)
    with django_capture_on_commit_callbacks(execute=True):
        resp = _ipn(client, OrderMerchantReference=str(order.id))
    assert resp.status_code == 200
    assert resp.json() == {
        "orderNotificationType": "COMPLETED",
        "orderTrackingId": "trk-1",
        "orderMerchantReference": str(order.id),
        "status": 200,
    }
    order.refresh_from_db()
    assert order.payment_status == "completed"
    assert order.paid_at is not None
    assert order.order_status == "confirmed"
    assert order.status_changes.filter(status="confirmed", source="pesapal_ipn").exists()
    assert Notification.objects.filter(template_code="order_status_update", to="+254712345678").exists()


@pytest.mark.django_db
def test_pesapal_ipn_falls_back_to_tracking_id(client, restaurant):
    order = _order(restaurant)
    resp = _ipn(client, OrderMerchantReference="not-a-uuid", OrderNotificationType="FAILED")
    assert resp.status_code == 200
    order.refresh_from_db()
    assert order.payment_status == "failed"
    assert order.order_status == "pending"


@pytest.mark.django_db
def test_completed_payment_is_never_downgraded(client, restaurant):
    order = _order(restaurant)
    _ipn(client, OrderMerchantReference=str(order.id))
    _ipn(client, OrderMerchantReference=str(order.id), OrderNotificationType="FAILED")
    order.refresh_from_db()
    assert order.payment_status == "completed"


@pytest.mark.django_db
def test_pesapal_ipn_ignores_other_types(client, restaurant):
    order = _order(restaurant)
    assert _ipn(client, OrderMerchantReference=str(order.id), OrderNotificationType="RECURRING").status_code == 200
    order.refresh_from_db()
    assert order.payment_status == "pending"


@pytest.mark.django_db
def test_pesapal_ipn_rejects_bad_requests(client):
    url = reverse("payments:pesapal_ipn")
    assert client.post(url, data="x=1", content_type="application/x-www-form-urlencoded").status_code == 415
    assert client.post(url, data="{nope", content_type="application/json").status_code == 400
    assert client.post(url, data=json.dumps({"OrderTrackingId": "t"}), content_type="application/json").status_code == 400
    assert client.get(url).status_code == 405


@pytest.mark.django_db
def test_mpesa_callback_success(client, restaurant, django_capture_on_commit_callbacks):
    order = _order(restaurant, payment_method="mpesa_daraja", payment_reference="ws_CO_1")
    with django_capture_on_commit_callbacks(execute=True):
        resp = client.post(reverse("payments:mpesa_callback"), data=json.dumps(_stk_callback()), content_type="application/json")
    assert resp.status_code == 200
    assert resp.json() == {"ResultCode": 0, "ResultDesc": "Callback received successfully"}

    entry = MpesaCallback.objects.get()
    assert entry.success
    assert entry.amount == Decimal("450")
    assert entry.mpesa_receipt_number == "QGH123XYZ"
    assert entry.phone_number == "254712345678"
    order.refresh_from_db()
    assert order.payment_status == "completed"
    assert order.order_status == "confirmed"


@pytest.mark.django_db
def test_mpesa_callback_failure_marks_payment_failed(client, restaurant):
    order = _order(restaurant, payment_method="mpesa_daraja", payment_reference="ws_CO_1")
    resp = client.post(
        reverse("payments:mpesa_callback"), data=json.dumps(_stk_callback(code=1032)), content_type="application/json"
    )
    assert resp.json()["ResultCode"] == 0
    order.refresh_from_db()
    assert order.payment_status == "failed"
    assert not MpesaCallback.objects.get().success


@pytest.mark.django_db
def test_mpesa_callback_for_unknown_checkout_is_logged(client, restaurant):
    resp = client.post(
        reverse("payments:mpesa_callback"), data=json.dumps(_stk_callback("ws_CO_404")), content_type="application/json"
    )
    assert resp.json()["ResultCode"] == 0
    assert MpesaCallback.objects.filter(checkout_request_id="ws_CO_404").exists()


@pytest.mark.django_db
def test_mpesa_callback_always_answers_200(client):
    url = reverse("payments:mpesa_callback")
    bad_json = client.post(url, data="{nope", content_type="application/json")
    no_callback = client.post(url, data=json.dumps({"Body": {}}), content_type="application/json")
    for resp in (bad_json, no_callback):
        assert resp.status_code == 200
        assert resp.json()["ResultCode"] == 1
    assert not MpesaCallback.objects.exists()
