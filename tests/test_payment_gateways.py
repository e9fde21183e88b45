from decimal import Decimal

import pytest
import requests
from django.core.exceptions import ImproperlyConfigured

from apps.payments import functions
from apps.payments.gateways import (
    GATEWAYS,
    GatewayError,
    PaymentRequest,
    TransientGatewayError,
    UnknownPaymentMethod,
    build_registry,
    get_gateway,
    map_pesapal_status,
)
from apps.payments.models import PaymentMethod, PaymentStatus
from apps.payments.services import PAYMENT_HANDLERS


def _request(**kw):
    data = {
        "amount": Decimal("450.40"),
        "currency": "KES",
        "order_id": "order-1",
        "description": "Mama Oliech order #ABC123",
        "customer_phone": "+254712345678",
        "callback_url": "https://menu.test/payments/return/",
    }
    data.update(kw)
    return PaymentRequest(**data)


def test_every_method_has_a_gateway_and_a_handler():
    assert set(GATEWAYS) == set(PaymentMethod)
    assert set(PAYMENT_HANDLERS) == set(PaymentMethod)
    with pytest.raises(ImproperlyConfigured):
        build_registry([GATEWAYS[PaymentMethod.CASH]])


def test_unknown_method_raises():
    with pytest.raises(UnknownPaymentMethod):
        get_gateway("bitcoin")
    assert get_gateway("cash") is GATEWAYS[PaymentMethod.CASH]


def test_is_configured_needs_enabled_and_required_fields():
    pesapal = get_gateway("pesapal")
    assert not pesapal.is_configured({"consumer_key": "ck", "consumer_secret": "cs"})
    assert not pesapal.is_configured({"enabled": True, "consumer_key": "ck"})
    assert pesapal.is_configured({"enabled": True, "consumer_key": "ck", "consumer_secret": "cs"})

    manual = get_gateway("mpesa_manual")
    assert not manual.is_configured({"enabled": True})
    assert manual.is_configured({"enabled": True, "paybill_number": "400200"})

    bank = get_gateway("bank_transfer")
    assert not bank.is_configured({"enabled": True, "bank_name": "KCB", "account_number": "11"})

    assert get_gateway("cash").is_configured({"enabled": True})


@pytest.mark.parametrize(
    "description,expected",
    [
        ("Completed", PaymentStatus.COMPLETED),
        ("FAILED", PaymentStatus.FAILED),
        ("Invalid", PaymentStatus.FAILED),
        ("Reversed", PaymentStatus.CANCELLED),
        ("", PaymentStatus.PENDING),
        (None, PaymentStatus.PENDING),
    ],
)
def test_pesapal_status_mapping(description, expected):
    assert map_pesapal_status(description) == expected


def test_pesapal_requires_a_payment_page(fake_functions):
    fake_functions.answers["pesapal-initialize"] = {"success": True, "order_tracking_id": "trk-1"}
    with pytest.raises(GatewayError):
        get_gateway("pesapal").initialize_payment(_request(), {"consumer_key": "ck", "consumer_secret": "cs"})


def test_pesapal_verify_reads_nested_payload(fake_functions):
    fake_functions.answers["pesapal-verify"] = {
        "data": {"payment_status_description": "Completed", "amount": 450.4, "currency": "KES", "confirmation_code": "QX1"}
    }
    result = get_gateway("pesapal").verify_payment("trk-1", {"consumer_key": "ck", "consumer_secret": "cs"})
    assert result.status == PaymentStatus.COMPLETED
    assert result.amount == Decimal("450.4")
    assert result.gateway_reference == "QX1"
    assert result.is_final
    assert fake_functions.calls[0][1]["order_tracking_id"] == "trk-1"


def test_mpesa_rounds_to_whole_shillings(fake_functions):
    fake_functions.answers["mpesa-initialize"] = {"success": True, "checkout_request_id": "ws_CO_9", "merchant_request_id": "m-1"}
    response = get_gateway("mpesa_daraja").initialize_payment(_request(), {"business_short_code": "174379"})
    assert response.transaction_id == "ws_CO_9"
    assert response.extra == {"merchant_request_id": "m-1"}
    body = fake_functions.calls[0][1]
    assert body["amount"] == 450
    assert body["phone_number"] == "254712345678"
    assert len(body["description"]) <= 13


def test_mpesa_without_phone_is_refused(fake_functions):
    with pytest.raises(GatewayError):
        get_gateway("mpesa_daraja").initialize_payment(_request(customer_phone=""), {})
    assert fake_functions.calls == []


def test_mpesa_verify_maps_timeout_to_failed(fake_functions):
    fake_functions.answers["mpesa-verify"] = {"success": True, "status": "timeout"}
    result = get_gateway("mpesa_daraja").verify_payment("ws_CO_9", {"passkey": "secret"})
    assert result.status == PaymentStatus.FAILED
    assert "passkey" not in fake_functions.calls[0][1]["credentials"]


def test_offline_gateways_hand_out_synthetic_references():
    response = get_gateway("bank_transfer").initialize_payment(_request(), {})
    assert response.success
    assert response.transaction_id.startswith("bank_")
    assert get_gateway("cash").verify_payment(response.transaction_id, {}).status == PaymentStatus.PENDING


def test_transient_function_errors_stay_transient(fake_functions):
    fake_functions.answers["pesapal-verify"] = functions.FunctionError("timed out", transient=True)
    with pytest.raises(TransientGatewayError):
        get_gateway("pesapal").verify_payment("trk-1", {})


class FakeResponse:
    def __init__(self, status_code, data=None, text=""):
        self.status_code = status_code
        self._data = data
        self.text = text

    def json(self):
        if self._data is None:
            raise ValueError("no json")
        return self._data


def test_invoke_posts_with_bearer_key(monkeypatch, settings):
    seen = {}

    def fake_post(url, headers=None, data=None, timeout=None):
        seen.update(url=url, headers=headers, data=data, timeout=timeout)
        return FakeResponse(200, {"success": True})

    monkeypatch.setattr(functions.requests, "post", fake_post)
    assert functions.invoke("mpesa-verify", {"a": 1}) == {"success": True}
    assert seen["url"] == "https://functions.test/v1/mpesa-verify"
    assert seen["headers"]["Authorization"] == "Bearer test-key"
    assert seen["data"] == '{"a": 1}'


@pytest.mark.parametrize(
    "response,transient",
    [
        (FakeResponse(503, {"error": "down"}), True),
        (FakeResponse(429, {}), True),
        (FakeResponse(400, {"error": "bad credentials"}), False),
        (FakeResponse(200, None, text="<html>"), False),
        (FakeResponse(200, ["not", "a", "dict"]), False),
    ],
)
def test_invoke_classifies_failures(monkeypatch, response, transient):
    monkeypatch.setattr(functions.requests, "post", lambda *a, **kw: response)
    with pytest.raises(functions.FunctionError) as exc:
        functions.invoke("pesapal-verify", {})
    assert exc.value.transient is transient


def test_invoke_timeout_is_transient(monkeypatch):
    def fake_post(*args, **kwargs):
        raise requests.Timeout("slow")

    monkeypatch.setattr(functions.requests, "post", fake_post)
    with pytest.raises(functions.FunctionError) as exc:
        functions.invoke("pesapal-verify", {})
    assert exc.value.transient


def test_invoke_requires_base_url(settings):
    settings.PAYMENT_FUNCTIONS_URL = ""
    with pytest.raises(functions.FunctionError):
        functions.function_url("pesapal-verify")
