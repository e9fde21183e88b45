"""Payment gateway adapters and the registry that maps each payment method to one.

Every `PaymentMethod` member has exactly one adapter in `GATEWAYS`; the
module refuses to import otherwise, so dispatch code can index the table
without a fallback branch.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from django.core.exceptions import ImproperlyConfigured

from apps.common.codes import synthetic_reference
from apps.common.phone import mask_phone, to_msisdn

from . import functions
from .models import PaymentMethod, PaymentStatus

log = logging.getLogger(__name__)


class GatewayError(Exception):
    """The gateway refused the request or answered something unusable."""


class TransientGatewayError(GatewayError):
    """Timeouts, 5xx and rate limiting; worth retrying later."""


class UnknownPaymentMethod(ValueError):
    pass


@dataclass(frozen=True)
class CredentialField:
    name: str
    label: str
    type: str = "text"
    required: bool = False
    choices: tuple = ()


@dataclass
class PaymentRequest:
    amount: Decimal
    currency: str
    order_id: str
    description: str
    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""
    callback_url: str = ""
    cancel_url: str = ""


@dataclass
class PaymentResponse:
    success: bool
    transaction_id: str = ""
    payment_url: str = ""
    message: str = ""
    extra: dict = field(default_factory=dict)


@dataclass
class PaymentStatusResult:
    transaction_id: str
    status: str = PaymentStatus.PENDING
    amount: Decimal | None = None
    currency: str = ""
    gateway_reference: str = ""

    @property
    def is_final(self) -> bool:
        return self.status != PaymentStatus.PENDING


def _invoke(name: str, body: dict) -> dict:
    try:
        return functions.invoke(name, body)
    except functions.FunctionError as e:
        if e.transient:
            raise TransientGatewayError(str(e)) from e
        raise GatewayError(str(e)) from e


def _now_millis() -> int:
    return int(time.time() * 1000)


class PaymentGateway:
    method: PaymentMethod
    name: str = ""
    requires_credentials = False

    def get_credential_fields(self) -> list[CredentialField]:
        return []

    def is_configured(self, config: dict) -> bool:
        """Enabled, with every required credential filled in."""
        if not (config or {}).get("enabled"):
            return False
        for f in self.get_credential_fields():
            if f.required and not str(config.get(f.name) or "").strip():
                return False
        return True

    def initialize_payment(self, request: PaymentRequest, config: dict) -> PaymentResponse:
        raise NotImplementedError

    def verify_payment(self, transaction_id: str, config: dict) -> PaymentStatusResult:
        raise NotImplementedError


ENVIRONMENT_CHOICES = (("sandbox", "Sandbox"), ("production", "Production"))

PESAPAL_STATUS_MAP = {
    "completed": PaymentStatus.COMPLETED,
    "failed": PaymentStatus.FAILED,
    "invalid": PaymentStatus.FAILED,
    "reversed": PaymentStatus.CANCELLED,
}


def map_pesapal_status(description: str | None) -> str:
    return PESAPAL_STATUS_MAP.get((description or "").strip().lower(), PaymentStatus.PENDING)


class PesapalGateway(PaymentGateway):
    method = PaymentMethod.PESAPAL
    name = "Pesapal"
    requires_credentials = True

    def get_credential_fields(self):
        return [
            CredentialField("consumer_key", "Consumer key", required=True),
            CredentialField("consumer_secret", "Consumer secret", type="password", required=True),
            CredentialField("environment", "Environment", type="select", choices=ENVIRONMENT_CHOICES),
            CredentialField("ipn_id", "IPN id"),
        ]

    def _credentials(self, config: dict) -> dict:
        return {
            "consumer_key": config.get("consumer_key", ""),
            "consumer_secret": config.get("consumer_secret", ""),
            "environment": config.get("environment") or "sandbox",
            "ipn_id": config.get("ipn_id") or None,
        }

    def initialize_payment(self, request, config):
        body = {
            "amount": float(request.amount),
            "currency": request.currency,
            "orderId": request.order_id,
            "description": request.description[:100],
            "customerInfo": {
                "name": request.customer_name,
                "email": request.customer_email,
                "phone": request.customer_phone,
            },
            "callbackUrl": request.callback_url,
            "cancelUrl": request.cancel_url,
            "credentials": self._credentials(config),
        }
        data = _invoke("pesapal-initialize", body)
        tracking_id = data.get("order_tracking_id") or data.get("tracking_id") or ""
        redirect_url = data.get("redirect_url") or ""
        if not data.get("success", True) or not redirect_url or not tracking_id:
            raise GatewayError(data.get("error") or "Pesapal did not return a payment page")
        log.info("[payments] pesapal initialized order=%s tracking=%s", request.order_id, tracking_id)
        return PaymentResponse(success=True, transaction_id=tracking_id, payment_url=redirect_url)

    def verify_payment(self, transaction_id, config):
        body = {"order_tracking_id": transaction_id, **self._credentials(config)}
        data = _invoke("pesapal-verify", body)
        payload = data.get("data") if isinstance(data.get("data"), dict) else data
        description = payload.get("payment_status_description") or payload.get("status")
        amount = payload.get("amount")
        return PaymentStatusResult(
            transaction_id=transaction_id,
            status=map_pesapal_status(description),
            amount=Decimal(str(amount)) if amount is not None else None,
            currency=payload.get("currency") or "",
            gateway_reference=payload.get("confirmation_code") or "",
        )


MPESA_STATUS_MAP = {
    "completed": PaymentStatus.COMPLETED,
    "failed": PaymentStatus.FAILED,
    "timeout": PaymentStatus.FAILED,
    "cancelled": PaymentStatus.CANCELLED,
}


class MpesaDarajaGateway(PaymentGateway):
    method = PaymentMethod.MPESA_DARAJA
    name = "M-Pesa Express"
    requires_credentials = True

    def get_credential_fields(self):
        return [
            CredentialField("business_short_code", "Business short code", required=True),
            CredentialField("consumer_key", "Consumer key", required=True),
            CredentialField("consumer_secret", "Consumer secret", type="password", required=True),
            CredentialField("passkey", "Passkey", type="password", required=True),
            CredentialField("environment", "Environment", type="select", choices=ENVIRONMENT_CHOICES),
        ]

    def _credentials(self, config: dict) -> dict:
        return {
            "business_short_code": config.get("business_short_code", ""),
            "consumer_key": config.get("consumer_key", ""),
            "consumer_secret": config.get("consumer_secret", ""),
            "passkey": config.get("passkey", ""),
            "environment": config.get("environment") or "sandbox",
        }

    def initialize_payment(self, request, config):
        if not request.customer_phone:
            raise GatewayError("M-Pesa needs the customer's phone number")
        # Daraja only accepts whole shillings
        amount = int(Decimal(request.amount).to_integral_value(rounding=ROUND_HALF_UP))
        body = {
            "orderId": request.order_id,
            "amount": amount,
            "phone_number": to_msisdn(request.customer_phone),
            "description": request.description[:13],
            "credentials": self._credentials(config),
        }
        log.info(
            "[payments] mpesa stk push order=%s amount=%s phone=%s",
            request.order_id,
            amount,
            mask_phone(request.customer_phone),
        )
        data = _invoke("mpesa-initialize", body)
        checkout_id = data.get("checkout_request_id")
        if not data.get("success") or not checkout_id:
            raise GatewayError(data.get("error") or "M-Pesa did not accept the STK push")
        return PaymentResponse(
            success=True,
            transaction_id=checkout_id,
            message=data.get("customer_message") or "Check your phone to complete the payment.",
            extra={"merchant_request_id": data.get("merchant_request_id") or ""},
        )

    def verify_payment(self, transaction_id, config):
        creds = self._credentials(config)
        creds.pop("passkey", None)
        data = _invoke("mpesa-verify", {"checkout_request_id": transaction_id, "credentials": creds})
        if not data.get("success", True):
            raise GatewayError(data.get("error") or "M-Pesa verification failed")
        amount = data.get("amount")
        return PaymentStatusResult(
            transaction_id=transaction_id,
            status=MPESA_STATUS_MAP.get(str(data.get("status") or "").lower(), PaymentStatus.PENDING),
            amount=Decimal(str(amount)) if amount is not None else None,
            gateway_reference=data.get("mpesa_receipt_number") or "",
        )


class _OfflineGateway(PaymentGateway):
    """Money moves outside the system; the owner confirms it by hand."""

    prefix = "manual"
    message = ""

    def initialize_payment(self, request, config):
        return PaymentResponse(
            success=True,
            transaction_id=synthetic_reference(self.prefix, _now_millis()),
            message=self.message,
        )

    def verify_payment(self, transaction_id, config):
        return PaymentStatusResult(transaction_id=transaction_id, status=PaymentStatus.PENDING)


class MpesaManualGateway(_OfflineGateway):
    method = PaymentMethod.MPESA_MANUAL
    name = "M-Pesa till / paybill"
    prefix = "manual"
    message = "Manual payment instructions will be shown to customer"

    def get_credential_fields(self):
        return [
            CredentialField("till_number", "Till number (optional)"),
            CredentialField("paybill_number", "Paybill number (optional)"),
            CredentialField("account_number", "Account number (for paybill)"),
        ]

    def is_configured(self, config):
        if not super().is_configured(config):
            return False
        return bool(str(config.get("till_number") or "").strip() or str(config.get("paybill_number") or "").strip())


class BankTransferGateway(_OfflineGateway):
    method = PaymentMethod.BANK_TRANSFER
    name = "Bank transfer"
    prefix = "bank"
    message = "Bank transfer instructions will be shown to customer"

    def get_credential_fields(self):
        return [
            CredentialField("bank_name", "Bank name", required=True),
            CredentialField("account_number", "Account number", required=True),
            CredentialField("account_name", "Account name", required=True),
        ]


class CashGateway(_OfflineGateway):
    method = PaymentMethod.CASH
    name = "Cash"
    prefix = "cash"
    message = "Cash payment on delivery/pickup"


def build_registry(adapters: Iterable[PaymentGateway]) -> dict[PaymentMethod, PaymentGateway]:
    registry = {gw.method: gw for gw in adapters}
    missing = [m.value for m in PaymentMethod if m not in registry]
    if missing:
        raise ImproperlyConfigured(f"No payment gateway registered for: {', '.join(missing)}")
    return registry


GATEWAYS = build_registry(
    [
        PesapalGateway(),
        MpesaDarajaGateway(),
        MpesaManualGateway(),
        BankTransferGateway(),
        CashGateway(),
    ]
)


def get_gateway(method) -> PaymentGateway:
    try:
        return GATEWAYS[PaymentMethod(method)]
    except ValueError:
        raise UnknownPaymentMethod(f"Unknown payment method: {method!r}")
