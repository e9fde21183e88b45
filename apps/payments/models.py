from django.db import models

from apps.common.models import BaseModel


class PaymentMethod(models.TextChoices):
    PESAPAL = "pesapal", "Pesapal (cards & mobile money)"
    MPESA_DARAJA = "mpesa_daraja", "M-Pesa (STK push)"
    MPESA_MANUAL = "mpesa_manual", "M-Pesa till / paybill"
    BANK_TRANSFER = "bank_transfer", "Bank transfer"
    CASH = "cash", "Cash"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    AWAITING_VERIFICATION = "awaiting_verification", "Awaiting verification"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"


# Methods that confirm themselves through a gateway callback
ONLINE_METHODS = frozenset({PaymentMethod.PESAPAL, PaymentMethod.MPESA_DARAJA})
# Methods the owner confirms by hand after checking their till or account
MANUAL_METHODS = frozenset({PaymentMethod.MPESA_MANUAL, PaymentMethod.BANK_TRANSFER})


class MpesaCallback(BaseModel):
    checkout_request_id = models.CharField(max_length=100, db_index=True)
    merchant_request_id = models.CharField(max_length=100, blank=True)
    result_code = models.IntegerField(blank=True, null=True)
    result_desc = models.CharField(max_length=255, blank=True)
    success = models.BooleanField(default=False)
    amount = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    mpesa_receipt_number = models.CharField(max_length=40, blank=True)
    phone_number = models.CharField(max_length=20, blank=True)
    transaction_date = models.CharField(max_length=20, blank=True)
    callback_data = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.checkout_request_id} ({self.result_code})"
