from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from apps.common.models import BaseModel
from apps.payments.models import PaymentMethod, PaymentStatus


class Order(BaseModel):
    TYPE_CHOICES = [("now", "Order now"), ("later", "Pre-order")]
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("confirmed", "Confirmed"),
        ("preparing", "Preparing"),
        ("ready", "Ready"),
        ("completed", "Completed"),
        ("cancelled", "Cancelled"),
    ]
    ACTIVE_STATUSES = ("pending", "confirmed", "preparing", "ready")

    restaurant = models.ForeignKey("restaurants.Restaurant", on_delete=models.CASCADE, related_name="orders")
    code = models.CharField(max_length=12, unique=True)
    customer_token = models.CharField(max_length=64, unique=True)
    checkout_key = models.CharField(max_length=64, unique=True, blank=True, null=True)
    order_type = models.CharField(max_length=10, choices=TYPE_CHOICES, default="now")
    table_number = models.CharField(max_length=20, blank=True)
    customer_name = models.CharField(max_length=160, blank=True)
    customer_phone = models.CharField(max_length=40, blank=True)
    customer_email = models.EmailField(blank=True)
    scheduled_time = models.DateTimeField(blank=True, null=True)
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices, default=PaymentMethod.CASH)
    payment_status = models.CharField(
        max_length=24, choices=PaymentStatus.choices, default=PaymentStatus.PENDING, db_index=True
    )
    order_status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    amount_due = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    currency = models.CharField(max_length=3, default="KES")
    payment_reference = models.CharField(max_length=100, blank=True, db_index=True)
    paid_at = models.DateTimeField(blank=True, null=True)
    notes = models.TextField(blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["restaurant", "order_status", "created_at"], name="order_rest_status_idx"),
            models.Index(fields=["payment_method", "payment_status"], name="order_payment_idx"),
        ]
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Order {self.code}"

    @property
    def is_deposit(self) -> bool:
        return self.order_type == "later"

    @property
    def balance_due(self) -> Decimal:
        return self.total_amount - self.amount_due

    def save(self, *args, **kwargs):
        from apps.common.codes import generate_customer_token, generate_unique_code

        is_new = self._state.adding
        prev_status = None
        should_track_status = True
        source = getattr(self, "_status_change_source", None)
        note = getattr(self, "_status_change_note", "")
        if not is_new and self.pk:
            update_fields = kwargs.get("update_fields")
            should_track_status = update_fields is None or "order_status" in update_fields
            if should_track_status:
                prev_status = (
                    type(self).objects.filter(pk=self.pk).values_list("order_status", flat=True).first()
                )

        if not self.code:
            self.code = "#" + generate_unique_code(
                length=6, exists=lambda c: type(self).objects.filter(code=f"#{c}").exists()
            )
        if not self.customer_token:
            self.customer_token = generate_customer_token()
        super().save(*args, **kwargs)
        for attr in ("_status_change_source", "_status_change_note"):
            if hasattr(self, attr):
                delattr(self, attr)
        if is_new:
            OrderStatusChange.objects.create(
                order=self, status=self.order_status, source=source or "initial", note=note or ""
            )
        elif should_track_status and prev_status != self.order_status:
            OrderStatusChange.objects.create(
                order=self, status=self.order_status, source=source or "", note=note or ""
            )

    def set_status(self, status: str, *, source: str | None = None, note: str = "") -> None:
        self.order_status = status
        if source:
            self._status_change_source = source
        if note:
            self._status_change_note = note
        self.save(update_fields=["order_status", "updated_at"])

    def set_payment_status(self, status: str, *, reference: str | None = None) -> None:
        fields = ["payment_status", "updated_at"]
        self.payment_status = status
        if reference:
            self.payment_reference = reference
            fields.append("payment_reference")
        if status == PaymentStatus.COMPLETED and not self.paid_at:
            self.paid_at = timezone.now()
            fields.append("paid_at")
        self.save(update_fields=fields)


class OrderItem(BaseModel):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    menu_item = models.ForeignKey("menu.MenuItem", on_delete=models.SET_NULL, null=True, blank=True)
    name = models.CharField(max_length=160)
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    line_total = models.DecimalField(max_digits=10, decimal_places=2)
    customizations = models.CharField(max_length=255, blank=True)
    special_instructions = models.CharField(max_length=255, blank=True)

    class Meta:
        ordering = ["created_at"]


class OrderStatusChange(BaseModel):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="status_changes")
    status = models.CharField(max_length=20, choices=Order.STATUS_CHOICES)
    source = models.CharField(max_length=32, blank=True)
    note = models.CharField(max_length=200, blank=True)

    class Meta:
        indexes = [models.Index(fields=["order", "created_at"], name="ordering_status_idx")]
        ordering = ["created_at"]


class WaiterCall(BaseModel):
    STATUS_CHOICES = [("pending", "Pending"), ("acknowledged", "Acknowledged"), ("completed", "Completed")]

    restaurant = models.ForeignKey("restaurants.Restaurant", on_delete=models.CASCADE, related_name="waiter_calls")
    table_number = models.CharField(max_length=20)
    customer_name = models.CharField(max_length=160, blank=True)
    notes = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    acknowledged_at = models.DateTimeField(blank=True, null=True)
    completed_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        indexes = [models.Index(fields=["restaurant", "status", "created_at"], name="waiter_call_status_idx")]
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Table {self.table_number} ({self.status})"
