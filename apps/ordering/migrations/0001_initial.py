import django.core.validators
import django.db.models.deletion
import uuid
from decimal import Decimal
from django.db import migrations, models


STATUS_CHOICES = [
    ("pending", "Pending"),
    ("confirmed", "Confirmed"),
    ("preparing", "Preparing"),
    ("ready", "Ready"),
    ("completed", "Completed"),
    ("cancelled", "Cancelled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("restaurants", "0001_initial"),
        ("menu", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("code", models.CharField(max_length=12, unique=True)),
                ("customer_token", models.CharField(max_length=64, unique=True)),
                ("checkout_key", models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ("order_type", models.CharField(choices=[("now", "Order now"), ("later", "Pre-order")], default="now", max_length=10)),
                ("table_number", models.CharField(blank=True, max_length=20)),
                ("customer_name", models.CharField(blank=True, max_length=160)),
                ("customer_phone", models.CharField(blank=True, max_length=40)),
                ("customer_email", models.EmailField(blank=True, max_length=254)),
                ("scheduled_time", models.DateTimeField(blank=True, null=True)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[
                            ("pesapal", "Pesapal (cards & mobile money)"),
                            ("mpesa_daraja", "M-Pesa (STK push)"),
                            ("mpesa_manual", "M-Pesa till / paybill"),
                            ("bank_transfer", "Bank transfer"),
                            ("cash", "Cash"),
                        ],
                        default="cash",
                        max_length=20,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("awaiting_verification", "Awaiting verification"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=24,
                    ),
                ),
                ("order_status", models.CharField(choices=STATUS_CHOICES, default="pending", max_length=20)),
                (
                    "total_amount",
                    models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal("0"))]),
                ),
                (
                    "amount_due",
                    models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal("0"))]),
                ),
                ("currency", models.CharField(default="KES", max_length=3)),
                ("payment_reference", models.CharField(blank=True, db_index=True, max_length=100)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True)),
                ("restaurant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="orders", to="restaurants.restaurant")),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["restaurant", "order_status", "created_at"], name="order_rest_status_idx"),
                    models.Index(fields=["payment_method", "payment_status"], name="order_payment_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=160)),
                ("quantity", models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("line_total", models.DecimalField(decimal_places=2, max_digits=10)),
                ("customizations", models.CharField(blank=True, max_length=255)),
                ("special_instructions", models.CharField(blank=True, max_length=255)),
                ("menu_item", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to="menu.menuitem")),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="ordering.order")),
            ],
            options={
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="OrderStatusChange",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("status", models.CharField(choices=STATUS_CHOICES, max_length=20)),
                ("source", models.CharField(blank=True, max_length=32)),
                ("note", models.CharField(blank=True, max_length=200)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="status_changes", to="ordering.order")),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [models.Index(fields=["order", "created_at"], name="ordering_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="WaiterCall",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("table_number", models.CharField(max_length=20)),
                ("customer_name", models.CharField(blank=True, max_length=160)),
                ("notes", models.CharField(blank=True, max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("acknowledged", "Acknowledged"), ("completed", "Completed")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("acknowledged_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "restaurant",
                    models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="waiter_calls", to="restaurants.restaurant"),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["restaurant", "status", "created_at"], name="waiter_call_status_idx")],
            },
        ),
    ]
