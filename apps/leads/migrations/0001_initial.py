import django.db.models.deletion
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("restaurants", "0001_initial"),
        ("ordering", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CustomerLead",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=160)),
                ("phone", models.CharField(max_length=40)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("dietary_restrictions", models.JSONField(blank=True, default=list)),
                ("favorite_cuisines", models.JSONField(blank=True, default=list)),
                (
                    "dining_frequency",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("", "Not said"),
                            ("first_time", "First time"),
                            ("occasionally", "Occasionally"),
                            ("monthly", "Monthly"),
                            ("weekly", "Weekly"),
                            ("daily", "Daily"),
                        ],
                        max_length=20,
                    ),
                ),
                ("marketing_consent", models.BooleanField(default=False)),
                ("lead_source", models.CharField(default="menu", max_length=40)),
                ("notes", models.TextField(blank=True)),
                ("order_context", models.JSONField(blank=True, default=dict)),
                ("converted_to_order", models.BooleanField(default=False)),
                (
                    "first_order",
                    models.ForeignKey(
                        blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="leads", to="ordering.order"
                    ),
                ),
                ("restaurant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="leads", to="restaurants.restaurant")),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["restaurant", "created_at"], name="lead_rest_created_idx")],
            },
        ),
    ]
