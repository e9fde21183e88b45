import django.core.validators
import django.db.models.deletion
import uuid
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("restaurants", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="MenuCategory",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=120)),
                ("description", models.TextField(blank=True)),
                ("display_order", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "restaurant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="menu_categories", to="restaurants.restaurant"
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "menu categories",
                "ordering": ["display_order", "created_at"],
                "indexes": [models.Index(fields=["restaurant", "display_order"], name="menu_cat_order_idx")],
            },
        ),
        migrations.CreateModel(
            name="MenuItem",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=160)),
                ("description", models.TextField(blank=True)),
                ("persuasion_description", models.CharField(blank=True, max_length=255)),
                ("image", models.ImageField(blank=True, max_length=255, null=True, upload_to="uploads/menu/items/")),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("is_available", models.BooleanField(default=True)),
                ("is_chef_special", models.BooleanField(default=False)),
                (
                    "popularity_badge",
                    models.CharField(
                        blank=True,
                        choices=[("", "None"), ("most-popular", "Most popular"), ("trending", "Trending"), ("new", "New")],
                        max_length=20,
                    ),
                ),
                ("preparation_time_min", models.PositiveIntegerField(blank=True, null=True)),
                ("display_order", models.PositiveIntegerField(default=0)),
                ("category", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="menu.menucategory")),
                (
                    "restaurant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="menu_items", to="restaurants.restaurant"
                    ),
                ),
            ],
            options={
                "ordering": ["display_order", "created_at"],
                "indexes": [models.Index(fields=["restaurant", "category", "is_available"], name="menu_item_avail_idx")],
            },
        ),
    ]
