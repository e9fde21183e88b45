import apps.restaurants.models
import django.core.validators
import django.db.models.deletion
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Restaurant",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=120)),
                ("slug", models.SlugField(max_length=120, unique=True)),
                ("tagline", models.CharField(blank=True, max_length=160)),
                ("description", models.TextField(blank=True)),
                ("logo", models.ImageField(blank=True, max_length=255, null=True, upload_to="uploads/restaurants/logos/")),
                ("cover_image", models.ImageField(blank=True, max_length=255, null=True, upload_to="uploads/restaurants/covers/")),
                (
                    "primary_color",
                    models.CharField(
                        blank=True,
                        max_length=7,
                        validators=[django.core.validators.RegexValidator("^#[0-9a-fA-F]{6}$", "Use a hex colour like #1A2B3C.")],
                    ),
                ),
                (
                    "secondary_color",
                    models.CharField(
                        blank=True,
                        max_length=7,
                        validators=[django.core.validators.RegexValidator("^#[0-9a-fA-F]{6}$", "Use a hex colour like #1A2B3C.")],
                    ),
                ),
                ("phone_number", models.CharField(blank=True, max_length=20)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("address", models.CharField(blank=True, max_length=255)),
                ("notification_phone", models.CharField(blank=True, max_length=20, null=True)),
                ("ordering_enabled", models.BooleanField(default=True)),
                ("is_active", models.BooleanField(default=True)),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="restaurants", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["owner", "is_active"], name="restaurant_owner_active_idx")],
            },
        ),
        migrations.CreateModel(
            name="RestaurantPaymentSettings",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("payment_methods", models.JSONField(blank=True, default=apps.restaurants.models.default_payment_methods)),
                (
                    "restaurant",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE, related_name="payment_settings", to="restaurants.restaurant"
                    ),
                ),
            ],
        ),
    ]
