import django.core.validators
import django.db.models.deletion
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("restaurants", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="RestaurantNotificationSettings",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "ringtone",
                    models.CharField(
                        choices=[
                            ("classic-bell", "Classic Bell"),
                            ("kitchen-timer", "Kitchen Timer"),
                            ("chime", "Chime"),
                            ("alert", "Alert"),
                            ("service-bell", "Service Bell"),
                        ],
                        default="classic-bell",
                        max_length=20,
                    ),
                ),
                (
                    "volume",
                    models.PositiveSmallIntegerField(
                        default=90,
                        validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)],
                    ),
                ),
                ("notifications_enabled", models.BooleanField(default=True)),
                ("last_notification_at", models.DateTimeField(blank=True, null=True)),
                (
                    "restaurant",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE, related_name="notification_settings", to="restaurants.restaurant"
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "restaurant notification settings",
            },
        ),
    ]
