from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from apps.common.models import BaseModel


class RestaurantNotificationSettings(BaseModel):
    RINGTONE_CHOICES = [
        ("classic-bell", "Classic Bell"),
        ("kitchen-timer", "Kitchen Timer"),
        ("chime", "Chime"),
        ("alert", "Alert"),
        ("service-bell", "Service Bell"),
    ]

    restaurant = models.OneToOneField(
        "restaurants.Restaurant", on_delete=models.CASCADE, related_name="notification_settings"
    )
    ringtone = models.CharField(max_length=20, choices=RINGTONE_CHOICES, default="classic-bell")
    volume = models.PositiveSmallIntegerField(default=90, validators=[MinValueValidator(0), MaxValueValidator(100)])
    notifications_enabled = models.BooleanField(default=True)
    last_notification_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        verbose_name_plural = "restaurant notification settings"

    def __str__(self) -> str:
        return f"NotificationSettings({self.restaurant})"

    @property
    def cue(self) -> dict:
        return {"ringtone": self.ringtone, "volume": self.volume}
