from django.db import models

from apps.common.models import BaseModel


class CustomerLead(BaseModel):
    FREQUENCY_CHOICES = [
        ("", "Not said"),
        ("first_time", "First time"),
        ("occasionally", "Occasionally"),
        ("monthly", "Monthly"),
        ("weekly", "Weekly"),
        ("daily", "Daily"),
    ]

    restaurant = models.ForeignKey("restaurants.Restaurant", on_delete=models.CASCADE, related_name="leads")
    name = models.CharField(max_length=160)
    phone = models.CharField(max_length=40)
    email = models.EmailField(blank=True)
    dietary_restrictions = models.JSONField(default=list, blank=True)
    favorite_cuisines = models.JSONField(default=list, blank=True)
    dining_frequency = models.CharField(max_length=20, choices=FREQUENCY_CHOICES, blank=True)
    marketing_consent = models.BooleanField(default=False)
    lead_source = models.CharField(max_length=40, default="menu")
    notes = models.TextField(blank=True)
    order_context = models.JSONField(default=dict, blank=True)
    first_order = models.ForeignKey(
        "ordering.Order", on_delete=models.SET_NULL, null=True, blank=True, related_name="leads"
    )
    converted_to_order = models.BooleanField(default=False)

    class Meta:
        indexes = [models.Index(fields=["restaurant", "created_at"], name="lead_rest_created_idx")]
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.name} ({self.restaurant})"
