from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from apps.common.models import BaseModel


class MenuCategory(BaseModel):
    restaurant = models.ForeignKey("restaurants.Restaurant", on_delete=models.CASCADE, related_name="menu_categories")
    name = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    display_order = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        indexes = [models.Index(fields=["restaurant", "display_order"], name="menu_cat_order_idx")]
        ordering = ["display_order", "created_at"]
        verbose_name_plural = "menu categories"

    def __str__(self) -> str:
        return self.name


class MenuItem(BaseModel):
    POPULARITY_CHOICES = [
        ("", "None"),
        ("most-popular", "Most popular"),
        ("trending", "Trending"),
        ("new", "New"),
    ]

    restaurant = models.ForeignKey("restaurants.Restaurant", on_delete=models.CASCADE, related_name="menu_items")
    category = models.ForeignKey(MenuCategory, on_delete=models.CASCADE, related_name="items")
    name = models.CharField(max_length=160)
    description = models.TextField(blank=True)
    persuasion_description = models.CharField(max_length=255, blank=True)
    image = models.ImageField(upload_to="uploads/menu/items/", max_length=255, blank=True, null=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0.00"))])
    is_available = models.BooleanField(default=True)
    is_chef_special = models.BooleanField(default=False)
    popularity_badge = models.CharField(max_length=20, choices=POPULARITY_CHOICES, blank=True)
    preparation_time_min = models.PositiveIntegerField(blank=True, null=True)
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        indexes = [models.Index(fields=["restaurant", "category", "is_available"], name="menu_item_avail_idx")]
        ordering = ["display_order", "created_at"]

    def __str__(self) -> str:
        return self.name
