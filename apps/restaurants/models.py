from django.conf import settings
from django.core.validators import RegexValidator
from django.db import models
from django.utils.text import slugify

from apps.common.models import BaseModel


hex_color = RegexValidator(r"^#[0-9a-fA-F]{6}$", "Use a hex colour like #1A2B3C.")


def default_payment_methods() -> dict:
    return {"cash": {"enabled": True}}


class Restaurant(BaseModel):
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="restaurants")
    name = models.CharField(max_length=120)
    slug = models.SlugField(max_length=120, unique=True)
    tagline = models.CharField(max_length=160, blank=True)
    description = models.TextField(blank=True)
    logo = models.ImageField(upload_to="uploads/restaurants/logos/", max_length=255, blank=True, null=True)
    cover_image = models.ImageField(upload_to="uploads/restaurants/covers/", max_length=255, blank=True, null=True)
    primary_color = models.CharField(max_length=7, blank=True, validators=[hex_color])
    secondary_color = models.CharField(max_length=7, blank=True, validators=[hex_color])
    phone_number = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    address = models.CharField(max_length=255, blank=True)
    # E.164 number that receives new-order and waiter-call SMS
    notification_phone = models.CharField(max_length=20, blank=True, null=True)
    ordering_enabled = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        indexes = [models.Index(fields=["owner", "is_active"], name="restaurant_owner_active_idx")]

    def __str__(self) -> str:
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)[:120]
        super().save(*args, **kwargs)

    @property
    def is_accepting_orders(self) -> bool:
        return self.is_active and self.ordering_enabled


class RestaurantPaymentSettings(BaseModel):
    """Per-restaurant payment configuration.

    `payment_methods` is keyed by payment-method id, each entry holding an
    `enabled` flag plus the credential fields its gateway declares, e.g.::

        {"mpesa_manual": {"enabled": true, "till_number": "123456"},
         "cash": {"enabled": true}}
    """

    restaurant = models.OneToOneField(Restaurant, on_delete=models.CASCADE, related_name="payment_settings")
    payment_methods = models.JSONField(default=default_payment_methods, blank=True)

    def __str__(self) -> str:
        return f"PaymentSettings({self.restaurant})"

    def config_for(self, method: str) -> dict:
        raw = (self.payment_methods or {}).get(str(method)) or {}
        return dict(raw) if isinstance(raw, dict) else {}

    def enabled_methods(self) -> list[str]:
        from apps.payments.gateways import GATEWAYS

        return [m.value for m, gw in GATEWAYS.items() if gw.is_configured(self.config_for(m.value))]

    def update_method(self, method: str, values: dict) -> None:
        methods = dict(self.payment_methods or {})
        methods[str(method)] = values
        self.payment_methods = methods
        self.save(update_fields=["payment_methods", "updated_at"])


def payment_settings_for(restaurant: Restaurant) -> RestaurantPaymentSettings:
    ps, _ = RestaurantPaymentSettings.objects.get_or_create(restaurant=restaurant)
    return ps
