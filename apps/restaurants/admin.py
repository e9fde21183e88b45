from django.contrib import admin

from .models import Restaurant, RestaurantPaymentSettings


class RestaurantPaymentSettingsInline(admin.StackedInline):
    model = RestaurantPaymentSettings
    extra = 0
    can_delete = False


@admin.register(Restaurant)
class RestaurantAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "owner", "ordering_enabled", "is_active", "created_at")
    list_filter = ("ordering_enabled", "is_active")
    search_fields = ("name", "slug", "owner__email", "phone_number")
    prepopulated_fields = {"slug": ("name",)}
    inlines = [RestaurantPaymentSettingsInline]
    list_select_related = ("owner",)
