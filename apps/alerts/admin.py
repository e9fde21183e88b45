from django.contrib import admin

from .models import RestaurantNotificationSettings


@admin.register(RestaurantNotificationSettings)
class RestaurantNotificationSettingsAdmin(admin.ModelAdmin):
    list_display = ("restaurant", "ringtone", "volume", "notifications_enabled", "last_notification_at")
    list_filter = ("notifications_enabled", "ringtone")
    search_fields = ("restaurant__name",)
