from django.contrib import admin

from .models import Notification, NotificationAttempt, Template


class NotificationAttemptInline(admin.TabularInline):
    model = NotificationAttempt
    extra = 0
    readonly_fields = ("started_at", "finished_at", "result", "error_message", "provider_response_json")
    can_delete = False


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("template_code", "type", "to", "restaurant", "status", "provider", "attempts", "created_at")
    list_filter = ("status", "type", "provider", "restaurant")
    list_select_related = ("restaurant",)
    search_fields = ("to", "template_code", "idempotency_key", "provider_message_id")
    inlines = [NotificationAttemptInline]


@admin.register(Template)
class TemplateAdmin(admin.ModelAdmin):
    list_display = ("code", "channel", "subject", "updated_at")
    list_filter = ("channel",)
    search_fields = ("code", "subject")
