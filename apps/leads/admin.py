from django.contrib import admin

from .models import CustomerLead


@admin.register(CustomerLead)
class CustomerLeadAdmin(admin.ModelAdmin):
    list_display = ("name", "phone", "email", "restaurant", "marketing_consent", "converted_to_order", "created_at")
    list_filter = ("marketing_consent", "converted_to_order", "dining_frequency")
    search_fields = ("name", "phone", "email", "restaurant__name")
    readonly_fields = ("order_context", "first_order")
