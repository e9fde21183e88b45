from django.contrib import admin

from .models import Order, OrderItem, OrderStatusChange, WaiterCall


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ("menu_item", "name", "quantity", "unit_price", "line_total", "customizations", "special_instructions")
    readonly_fields = ("unit_price", "line_total")


class OrderStatusChangeInline(admin.TabularInline):
    model = OrderStatusChange
    extra = 0
    fields = ("status", "source", "note", "created_at")
    readonly_fields = ("status", "source", "note", "created_at")
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "restaurant",
        "order_type",
        "order_status",
        "payment_method",
        "payment_status",
        "total_amount",
        "amount_due",
        "created_at",
    )
    list_filter = ("order_status", "payment_status", "payment_method", "order_type")
    search_fields = ("code", "customer_name", "customer_phone", "customer_email", "payment_reference", "restaurant__name")
    date_hierarchy = "created_at"
    ordering = ("-created_at",)
    readonly_fields = ("customer_token", "checkout_key", "payment_reference", "paid_at")
    inlines = [OrderItemInline, OrderStatusChangeInline]
    list_select_related = ("restaurant",)


@admin.register(WaiterCall)
class WaiterCallAdmin(admin.ModelAdmin):
    list_display = ("table_number", "restaurant", "status", "customer_name", "created_at", "acknowledged_at")
    list_filter = ("status",)
    search_fields = ("table_number", "customer_name", "restaurant__name")
    list_select_related = ("restaurant",)
