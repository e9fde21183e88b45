from django.contrib import admin

from .models import MpesaCallback


@admin.register(MpesaCallback)
class MpesaCallbackAdmin(admin.ModelAdmin):
    list_display = ("checkout_request_id", "result_code", "success", "amount", "mpesa_receipt_number", "created_at")
    list_filter = ("success",)
    search_fields = ("checkout_request_id", "merchant_request_id", "mpesa_receipt_number")
    readonly_fields = ("callback_data",)
