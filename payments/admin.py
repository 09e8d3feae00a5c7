from django.contrib import admin
from .models import PaymentTransaction

@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    list_display = ("tracking_id", "merchant_reference", "order", "gateway_status", "notification_type", "updated_at")
    search_fields = ("tracking_id", "merchant_reference", "order__reference")
    list_filter = ("gateway_status", "notification_type", "updated_at")
    readonly_fields = ("created_at", "updated_at", "callback_data")
