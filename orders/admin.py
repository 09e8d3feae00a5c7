from django.contrib import admin
from .models import Order

@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("reference", "payment_status", "amount", "currency", "customer_email", "created_at", "updated_at")
    search_fields = ("reference", "customer_email", "customer_phone")
    list_filter = ("payment_status", "currency", "created_at")
    readonly_fields = ("created_at", "updated_at")
