from django.db import models

class PaymentTransaction(models.Model):
    tracking_id = models.CharField(max_length=64, unique=True, db_index=True)  # PesaPal OrderTrackingId
    merchant_reference = models.CharField(max_length=64, blank=True, default="", db_index=True)
    notification_type = models.CharField(max_length=32, blank=True, default="")

    # null until the submitting flow links the attempt to a local order
    order = models.ForeignKey(
        "orders.Order", on_delete=models.SET_NULL, null=True, blank=True, related_name="transactions"
    )

    gateway_status = models.CharField(max_length=32, blank=True, default="")
    callback_data = models.JSONField(blank=True, null=True)  # last raw IPN payload

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]

    @property
    def is_linked(self) -> bool:
        return self.order_id is not None

    def __str__(self):
        return f"{self.tracking_id} ({self.merchant_reference or 'no ref'})"
