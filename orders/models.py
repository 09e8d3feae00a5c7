from django.db import models


class Order(models.Model):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REVERSED = "reversed"
    PAYMENT_STATUS_CHOICES = [
        (PENDING, "Pending"),
        (COMPLETED, "Completed"),
        (FAILED, "Failed"),
        (REVERSED, "Reversed"),
    ]

    reference = models.CharField(max_length=50, unique=True, db_index=True)  # merchant reference sent to PesaPal
    customer_name = models.CharField(max_length=128, blank=True, default="")
    customer_email = models.EmailField(blank=True, default="")
    customer_phone = models.CharField(max_length=20, blank=True, default="")

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="UGX")
    description = models.CharField(max_length=100, blank=True, default="")

    payment_status = models.CharField(
        max_length=16, choices=PAYMENT_STATUS_CHOICES, default=PENDING, db_index=True
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    @property
    def is_paid(self) -> bool:
        return self.payment_status == self.COMPLETED

    def __str__(self):
        return f"{self.reference} ({self.payment_status})"
