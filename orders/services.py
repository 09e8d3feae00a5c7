from django.utils import timezone

from .models import Order


def update_payment_status(order_id, status: str) -> int:
    """Set ``payment_status`` on one order; returns the number of rows touched.

    Uses a queryset update so repeated calls with the same status are no-ops
    apart from ``updated_at``.
    """
    if status not in dict(Order.PAYMENT_STATUS_CHOICES):
        raise ValueError(f"Unknown payment status: {status!r}")
    return Order.objects.filter(pk=order_id).update(payment_status=status, updated_at=timezone.now())
