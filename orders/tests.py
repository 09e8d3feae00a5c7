from decimal import Decimal

from django.test import TestCase

from .models import Order
from .services import update_payment_status


class UpdatePaymentStatusTests(TestCase):
    def test_sets_status(self):
        order = Order.objects.create(reference="M1", amount=Decimal("5000"))

        self.assertEqual(update_payment_status(order.pk, Order.COMPLETED), 1)
        order.refresh_from_db()

        self.assertEqual(order.payment_status, Order.COMPLETED)
        self.assertTrue(order.is_paid)

    def test_missing_order_is_noop(self):
        self.assertEqual(update_payment_status(12345, Order.FAILED), 0)

    def test_unknown_status_rejected(self):
        order = Order.objects.create(reference="M1", amount=Decimal("5000"))
        with self.assertRaises(ValueError):
            update_payment_status(order.pk, "paid")
