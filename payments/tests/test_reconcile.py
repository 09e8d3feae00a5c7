from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from orders.models import Order
from payments.integrations.pesapal import GatewayStatusFailure
from payments.models import PaymentTransaction


class ReconcilePesapalTransactionsTests(TestCase):
    def setUp(self):
        self.order = Order.objects.create(reference="M1", amount=Decimal("5000"))
        self.txn = PaymentTransaction.objects.create(tracking_id="T1", merchant_reference="M1", order=self.order)
        # make the row old enough to be picked up
        PaymentTransaction.objects.filter(pk=self.txn.pk).update(updated_at=timezone.now() - timedelta(minutes=10))

    def _run(self):
        out = StringIO()
        call_command("reconcile_pesapal_transactions", "--sleep", "0", stdout=out)
        return out.getvalue()

    def test_completed_order(self):
        with patch("payments.management.commands.reconcile_pesapal_transactions.get_transaction_status",
                   return_value={"status_code": 1, "payment_status_description": "Completed"}):
            output = self._run()

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.COMPLETED)
        self.assertIn("Updated M1 -> completed", output)
        self.assertEqual(PaymentTransaction.objects.get().gateway_status, "Completed")

    def test_gateway_error_reported(self):
        with patch("payments.management.commands.reconcile_pesapal_transactions.get_transaction_status",
                   side_effect=GatewayStatusFailure(503, "down")):
            output = self._run()

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PENDING)
        self.assertIn("T1", output)

    def test_skips_settled_and_unlinked(self):
        Order.objects.filter(pk=self.order.pk).update(payment_status=Order.COMPLETED)
        PaymentTransaction.objects.create(tracking_id="T2", merchant_reference="M2")

        with patch("payments.management.commands.reconcile_pesapal_transactions.get_transaction_status") as status:
            output = self._run()

        status.assert_not_called()
        self.assertIn("No pending transactions", output)

    def test_non_object_status_body_does_not_abort_run(self):
        other = Order.objects.create(reference="M2", amount=Decimal("3000"))
        PaymentTransaction.objects.create(tracking_id="T2", merchant_reference="M2", order=other)
        PaymentTransaction.objects.filter(tracking_id="T2").update(updated_at=timezone.now() - timedelta(minutes=5))

        responses = {"T1": None, "T2": {"status_code": 1, "payment_status_description": "Completed"}}
        with patch("payments.management.commands.reconcile_pesapal_transactions.get_transaction_status",
                   side_effect=lambda config, tracking_id: responses[tracking_id]):
            output = self._run()

        self.order.refresh_from_db()
        other.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PENDING)
        self.assertEqual(other.payment_status, Order.COMPLETED)
        self.assertIn("T1: status=UNKNOWN", output)
        self.assertIn("Reconciled 1 order(s).", output)
