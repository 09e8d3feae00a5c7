import time
from django.core.management.base import BaseCommand
from django.utils import timezone
from orders.models import Order
from orders.services import update_payment_status
from payments.conf import get_config
from payments.integrations.pesapal import get_transaction_status, PesapalError
from payments.models import PaymentTransaction
from payments.services import record_gateway_status

class Command(BaseCommand):
    help = "Poll PesaPal transaction status for linked transactions whose order is still pending"

    def add_arguments(self, parser):
        parser.add_argument("--max", type=int, default=50)
        parser.add_argument("--sleep", type=float, default=0.5)
        parser.add_argument("--older-than-minutes", type=int, default=1)

    def handle(self, *args, **opts):
        config = get_config()
        cutoff = timezone.now() - timezone.timedelta(minutes=opts["older_than_minutes"])
        qs = (
            PaymentTransaction.objects.select_related("order")
            .filter(order__payment_status=Order.PENDING, updated_at__lt=cutoff)
            .order_by("updated_at")[:opts["max"]]
        )

        if not qs.exists():
            self.stdout.write(self.style.SUCCESS("No pending transactions to reconcile."))
            return

        updated = 0
        for txn in qs:
            try:
                data = get_transaction_status(config, txn.tracking_id)
            except PesapalError as e:
                self.stdout.write(self.style.WARNING(f"{txn.tracking_id}: {e} ({e.status_code})"))
                continue

            status = record_gateway_status(txn, data)
            if status:
                update_payment_status(txn.order_id, status)
                updated += 1
                self.stdout.write(self.style.SUCCESS(f"Updated {txn.order.reference} -> {status}"))
            else:
                self.stdout.write(f"{txn.tracking_id}: status={txn.gateway_status or 'UNKNOWN'}")
            if opts["sleep"]:
                time.sleep(opts["sleep"])

        self.stdout.write(self.style.SUCCESS(f"Reconciled {updated} order(s)."))
