import time
from django.core.management.base import BaseCommand
from django.utils import timezone
from payments.conf import PayuConfig
from payments.exceptions import PayuError
from payments.integrations.payu import verify_payment
from payments.models import Order, PaymentStatus
from payments.services import apply_gateway_status


class Command(BaseCommand):
    help = "Poll PayU verify_payment for stale pending orders and settle them"

    def add_arguments(self, parser):
        parser.add_argument("--max", type=int, default=50)
        parser.add_argument("--sleep", type=float, default=0.5)
        parser.add_argument("--older-than-minutes", type=int, default=15)

    def handle(self, *args, **opts):
        config = PayuConfig.from_settings()
        cutoff = timezone.now() - timezone.timedelta(minutes=opts["older_than_minutes"])
        qs = Order.objects.filter(status=PaymentStatus.PENDING, created_at__lt=cutoff).order_by("created_at")[:opts["max"]]

        orders = list(qs)
        if not orders:
            self.stdout.write(self.style.SUCCESS("No pending orders to reconcile."))
            return

        settled = 0
        for o in orders:
            try:
                details = verify_payment(config, o.id)
                status, applied = apply_gateway_status(o, details)
            except PayuError as e:
                self.stdout.write(self.style.WARNING(f"{o.id}: {e}"))
            else:
                if applied:
                    settled += 1
                    self.stdout.write(self.style.SUCCESS(f"Updated {o.id} -> {status}"))
                elif status and status != PaymentStatus.PENDING:
                    # Settled elsewhere (callback) between the query and this row.
                    self.stdout.write(f"{o.id}: already {status}, left unchanged")
                else:
                    self.stdout.write(f"{o.id}: still pending at PayU")
            if opts["sleep"]:
                time.sleep(opts["sleep"])

        self.stdout.write(self.style.SUCCESS(f"Checked {len(orders)}, settled {settled} orders."))
