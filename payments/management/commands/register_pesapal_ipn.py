from django.core.management.base import BaseCommand, CommandError
from payments.conf import get_config
from payments.integrations.pesapal import register_ipn, PesapalError

class Command(BaseCommand):
    help = "Register the webhook URL with PesaPal and print the ipn_id to use as PESAPAL_IPN_ID"

    def add_arguments(self, parser):
        parser.add_argument("url", help="Public webhook URL, e.g. https://<domain>/webhook")
        parser.add_argument("--type", dest="ipn_type", choices=["POST", "GET"], default="POST")

    def handle(self, *args, **opts):
        try:
            data = register_ipn(get_config(), opts["url"], opts["ipn_type"])
        except PesapalError as e:
            raise CommandError(f"{e} ({e.status_code}): {e.details}")

        self.stdout.write(self.style.SUCCESS(f"Registered {data.get('url') or opts['url']}"))
        self.stdout.write(f"PESAPAL_IPN_ID={data['ipn_id']}")
