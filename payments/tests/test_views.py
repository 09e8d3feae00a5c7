import json
from decimal import Decimal
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse

from orders.models import Order
from payments.integrations.pesapal import AuthenticationFailure, GatewayStatusFailure, GatewaySubmissionFailure
from payments.models import PaymentTransaction
from payments.services import start_payment

GATEWAY_RESPONSE = {
    "order_tracking_id": "T1",
    "merchant_reference": "M1",
    "redirect_url": "https://cybqa.pesapal.com/pesapaliframe/PesapalIframe3/Index?OrderTrackingId=T1",
    "error": None,
    "status": "200",
}

ORDER_FIELDS = {
    "id": "M1",
    "currency": "UGX",
    "amount": 5000,
    "description": "Chocolate cake",
    "billing_address": {
        "email_address": "tina@example.com",
        "phone_number": "0700000000",
        "country_code": "UG",
        "first_name": "Tina",
        "last_name": "Baker",
    },
}


class PesapalTokenViewTests(TestCase):
    def test_returns_token(self):
        with patch("payments.views.request_access_token", return_value="abc123"):
            resp = self.client.post(reverse("payments:pesapal_token"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"token": "abc123"})

    def test_failure_forwards_upstream_status(self):
        with patch("payments.views.request_access_token",
                   side_effect=AuthenticationFailure(401, {"message": "invalid key"})):
            resp = self.client.post(reverse("payments:pesapal_token"))
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"error": "Failed to authenticate with PesaPal", "details": {"message": "invalid key"}})

    def test_get_not_allowed(self):
        self.assertEqual(self.client.get(reverse("payments:pesapal_token")).status_code, 405)


class PesapalOrderViewTests(TestCase):
    def setUp(self):
        self.order = Order.objects.create(reference="M1", amount=Decimal("5000"))

    def _post(self, body, query=""):
        return self.client.post(
            reverse("payments:pesapal_order") + query,
            data=json.dumps(body),
            content_type="application/json",
        )

    def test_passes_gateway_response_through(self):
        with patch("payments.services.submit_order", return_value=GATEWAY_RESPONSE) as submit:
            resp = self._post(ORDER_FIELDS)

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), GATEWAY_RESPONSE)
        self.assertEqual(submit.call_args.args[1], ORDER_FIELDS)
        self.assertFalse(PaymentTransaction.objects.exists())

    def test_links_transaction_when_order_given(self):
        with patch("payments.services.submit_order", return_value=GATEWAY_RESPONSE):
            resp = self._post(ORDER_FIELDS, f"?order_id={self.order.pk}")

        self.assertEqual(resp.status_code, 200)
        txn = PaymentTransaction.objects.get(tracking_id="T1")
        self.assertEqual(txn.order, self.order)
        self.assertEqual(txn.merchant_reference, "M1")

    def test_unknown_order_rejected_before_gateway_call(self):
        with patch("payments.services.submit_order") as submit:
            resp = self._post(ORDER_FIELDS, "?order_id=9999")
            self.assertEqual(self._post(ORDER_FIELDS, "?order_id=abc").status_code, 400)

        self.assertEqual(resp.status_code, 400)
        submit.assert_not_called()

    def test_gateway_401_forwarded(self):
        with patch("payments.services.submit_order",
                   side_effect=GatewaySubmissionFailure(401, {"error": {"code": "unauthorized"}})):
            resp = self._post(ORDER_FIELDS)

        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["error"], "Failed to process payment")
        self.assertEqual(resp.json()["details"], {"error": {"code": "unauthorized"}})

    def test_timeout_is_500(self):
        with patch("payments.services.submit_order",
                   side_effect=GatewaySubmissionFailure(None, "Order submission timed out after 30s", timed_out=True)):
            resp = self._post(ORDER_FIELDS)

        self.assertEqual(resp.status_code, 500)
        self.assertIn("timed out", resp.json()["details"])

    def test_auth_failure_reported_as_payment_failure(self):
        with patch("payments.services.submit_order", side_effect=AuthenticationFailure(None, "connection refused")):
            resp = self._post(ORDER_FIELDS)

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "Failed to process payment", "details": "connection refused"})

    def test_invalid_json(self):
        resp = self.client.post(reverse("payments:pesapal_order"), data="{", content_type="application/json")
        self.assertEqual(resp.status_code, 400)


class StartPaymentTests(TestCase):
    def setUp(self):
        self.order = Order.objects.create(reference="M1", amount=Decimal("5000"))

    def test_missing_tracking_id_skips_link(self):
        with patch("payments.services.submit_order", return_value={"error": {"code": "payment_details_not_found"}}):
            result = start_payment(ORDER_FIELDS, order=self.order)

        self.assertEqual(result, {"error": {"code": "payment_details_not_found"}})
        self.assertFalse(PaymentTransaction.objects.exists())

    def test_link_failure_does_not_fail_submission(self):
        with patch("payments.services.submit_order", return_value=GATEWAY_RESPONSE), \
            patch("payments.services.link_transaction", side_effect=DatabaseError("locked")):
            with self.assertLogs("payments.services", level="ERROR"):
                result = start_payment(ORDER_FIELDS, order=self.order)

        self.assertEqual(result, GATEWAY_RESPONSE)

    def test_relinking_keeps_existing_ipn_data(self):
        PaymentTransaction.objects.create(tracking_id="T1", merchant_reference="M1", callback_data={"OrderTrackingId": "T1"})

        with patch("payments.services.submit_order", return_value=GATEWAY_RESPONSE):
            start_payment(ORDER_FIELDS, order=self.order)

        txn = PaymentTransaction.objects.get()
        self.assertEqual(txn.order, self.order)
        self.assertEqual(txn.callback_data, {"OrderTrackingId": "T1"})


class PesapalStatusViewTests(TestCase):
    def test_returns_gateway_status(self):
        body = {"status_code": 1, "payment_status_description": "Completed", "merchant_reference": "M1"}
        with patch("payments.views.get_transaction_status", return_value=body) as status:
            resp = self.client.get(reverse("payments:pesapal_status", args=["T1"]))

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), body)
        self.assertEqual(status.call_args.args[1], "T1")

    def test_failure(self):
        with patch("payments.views.get_transaction_status", side_effect=GatewayStatusFailure(404, {"error": "not found"})):
            resp = self.client.get(reverse("payments:pesapal_status", args=["T1"]))

        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"], "Failed to fetch transaction status")
