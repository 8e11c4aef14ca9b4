import hashlib
import json
from decimal import Decimal
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

from django.core import mail
from django.db import DataError, OperationalError
from django.test import TestCase, override_settings
from django.urls import reverse

from .models import Order, Transaction
from .services import verify_callback

KEY = "gtKFFx"
SALT = "eCwWELxi"


def response_hash(p: dict) -> str:
    s = (
        f"{SALT}|{p['status']}||||||{p['udf5']}|{p['udf4']}|{p['udf3']}|{p['udf2']}|{p['udf1']}"
        f"|{p['email']}|{p['firstname']}|{p['productinfo']}|{p['amount']}|{p['txnid']}|{p['key']}"
    )
    return hashlib.sha512(s.encode("utf-8")).hexdigest()


def callback_payload(status="success", **overrides) -> dict:
    payload = {
        "mihpayid": "403993715521937567",
        "mode": "UPI",
        "status": status,
        "unmappedstatus": "captured" if status == "success" else "failed",
        "key": KEY,
        "txnid": "ORD1",
        "amount": "500.00",
        "productinfo": "Yakuza Raptor",
        "firstname": "Asha",
        "email": "asha@example.com",
        "phone": "9876543210",
        "udf1": "user-1",
        "udf2": "",
        "udf3": "",
        "udf4": "",
        "udf5": "",
        "error": "E000",
        "error_Message": "No Error",
        "net_amount_debit": "500",
        "addedon": "2026-10-19 11:32:07",
    }
    payload.update(overrides)
    payload["hash"] = response_hash(payload)
    return payload


class ReconcilerTestCase(TestCase):
    def setUp(self):
        self.order = Order.objects.create(
            id="ORD1",
            user_id="user-1",
            amount=Decimal("500.00"),
            product_info="Yakuza Raptor",
            customer_name="Asha Rao",
            customer_email="asha@example.com",
            customer_phone="9876543210",
        )


class VerifyCallbackTests(ReconcilerTestCase):
    def test_success_callback_completes_order(self):
        result = verify_callback(callback_payload())

        self.assertTrue(result.ok)
        self.assertTrue(result.applied)
        self.assertEqual(result.status, "completed")
        self.assertEqual(result.order_id, "ORD1")
        self.assertEqual(result.payment_id, "403993715521937567")

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "completed")
        self.assertEqual(self.order.payment_status, "completed")
        self.assertEqual(self.order.payment_details["mihpayid"], "403993715521937567")
        self.assertEqual(self.order.payment_details["method"], "payu")

        txn = Transaction.objects.get()
        self.assertEqual(txn.transaction_id, "ORD1")
        self.assertEqual(txn.status, "completed")
        self.assertEqual(txn.amount, Decimal("500.00"))
        self.assertEqual(txn.payment_id, "403993715521937567")
        self.assertEqual(txn.customer_email, "asha@example.com")
        self.assertEqual(txn.payu_response["unmappedstatus"], "captured")

    def test_tampered_amount_with_stale_hash_is_rejected(self):
        payload = callback_payload()
        payload["amount"] = "5.00"

        with self.assertLogs("payments.services", level="WARNING") as cm:
            result = verify_callback(payload)

        self.assertFalse(result.valid)
        self.assertEqual(result.error, "verification_failed")
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "pending")
        self.assertEqual(self.order.payment_status, "pending")
        self.assertIsNone(self.order.payment_details)
        self.assertFalse(Transaction.objects.exists())
        # the digest we expected must never reach the logs
        self.assertNotIn(response_hash({**payload}), "".join(cm.output))

    def test_failure_callback_marks_failed_and_records_transaction(self):
        result = verify_callback(callback_payload(status="failure"))

        self.assertTrue(result.ok)
        self.assertEqual(result.status, "failed")
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "failed")
        self.assertEqual(self.order.payment_status, "failed")
        txn = Transaction.objects.get()
        self.assertEqual(txn.status, "failed")
        self.assertEqual(txn.transaction_id, "ORD1")

    def test_replayed_callback_does_not_mutate_terminal_order(self):
        payload = callback_payload()
        verify_callback(payload)
        self.order.refresh_from_db()
        details = self.order.payment_details

        with self.assertLogs("payments.services", level="WARNING") as cm:
            replay = verify_callback(payload)

        self.assertIn("Replayed", cm.output[0])
        self.assertTrue(replay.valid)
        self.assertFalse(replay.applied)
        self.assertEqual(replay.status, "completed")
        self.assertEqual(Transaction.objects.count(), 1)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_details, details)

    def test_failure_after_success_is_ignored(self):
        verify_callback(callback_payload())
        result = verify_callback(callback_payload(status="failure"))

        self.assertTrue(result.valid)
        self.assertFalse(result.applied)
        self.assertEqual(result.status, "completed")
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "completed")
        self.assertEqual(Transaction.objects.count(), 1)

    def test_unknown_order(self):
        result = verify_callback(callback_payload(txnid="NOPE"))
        self.assertTrue(result.valid)
        self.assertEqual(result.error, "unknown_order")
        self.assertFalse(Transaction.objects.exists())

    def test_missing_hash_is_rejected(self):
        payload = callback_payload()
        del payload["hash"]
        result = verify_callback(payload)
        self.assertEqual(result.error, "verification_failed")

    def test_foreign_merchant_key_is_rejected(self):
        result = verify_callback(callback_payload(key="otherKey"))
        self.assertEqual(result.error, "verification_failed")
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "pending")

    def test_store_unavailable_is_reported_without_verdict(self):
        with patch.object(Order.objects, "filter", side_effect=OperationalError("database is locked")):
            with self.assertLogs("payments.services", level="ERROR"):
                result = verify_callback(callback_payload())

        self.assertTrue(result.valid)
        self.assertEqual(result.error, "store_unavailable")
        self.assertIsNone(result.status)
        self.assertFalse(result.ok)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "pending")

    def test_rejected_write_is_a_data_error_not_a_store_outage(self):
        with patch.object(Transaction.objects, "create", side_effect=DataError("value too long")):
            with self.assertLogs("payments.services", level="ERROR"):
                result = verify_callback(callback_payload())

        self.assertTrue(result.valid)
        self.assertEqual(result.error, "data_error")
        self.assertFalse(result.ok)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "pending")
        self.assertFalse(Transaction.objects.exists())

    def test_transaction_identity_comes_from_stored_order(self):
        result = verify_callback(callback_payload(udf1="u" * 100, mihpayid="9" * 80))

        self.assertTrue(result.applied)
        txn = Transaction.objects.get()
        self.assertEqual(txn.user_id, "user-1")
        self.assertEqual(txn.customer_name, "Asha Rao")
        self.assertEqual(len(txn.payment_id), Transaction._meta.get_field("payment_id").max_length)
        self.assertEqual(txn.payu_response["udf1"], "u" * 100)

    @override_settings(PAYU_SALT="")
    def test_missing_configuration_is_not_a_verdict(self):
        result = verify_callback(callback_payload())
        self.assertEqual(result.error, "configuration_error")
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "pending")

    def test_transactions_are_append_only(self):
        verify_callback(callback_payload())
        txn = Transaction.objects.get()
        txn.status = "failed"
        with self.assertRaises(ValueError):
            txn.save()


class ConfirmationEmailTests(ReconcilerTestCase):
    def test_completed_order_sends_receipt_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            verify_callback(callback_payload())

        self.assertEqual(len(mail.outbox), 2)
        self.assertEqual(mail.outbox[0].to, ["asha@example.com"])
        self.assertIn("ORD1", mail.outbox[0].subject)
        self.assertEqual(mail.outbox[1].to, ["admin@yakuzaev.com"])

    def test_failed_order_sends_nothing(self):
        with self.captureOnCommitCallbacks(execute=True):
            verify_callback(callback_payload(status="failure"))
        self.assertEqual(mail.outbox, [])


class CallbackViewTests(ReconcilerTestCase):
    def test_valid_callback_redirects_to_success_with_params(self):
        resp = self.client.post(reverse("payments:payu_callback"), callback_payload())

        self.assertEqual(resp.status_code, 302)
        location = urlparse(resp["Location"])
        self.assertEqual(location.path, reverse("payments:success"))
        query = parse_qs(location.query)
        self.assertEqual(query["txnid"], ["ORD1"])
        self.assertEqual(query["mihpayid"], ["403993715521937567"])
        self.assertNotIn("udf2", query)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "completed")

    def test_invalid_callback_redirects_to_failure(self):
        payload = callback_payload()
        payload["status"] = "success"
        payload["amount"] = "1.00"
        resp = self.client.post(reverse("payments:payu_callback"), payload)

        self.assertEqual(resp.status_code, 302)
        self.assertEqual(urlparse(resp["Location"]).path, reverse("payments:failure"))
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "pending")

    def test_failed_payment_redirects_to_failure(self):
        resp = self.client.post(reverse("payments:payu_callback"), callback_payload(status="failure"))
        self.assertEqual(urlparse(resp["Location"]).path, reverse("payments:failure"))

    def test_store_unavailable_returns_503(self):
        with patch.object(Order.objects, "filter", side_effect=OperationalError("timeout")):
            resp = self.client.post(reverse("payments:payu_callback"), callback_payload())
        self.assertEqual(resp.status_code, 503)

    def test_data_error_redirects_to_failure_instead_of_retry(self):
        with patch.object(Transaction.objects, "create", side_effect=DataError("value too long")):
            resp = self.client.post(reverse("payments:payu_callback"), callback_payload())
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(urlparse(resp["Location"]).path, reverse("payments:failure"))

    def test_get_not_allowed(self):
        resp = self.client.get(reverse("payments:payu_callback"))
        self.assertEqual(resp.status_code, 405)

    def test_success_page_checks_stored_order(self):
        resp = self.client.get(reverse("payments:success"), {"txnid": "ORD1", "status": "success"})
        self.assertTemplateUsed(resp, "payments/failure.html")

        verify_callback(callback_payload())
        resp = self.client.get(reverse("payments:success"), {"txnid": "ORD1"})
        self.assertTemplateUsed(resp, "payments/success.html")
        self.assertContains(resp, "403993715521937567")


class VerifyPaymentViewTests(ReconcilerTestCase):
    def _post(self, body):
        return self.client.post(
            reverse("payments:verify"), data=json.dumps(body), content_type="application/json"
        )

    def test_valid_response_data(self):
        resp = self._post({"responseData": callback_payload()})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertTrue(data["valid"])
        self.assertEqual(data["status"], "completed")
        self.assertEqual(data["order_id"], "ORD1")

    def test_tampered_response_data(self):
        payload = callback_payload()
        payload["txnid"] = "ORD2"
        resp = self._post({"responseData": payload})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "verification_failed")
        self.assertNotIn("hash", resp.json())

    def test_bad_body(self):
        self.assertEqual(self._post({"nope": 1}).status_code, 400)


class InitiatePaymentViewTests(ReconcilerTestCase):
    def _post(self, body):
        return self.client.post(
            reverse("payments:initiate"), data=json.dumps(body), content_type="application/json"
        )

    def test_signs_stored_order(self):
        resp = self._post({"order_id": "ORD1", "udf3": "blue"})

        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["payuUrl"], "https://test.payu.in/_payment")
        params = data["paymentParams"]
        self.assertEqual(params["amount"], "500.00")
        self.assertEqual(params["firstname"], "Asha")
        self.assertEqual(params["udf1"], "user-1")
        self.assertEqual(params["udf3"], "blue")
        self.assertEqual(params["surl"], "http://testserver" + reverse("payments:payu_callback"))
        self.assertEqual(len(params["hash"]), 128)

    def test_caller_urls_are_echoed(self):
        resp = self._post({"order_id": "ORD1", "surl": "https://a.example/ok", "furl": "https://a.example/no"})
        params = resp.json()["paymentParams"]
        self.assertEqual(params["surl"], "https://a.example/ok")
        self.assertEqual(params["furl"], "https://a.example/no")

    def test_unknown_order(self):
        self.assertEqual(self._post({"order_id": "NOPE"}).status_code, 404)

    def test_terminal_order_is_not_repaid(self):
        verify_callback(callback_payload())
        resp = self._post({"order_id": "ORD1"})
        self.assertEqual(resp.status_code, 409)

    def test_missing_order_id(self):
        self.assertEqual(self._post({"surl": "x"}).status_code, 400)

    def test_checkout_renders_auto_submit_form(self):
        resp = self.client.get(reverse("payments:checkout", kwargs={"order_id": "ORD1"}))
        self.assertEqual(resp.status_code, 200)
        self.assertTemplateUsed(resp, "payments/checkout.html")
        self.assertContains(resp, 'action="https://test.payu.in/_payment"')
        self.assertContains(resp, 'name="hash"')

    def test_oversized_udf_is_rejected(self):
        resp = self._post({"order_id": "ORD1", "udf1": "u" * 256})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "validation_error")

    def test_long_udf1_survives_initiate_and_callback(self):
        resp = self._post({"order_id": "ORD1", "udf1": "u" * 100})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["paymentParams"]["udf1"], "u" * 100)

        result = verify_callback(callback_payload(udf1="u" * 100))

        self.assertTrue(result.ok)
        self.assertEqual(result.status, "completed")
        self.assertEqual(Transaction.objects.get().user_id, "user-1")
