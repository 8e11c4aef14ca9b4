import hashlib
from unittest.mock import patch

from django.test import SimpleTestCase, override_settings

from . import hashing
from .checks import check_payu_credentials
from .conf import PAYMENT_URLS, PayuConfig
from .exceptions import ConfigurationError, PaymentValidationError
from .integrations.payu import build_payment_request
from .services import Customer, initiate_payment

KEY = "gtKFFx"
SALT = "eCwWELxi"


def sha512(s: str) -> str:
    return hashlib.sha512(s.encode("utf-8")).hexdigest()


class PaymentRequestHashTests(SimpleTestCase):
    """Outbound hash: key|txnid|amount|productinfo|firstname|email|udf1..udf5||||||salt"""

    fields = dict(
        key=KEY, txnid="ORD1", amount="500.00", productinfo="Yakuza Raptor",
        firstname="Asha", email="asha@example.com", salt=SALT,
    )

    def test_matches_documented_layout(self):
        digest = hashing.payment_request_hash(**self.fields, udf={"udf1": "user-1", "udf3": "blue"})
        expected = sha512(
            f"{KEY}|ORD1|500.00|Yakuza Raptor|Asha|asha@example.com|user-1||blue||||||||{SALT}"
        )
        self.assertEqual(digest, expected)

    def test_deterministic_lowercase_hex(self):
        first = hashing.payment_request_hash(**self.fields)
        second = hashing.payment_request_hash(**self.fields)
        self.assertEqual(first, second)
        self.assertEqual(len(first), 128)
        self.assertEqual(first, first.lower())

    def test_missing_udfs_default_to_empty(self):
        self.assertEqual(
            hashing.payment_request_hash(**self.fields),
            hashing.payment_request_hash(**self.fields, udf={"udf1": None, "udf2": ""}),
        )

    def test_amount_string_is_not_normalised(self):
        a = hashing.payment_request_hash(**{**self.fields, "amount": "500"})
        b = hashing.payment_request_hash(**{**self.fields, "amount": "500.00"})
        self.assertNotEqual(a, b)

    def test_required_fields_are_not_defaulted(self):
        for name in ("key", "txnid", "amount", "salt"):
            with self.subTest(field=name):
                with self.assertRaises(PaymentValidationError):
                    hashing.payment_request_hash(**{**self.fields, name: ""})


class PaymentResponseHashTests(SimpleTestCase):
    """Inbound hash: salt|status||||||udf5..udf1|email|firstname|productinfo|amount|txnid|key"""

    def setUp(self):
        self.payload = {
            "key": KEY,
            "txnid": "ORD1",
            "amount": "500.00",
            "productinfo": "Yakuza Raptor",
            "firstname": "Asha",
            "email": "asha@example.com",
            "udf1": "user-1",
            "udf2": "",
            "udf3": "blue",
            "udf4": "",
            "udf5": "",
            "status": "success",
        }
        self.good_hash = sha512(
            f"{SALT}|success||||||||blue||user-1|asha@example.com|Asha|Yakuza Raptor|500.00|ORD1|{KEY}"
        )

    def test_accepts_documented_layout(self):
        self.assertTrue(hashing.verify_response_hash(self.payload, SALT, self.good_hash))

    def test_request_hash_is_not_a_valid_response_hash(self):
        request_hash = hashing.payment_request_hash(
            key=KEY, txnid="ORD1", amount="500.00", productinfo="Yakuza Raptor",
            firstname="Asha", email="asha@example.com", salt=SALT,
            udf={"udf1": "user-1", "udf3": "blue"},
        )
        self.assertNotEqual(request_hash, self.good_hash)
        self.assertFalse(hashing.verify_response_hash(self.payload, SALT, request_hash))

    def test_rejects_other_field_orders(self):
        # udfs in forward order instead of reversed
        forward = sha512(
            f"{SALT}|success||||||user-1||blue|||asha@example.com|Asha|Yakuza Raptor|500.00|ORD1|{KEY}"
        )
        # one placeholder short
        short = sha512(
            f"{SALT}|success|||||||blue||user-1|asha@example.com|Asha|Yakuza Raptor|500.00|ORD1|{KEY}"
        )
        self.assertFalse(hashing.verify_response_hash(self.payload, SALT, forward))
        self.assertFalse(hashing.verify_response_hash(self.payload, SALT, short))

    def test_tampered_fields_are_rejected(self):
        for name, value in (("amount", "5.00"), ("status", "failure"), ("txnid", "ORD2"), ("udf1", "user-2")):
            with self.subTest(field=name):
                tampered = {**self.payload, name: value}
                self.assertFalse(hashing.verify_response_hash(tampered, SALT, self.good_hash))

    def test_comparison_is_case_sensitive(self):
        self.assertFalse(hashing.verify_response_hash(self.payload, SALT, self.good_hash.upper()))

    def test_wrong_salt_is_rejected(self):
        self.assertFalse(hashing.verify_response_hash(self.payload, "other-salt", self.good_hash))

    def test_non_ascii_hash_does_not_raise(self):
        self.assertFalse(hashing.verify_response_hash(self.payload, SALT, "ħash"))


class ApiCommandHashTests(SimpleTestCase):
    def test_layout(self):
        self.assertEqual(
            hashing.api_command_hash(key=KEY, command="verify_payment", var1="ORD1", salt=SALT),
            sha512(f"{KEY}|verify_payment|ORD1|{SALT}"),
        )


class PayuConfigTests(SimpleTestCase):
    def test_empty_credentials_are_rejected(self):
        with self.assertRaises(ConfigurationError):
            PayuConfig(merchant_key=KEY, salt="")
        with self.assertRaises(ConfigurationError):
            PayuConfig(merchant_key="", salt=SALT)

    @override_settings(PAYU_MERCHANT_KEY="k", PAYU_SALT="s", PAYU_MODE="test", PAYU_PAYMENT_URL="")
    def test_from_settings_uses_mode_urls(self):
        config = PayuConfig.from_settings()
        self.assertEqual(config.payment_url, PAYMENT_URLS["test"])
        self.assertEqual(config.merchant_key, "k")

    @override_settings(PAYU_SALT="")
    def test_from_settings_without_salt_fails(self):
        with self.assertRaises(ConfigurationError):
            PayuConfig.from_settings()

    @override_settings(PAYU_MODE="sandbox")
    def test_unknown_mode_fails(self):
        with self.assertRaises(ConfigurationError):
            PayuConfig.from_settings()

    @override_settings(PAYU_MERCHANT_KEY="")
    def test_system_check_reports_missing_credentials(self):
        errors = check_payu_credentials(None)
        self.assertEqual([e.id for e in errors], ["payments.E001"])

    def test_system_check_passes_with_credentials(self):
        self.assertEqual(check_payu_credentials(None), [])


class BuildPaymentRequestTests(SimpleTestCase):
    def setUp(self):
        self.config = PayuConfig(merchant_key=KEY, salt=SALT, payment_url=PAYMENT_URLS["test"])
        self.kwargs = dict(
            txnid="ORD1", amount="500.00", productinfo="Yakuza Raptor", firstname="Asha",
            email="asha@example.com", phone="9876543210",
            surl="https://shop.example.com/ok?x=1", furl="https://shop.example.com/fail",
        )

    def test_params_carry_all_provider_fields(self):
        params = build_payment_request(self.config, **self.kwargs, udf={"udf1": "user-1"})
        self.assertEqual(
            set(params),
            {"key", "txnid", "amount", "productinfo", "firstname", "email", "phone", "surl", "furl",
             "udf1", "udf2", "udf3", "udf4", "udf5", "hash", "service_provider"},
        )
        self.assertEqual(params["surl"], "https://shop.example.com/ok?x=1")
        self.assertEqual(params["furl"], "https://shop.example.com/fail")
        self.assertEqual(params["service_provider"], "payu_paisa")
        self.assertEqual(params["udf1"], "user-1")
        self.assertEqual(params["udf5"], "")
        self.assertEqual(
            params["hash"],
            sha512(f"{KEY}|ORD1|500.00|Yakuza Raptor|Asha|asha@example.com|user-1||||||||||{SALT}"),
        )

    def test_amount_string_is_echoed_exactly(self):
        params = build_payment_request(self.config, **{**self.kwargs, "amount": "500"})
        self.assertEqual(params["amount"], "500")

    def test_non_positive_amounts_rejected_before_signing(self):
        for amount in ("0", "0.00", "-1", "abc", "", None, "NaN", "Infinity",
                       "1e5", "1E5", "+5", " 500", "500 ", "5.", ".5", "1_000"):
            with self.subTest(amount=amount):
                with patch("payments.integrations.payu.payment_request_hash") as signer:
                    with self.assertRaises(PaymentValidationError):
                        build_payment_request(self.config, **{**self.kwargs, "amount": amount})
                signer.assert_not_called()

    def test_plain_amounts_are_signed_unchanged(self):
        for amount in ("500", "500.00", "0.5"):
            with self.subTest(amount=amount):
                params = build_payment_request(self.config, **{**self.kwargs, "amount": amount})
                self.assertEqual(params["amount"], amount)

    def test_oversized_udf_rejected_before_signing(self):
        with patch("payments.integrations.payu.payment_request_hash") as signer:
            with self.assertRaises(PaymentValidationError):
                build_payment_request(self.config, **{**self.kwargs, "udf": {"udf2": "x" * 256}})
        signer.assert_not_called()
        params = build_payment_request(self.config, **{**self.kwargs, "udf": {"udf2": "x" * 255}})
        self.assertEqual(params["udf2"], "x" * 255)

    def test_missing_customer_fields_rejected(self):
        for name in ("firstname", "email", "phone", "productinfo"):
            with self.subTest(field=name):
                with self.assertRaises(PaymentValidationError):
                    build_payment_request(self.config, **{**self.kwargs, name: ""})


class InitiatePaymentTests(SimpleTestCase):
    customer = Customer(first_name="Asha", email="asha@example.com", phone="9876543210")

    def _initiate(self, amount="500.00", **kwargs):
        return initiate_payment(
            "ORD1", amount, "Yakuza Raptor", self.customer,
            "https://shop.example.com/ok", "https://shop.example.com/fail", **kwargs
        )

    def test_returns_url_and_params(self):
        config = PayuConfig(merchant_key=KEY, salt=SALT, payment_url=PAYMENT_URLS["test"])
        result = self._initiate(config=config)
        self.assertTrue(result.ok)
        self.assertEqual(result.payu_url, PAYMENT_URLS["test"])
        self.assertEqual(result.params["txnid"], "ORD1")
        self.assertEqual(result.as_dict()["paymentParams"]["hash"], result.params["hash"])

    def test_zero_amount_is_a_validation_error(self):
        result = self._initiate(amount="0")
        self.assertFalse(result.ok)
        self.assertEqual(result.error, "validation_error")
        self.assertEqual(result.params, {})

    @override_settings(PAYU_SALT="")
    def test_missing_salt_is_a_configuration_error(self):
        with self.assertLogs("payments.services", level="ERROR"):
            result = self._initiate()
        self.assertFalse(result.ok)
        self.assertEqual(result.error, "configuration_error")
        self.assertNotIn("PAYU_SALT", result.message)
