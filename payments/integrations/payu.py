import logging
import re
from decimal import Decimal

import requests
from requests import RequestException

from ..conf import PayuConfig
from ..exceptions import GatewayError, PaymentValidationError
from ..hashing import UDF_FIELDS, api_command_hash, payment_request_hash

logger = logging.getLogger(__name__)

COMMON_HEADERS = {"Accept": "application/json"}

# Plain decimal only: no sign, exponent, whitespace or bare trailing point.
AMOUNT_RE = re.compile(r"\d+(\.\d+)?")
UDF_MAX_LENGTH = 255


def validate_amount(amount) -> str:
    """Return ``amount`` as the exact string PayU will sign and echo back.

    No rounding or reformatting: the response hash is checked against the
    same characters.
    """
    text = "" if amount is None else str(amount)
    if not AMOUNT_RE.fullmatch(text):
        raise PaymentValidationError("Invalid amount value")
    if not Decimal(text) > 0:
        raise PaymentValidationError("Amount must be greater than zero")
    return text


def build_payment_request(config: PayuConfig, *, txnid, amount, productinfo, firstname, email, phone,
                          surl, furl, udf=None) -> dict:
    """Assemble the signed form fields for PayU's ``_payment`` endpoint.

    Pure construction: nothing is persisted and no network call is made.
    """
    amount = validate_amount(amount)
    required = {
        "txnid": txnid,
        "productinfo": productinfo,
        "firstname": firstname,
        "email": email,
        "phone": phone,
        "surl": surl,
        "furl": furl,
    }
    missing = [k for k, v in required.items() if not v]
    if missing:
        raise PaymentValidationError(f"Missing fields: {', '.join(missing)}")

    udf = {k: "" if (udf or {}).get(k) is None else str(udf[k]) for k in UDF_FIELDS}
    too_long = [k for k, v in udf.items() if len(v) > UDF_MAX_LENGTH]
    if too_long:
        raise PaymentValidationError(f"Fields longer than {UDF_MAX_LENGTH} characters: {', '.join(too_long)}")
    params = {
        "key": config.merchant_key,
        "txnid": str(txnid),
        "amount": amount,
        "productinfo": productinfo,
        "firstname": firstname,
        "email": email,
        "phone": phone,
        "surl": surl,
        "furl": furl,
        **udf,
    }
    params["hash"] = payment_request_hash(
        key=config.merchant_key,
        txnid=params["txnid"],
        amount=amount,
        productinfo=productinfo,
        firstname=firstname,
        email=email,
        salt=config.salt,
        udf=udf,
    )
    params["service_provider"] = config.service_provider
    return params


def verify_payment(config: PayuConfig, txnid: str) -> dict:
    """Ask PayU for the current state of ``txnid``.

    Returns the ``transaction_details`` entry for the txnid, e.g.
    ``{"mihpayid": ..., "status": "success", "amt": "500.00", ...}``.
    """
    command = "verify_payment"
    form = {
        "key": config.merchant_key,
        "command": command,
        "var1": txnid,
        "hash": api_command_hash(key=config.merchant_key, command=command, var1=txnid, salt=config.salt),
    }
    try:
        resp = requests.post(config.service_url, data=form, headers=COMMON_HEADERS, timeout=config.request_timeout)
    except RequestException as e:
        raise GatewayError(f"Gateway request failed: {e}")
    if resp.status_code != 200:
        raise GatewayError(f"verify_payment failed: HTTP {resp.status_code}. Response: {resp.text[:800]}")
    try:
        data = resp.json()
    except ValueError:
        raise GatewayError(f"verify_payment returned non-JSON body: {resp.text[:800]}")

    details = (data.get("transaction_details") or {}).get(txnid)
    if not details:
        raise GatewayError(f"verify_payment: {data.get('msg') or 'no details'} for {txnid}")
    return details
