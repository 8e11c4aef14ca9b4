"""PayU request/response hashes.

PayU authenticates both directions with a SHA-512 digest over a
``|``-joined list of fields with the merchant salt appended (request) or
prepended (response). Field order and the run of empty placeholders are
fixed by PayU; the response layout is the request layout reversed.

Amounts are hashed exactly as given. ``"500"`` and ``"500.00"`` produce
different digests, so the same string must travel to PayU and back.
"""

import hashlib
import hmac

from .exceptions import PaymentValidationError

UDF_FIELDS = ("udf1", "udf2", "udf3", "udf4", "udf5")
# udf6..udf10 are reserved by PayU and always sent empty.
RESERVED_PLACEHOLDERS = ("",) * 5


def _required(**fields) -> None:
    missing = [name for name, value in fields.items() if value is None or str(value) == ""]
    if missing:
        raise PaymentValidationError(f"Missing hash fields: {', '.join(missing)}")


def _udfs(udf: dict | None) -> list:
    udf = udf or {}
    return ["" if udf.get(k) is None else str(udf[k]) for k in UDF_FIELDS]


def _sha512(parts) -> str:
    msg = "|".join(str(p) for p in parts).encode("utf-8")
    return hashlib.sha512(msg).hexdigest()


def payment_request_hash(*, key, txnid, amount, productinfo, firstname, email, salt, udf=None) -> str:
    """Hash for an outgoing ``_payment`` request.

    ``sha512(key|txnid|amount|productinfo|firstname|email|udf1..udf5||||||salt)``
    """
    _required(key=key, txnid=txnid, amount=amount, salt=salt)
    parts = [key, txnid, amount, productinfo or "", firstname or "", email or ""]
    parts += _udfs(udf)
    parts += RESERVED_PLACEHOLDERS
    parts.append(salt)
    return _sha512(parts)


def payment_response_hash(*, salt, status, udf=None, email="", firstname="", productinfo="",
                          amount, txnid, key) -> str:
    """Hash PayU sends back with the transaction result.

    ``sha512(salt|status||||||udf5..udf1|email|firstname|productinfo|amount|txnid|key)``
    """
    _required(salt=salt, amount=amount, txnid=txnid, key=key)
    parts = [salt, status or ""]
    parts += RESERVED_PLACEHOLDERS
    parts += list(reversed(_udfs(udf)))
    parts += [email or "", firstname or "", productinfo or "", amount, txnid, key]
    return _sha512(parts)


def verify_response_hash(payload: dict, salt: str, received_hash: str) -> bool:
    """Recompute the response hash from ``payload`` and compare it with ``received_hash``.

    Only the payload's own values are used, so any field altered in transit
    breaks the match. Comparison is case-sensitive.
    """
    expected = payment_response_hash(
        salt=salt,
        status=payload.get("status", ""),
        udf={k: payload.get(k) for k in UDF_FIELDS},
        email=payload.get("email", ""),
        firstname=payload.get("firstname", ""),
        productinfo=payload.get("productinfo", ""),
        amount=payload.get("amount"),
        txnid=payload.get("txnid"),
        key=payload.get("key"),
    )
    received = (received_hash or "").strip()
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))


def api_command_hash(*, key, command, var1, salt) -> str:
    """Hash for PayU merchant web-service calls: ``sha512(key|command|var1|salt)``."""
    _required(key=key, command=command, var1=var1, salt=salt)
    return _sha512([key, command, var1, salt])
