"""Payment initiation and PayU result reconciliation.

``initiate_payment`` and ``verify_callback`` are the operations the
storefront calls. Both always return a result object; failures are reported
through ``error`` codes from :mod:`payments.exceptions`, never raised.
"""

import logging
from dataclasses import asdict, dataclass, field
from decimal import Decimal, InvalidOperation

from django.db import DatabaseError, DataError, IntegrityError, transaction
from django.utils import timezone

from .conf import PayuConfig
from .emails import send_order_confirmation
from .exceptions import PaymentDataError, PayuError, StoreError, VerificationError
from .hashing import verify_response_hash
from .integrations.payu import build_payment_request
from .models import Order, PaymentStatus, Transaction

logger = logging.getLogger(__name__)

PAYMENT_DETAIL_FIELDS = ("mihpayid", "mode", "status", "txnid", "net_amount_debit", "addedon")


@dataclass(frozen=True)
class Customer:
    first_name: str
    email: str
    phone: str


@dataclass
class InitiationResult:
    ok: bool
    payu_url: str = ""
    params: dict = field(default_factory=dict)
    error: str | None = None
    message: str = ""

    def as_dict(self) -> dict:
        if self.ok:
            return {"ok": True, "payuUrl": self.payu_url, "paymentParams": self.params}
        return {"ok": False, "error": self.error, "message": self.message}


@dataclass
class CallbackResult:
    valid: bool
    status: str | None = None
    order_id: str = ""
    payment_id: str = ""
    error: str | None = None
    applied: bool = False

    @property
    def ok(self) -> bool:
        return self.valid and self.error is None

    def as_dict(self) -> dict:
        return asdict(self)


def initiate_payment(order_id, amount, product_info, customer: Customer, success_url, failure_url,
                     udf=None, config: PayuConfig | None = None) -> InitiationResult:
    """Build the signed PayU form for an order. Nothing is persisted."""
    try:
        config = config or PayuConfig.from_settings()
        params = build_payment_request(
            config,
            txnid=order_id,
            amount=amount,
            productinfo=product_info,
            firstname=customer.first_name,
            email=customer.email,
            phone=customer.phone,
            surl=success_url,
            furl=failure_url,
            udf=udf,
        )
    except PayuError as e:
        logger.error("Payment initiation failed for order_id=%s: %s", order_id, e)
        message = str(e) if e.code == "validation_error" else "Payments are temporarily unavailable"
        return InitiationResult(ok=False, error=e.code, message=message)

    logger.info("PayU payment initiated for order_id=%s amount=%s", order_id, params["amount"])
    return InitiationResult(ok=True, payu_url=config.payment_url, params=params)


def _check_signature(payload: dict, config: PayuConfig) -> None:
    missing = [k for k in ("txnid", "status", "amount", "key", "hash") if not payload.get(k)]
    if missing:
        raise VerificationError(f"missing fields: {', '.join(missing)}")
    if payload["key"] != config.merchant_key:
        raise VerificationError("merchant key mismatch")
    if not verify_response_hash(payload, config.salt, payload["hash"]):
        raise VerificationError("hash mismatch")


def _resolve_status(provider_status: str) -> str:
    return PaymentStatus.COMPLETED if provider_status == "success" else PaymentStatus.FAILED


def _amount(value, fallback) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError):
        return fallback


def record_payment_result(order_id: str, status: str, payload: dict):
    """Move a pending order to ``status`` and append its Transaction.

    The update is conditioned on the order still being pending, so of any
    number of concurrent or replayed results exactly one is applied.
    Returns ``(order, applied)``; ``order`` is None for an unknown id.
    """
    details = {"method": "payu"}
    details.update({k: payload.get(k, "") for k in PAYMENT_DETAIL_FIELDS})
    try:
        with transaction.atomic():
            updated = Order.objects.filter(pk=order_id, status=PaymentStatus.PENDING).update(
                status=status,
                payment_status=status,
                payment_details=details,
                updated_at=timezone.now(),
            )
            order = Order.objects.filter(pk=order_id).first()
            if not updated:
                return order, False
            Transaction.objects.create(
                order=order,
                transaction_id=order.id,
                payment_id=payload.get("mihpayid", "")[:64],
                user_id=order.user_id,
                amount=_amount(payload.get("amount"), order.amount),
                currency=order.currency,
                status=status,
                product_info=order.product_info,
                customer_name=order.customer_name,
                customer_email=order.customer_email,
                customer_phone=order.customer_phone,
                payu_response=payload,
            )
            if status == PaymentStatus.COMPLETED:
                transaction.on_commit(lambda: send_order_confirmation(order=order))
    except (DataError, IntegrityError) as e:
        raise PaymentDataError(f"Result for order {order_id} rejected by the store: {e}") from e
    except DatabaseError as e:
        raise StoreError(f"Could not record result for order {order_id}: {e}") from e
    return order, True


def verify_callback(payload: dict, config: PayuConfig | None = None) -> CallbackResult:
    """Verify a PayU result payload and reconcile the order it names."""
    payload = {k: "" if v is None else str(v) for k, v in (payload or {}).items()}
    txnid = payload.get("txnid", "")
    payment_id = payload.get("mihpayid", "")

    try:
        config = config or PayuConfig.from_settings()
        _check_signature(payload, config)
    except VerificationError as e:
        # Never log the expected digest.
        logger.warning("PayU callback rejected for txnid=%s: %s", txnid, e)
        return CallbackResult(valid=False, order_id=txnid, payment_id=payment_id, error=e.code)
    except PayuError as e:
        logger.error("PayU callback for txnid=%s not processed: %s", txnid, e)
        return CallbackResult(valid=False, order_id=txnid, payment_id=payment_id, error=e.code)

    status = _resolve_status(payload["status"])
    try:
        order, applied = record_payment_result(txnid, status, payload)
    except StoreError as e:
        logger.exception("Payment store unavailable for txnid=%s", txnid)
        return CallbackResult(valid=True, order_id=txnid, payment_id=payment_id, error=e.code)
    except PaymentDataError as e:
        logger.exception("PayU result for txnid=%s could not be stored", txnid)
        return CallbackResult(valid=True, order_id=txnid, payment_id=payment_id, error=e.code)

    if order is None:
        logger.error("PayU callback for unknown order txnid=%s mihpayid=%s", txnid, payment_id)
        return CallbackResult(valid=True, order_id=txnid, payment_id=payment_id, error="unknown_order")

    if applied:
        logger.info("Order %s -> %s (mihpayid=%s)", order.id, order.status, payment_id)
    else:
        logger.warning("Replayed PayU callback for order %s already %s; ignored", order.id, order.status)
    return CallbackResult(
        valid=True, status=order.status, order_id=order.id, payment_id=payment_id, applied=applied
    )


def apply_gateway_status(order: Order, details: dict):
    """Reconcile ``order`` from a PayU ``verify_payment`` entry.

    Returns ``(status, applied)``: the order's status after the attempt and
    whether this call moved it. ``(None, False)`` while PayU still reports
    the payment as in progress.
    """
    provider_status = str(details.get("status", "")).lower()
    if provider_status not in ("success", "failure", "failed"):
        return None, False
    payload = {k: "" if v is None else str(v) for k, v in details.items()}
    payload.setdefault("txnid", order.id)
    payload.setdefault("amount", payload.get("amt", ""))
    payload["source"] = "verify_payment"
    status = _resolve_status(provider_status)
    order, applied = record_payment_result(order.id, status, payload)
    return (order.status if order else None), applied
