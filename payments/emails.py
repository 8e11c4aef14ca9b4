import logging
from typing import List

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)


def _fail_silently() -> bool:
    return getattr(settings, "EMAIL_FAIL_SILENTLY", True)


def _admin_recipients() -> List[str]:
    # Comma-separated list via env or settings; fall back to DEFAULT_FROM_EMAIL/host user
    raw = getattr(settings, "PAYMENTS_ADMIN_EMAILS", None)
    if not raw:
        raw = ",".join([
            getattr(settings, "EMAIL_HOST_USER", "") or "",
            getattr(settings, "DEFAULT_FROM_EMAIL", "") or "",
        ])
    emails = [e.strip() for e in (raw or "").split(",") if e and e.strip()]
    seen = set()
    uniq: List[str] = []
    for e in emails:
        if e.lower() not in seen:
            seen.add(e.lower())
            uniq.append(e)
    return uniq


def send_order_confirmation(*, order) -> None:
    """Email the customer a receipt and notify admins for a completed order.

    Runs after the reconciling transaction commits; mail failures are logged
    and never affect the order state.
    """
    details = order.payment_details or {}
    context = {
        "order_id": order.id,
        "amount": order.amount,
        "currency": order.currency,
        "status": order.status,
        "product_info": order.product_info,
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "customer_phone": order.customer_phone,
        "payment_id": details.get("mihpayid", ""),
        "mode": details.get("mode", ""),
        "site_url": getattr(settings, "SITE_URL", ""),
    }
    from_email = getattr(settings, "DEFAULT_FROM_EMAIL", None) or getattr(settings, "EMAIL_HOST_USER", None)

    try:
        if order.customer_email:
            subject = f"Order confirmed: {order.id} – {order.currency} {order.amount}"
            text = render_to_string("emails/order_confirmation_customer.txt", context)
            html = render_to_string("emails/order_confirmation_customer.html", context)
            msg = EmailMultiAlternatives(subject, text, from_email, [order.customer_email])
            msg.attach_alternative(html, "text/html")
            msg.send(fail_silently=_fail_silently())
    except Exception:
        logger.exception("Failed to send order confirmation to %s", order.customer_email)

    try:
        admins = _admin_recipients()
        if admins:
            subject = f"New order paid: {order.id} – {order.currency} {order.amount}"
            text = render_to_string("emails/order_notification_admin.txt", context)
            msg = EmailMultiAlternatives(subject, text, from_email, admins)
            msg.send(fail_silently=_fail_silently())
    except Exception:
        logger.exception("Failed to send admin notification for order %s", order.id)
