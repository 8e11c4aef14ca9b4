import random
import string

from django.utils import timezone

ALNUM = string.ascii_uppercase + string.digits


def generate_order_id(prefix="ORD"):
    ts = timezone.now().strftime("%y%m%d%H%M%S")  # 12 chars
    rand = "".join(random.choices(ALNUM, k=6))
    # PayU accepts txnid up to 25 characters
    return f"{prefix}{ts}{rand}"[-25:]


def redirect_query(params: dict) -> dict:
    """Drop empty values before echoing gateway params onto a redirect URL."""
    return {k: v for k, v in params.items() if v not in (None, "")}
