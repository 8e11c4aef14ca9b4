import json
import logging
from urllib.parse import urlencode

from django.http import HttpResponse, HttpResponseBadRequest, JsonResponse
from django.shortcuts import redirect, render
from django.urls import reverse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from .hashing import UDF_FIELDS
from .models import Order
from .services import Customer, initiate_payment, verify_callback
from .utils import redirect_query

logger = logging.getLogger(__name__)


def _json_body(request):
    try: return json.loads(request.body.decode("utf-8"))
    except Exception: return None


def _initiate_for_order(request, order: Order, body: dict):
    """Sign a PayU request from the stored order; the client only picks URLs and UDFs."""
    callback_url = request.build_absolute_uri(reverse("payments:payu_callback"))
    udf = {k: body.get(k) or "" for k in UDF_FIELDS}
    udf["udf1"] = udf["udf1"] or order.user_id
    return initiate_payment(
        order_id=order.id,
        amount=str(order.amount),
        product_info=order.product_info,
        customer=Customer(
            first_name=(order.customer_name or "").split(" ")[0],
            email=order.customer_email,
            phone=order.customer_phone,
        ),
        success_url=body.get("surl") or callback_url,
        failure_url=body.get("furl") or callback_url,
        udf=udf,
    )


def _pending_order(order_id):
    order = Order.objects.filter(pk=order_id).first()
    if order is None:
        return None, JsonResponse({"ok": False, "error": "unknown_order"}, status=404)
    if not order.is_pending:
        return None, JsonResponse({"ok": False, "error": "order_not_pending", "status": order.status}, status=409)
    return order, None


@csrf_exempt
@require_POST
def initiate_payment_view(request):
    body = _json_body(request)
    if not body:
        return HttpResponseBadRequest("Invalid JSON body")
    if not body.get("order_id"):
        return HttpResponseBadRequest("Missing fields: order_id")

    order, error_response = _pending_order(str(body["order_id"]))
    if error_response:
        return error_response

    result = _initiate_for_order(request, order, body)
    if not result.ok:
        status = 400 if result.error == "validation_error" else 500
        return JsonResponse(result.as_dict(), status=status)
    return JsonResponse(result.as_dict())


@require_GET
def checkout_view(request, order_id: str):
    """Auto-submitting form that hands the browser over to PayU."""
    order, error_response = _pending_order(order_id)
    if error_response:
        return error_response

    result = _initiate_for_order(request, order, request.GET.dict())
    if not result.ok:
        return render(request, "payments/failure.html", {"order_id": order.id}, status=400)
    return render(request, "payments/checkout.html", {"payu_url": result.payu_url, "params": result.params})


@csrf_exempt
@require_POST
def payu_callback_view(request):
    """PayU posts the transaction result here (surl/furl).

    The result is verified and reconciled before the browser is sent on to
    the success or failure page with the received params echoed back.
    """
    data = request.POST.dict()
    logger.debug("PayU callback for txnid=%s status=%s", data.get("txnid"), data.get("status"))
    result = verify_callback(data)

    if result.error == "store_unavailable":
        # Let PayU retry; no verdict has been recorded.
        return HttpResponse("Service unavailable, please retry", status=503)

    page = "payments:success" if result.ok and result.status == "completed" else "payments:failure"
    query = urlencode(redirect_query(data))
    return redirect(f"{reverse(page)}?{query}" if query else reverse(page))


@csrf_exempt
@require_POST
def verify_payment_view(request):
    body = _json_body(request)
    if not body or not isinstance(body.get("responseData"), dict):
        return HttpResponseBadRequest("Invalid JSON body")

    result = verify_callback(body["responseData"])
    if result.error == "store_unavailable":
        status = 503
    elif not result.valid:
        status = 400
    else:
        status = 200
    return JsonResponse(result.as_dict(), status=status)


@require_GET
def payment_success_view(request):
    order_id = request.GET.get("txnid", "")
    order = Order.objects.filter(pk=order_id).first() if order_id else None
    # The query string is customer-controlled; only the stored order decides.
    if order is None or not order.is_paid:
        return render(request, "payments/failure.html", {"order_id": order_id})
    ctx = {
        "order_id": order.id,
        "payment_id": (order.payment_details or {}).get("mihpayid", ""),
        "amount": order.amount,
    }
    return render(request, "payments/success.html", ctx)


@require_GET
def payment_failure_view(request):
    return render(request, "payments/failure.html", {"order_id": request.GET.get("txnid", "")})
