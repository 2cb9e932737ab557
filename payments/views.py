import json, logging, re
from decimal import Decimal, InvalidOperation
from urllib.parse import urlencode

from django.conf import settings
from django.http import JsonResponse
from django.shortcuts import redirect, render
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from . import services
from .credentials import enabled_gateways, gateway_status
from .integrations import (
    ADAPTERS, GatewayMisconfigured, GatewayNotConfigured, PaymentError, RemoteGatewayError,
)
from .models import Order, Subscription
from .utils import site_base_url

logger = logging.getLogger(__name__)

CURRENCY_RE = re.compile(r"^[A-Za-z]{3}$")


def _json_body(request):
    try: return json.loads(request.body.decode("utf-8"))
    except Exception: return None


def _request_data(request) -> dict:
    if request.content_type == "application/json":
        return _json_body(request) or {}
    return request.POST.dict()


def _result_url(succeeded: bool, order_id: str = "") -> str:
    path = settings.PAYMENTS["SUCCESS_PATH"] if succeeded else settings.PAYMENTS["FAILURE_PATH"]
    return f"{path}?{urlencode({'orderId': order_id or ''})}"


def _validate_session_request(body: dict):
    """Return (params, error message)."""
    gateway = str(body.get("gateway") or "").strip().lower()
    if gateway not in ADAPTERS:
        return None, "Invalid payment gateway"
    plan_id = str(body.get("planId") or "").strip()
    user_id = str(body.get("userId") or "").strip()
    missing = [k for k, v in (("planId", plan_id), ("userId", user_id)) if not v]
    if missing:
        return None, f"Missing fields: {', '.join(missing)}"
    for key, value, field in (("planId", plan_id, "plan_id"), ("userId", user_id, "user_id")):
        max_length = Order._meta.get_field(field).max_length
        if len(value) > max_length:
            return None, f"{key} must be at most {max_length} characters"
    try:
        amount = Decimal(str(body.get("amount")))
    except (InvalidOperation, TypeError, ValueError):
        return None, "Invalid amount"
    if not amount.is_finite() or amount <= 0:
        return None, "Amount must be > 0"
    if amount != amount.quantize(Decimal("0.01")):
        return None, "Amount must have at most 2 decimal places"
    if amount >= 10 ** 10:
        return None, "Amount is too large"
    currency = str(body.get("currency") or "").strip()
    if not CURRENCY_RE.match(currency):
        return None, "currency must be a 3-letter ISO 4217 code"
    return {
        "gateway": gateway,
        "plan_id": plan_id,
        "user_id": user_id,
        "amount": amount.quantize(Decimal("0.01")),
        "currency": currency.upper(),
    }, None


@csrf_exempt
@require_POST
def create_session_view(request):
    body = _request_data(request)
    if not body:
        return JsonResponse({"error": "Invalid request body"}, status=400)
    params, error = _validate_session_request(body)
    if error:
        return JsonResponse({"error": error}, status=400)

    try:
        session = services.create_session(
            base_url=site_base_url(request, settings.PAYMENTS.get("SITE_URL", "")),
            **params,
        )
    except (GatewayNotConfigured, GatewayMisconfigured) as e:
        logger.warning("Session refused for gateway=%s: %s", params["gateway"], e)
        return JsonResponse({"error": str(e)}, status=400)
    except RemoteGatewayError as e:
        logger.error("Gateway error creating session, order_id=%s: %s", e.order_id, e)
        return JsonResponse({"error": str(e), "orderId": e.order_id}, status=502)
    except Exception as e:
        logger.exception("Payment session creation error")
        return JsonResponse({"error": f"Server error: {str(e)}"}, status=500)

    return JsonResponse({"session": session}, status=200)


def _settle_and_redirect(gateway: str, payload: dict, order_id: str = ""):
    """Run a browser-redirect callback; always answer with a redirect."""
    try:
        outcome = services.handle_callback(gateway, payload)
    except PaymentError as e:
        logger.exception("%s callback failed (%s) for order_id=%s", gateway, type(e).__name__, e.order_id or order_id)
        return redirect(_result_url(False, e.order_id or order_id))
    except Exception:
        logger.exception("%s callback crashed for order_id=%s", gateway, order_id)
        return redirect(_result_url(False, order_id))
    if outcome is None:
        return redirect(_result_url(False, order_id))
    return redirect(_result_url(outcome.succeeded, outcome.order_id))


@csrf_exempt
@require_POST
def ccavenue_response_view(request):
    return _settle_and_redirect("ccavenue", {"encResp": request.POST.get("encResp") or ""})


@csrf_exempt
@require_POST
def razorpay_callback_view(request):
    order_id = request.GET.get("orderId") or ""
    payload = {**request.POST.dict(), "orderId": order_id}
    return _settle_and_redirect("razorpay", payload, order_id)


@require_GET
def paypal_return_view(request):
    order_id = request.GET.get("orderId") or ""
    payload = {
        "orderId": order_id,
        "token": request.GET.get("token") or "",
        "cancelled": request.GET.get("cancelled") in ("1", "true"),
    }
    return _settle_and_redirect("paypal", payload, order_id)


@csrf_exempt
@require_POST
def stripe_webhook_view(request):
    payload = {"body": request.body, "signature": request.headers.get("Stripe-Signature", "")}
    try:
        outcome = services.handle_callback("stripe", payload)
    except (GatewayNotConfigured, GatewayMisconfigured) as e:
        logger.error("Stripe webhook received but gateway unusable: %s", e)
        return JsonResponse({"error": str(e)}, status=503)
    except PaymentError as e:
        logger.exception("Stripe webhook rejected for order_id=%s", e.order_id)
        return JsonResponse({"error": str(e)}, status=400)
    except Exception:
        logger.exception("Stripe webhook processing error")
        return JsonResponse({"error": "Webhook processing failed"}, status=500)

    if outcome is not None:
        logger.info("Stripe webhook settled order_id=%s status=%s replayed=%s",
                    outcome.order_id, outcome.status, outcome.replayed)
    return JsonResponse({"received": True}, status=200)


@require_GET
def enabled_gateways_view(request):
    try:
        return JsonResponse({"gateways": enabled_gateways()}, status=200)
    except Exception:
        logger.exception("Error fetching enabled gateways")
        return JsonResponse({"error": "Failed to fetch payment gateways"}, status=500)


@require_GET
def gateway_status_view(request, gateway: str):
    if gateway not in ADAPTERS:
        return JsonResponse({"error": "Invalid payment gateway"}, status=404)
    return JsonResponse(gateway_status(gateway), status=200)


@require_GET
def subscriptions_view(request):
    user_id = (request.GET.get("userId") or "").strip()
    if not user_id:
        return JsonResponse({"error": "userId is required"}, status=400)
    subs = Subscription.objects.filter(user_id=user_id).select_related("order")
    items = [
        {
            "id": s.pk,
            "planId": s.plan_id,
            "orderId": s.order_id,
            "status": s.effective_status(),
            "startDate": s.start_date.isoformat(),
            "endDate": s.end_date.isoformat(),
        }
        for s in subs
    ]
    current = Subscription.objects.current_for(user_id).first()
    return JsonResponse({"subscriptions": items, "currentPlanId": current.plan_id if current else None})


# ---------- result pages ----------

def _page(request, template):
    order_id = request.GET.get("orderId") or ""
    order = Order.objects.filter(order_id=order_id).first() if order_id else None
    return render(request, template, {"order": order, "order_id": order_id})


@require_GET
def payment_success_view(request):
    return _page(request, "payments/success.html")


@require_GET
def payment_failure_view(request):
    return _page(request, "payments/failure.html")


@require_GET
def payment_cancel_view(request):
    return _page(request, "payments/cancel.html")
