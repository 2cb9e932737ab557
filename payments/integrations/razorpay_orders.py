import json
import logging

import razorpay
from razorpay.errors import BadRequestError, GatewayError, ServerError, SignatureVerificationError
from django.urls import reverse
from requests import RequestException

from .base import (
    GatewayAdapter, CallbackResult, InvalidCallbackPayload, RemoteGatewayError, MINOR, register,
)

logger = logging.getLogger(__name__)

SIGNED_FIELDS = ("razorpay_order_id", "razorpay_payment_id", "razorpay_signature")


@register("razorpay")
class RazorpayAdapter(GatewayAdapter):
    display_name = "Razorpay"
    required_fields = ("keyId", "keySecret")
    callback_fields = ("keyId", "keySecret")
    amount_unit = MINOR

    def client(self):
        return razorpay.Client(auth=(self.cred("keyId"), self.cred("keySecret")))

    def return_url(self, base_url, order_id):
        return f"{base_url}{reverse('payments:razorpay_callback')}?orderId={order_id}"

    def create_remote_session(self, request):
        self.validate()
        data = {
            "amount": self.gateway_amount(request.amount),
            "currency": request.currency,
            "receipt": request.order_id,
            "notes": {
                "orderId": request.order_id,
                "userId": request.user_id,
                "planId": request.plan_id,
            },
        }
        try:
            order = self.client().order.create(data=data)
        except (BadRequestError, GatewayError, ServerError, RequestException) as e:
            logger.error("Razorpay order creation failed for order_id=%s: %s", request.order_id, e)
            raise RemoteGatewayError(f"Razorpay error: {e}", order_id=request.order_id)

        return {
            "id": order["id"],
            "amount": order["amount"],
            "currency": order["currency"],
            "key": self.cred("keyId"),
            "orderId": request.order_id,
            "callbackUrl": request.redirect_url,
        }

    def parse_callback(self, payload):
        """Map a Razorpay Checkout ``callback_url`` POST to a result.

        Razorpay posts the three signed fields on success and
        ``error[...]`` fields on failure, with the Razorpay order id inside
        the ``error[metadata]`` JSON. The owning order travels in our own
        ``orderId`` query parameter.
        """
        payload = payload or {}
        order_id = payload.get("orderId")
        if not order_id:
            raise InvalidCallbackPayload("orderId missing")

        error_code = payload.get("error[code]")
        if error_code:
            details = {k: v for k, v in payload.items() if k.startswith("error[")}
            try: meta = json.loads(payload.get("error[metadata]") or "{}")
            except ValueError: meta = {}
            razorpay_order_id = meta.get("order_id") if isinstance(meta, dict) else None
            if not razorpay_order_id:
                raise InvalidCallbackPayload("Razorpay error callback without order reference", order_id=order_id)
            return CallbackResult(
                order_id=order_id, succeeded=False, status=error_code,
                gateway_order_id=razorpay_order_id, details=details,
            )

        missing = [k for k in SIGNED_FIELDS if not payload.get(k)]
        if missing:
            raise InvalidCallbackPayload(f"Missing fields: {', '.join(missing)}", order_id=order_id)

        params = {k: payload[k] for k in SIGNED_FIELDS}
        try:
            self.client().utility.verify_payment_signature(params)
            valid = True
        except SignatureVerificationError:
            logger.warning("Razorpay signature mismatch for order_id=%s", order_id)
            valid = False

        return CallbackResult(
            order_id=order_id,
            succeeded=valid,
            status="captured" if valid else "signature_mismatch",
            gateway_order_id=params["razorpay_order_id"],
            details={
                "razorpay_order_id": params["razorpay_order_id"],
                "razorpay_payment_id": params["razorpay_payment_id"],
            },
        )
