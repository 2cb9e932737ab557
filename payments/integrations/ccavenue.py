import logging
from urllib.parse import parse_qsl, urlencode

from django.urls import reverse

from .. import crypto
from .base import GatewayAdapter, CallbackResult, InvalidCallbackPayload, MAJOR, register

logger = logging.getLogger(__name__)

TRANSACTION_URL = "https://secure.ccavenue.com/transaction/transaction.do?command=initiateTransaction"
SUCCESS_STATUS = "Success"  # case-sensitive per CCAvenue


@register("ccavenue")
class CCAvenueAdapter(GatewayAdapter):
    display_name = "CCAvenue"
    required_fields = ("merchantId", "accessCode", "workingKey")
    callback_fields = ("workingKey",)
    amount_unit = MAJOR

    def return_url(self, base_url, order_id):
        # CCAvenue posts encResp to the same endpoint for paid and aborted orders
        return base_url + reverse("payments:ccavenue_response")

    def cancel_url(self, base_url, order_id):
        return self.return_url(base_url, order_id)

    def create_remote_session(self, request):
        self.validate()
        params = urlencode({
            "merchant_id": self.cred("merchantId"),
            "order_id": request.order_id,
            "currency": request.currency,
            "amount": self.gateway_amount(request.amount),
            "redirect_url": request.redirect_url,
            "cancel_url": request.cancel_url,
            "merchant_param1": request.user_id,
            "merchant_param2": request.plan_id,
            "language": "EN",
        })
        return {
            "encRequest": crypto.encrypt(params, self.cred("workingKey")),
            "accessCode": self.cred("accessCode"),
            "merchantId": self.cred("merchantId"),
            "redirectUrl": TRANSACTION_URL,
            "orderId": request.order_id,
        }

    def parse_callback(self, payload):
        enc_resp = (payload or {}).get("encResp") or ""
        if not enc_resp:
            raise InvalidCallbackPayload("encResp missing")
        try:
            decrypted = crypto.decrypt(enc_resp, self.cred("workingKey"))
        except ValueError as e:
            raise InvalidCallbackPayload(f"Could not decrypt CCAvenue response: {e}")

        params = dict(parse_qsl(decrypted, keep_blank_values=True))
        order_id = params.get("order_id")
        order_status = params.get("order_status")
        user_id = params.get("merchant_param1")
        plan_id = params.get("merchant_param2")
        if not (order_id and order_status and user_id and plan_id):
            raise InvalidCallbackPayload("Invalid response parameters", order_id=order_id or None)

        logger.info("CCAvenue response for order_id=%s: order_status=%s", order_id, order_status)
        return CallbackResult(
            order_id=order_id,
            succeeded=order_status == SUCCESS_STATUS,
            status=order_status,
            user_id=user_id,
            plan_id=plan_id,
            details=params,
        )
