import base64, json, logging

import requests
from django.urls import reverse
from requests import RequestException

from .base import (
    GatewayAdapter, CallbackResult, InvalidCallbackPayload, RemoteGatewayError, MAJOR, register,
)

logger = logging.getLogger(__name__)

SANDBOX_HOST = "https://api-m.sandbox.paypal.com"
LIVE_HOST = "https://api-m.paypal.com"


@register("paypal")
class PayPalAdapter(GatewayAdapter):
    display_name = "PayPal"
    required_fields = ("clientId", "clientSecret")
    callback_fields = ("clientId", "clientSecret")
    amount_unit = MAJOR

    @property
    def host(self) -> str:
        return SANDBOX_HOST if self.sandbox else LIVE_HOST

    def _headers(self) -> dict:
        raw = f"{self.cred('clientId')}:{self.cred('clientSecret')}"
        return {
            "Authorization": f"Basic {base64.b64encode(raw.encode('utf-8')).decode('utf-8')}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _post(self, path: str, payload: dict, order_id: str) -> dict:
        url = f"{self.host}{path}"
        try:
            resp = requests.post(url, headers=self._headers(), json=payload, timeout=self.timeout)
        except RequestException as e:
            raise RemoteGatewayError(f"PayPal request failed: {e}", order_id=order_id)
        try: data = resp.json()
        except ValueError: data = {"raw": resp.text}
        if resp.status_code not in (200, 201):
            logger.error(
                "PayPal %s failed for order_id=%s: status=%s text=%s",
                path, order_id, resp.status_code, resp.text,
            )
            message = data.get("message") or data.get("error_description") or f"HTTP {resp.status_code}"
            raise RemoteGatewayError(
                f"PayPal error: {message}. Response: {json.dumps(data)[:800]}", order_id=order_id
            )
        return data

    def return_url(self, base_url, order_id):
        return f"{base_url}{reverse('payments:paypal_return')}?orderId={order_id}"

    def cancel_url(self, base_url, order_id):
        return self.return_url(base_url, order_id) + "&cancelled=1"

    def create_remote_session(self, request):
        self.validate()
        payload = {
            "intent": "CAPTURE",
            "purchase_units": [{
                "reference_id": request.order_id,
                "custom_id": request.order_id,
                "description": f"Plan {request.plan_id}",
                "amount": {
                    "currency_code": request.currency,
                    "value": self.gateway_amount(request.amount),
                },
            }],
            "application_context": {
                "return_url": request.redirect_url,
                "cancel_url": request.cancel_url,
                "user_action": "PAY_NOW",
            },
        }
        data = self._post("/v2/checkout/orders", payload, request.order_id)
        links = data.get("links") or []
        approval = next((l.get("href") for l in links if l.get("rel") in ("approve", "payer-action")), None)
        if not approval:
            raise RemoteGatewayError("PayPal response missing approval URL", order_id=request.order_id)
        return {
            "id": data.get("id"),
            "status": data.get("status"),
            "approvalUrl": approval,
            "orderId": request.order_id,
        }

    def parse_callback(self, payload):
        payload = payload or {}
        order_id = payload.get("orderId")
        if not order_id:
            raise InvalidCallbackPayload("orderId missing")
        # PayPal appends its own order id as ``token`` to both return and cancel URLs
        token = payload.get("token") or ""
        if not token:
            raise InvalidCallbackPayload("PayPal token missing", order_id=order_id)
        if payload.get("cancelled"):
            return CallbackResult(
                order_id=order_id, succeeded=False, status="CANCELLED",
                gateway_order_id=token, details={"token": token, "status": "CANCELLED"},
            )

        data = self._post(f"/v2/checkout/orders/{token}/capture", {}, order_id)
        status = str(data.get("status") or "")
        return CallbackResult(
            order_id=order_id,
            succeeded=status == "COMPLETED",
            status=status,
            gateway_order_id=data.get("id") or token,
            details={"token": token, "status": status, "payer": data.get("payer") or {}},
        )
