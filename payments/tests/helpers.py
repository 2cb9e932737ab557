import json
from decimal import Decimal
from urllib.parse import urlencode

from payments import crypto
from payments.models import Order, PaymentGateway

WORKING_KEY = "WK0123456789ABCDEF"

FULL_CREDENTIALS = {
    "stripe": {"secretKey": "sk_test_123", "webhookSecret": "whsec_123", "publishableKey": "pk_test_123"},
    "razorpay": {"keyId": "rzp_test_123", "keySecret": "rzp_secret"},
    "paypal": {"clientId": "pp-client", "clientSecret": "pp-secret"},
    "ccavenue": {"merchantId": "M123", "accessCode": "AC123", "workingKey": WORKING_KEY},
}


class FakeResponse:
    def __init__(self, status_code=200, data=None):
        self.status_code = status_code
        self._data = data if data is not None else {}
        self.text = json.dumps(self._data)

    def json(self):
        return self._data


def make_gateway(name, credentials=None, active=True, sandbox=False):
    return PaymentGateway.objects.create(
        name=name,
        display_name=name.title(),
        is_active=active,
        credentials=FULL_CREDENTIALS[name] if credentials is None else credentials,
        sandbox_mode=sandbox,
    )


def make_order(order_id="order_123", gateway="ccavenue", user_id="user_1", plan_id="plan_pro", **extra):
    fields = dict(
        order_id=order_id,
        user_id=user_id,
        plan_id=plan_id,
        amount=Decimal("999.00"),
        currency="INR",
        gateway=gateway,
    )
    fields.update(extra)
    return Order.objects.create(**fields)


def enc_response(params, working_key=WORKING_KEY):
    return crypto.encrypt(urlencode(params), working_key)


def ccavenue_params(order_id="order_123", status="Success", user_id="user_1", plan_id="plan_pro"):
    return {
        "order_id": order_id,
        "tracking_id": "310000012345",
        "order_status": status,
        "merchant_param1": user_id,
        "merchant_param2": plan_id,
    }
