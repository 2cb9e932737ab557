from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.conf import settings


class PaymentError(Exception):
    def __init__(self, message="", order_id=None):
        super().__init__(message)
        self.order_id = order_id


class GatewayNotConfigured(PaymentError): pass


class GatewayMisconfigured(PaymentError): pass


class InvalidCallbackPayload(PaymentError): pass


class RemoteGatewayError(PaymentError): pass


MINOR = "minor"
MAJOR = "major"

ADAPTERS = {}


def register(name):
    def deco(cls):
        cls.name = name
        ADAPTERS[name] = cls
        return cls
    return deco


def get_adapter_class(name):
    try:
        return ADAPTERS[name]
    except KeyError:
        raise GatewayNotConfigured(f"Unknown payment gateway: {name!r}")


@dataclass
class SessionRequest:
    order_id: str
    amount: Decimal
    currency: str
    user_id: str
    plan_id: str
    redirect_url: str
    cancel_url: str


@dataclass
class CallbackResult:
    order_id: str
    succeeded: bool
    status: str = ""
    user_id: Optional[str] = None
    plan_id: Optional[str] = None
    gateway_order_id: Optional[str] = None
    details: dict = field(default_factory=dict)


class GatewayAdapter:
    """One payment processor.

    Subclasses declare which credential fields they need for session
    creation (``required_fields``) and for callback handling
    (``callback_fields``), and whether the processor expects amounts in
    minor or major currency units (``amount_unit``).
    """

    name = ""
    display_name = ""
    required_fields: tuple = ()
    callback_fields: tuple = ()
    amount_unit = MAJOR

    def __init__(self, credentials: dict, sandbox: bool = False, timeout: Optional[float] = None):
        self.credentials = dict(credentials or {})
        self.sandbox = sandbox
        if timeout is None:
            timeout = settings.PAYMENTS.get("HTTP_TIMEOUT", 30)
        self.timeout = timeout

    def missing_fields(self, fields=None) -> list:
        fields = self.required_fields if fields is None else fields
        return [k for k in fields if not str(self.credentials.get(k) or "").strip()]

    def validate(self, fields=None) -> None:
        missing = self.missing_fields(fields)
        if missing:
            raise GatewayMisconfigured(
                f"{self.display_name or self.name} is missing credentials: {', '.join(missing)}"
            )

    def cred(self, key: str) -> str:
        return str(self.credentials.get(key) or "").strip()

    def gateway_amount(self, amount):
        value = Decimal(str(amount))
        if self.amount_unit == MINOR:
            return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        return f"{value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):.2f}"

    def return_url(self, base_url: str, order_id: str) -> str:
        return f"{base_url}{settings.PAYMENTS['SUCCESS_PATH']}?orderId={order_id}"

    def cancel_url(self, base_url: str, order_id: str) -> str:
        return f"{base_url}{settings.PAYMENTS['CANCEL_PATH']}?orderId={order_id}"

    def create_remote_session(self, request: SessionRequest) -> dict:
        raise NotImplementedError

    def parse_callback(self, payload: dict) -> Optional[CallbackResult]:
        raise NotImplementedError
