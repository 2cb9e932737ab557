from .base import (
    ADAPTERS, PaymentError, GatewayNotConfigured, GatewayMisconfigured,
    InvalidCallbackPayload, RemoteGatewayError, get_adapter_class,
)
from . import ccavenue, paypal, razorpay_orders, stripe_checkout  # noqa: F401  (registers adapters)
