import logging

import stripe

from .base import (
    GatewayAdapter, CallbackResult, InvalidCallbackPayload, RemoteGatewayError, MINOR, register,
)

logger = logging.getLogger(__name__)

PRODUCT_NAME = "QR Code Plan"

SUCCESS_EVENTS = {"checkout.session.async_payment_succeeded"}
FAILURE_EVENTS = {"checkout.session.expired", "checkout.session.async_payment_failed"}


@register("stripe")
class StripeCheckoutAdapter(GatewayAdapter):
    display_name = "Stripe"
    # Without the webhook secret no order could ever settle, so both are required
    required_fields = ("secretKey", "webhookSecret")
    callback_fields = ("webhookSecret",)
    amount_unit = MINOR

    def return_url(self, base_url, order_id):
        return super().return_url(base_url, order_id) + "&session_id={CHECKOUT_SESSION_ID}"

    def create_remote_session(self, request):
        self.validate()
        try:
            session = stripe.checkout.Session.create(
                api_key=self.cred("secretKey"),
                payment_method_types=["card"],
                line_items=[{
                    "price_data": {
                        "currency": request.currency.lower(),
                        "product_data": {"name": PRODUCT_NAME},
                        "unit_amount": self.gateway_amount(request.amount),
                    },
                    "quantity": 1,
                }],
                mode="payment",
                success_url=request.redirect_url,
                cancel_url=request.cancel_url,
                client_reference_id=request.order_id,
                metadata={
                    "orderId": request.order_id,
                    "userId": request.user_id,
                    "planId": request.plan_id,
                },
            )
        except stripe.StripeError as e:
            logger.error("Stripe session creation failed for order_id=%s: %s", request.order_id, e)
            raise RemoteGatewayError(f"Stripe error: {getattr(e, 'user_message', None) or e}", order_id=request.order_id)

        return {
            "sessionId": session.id,
            "url": session.url,
            "successUrl": request.redirect_url,
            "cancelUrl": request.cancel_url,
            "orderId": request.order_id,
        }

    def parse_callback(self, payload):
        """Verify a webhook delivery and map it to a settlement result.

        ``payload`` carries the raw request ``body`` and the
        ``Stripe-Signature`` header as ``signature``. Events that do not
        settle an order return ``None``.
        """
        try:
            event = stripe.Webhook.construct_event(
                payload.get("body") or b"",
                payload.get("signature") or "",
                self.cred("webhookSecret"),
            )
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise InvalidCallbackPayload(f"Stripe webhook rejected: {e}")

        # StripeObject supports item access and ``in`` but not dict.get
        event_type = event["type"]
        obj = event["data"]["object"]
        if event_type == "checkout.session.completed":
            if _field(obj, "payment_status") != "paid":
                # delayed methods settle through async_payment_* later
                return None
            succeeded = True
        elif event_type in SUCCESS_EVENTS:
            succeeded = True
        elif event_type in FAILURE_EVENTS:
            succeeded = False
        else:
            logger.debug("Ignoring Stripe event %s", event_type)
            return None

        event_id = _field(event, "id")
        metadata = _field(obj, "metadata") or {}
        order_id = _field(metadata, "orderId")
        user_id = _field(metadata, "userId")
        plan_id = _field(metadata, "planId")
        if not (order_id and user_id and plan_id):
            raise InvalidCallbackPayload(f"Stripe event {event_id} lacks order metadata", order_id=order_id)

        return CallbackResult(
            order_id=order_id,
            succeeded=succeeded,
            status=event_type,
            user_id=user_id,
            plan_id=plan_id,
            gateway_order_id=_field(obj, "id"),
            details={
                "event_id": event_id,
                "event_type": event_type,
                "session_id": _field(obj, "id"),
                "payment_status": _field(obj, "payment_status"),
                "payment_intent": _field(obj, "payment_intent"),
                "amount_total": _field(obj, "amount_total"),
                "currency": _field(obj, "currency"),
            },
        )


def _field(obj, key):
    return obj[key] if key in obj else None
