import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .credentials import build_adapter
from .emails import send_subscription_notification
from .integrations import InvalidCallbackPayload, RemoteGatewayError
from .integrations.base import CallbackResult, SessionRequest
from .models import Order, Subscription
from .utils import generate_order_id

logger = logging.getLogger(__name__)


@dataclass
class SettlementOutcome:
    order_id: str
    status: str
    subscription: Optional[Subscription] = None
    replayed: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status == Order.SUCCESS


def _transition(order_id: str, status: str, details: dict) -> bool:
    """Move a pending order to a terminal status. False when it was not pending."""
    updated = Order.objects.filter(order_id=order_id, status=Order.PENDING).update(
        status=status,
        payment_details=details,
        updated_at=timezone.now(),
    )
    return updated == 1


def create_session(*, gateway, plan_id, user_id, amount, currency, base_url) -> dict:
    """Create a pending Order and open a session with the processor.

    Credentials are resolved and validated before anything is written, so
    ``GatewayNotConfigured`` / ``GatewayMisconfigured`` never leave an
    order behind and never reach the network. The adapter payload is
    returned unchanged.
    """
    adapter = build_adapter(gateway)
    adapter.validate()

    order_id = generate_order_id()
    amount = Decimal(str(amount))
    order = Order.objects.create(
        order_id=order_id,
        user_id=user_id,
        plan_id=plan_id,
        amount=amount,
        currency=currency,
        gateway=gateway,
        status=Order.PENDING,
    )
    logger.info("Created %s order %s for user=%s plan=%s", gateway, order_id, user_id, plan_id)

    request = SessionRequest(
        order_id=order_id,
        amount=amount,
        currency=currency,
        user_id=user_id,
        plan_id=plan_id,
        redirect_url=adapter.return_url(base_url, order_id),
        cancel_url=adapter.cancel_url(base_url, order_id),
    )
    try:
        payload = adapter.create_remote_session(request)
    except RemoteGatewayError as e:
        # no callback will ever arrive for this order
        _transition(order_id, Order.FAILED, {"error": str(e)})
        e.order_id = order_id
        raise

    remote_id = payload.get("sessionId") or payload.get("id")
    if remote_id:
        order.gateway_order_id = str(remote_id)
        order.save(update_fields=["gateway_order_id", "updated_at"])
    return payload


def handle_callback(gateway: str, payload: dict) -> Optional[SettlementOutcome]:
    """Verify a processor notification and settle the order it names.

    Returns ``None`` for notifications that do not settle anything (for
    example Stripe events we do not act on).

    Deactivating a gateway does not block callbacks for orders already
    sent to the processor.
    """
    adapter = build_adapter(gateway, require_active=False)
    adapter.validate(adapter.callback_fields)
    result = adapter.parse_callback(payload)
    if result is None:
        return None
    return settle(gateway, result)


def settle(gateway: str, result: CallbackResult) -> SettlementOutcome:
    """Apply a verified callback result to its order.

    The status change is a conditional write on ``status='pending'``, so a
    replayed notification changes nothing and creates no second
    subscription. Order update happens before subscription creation, both
    in one transaction.
    """
    with transaction.atomic():
        order = Order.objects.filter(order_id=result.order_id).first()
        if order is None:
            raise InvalidCallbackPayload(f"Unknown order {result.order_id}", order_id=result.order_id)
        if order.gateway != gateway:
            raise InvalidCallbackPayload(
                f"Order {order.order_id} belongs to {order.gateway}, not {gateway}", order_id=order.order_id
            )
        # the processor reference is mandatory once the order has one
        if order.gateway_order_id and result.gateway_order_id != order.gateway_order_id:
            raise InvalidCallbackPayload(
                f"Gateway reference mismatch for order {order.order_id}", order_id=order.order_id
            )
        user_id = result.user_id or order.user_id
        plan_id = result.plan_id or order.plan_id
        if (user_id, plan_id) != (order.user_id, order.plan_id):
            raise InvalidCallbackPayload(
                f"Passthrough fields do not match order {order.order_id}", order_id=order.order_id
            )

        new_status = Order.SUCCESS if result.succeeded else Order.FAILED
        if not _transition(order.order_id, new_status, result.details):
            order.refresh_from_db(fields=["status"])
            logger.warning(
                "Replayed %s callback for order_id=%s ignored; order already %s",
                gateway, order.order_id, order.status,
            )
            return SettlementOutcome(order.order_id, order.status, replayed=True)

        logger.info("Order %s -> %s (gateway status %s)", order.order_id, new_status, result.status)
        if new_status != Order.SUCCESS:
            return SettlementOutcome(order.order_id, new_status)

        now = timezone.now()
        subscription = Subscription.objects.create(
            user_id=user_id,
            plan_id=plan_id,
            status=Subscription.ACTIVE,
            order=order,
            start_date=now,
            end_date=now + timedelta(days=settings.PAYMENTS.get("SUBSCRIPTION_DAYS", 30)),
        )
        order.refresh_from_db()
        transaction.on_commit(lambda: send_subscription_notification(order=order, subscription=subscription))
    return SettlementOutcome(order.order_id, new_status, subscription=subscription)


def fail_stale_orders(older_than_minutes: int, dry_run: bool = False) -> list:
    """Fail orders stuck in ``pending`` past the cut-off; returns their ids."""
    cutoff = timezone.now() - timedelta(minutes=older_than_minutes)
    stale = list(
        Order.objects.filter(status=Order.PENDING, created_at__lt=cutoff)
        .order_by("created_at")
        .values_list("order_id", flat=True)
    )
    if dry_run:
        return stale
    failed = []
    for order_id in stale:
        if _transition(order_id, Order.FAILED, {"error": "expired"}):
            failed.append(order_id)
    return failed
