import logging
from typing import List

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)


def _fail_silently() -> bool:
    return getattr(settings, "EMAIL_FAIL_SILENTLY", True)


def _admin_recipients() -> List[str]:
    # Comma-separated list via env or settings; fall back to DEFAULT_FROM_EMAIL/host user
    raw = getattr(settings, "PAYMENTS_ADMIN_EMAILS", None) or getattr(settings, "ADMIN_EMAILS", None)
    if not raw:
        raw = ",".join([
            getattr(settings, "EMAIL_HOST_USER", "") or "",
            getattr(settings, "DEFAULT_FROM_EMAIL", "") or "",
        ])
    emails = [e.strip() for e in (raw or "").split(",") if e and e.strip()]
    # Deduplicate while preserving order
    seen = set()
    uniq: List[str] = []
    for e in emails:
        if e.lower() not in seen:
            seen.add(e.lower())
            uniq.append(e)
    return uniq


def send_subscription_notification(*, order, subscription) -> None:
    """Tell admins that an order settled and a subscription was activated.

    Mail problems are logged and never propagate; settlement has already
    committed by the time this runs.
    """
    admins = _admin_recipients()
    if not admins:
        return
    context = {
        "order_id": order.order_id,
        "gateway": order.gateway,
        "amount": order.amount,
        "currency": order.currency,
        "user_id": subscription.user_id,
        "plan_id": subscription.plan_id,
        "start_date": subscription.start_date,
        "end_date": subscription.end_date,
    }
    from_email = getattr(settings, "DEFAULT_FROM_EMAIL", None) or getattr(settings, "EMAIL_HOST_USER", None)
    subject = f"New subscription: {subscription.plan_id} for {subscription.user_id} – {order.currency} {order.amount}"
    try:
        text = render_to_string("emails/subscription_notification_admin.txt", context)
        html = render_to_string("emails/subscription_notification_admin.html", context)
        msg = EmailMultiAlternatives(subject, text, from_email, admins)
        msg.attach_alternative(html, "text/html")
        msg.send(fail_silently=_fail_silently())
    except Exception:
        logger.exception("Failed to send subscription notification for order_id=%s", order.order_id)
