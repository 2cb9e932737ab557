"""Resolve per-gateway credentials.

Two sources coexist. Records in the ``payment_gateways`` table are
authoritative whenever one exists for the gateway. Otherwise the legacy
``settings.PAYMENT_GATEWAY_CREDENTIALS`` values (read from the environment)
are used, unless ``PAYMENTS['ALLOW_ENV_CREDENTIALS']`` is off. Completeness
is checked by the adapter, so an incomplete record and incomplete env vars
both end in the same ``GatewayMisconfigured``.
"""

import logging
from dataclasses import dataclass, field

from django.conf import settings

from .integrations import ADAPTERS, GatewayNotConfigured, get_adapter_class
from .models import PaymentGateway

logger = logging.getLogger(__name__)

STORE = "store"
ENVIRONMENT = "environment"


@dataclass(frozen=True)
class GatewayConfig:
    name: str
    credentials: dict = field(default_factory=dict)
    sandbox: bool = False
    source: str = STORE


def resolve_gateway(name: str, require_active: bool = True) -> GatewayConfig:
    """Credentials for ``name``.

    An inactive record refuses new sessions only. Callbacks resolve with
    ``require_active=False`` so that payments already captured by the
    processor still settle after the gateway is switched off.
    """
    if name not in ADAPTERS:
        raise GatewayNotConfigured(f"Unknown payment gateway: {name!r}")

    record = PaymentGateway.objects.filter(name=name).first()
    if record is not None:
        if require_active and not record.is_active:
            raise GatewayNotConfigured(f"Payment gateway {name} is not active")
        return GatewayConfig(name, dict(record.credentials or {}), record.sandbox_mode, STORE)

    if not settings.PAYMENTS.get("ALLOW_ENV_CREDENTIALS", True):
        raise GatewayNotConfigured(f"Payment gateway {name} is not configured")
    env_creds = dict((getattr(settings, "PAYMENT_GATEWAY_CREDENTIALS", {}) or {}).get(name) or {})
    if not any(str(v or "").strip() for v in env_creds.values()):
        raise GatewayNotConfigured(f"Payment gateway {name} is not configured")
    sandbox = bool((getattr(settings, "PAYMENT_GATEWAY_SANDBOX", {}) or {}).get(name, False))
    return GatewayConfig(name, env_creds, sandbox, ENVIRONMENT)


def build_adapter(name: str, require_active: bool = True):
    config = resolve_gateway(name, require_active=require_active)
    return get_adapter_class(name)(config.credentials, sandbox=config.sandbox)


def enabled_gateways() -> list:
    return [
        {"id": g.pk, "name": g.name, "displayName": g.display_name or get_adapter_class(g.name).display_name}
        for g in PaymentGateway.objects.filter(is_active=True)
        if g.name in ADAPTERS
    ]


def gateway_status(name: str) -> dict:
    """Report which required credential fields are present, never their values."""
    adapter_cls = get_adapter_class(name)
    try:
        config = resolve_gateway(name)
    except GatewayNotConfigured as e:
        return {
            "configured": False,
            "source": None,
            "error": str(e),
            "fields": {k: "Missing" for k in adapter_cls.required_fields},
        }
    adapter = adapter_cls(config.credentials, sandbox=config.sandbox)
    missing = set(adapter.missing_fields())
    return {
        "configured": not missing,
        "source": config.source,
        "sandbox": config.sandbox,
        "fields": {k: ("Missing" if k in missing else "Present") for k in adapter_cls.required_fields},
    }
