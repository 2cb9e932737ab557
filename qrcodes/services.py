import logging

import requests
from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone
from requests import RequestException
from user_agents import parse as parse_user_agent

from .models import QRCode, Scan

logger = logging.getLogger(__name__)


class QRCodeNotFound(Exception): pass


def client_ip(request):
    forwarded = request.headers.get("X-Forwarded-For") or ""
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.headers.get("X-Real-IP") or request.META.get("REMOTE_ADDR") or None


def describe_user_agent(ua_string):
    """Browser, OS and device details parsed from a User-Agent header."""
    ua = parse_user_agent(ua_string or "")
    if ua.is_mobile:
        device_type = "mobile"
    elif ua.is_tablet:
        device_type = "tablet"
    else:
        device_type = "desktop"
    return {
        "browser": {"name": _known(ua.browser.family), "version": ua.browser.version_string or None},
        "os": {"name": _known(ua.os.family), "version": ua.os.version_string or None},
        "device": {"type": device_type, "vendor": ua.device.brand or None, "model": ua.device.model or None},
    }


def _known(family):
    # ua-parser reports unrecognised parts as "Other"
    return None if not family or family == "Other" else family


def lookup_ip(ip):
    """Approximate location for ``ip``; degrades to ``{"ip": ip}``."""
    if not ip:
        return None
    if not getattr(settings, "QRCODES_GEO_LOOKUP", False):
        return {"ip": ip}
    url = settings.QRCODES_GEO_URL.format(ip=ip)
    try:
        r = requests.get(url, timeout=getattr(settings, "QRCODES_GEO_TIMEOUT", 5))
    except RequestException as e:
        logger.warning("Geo lookup failed for %s: %s", ip, e)
        return {"ip": ip}
    if r.status_code != 200:
        return {"ip": ip}
    try: data = r.json()
    except ValueError: return {"ip": ip}
    return {
        "ip": ip,
        "city": data.get("city") or None,
        "region": data.get("region") or None,
        "country": data.get("country_name") or None,
        "latitude": data.get("latitude") or None,
        "longitude": data.get("longitude") or None,
        "org": data.get("org") or None,
    }


def record_scan(qr_id, *, user_agent="", referrer=None, ip=None) -> Scan:
    """Bump the scan counter and append a scan record as one unit.

    A QR code deleted concurrently makes the counter update match no row;
    ``QRCodeNotFound`` is raised and no scan record is written.
    """
    ip_info = lookup_ip(ip)
    ua_details = describe_user_agent(user_agent)
    with transaction.atomic():
        updated = QRCode.objects.filter(pk=qr_id).update(scans=F("scans") + 1, updated_at=timezone.now())
        if not updated:
            raise QRCodeNotFound(qr_id)
        scan = Scan.objects.create(
            qr_id=qr_id,
            user_agent=user_agent or "",
            referrer=referrer,
            ip_info=ip_info,
            **ua_details,
        )
    logger.info("Scan %s recorded for qr_id=%s", scan.pk, qr_id)
    return scan
