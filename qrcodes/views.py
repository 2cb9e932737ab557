import json, logging

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from .services import QRCodeNotFound, client_ip, record_scan

logger = logging.getLogger(__name__)


def _json_body(request):
    try: return json.loads(request.body.decode("utf-8"))
    except Exception: return None


@csrf_exempt
@require_POST
def track_view(request):
    body = _json_body(request) or request.POST.dict()
    qr_id = body.get("qrId") if isinstance(body, dict) else None
    if not qr_id or not isinstance(qr_id, str):
        return JsonResponse({"error": "qrId is required"}, status=400)

    try:
        scan = record_scan(
            qr_id,
            user_agent=request.headers.get("User-Agent", ""),
            referrer=request.headers.get("Referer") or None,
            ip=client_ip(request),
        )
    except QRCodeNotFound:
        logger.warning("[track-view] unknown qrId %s", qr_id)
        return JsonResponse({"error": "QR code not found"}, status=404)
    except Exception as e:
        logger.exception("[track-view] Error tracking scan for %s", qr_id)
        payload = {"error": "Failed to track scan"}
        if settings.DEBUG:
            payload["details"] = str(e)
        return JsonResponse(payload, status=500)

    return JsonResponse({"success": True, "scanId": scan.pk}, status=200)
