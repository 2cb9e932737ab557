from django.conf import settings
from django.http import JsonResponse
from django.urls import reverse


class PaymentsMaintenanceMiddleware:
    """Refuse new payment sessions while payments are in maintenance.

    Callbacks, webhooks and result pages stay reachable so that payments
    already sent to a processor can still settle.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if getattr(settings, "PAYMENTS_MAINTENANCE_MODE", False):
            blocked_paths = [reverse("payments:create_session")]
            if request.path.rstrip("/") in [p.rstrip("/") for p in blocked_paths]:
                return JsonResponse({"error": "Payments are currently disabled."}, status=503)
        return self.get_response(request)
