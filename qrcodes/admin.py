from django.contrib import admin
from .models import QRCode, Scan


@admin.register(QRCode)
class QRCodeAdmin(admin.ModelAdmin):
    list_display = ("qr_id", "name", "owner_id", "content_type", "scans", "updated_at")
    search_fields = ("qr_id", "name", "owner_id")
    readonly_fields = ("scans", "created_at", "updated_at")


@admin.register(Scan)
class ScanAdmin(admin.ModelAdmin):
    list_display = ("qr", "timestamp", "referrer")
    readonly_fields = ("qr", "timestamp", "user_agent", "referrer", "ip_info")
