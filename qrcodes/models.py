from django.db import models


class QRCode(models.Model):
    qr_id = models.CharField(max_length=64, primary_key=True)
    owner_id = models.CharField(max_length=128, db_index=True)
    name = models.CharField(max_length=128, blank=True, default="")
    content_type = models.CharField(max_length=32, default="URL")
    content = models.TextField(blank=True, default="")
    scans = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "qrcodes"

    def __str__(self):
        return f"{self.name or self.qr_id} ({self.scans} scans)"


class Scan(models.Model):
    qr = models.ForeignKey(QRCode, on_delete=models.CASCADE, related_name="scan_records", db_column="qr_id")
    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)
    user_agent = models.TextField(blank=True, default="")
    referrer = models.TextField(blank=True, null=True)
    ip_info = models.JSONField(blank=True, null=True)
    browser = models.JSONField(blank=True, null=True)
    os = models.JSONField(blank=True, null=True)
    device = models.JSONField(blank=True, null=True)

    class Meta:
        db_table = "scans"
        ordering = ("-timestamp",)
