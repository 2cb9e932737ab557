from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="QRCode",
            fields=[
                ("qr_id", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("owner_id", models.CharField(db_index=True, max_length=128)),
                ("name", models.CharField(blank=True, default="", max_length=128)),
                ("content_type", models.CharField(default="URL", max_length=32)),
                ("content", models.TextField(blank=True, default="")),
                ("scans", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "qrcodes",
            },
        ),
        migrations.CreateModel(
            name="Scan",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("timestamp", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("user_agent", models.TextField(blank=True, default="")),
                ("referrer", models.TextField(blank=True, null=True)),
                ("ip_info", models.JSONField(blank=True, null=True)),
                ("qr", models.ForeignKey(
                    db_column="qr_id",
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="scan_records",
                    to="qrcodes.qrcode",
                )),
            ],
            options={
                "db_table": "scans",
                "ordering": ("-timestamp",),
            },
        ),
    ]
