from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("qrcodes", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="scan",
            name="browser",
            field=models.JSONField(blank=True, null=True),
        ),
        migrations.AddField(
            model_name="scan",
            name="os",
            field=models.JSONField(blank=True, null=True),
        ),
        migrations.AddField(
            model_name="scan",
            name="device",
            field=models.JSONField(blank=True, null=True),
        ),
    ]
