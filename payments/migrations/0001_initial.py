from django.db import migrations, models
import django.db.models.deletion


GATEWAY_CHOICES = [
    ("stripe", "Stripe"),
    ("paypal", "PayPal"),
    ("razorpay", "Razorpay"),
    ("ccavenue", "CCAvenue"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="PaymentGateway",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(choices=GATEWAY_CHOICES, max_length=16, unique=True)),
                ("display_name", models.CharField(blank=True, default="", max_length=64)),
                ("is_active", models.BooleanField(default=False)),
                ("credentials", models.JSONField(blank=True, default=dict)),
                ("sandbox_mode", models.BooleanField(default=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "payment_gateways",
                "ordering": ("name",),
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_id", models.CharField(db_index=True, max_length=40, unique=True)),
                ("user_id", models.CharField(db_index=True, max_length=128)),
                ("plan_id", models.CharField(max_length=64)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("currency", models.CharField(max_length=3)),
                ("gateway", models.CharField(choices=GATEWAY_CHOICES, max_length=16)),
                ("status", models.CharField(
                    choices=[("pending", "Pending"), ("success", "Success"), ("failed", "Failed")],
                    db_index=True,
                    default="pending",
                    max_length=8,
                )),
                ("gateway_order_id", models.CharField(blank=True, db_index=True, default="", max_length=128)),
                ("payment_details", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "orders",
                "ordering": ("-created_at",),
            },
        ),
        migrations.CreateModel(
            name="Subscription",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(db_index=True, max_length=128)),
                ("plan_id", models.CharField(max_length=64)),
                ("status", models.CharField(
                    choices=[("active", "Active"), ("expired", "Expired"), ("cancelled", "Cancelled")],
                    default="active",
                    max_length=10,
                )),
                ("start_date", models.DateTimeField()),
                ("end_date", models.DateTimeField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("order", models.ForeignKey(
                    db_column="order_id",
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="subscriptions",
                    to="payments.order",
                    to_field="order_id",
                )),
            ],
            options={
                "db_table": "subscriptions",
                "ordering": ("-start_date",),
            },
        ),
    ]
