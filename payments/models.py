from django.db import models
from django.utils import timezone

GATEWAY_CHOICES = [
    ("stripe", "Stripe"),
    ("paypal", "PayPal"),
    ("razorpay", "Razorpay"),
    ("ccavenue", "CCAvenue"),
]


class PaymentGateway(models.Model):
    """Per-processor credentials, managed from the admin."""

    name = models.CharField(max_length=16, choices=GATEWAY_CHOICES, unique=True)
    display_name = models.CharField(max_length=64, blank=True, default="")
    is_active = models.BooleanField(default=False)
    credentials = models.JSONField(default=dict, blank=True)
    sandbox_mode = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "payment_gateways"
        ordering = ("name",)

    def __str__(self):
        state = "active" if self.is_active else "inactive"
        return f"{self.display_name or self.name} ({state})"


class Order(models.Model):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (SUCCESS, "Success"),
        (FAILED, "Failed"),
    ]

    order_id = models.CharField(max_length=40, unique=True, db_index=True)
    user_id = models.CharField(max_length=128, db_index=True)
    plan_id = models.CharField(max_length=64)
    # Always major units; adapters convert for their processor
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3)
    gateway = models.CharField(max_length=16, choices=GATEWAY_CHOICES)
    status = models.CharField(max_length=8, choices=STATUS_CHOICES, default=PENDING, db_index=True)
    gateway_order_id = models.CharField(max_length=128, blank=True, default="", db_index=True)
    payment_details = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "orders"
        ordering = ("-created_at",)

    @property
    def is_terminal(self) -> bool:
        return self.status in (self.SUCCESS, self.FAILED)

    def __str__(self):
        return f"{self.order_id} ({self.status})"


class SubscriptionQuerySet(models.QuerySet):
    def current_for(self, user_id, now=None):
        now = now or timezone.now()
        return self.filter(
            user_id=user_id,
            status=Subscription.ACTIVE,
            start_date__lte=now,
            end_date__gt=now,
        ).order_by("-end_date")


class Subscription(models.Model):
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    STATUS_CHOICES = [
        (ACTIVE, "Active"),
        (EXPIRED, "Expired"),
        (CANCELLED, "Cancelled"),
    ]

    user_id = models.CharField(max_length=128, db_index=True)
    plan_id = models.CharField(max_length=64)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=ACTIVE)
    order = models.ForeignKey(
        Order,
        to_field="order_id",
        db_column="order_id",
        on_delete=models.PROTECT,
        related_name="subscriptions",
    )
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    objects = SubscriptionQuerySet.as_manager()

    class Meta:
        db_table = "subscriptions"
        ordering = ("-start_date",)

    def effective_status(self, now=None) -> str:
        """Stored status, with expiry worked out against ``now``."""
        now = now or timezone.now()
        if self.status == self.ACTIVE and self.end_date <= now:
            return self.EXPIRED
        return self.status

    def __str__(self):
        return f"{self.user_id}/{self.plan_id} until {self.end_date:%Y-%m-%d}"
