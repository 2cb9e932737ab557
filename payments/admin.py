from django.contrib import admin
from .models import Order, PaymentGateway, Subscription


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_id", "status", "gateway", "amount", "currency", "user_id", "plan_id", "created_at", "updated_at")
    search_fields = ("order_id", "gateway_order_id", "user_id")
    list_filter = ("status", "gateway", "currency", "created_at")
    readonly_fields = ("order_id", "gateway_order_id", "payment_details", "created_at", "updated_at")
    ordering = ("-created_at",)


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = ("user_id", "plan_id", "status", "start_date", "end_date", "order")
    search_fields = ("user_id", "plan_id", "order__order_id")
    list_filter = ("status", "plan_id")
    readonly_fields = ("order", "created_at")


@admin.register(PaymentGateway)
class PaymentGatewayAdmin(admin.ModelAdmin):
    list_display = ("name", "display_name", "is_active", "sandbox_mode", "updated_at")
    list_filter = ("is_active", "sandbox_mode")
    readonly_fields = ("updated_at",)
