from django.urls import path
from . import views
app_name = "payments"
urlpatterns = [
    path("create-session", views.create_session_view, name="create_session"),
    path("ccavenue-response", views.ccavenue_response_view, name="ccavenue_response"),
    path("razorpay-callback", views.razorpay_callback_view, name="razorpay_callback"),
    path("paypal-return", views.paypal_return_view, name="paypal_return"),
    path("stripe-webhook", views.stripe_webhook_view, name="stripe_webhook"),
    path("enabled-gateways", views.enabled_gateways_view, name="enabled_gateways"),
    path("gateways/<str:gateway>/status", views.gateway_status_view, name="gateway_status"),
    path("subscriptions", views.subscriptions_view, name="subscriptions"),
]
