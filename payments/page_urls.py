from django.urls import path
from . import views
app_name = "payment_pages"
urlpatterns = [
    path("success", views.payment_success_view, name="success"),
    path("failure", views.payment_failure_view, name="failure"),
    path("cancel", views.payment_cancel_view, name="cancel"),
]
