from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/payments/", include("payments.urls")),
    path("payment/", include("payments.page_urls")),
    path("api/", include("qrcodes.urls")),
]
