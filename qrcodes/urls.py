from django.urls import path
from . import views
app_name = "qrcodes"
urlpatterns = [
    path("track-view", views.track_view, name="track_view"),
]
