"""
URL configuration for the order hub.

Client pages are served elsewhere; the hub itself only exposes a health
check over HTTP. Everything else goes through the websocket at /ws/hub/.
"""

from django.urls import path

from .views import health_check

urlpatterns = [
    path("api/health/", health_check, name="health_check"),
]
