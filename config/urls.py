"""
Root URL configuration.
Thin adapter routes only.
"""

from django.urls import include, path


urlpatterns = [
    path("api/", include("commitments.urls")),
]
