"""Reusable URL helpers for the root URLConf."""

from __future__ import annotations

from api.health import health_check
from django.urls import include, path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView


def health_urlpatterns():
    return [
        path("healthz", health_check, name="healthz"),
        path("health/", health_check, name="health_check"),
    ]


def jwt_token_urlpatterns():
    """Token issuance is delegated to the stock simplejwt views."""

    return [
        path("api/auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
        path("api/auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    ]


def api_urlpatterns():
    return [
        path("api/", include("monitors.urls")),
        path("api/", include("modules.dispatch.urls")),
    ]


__all__ = [
    "api_urlpatterns",
    "health_urlpatterns",
    "jwt_token_urlpatterns",
]
