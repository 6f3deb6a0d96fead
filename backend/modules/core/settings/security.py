"""CORS and HTTPS settings for the API, per environment."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

# Dashboards call the API with a bearer token; cookies are never needed cross-origin.
_CORS_ALLOW_HEADERS = [
    "accept",
    "authorization",
    "content-type",
    "origin",
    "user-agent",
    "x-request-id",
]

_DEV_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]
_PROD_ORIGINS = ["https://uptime.local"]


def build_security_settings(env, *, production: bool) -> Mapping[str, Any]:
    """
    Development allows any origin over plain HTTP. Production pins origins and,
    unless ``ENFORCE_HTTPS`` is off, redirects to HTTPS behind a TLS proxy with
    HSTS and secure cookies.
    """

    if not production:
        return {
            "CORS_ALLOW_ALL_ORIGINS": env.bool("CORS_ALLOW_ALL_ORIGINS", default=True),
            "CORS_ALLOWED_ORIGINS": _DEV_ORIGINS,
            "CORS_ALLOW_HEADERS": _CORS_ALLOW_HEADERS,
            "CORS_EXPOSE_HEADERS": ["x-request-id"],
            "SECURE_SSL_REDIRECT": False,
            "SECURE_HSTS_SECONDS": 0,
            "SESSION_COOKIE_SECURE": False,
            "CSRF_COOKIE_SECURE": False,
        }

    https = env.bool("ENFORCE_HTTPS", default=True)
    return {
        "CORS_ALLOW_ALL_ORIGINS": False,
        "CORS_ALLOWED_ORIGINS": env.list("CORS_ALLOWED_ORIGINS", default=_PROD_ORIGINS),
        "CORS_ALLOW_HEADERS": _CORS_ALLOW_HEADERS,
        "CORS_EXPOSE_HEADERS": ["x-request-id"],
        "SECURE_SSL_REDIRECT": https,
        "SECURE_HSTS_SECONDS": env.int("SECURE_HSTS_SECONDS", default=3600) if https else 0,
        "SECURE_PROXY_SSL_HEADER": ("HTTP_X_FORWARDED_PROTO", "https"),
        # The health probe of the load balancer arrives over plain HTTP.
        "SECURE_REDIRECT_EXEMPT": [r"^health/?$", r"^healthz$"],
        "SESSION_COOKIE_SECURE": https,
        "CSRF_COOKIE_SECURE": https,
    }


__all__ = ["build_security_settings"]
