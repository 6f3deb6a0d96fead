"""INSTALLED_APPS and MIDDLEWARE for UptimeDispatch.

Apps are kept in three groups (Django, third party, project) so the order
Django needs is preserved.
"""

from __future__ import annotations

DJANGO_APPS = (
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "django.contrib.sessions",
)

THIRD_PARTY_APPS = (
    "rest_framework",
    "corsheaders",
    "django_celery_beat",
)

PROJECT_APPS = (
    "monitors",
    "modules.dispatch",
)

# Request id first so every later middleware and log line can see it.
DEFAULT_MIDDLEWARE = (
    "django.middleware.security.SecurityMiddleware",
    "app.middleware_logging.RequestIDMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "app.middleware_logging.RequestLoggingMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
)


def get_installed_apps() -> list[str]:
    return [*DJANGO_APPS, *THIRD_PARTY_APPS, *PROJECT_APPS]


def get_middleware() -> list[str]:
    return list(DEFAULT_MIDDLEWARE)


__all__ = [
    "DEFAULT_MIDDLEWARE",
    "DJANGO_APPS",
    "PROJECT_APPS",
    "THIRD_PARTY_APPS",
    "get_installed_apps",
    "get_middleware",
]
