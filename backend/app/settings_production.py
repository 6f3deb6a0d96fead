"""
Production overlay: validated secret key, HTTPS, Redis Streams dispatch queue.
"""

from django.core.exceptions import ImproperlyConfigured
from modules.core.settings import build_dispatch_config, build_security_settings, configure_sentry

from app.settings_base import *  # noqa: F403, F401

DEBUG = env.bool("DEBUG", default=False)  # noqa: F405

SECRET_KEY = env("SECRET_KEY", default="")  # noqa: F405
if not SECRET_KEY or SECRET_KEY.startswith("django-insecure") or len(SECRET_KEY) < 50:
    raise ImproperlyConfigured(
        "SECRET_KEY must be set to a random value of at least 50 characters in production. "
        "Generate one with django.core.management.utils.get_random_secret_key()."
    )

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["uptime.local"])  # noqa: F405
SIMPLE_JWT["SIGNING_KEY"] = SECRET_KEY  # noqa: F405

globals().update(build_security_settings(env, production=True))  # noqa: F405

globals().update(build_dispatch_config(env, default_backend="redis"))  # noqa: F405

SENTRY = configure_sentry(env)  # noqa: F405
