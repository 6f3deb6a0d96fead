"""
Settings shared by every UptimeDispatch environment.

The overlays (``settings_development`` / ``settings_production``) add the
secret key, allowed hosts, security headers and the ``DISPATCH_*`` block.
"""

from modules.core.settings import (
    BASE_DIR,
    LOG_DIR,
    build_celery_config,
    build_default_database_config,
    build_logging_config,
    build_rest_framework_config,
    build_simple_jwt_defaults,
    get_env,
    get_installed_apps,
    get_middleware,
)

env = get_env()

INSTALLED_APPS = get_installed_apps()
MIDDLEWARE = get_middleware()
ROOT_URLCONF = "app.urls"
WSGI_APPLICATION = "app.wsgi.application"

# The API renders JSON only; templates are kept for DRF's browsable error pages.
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
            ],
        },
    },
]

DATABASES = build_default_database_config()
CONN_MAX_AGE = env.int("DB_CONN_MAX_AGE", default=600)
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

TIME_ZONE = "UTC"
USE_TZ = True
LANGUAGE_CODE = "en-us"
USE_I18N = False

# Broker, result backend and the per-region beat schedule
globals().update(build_celery_config(env, timezone=TIME_ZONE))

REST_FRAMEWORK = build_rest_framework_config()
SIMPLE_JWT = build_simple_jwt_defaults()  # SIGNING_KEY is set by the overlay

LOGGING = build_logging_config(LOG_DIR)
