"""Settings fragments for UptimeDispatch.

Each ``build_*`` function returns one block of Django settings read from the
environment through ``django-environ``. ``app.settings_base`` and the two
environment overlays only assemble these blocks.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta
from pathlib import Path
from typing import Any

import environ

from modules.core.settings.logger import SettingsLoggingContext, setup_settings_logging
from modules.core.settings.security import build_security_settings
from modules.core.settings.sentry import configure_sentry
from modules.core.settings_registry import get_installed_apps, get_middleware

# backend/ is three levels above this package
BASE_DIR = Path(__file__).resolve().parents[3]
LOG_DIR = BASE_DIR / "logs"
LOG_DIR.mkdir(exist_ok=True)

DEFAULT_PROBE_USER_AGENT = "Mozilla/5.0 (compatible; UpTime-Monitor/1.0)"

_env = environ.Env()
for _candidate in (BASE_DIR / ".env", BASE_DIR.parent / ".env"):
    if _candidate.exists():
        environ.Env.read_env(_candidate)
        break


def get_env() -> environ.Env:
    return _env


def build_default_database_config() -> dict[str, Any]:
    return {"default": _env.db("DATABASE_URL", default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}")}


def build_rest_framework_config() -> dict[str, Any]:
    """JWT first so unauthenticated API calls answer 401 with a Bearer challenge."""

    return {
        "DEFAULT_AUTHENTICATION_CLASSES": (
            "rest_framework_simplejwt.authentication.JWTAuthentication",
            "rest_framework.authentication.SessionAuthentication",
        ),
        "DEFAULT_PERMISSION_CLASSES": ("rest_framework.permissions.IsAuthenticated",),
        "EXCEPTION_HANDLER": "api.exception_handler.custom_exception_handler",
        "DEFAULT_THROTTLE_RATES": {"anon": "100/hour", "user": "1000/hour"},
    }


def build_simple_jwt_defaults() -> dict[str, Any]:
    return {
        "ACCESS_TOKEN_LIFETIME": timedelta(minutes=15),
        "REFRESH_TOKEN_LIFETIME": timedelta(days=7),
        "ROTATE_REFRESH_TOKENS": False,
        "UPDATE_LAST_LOGIN": True,
        "AUTH_HEADER_TYPES": ("Bearer",),
        "USER_ID_FIELD": "id",
        "USER_ID_CLAIM": "user_id",
        "ALGORITHM": "HS256",
        "AUTH_TOKEN_CLASSES": ("rest_framework_simplejwt.tokens.AccessToken",),
    }


# (filename, level, max MiB); "file_app" drops errors so they only land in error.log
_LOG_FILES: dict[str, tuple[str, str, int]] = {
    "file_app": ("uptime.log", "INFO", 5),
    "file_error": ("error.log", "ERROR", 5),
    "file_request": ("request.log", "INFO", 5),
    "file_audit": ("audit.log", "INFO", 5),
    "file_performance": ("performance.log", "INFO", 5),
    "file_health": ("health.log", "INFO", 10),
}

_LOGGER_ROUTES: dict[str, tuple[tuple[str, ...], str]] = {
    "django": (("console", "file_app", "file_error"), "INFO"),
    "django.request": (("console", "file_app", "file_error"), "ERROR"),
    "api": (("console", "file_app", "file_error"), "INFO"),
    "api.requests": (("file_request",), "INFO"),
    "api.health": (("file_health",), "INFO"),
    "monitors": (("console", "file_app", "file_error"), "INFO"),
    "dispatch": (("console", "file_app", "file_error"), "INFO"),
    "dispatch.queue": (("console", "file_app", "file_error"), "INFO"),
    "dispatch.audit": (("console", "file_audit"), "INFO"),
    "dispatch.performance": (("file_performance",), "INFO"),
}


def build_logging_config(log_dir: Path | None = None) -> dict[str, Any]:
    """``LOGGING`` dict: one rotating file per concern, named loggers routed to them."""

    dir_path = log_dir or LOG_DIR
    handlers: dict[str, dict[str, Any]] = {
        "console": {"level": "INFO", "class": "logging.StreamHandler", "formatter": "verbose"},
    }
    for name, (filename, level, max_mib) in _LOG_FILES.items():
        handlers[name] = {
            "level": level,
            "class": "logging.handlers.RotatingFileHandler",
            "filename": dir_path / filename,
            "maxBytes": max_mib * 1024 * 1024,
            "backupCount": 5,
            "formatter": "verbose",
        }
    handlers["file_app"]["filters"] = ["max_warning"]

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "[{levelname}] {asctime} {name} {module}.{funcName}:{lineno} - {message}",
                "style": "{",
            },
        },
        "filters": {
            "max_warning": {"()": "app.logging_filters.MaxLevelFilter", "level": "WARNING"},
        },
        "handlers": handlers,
        "loggers": {
            name: {"handlers": list(targets), "level": level, "propagate": False}
            for name, (targets, level) in _LOGGER_ROUTES.items()
        },
        "root": {"handlers": ["console", "file_app"], "level": "INFO"},
    }


def build_celery_config(
    env: environ.Env | None = None,
    *,
    timezone: str = "UTC",
) -> Mapping[str, Any]:
    env = env or get_env()
    redis_url = env("REDIS_URL", default="redis://127.0.0.1:6379/0")
    result_backend_default = redis_url[:-1] + "1" if redis_url.endswith("/0") else redis_url

    celery_broker_url = env("CELERY_BROKER_URL", default=redis_url)
    celery_result_backend = env("CELERY_RESULT_BACKEND", default=result_backend_default)

    return {
        "REDIS_URL": redis_url,
        "CELERY_BROKER_URL": celery_broker_url,
        "CELERY_RESULT_BACKEND": celery_result_backend,
        "CELERY_TIMEZONE": timezone,
        "CELERY_TASK_TRACK_STARTED": True,
        "CELERY_TASK_ALWAYS_EAGER": env.bool("CELERY_TASK_ALWAYS_EAGER", default=False),
        "CELERY_ACCEPT_CONTENT": ["json"],
        "CELERY_TASK_SERIALIZER": "json",
        "CELERY_RESULT_SERIALIZER": "json",
        "CELERY_BEAT_SCHEDULE": build_dispatch_beat_schedule(
            env.list("DISPATCH_BEAT_REGIONS", default=[]),
            worker_id=env("DISPATCH_BEAT_WORKER_ID", default="beat"),
            every=timedelta(seconds=env.int("DISPATCH_BEAT_INTERVAL_SECONDS", default=60)),
        ),
    }


def build_dispatch_beat_schedule(
    region_ids: list[str],
    *,
    worker_id: str,
    every: timedelta,
) -> dict[str, dict[str, Any]]:
    """One periodic single-batch run per configured region."""

    return {
        f"dispatch.run_region_batch.{region_id}": {
            "task": "dispatch.tasks.run_region_batch",
            "schedule": every,
            "args": (region_id, worker_id),
        }
        for region_id in region_ids
    }


def build_dispatch_config(
    env: environ.Env | None = None,
    *,
    default_backend: str = "redis",
) -> Mapping[str, Any]:
    env = env or get_env()
    redis_url = env("REDIS_URL", default="redis://127.0.0.1:6379/0")
    read_block_ms = env.int("DISPATCH_READ_BLOCK_MS", default=0)

    return {
        "DISPATCH_QUEUE_BACKEND": env("DISPATCH_QUEUE_BACKEND", default=default_backend),
        "DISPATCH_REDIS_URL": env("DISPATCH_REDIS_URL", default=redis_url),
        "DISPATCH_STREAM_PREFIX": env("DISPATCH_STREAM_PREFIX", default="uptime:region"),
        "DISPATCH_BATCH_SIZE": env.int("DISPATCH_BATCH_SIZE", default=10),
        "DISPATCH_MAX_CONCURRENCY": env.int("DISPATCH_MAX_CONCURRENCY", default=10),
        "DISPATCH_PROBE_TIMEOUT_SECONDS": env.float("DISPATCH_PROBE_TIMEOUT_SECONDS", default=30.0),
        "DISPATCH_MAX_REDIRECTS": env.int("DISPATCH_MAX_REDIRECTS", default=3),
        "DISPATCH_USER_AGENT": env("DISPATCH_USER_AGENT", default=DEFAULT_PROBE_USER_AGENT),
        "DISPATCH_RECLAIM_IDLE_MS": env.int("DISPATCH_RECLAIM_IDLE_MS", default=0),
        "DISPATCH_ACK_FAILED_ENTRIES": env.bool("DISPATCH_ACK_FAILED_ENTRIES", default=True),
        "DISPATCH_IDLE_SLEEP_SECONDS": env.float("DISPATCH_IDLE_SLEEP_SECONDS", default=1.0),
        "DISPATCH_READ_BLOCK_MS": read_block_ms or None,
    }


__all__ = [
    "BASE_DIR",
    "LOG_DIR",
    "DEFAULT_PROBE_USER_AGENT",
    "SettingsLoggingContext",
    "build_celery_config",
    "build_default_database_config",
    "build_dispatch_beat_schedule",
    "build_dispatch_config",
    "build_logging_config",
    "build_rest_framework_config",
    "build_security_settings",
    "build_simple_jwt_defaults",
    "configure_sentry",
    "get_env",
    "get_installed_apps",
    "get_middleware",
    "setup_settings_logging",
]
