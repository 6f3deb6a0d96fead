"""Optional Sentry error monitoring, enabled by ``SENTRY_DSN``."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from functools import partial
from typing import Any

_FILTERED = "[Filtered]"
_SECRET_HEADERS = ("Authorization", "Cookie")
# Connection strings carry passwords for the database, the broker and the stream store.
_SECRET_ENV_VARS = (
    "SECRET_KEY",
    "DATABASE_URL",
    "REDIS_URL",
    "DISPATCH_REDIS_URL",
    "CELERY_BROKER_URL",
    "CELERY_RESULT_BACKEND",
)
_UNSAMPLED_PREFIXES = ("/health", "/healthz")


def _filter_keys(mapping: dict[str, Any], keys: tuple[str, ...]) -> None:
    for key in keys:
        if key in mapping:
            mapping[key] = _FILTERED


def _scrub_sentry_event(event, hint):
    _filter_keys(event.get("request", {}).get("headers", {}), _SECRET_HEADERS)
    _filter_keys(event.get("contexts", {}).get("runtime", {}).get("env", {}), _SECRET_ENV_VARS)
    return event


def _traces_sampler(sampling_context, *, rate: float) -> float:
    path = sampling_context.get("wsgi_environ", {}).get("PATH_INFO", "")
    return 0.0 if path.startswith(_UNSAMPLED_PREFIXES) else rate


def configure_sentry(env, *, default_environment: str = "production") -> Mapping[str, Any]:
    """Initialize Sentry when ``SENTRY_DSN`` is set and return the resolved config."""

    dsn = env("SENTRY_DSN", default="")
    environment = env("SENTRY_ENVIRONMENT", default="") or default_environment
    rate = env.float("SENTRY_TRACES_SAMPLE_RATE", default=0.1)
    resolved = {"dsn": dsn, "environment": environment, "traces_sample_rate": rate}
    if not dsn:
        return resolved

    import sentry_sdk
    from sentry_sdk.integrations.celery import CeleryIntegration
    from sentry_sdk.integrations.django import DjangoIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration
    from sentry_sdk.integrations.redis import RedisIntegration

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        integrations=[
            DjangoIntegration(transaction_style="url"),
            CeleryIntegration(monitor_beat_tasks=True),
            RedisIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        send_default_pii=False,
        attach_stacktrace=True,
        traces_sampler=partial(_traces_sampler, rate=rate),
        release=env("SENTRY_RELEASE", default=None),
        before_send=_scrub_sentry_event,
    )
    sentry_sdk.set_tag("service", "uptime-dispatch")
    return resolved


__all__ = ["configure_sentry"]
