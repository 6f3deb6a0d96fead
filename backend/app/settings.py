"""Pick the settings overlay from ``DJANGO_ENV`` (or ``DEBUG``) and load it."""

from modules.core.settings import setup_settings_logging

_loader = setup_settings_logging()

if _loader.environment == "development":
    from app.settings_development import *  # noqa: F403, F401
else:
    from app.settings_production import *  # noqa: F403, F401

_loader.logger.info(
    "DEBUG=%s, dispatch queue backend=%s",
    DEBUG,  # noqa: F405
    DISPATCH_QUEUE_BACKEND,  # noqa: F405
)
