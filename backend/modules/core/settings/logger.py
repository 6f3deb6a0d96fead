"""Which settings overlay to load, and a logger that records the choice.

Runs before Django's ``LOGGING`` is applied, so the loader attaches its own
handlers (console plus ``logs/settings.log``).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_OVERLAYS = ("production", "development")
_LOG_FORMAT = "[%(levelname)s] %(asctime)s %(name)s - %(message)s"


@dataclass(frozen=True, slots=True)
class SettingsLoggingContext:
    logger: logging.Logger
    log_dir: Path
    environment: str
    source: str


def resolve_environment(environ: Mapping[str, str]) -> tuple[str, str]:
    """
    ``DJANGO_ENV`` wins; otherwise a truthy ``DEBUG`` selects development.
    Anything else falls back to production, so a missing variable never
    ships debug settings.
    """

    requested = environ.get("DJANGO_ENV", "").strip().lower()
    if requested in _OVERLAYS:
        return requested, f"DJANGO_ENV={requested}"
    if environ.get("DEBUG", "").strip().lower() in _TRUTHY:
        return "development", "DEBUG override"
    return "production", "default fail-safe"


def setup_settings_logging(
    *,
    env: Mapping[str, str] | None = None,
    logger_name: str = "app.settings_loader",
    log_filename: str = "settings.log",
) -> SettingsLoggingContext:
    log_dir = Path(__file__).resolve().parents[3] / "logs"
    log_dir.mkdir(exist_ok=True)

    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.INFO)
    for handler in _missing_handlers(logger, log_dir / log_filename):
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)

    environment, source = resolve_environment(env or os.environ)
    logger.info("Loading app.settings_%s (%s)", environment, source)

    return SettingsLoggingContext(
        logger=logger,
        log_dir=log_dir,
        environment=environment,
        source=source,
    )


def _missing_handlers(logger: logging.Logger, log_path: Path) -> list[logging.Handler]:
    """Handlers not yet attached; wsgi, asgi and celery may each call the loader."""

    file_paths = {
        getattr(handler, "baseFilename", None)
        for handler in logger.handlers
        if isinstance(handler, logging.FileHandler)
    }
    has_console = any(
        type(handler) is logging.StreamHandler for handler in logger.handlers
    )

    missing: list[logging.Handler] = []
    if str(log_path) not in file_paths:
        missing.append(RotatingFileHandler(log_path, maxBytes=10 * 1024 * 1024, backupCount=5))
    if not has_console:
        missing.append(logging.StreamHandler())
    return missing


__all__ = ["SettingsLoggingContext", "resolve_environment", "setup_settings_logging"]
