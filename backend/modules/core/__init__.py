"""Settings, URL and app plumbing shared by the UptimeDispatch apps."""

from .settings_registry import get_installed_apps, get_middleware

__all__ = ["get_installed_apps", "get_middleware"]
