import os

from celery import Celery
from modules.core.settings import setup_settings_logging

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "app.settings")

setup_settings_logging(logger_name="app.settings_loader.celery")

celery_app = Celery("uptime")
celery_app.config_from_object("django.conf:settings", namespace="CELERY")

# Lambda defers INSTALLED_APPS lookup until Django settings are configured
celery_app.autodiscover_tasks(
    lambda: __import__("django.conf", fromlist=["settings"]).settings.INSTALLED_APPS
)
