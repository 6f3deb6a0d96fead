from django.apps import AppConfig


class MonitorsConfig(AppConfig):
    name = "monitors"
    verbose_name = "Uptime catalog"
    default_auto_field = "django.db.models.BigAutoField"
