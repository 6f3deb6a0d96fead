from django.apps import AppConfig


class DispatchConfig(AppConfig):
    name = "modules.dispatch"
    label = "dispatch"
    verbose_name = "Uptime dispatch pipeline"
