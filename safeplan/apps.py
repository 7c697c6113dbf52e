from django.apps import AppConfig


class SafeplanConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "safeplan"
    verbose_name = "Safe workout planning"

    def ready(self):
        from safeplan.shared.logger import logging_settings, setup_logger

        if logging_settings().get("ENABLED", True):
            setup_logger()
