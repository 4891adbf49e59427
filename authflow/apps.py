from django.apps import AppConfig


class AuthflowConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "authflow"

    def ready(self):
        from . import schema  # noqa: F401  registers the OpenAPI auth extension
