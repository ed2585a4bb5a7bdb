from django.apps import AppConfig


class ProvidersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.providers"
    verbose_name = "Proveedores"

    def ready(self) -> None:
        from . import signals  # noqa: F401
