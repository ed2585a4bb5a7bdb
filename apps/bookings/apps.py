from django.apps import AppConfig


class BookingsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.bookings"
    verbose_name = "Reservas"

    def ready(self) -> None:
        from .application import event_handlers

        event_handlers.register()
