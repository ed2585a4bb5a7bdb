from django.db.models.signals import post_save  # type: ignore
from django.dispatch import receiver  # type: ignore

from .models import Provider
from .services import apply_default_operating_hours


@receiver(post_save, sender=Provider)
def create_default_operating_hours(sender, instance: Provider, created: bool, raw: bool = False, **kwargs):  # type: ignore
    # fixtures carry their own schedule
    if created and not raw:
        apply_default_operating_hours(instance)
