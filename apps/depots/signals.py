# ===== apps/depots/signals.py =====
import logging

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Budget, Depot

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Depot)
def grant_default_budget(sender, instance, created, **kwargs):
    """Every new depot starts with the configured monthly savings plan budget."""
    if not created:
        return
    Budget.objects.get_or_create(
        depot=instance,
        defaults={"monthly_budget": settings.DEPOT_MONTHLY_BUDGET_START},
    )
    logger.debug(f"Default budget {settings.DEPOT_MONTHLY_BUDGET_START} granted to depot {instance.pk}")
