from django.apps import AppConfig
from django.conf import settings


class SavingsConfig(AppConfig):
    name = 'apps.savings'
    label = 'savings'

    def ready(self):
        # In-process scheduler; otherwise run `manage.py run_scheduler`
        if settings.SAVINGS_SCHEDULER_AUTOSTART:
            from .scheduler import savings_scheduler
            savings_scheduler.start()
