from django.apps import AppConfig


class DepotsConfig(AppConfig):
    name = 'apps.depots'
    label = 'depots'

    def ready(self):
        from . import signals  # noqa: F401
