# ===== apps/depots/notify.py =====
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction
import json

logger = logging.getLogger(__name__)


def group_name(depot_id):
    return f"depot_{depot_id}"


def _send(depot_id, event, data):
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    try:
        async_to_sync(channel_layer.group_send)(
            group_name(depot_id),
            {
                "type": "depot.update",
                "event": event,
                # Decimals and dates need encoding before they cross the layer
                "data": json.loads(json.dumps(data, cls=DjangoJSONEncoder)),
            },
        )
    except Exception:
        logger.exception(f"Push of {event} to depot {depot_id} failed")


def push_depot_update(depot_id, event, data):
    """Best-effort live update, sent only once the surrounding transaction commits."""
    transaction.on_commit(lambda: _send(depot_id, event, data))
