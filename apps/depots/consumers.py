# apps/depots/consumers.py

import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from apps.users.roles import resolve_caller
from .notify import group_name
from .services import visible_depots

logger = logging.getLogger(__name__)


@database_sync_to_async
def can_watch(user, depot_id):
    caller = resolve_caller(user)
    return visible_depots(caller).filter(pk=depot_id).exists()


class DepotConsumer(AsyncWebsocketConsumer):
    """Pushes ledger and savings plan events of one depot to its viewers."""

    async def connect(self):
        user = self.scope.get("user")
        depot_id = int(self.scope["url_route"]["kwargs"]["depot_id"])

        if not user or not user.is_authenticated:
            await self.close()
            return

        if not await can_watch(user, depot_id):
            await self.close()
            return

        self.group_name = group_name(depot_id)

        await self.channel_layer.group_add(
            self.group_name,
            self.channel_name
        )

        await self.accept()

        await self.send(text_data=json.dumps({
            "type": "connection",
            "message": "WebSocket connected",
            "depot_id": depot_id,
        }))

    async def disconnect(self, close_code):
        if hasattr(self, 'group_name'):
            await self.channel_layer.group_discard(
                self.group_name,
                self.channel_name
            )

    async def receive(self, text_data=None, bytes_data=None):
        # Read-only channel
        logger.debug(f"Ignoring client message on {getattr(self, 'group_name', '?')}")

    async def depot_update(self, event):
        """
        event = {
            "type": "depot.update",
            "event": "transaction" | "savings_plan.executed" | "savings_plan.skipped" | ...,
            "data": {...}
        }
        """
        await self.send(text_data=json.dumps({
            "type": "depot.update",
            "event": event.get("event"),
            "data": event.get("data"),
        }))
