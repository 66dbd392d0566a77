import json
import logging

from channels.generic.websocket import AsyncWebsocketConsumer
from django.utils import timezone

from .hub import get_order_hub
from .services.lifecycle_service import extract_order_id

logger = logging.getLogger(__name__)


def extract_item_index(payload):
    if isinstance(payload, dict):
        return payload.get("itemIndex")
    return None


class OrderHubConsumer(AsyncWebsocketConsumer):
    """
    WebSocket consumer shared by every client page: customer, kitchen,
    POS/manager dashboard and waiter display.

    Frames are JSON objects of the form {"type": <event>, "payload": <data>}.
    Every socket joins the hub group and receives every broadcast.
    """

    async def connect(self):
        """Join the hub group and send the current snapshot"""
        try:
            self.hub = get_order_hub()

            await self.channel_layer.group_add(self.hub.group_name, self.channel_name)
            await self.accept()

            self.hub.register(self.channel_name)
            self.hub.ensure_sweeper()

            # Late joiners start from the full active set
            await self.send_event("active_orders", {"orders": self.hub.lifecycle.snapshot()})

            logger.info(f"New client connected: {self.channel_name} ({len(self.hub.connections)} connected)")

        except Exception as e:
            logger.error(f"Error connecting WebSocket: {e}")
            await self.close()

    async def disconnect(self, close_code):
        hub = getattr(self, "hub", None)
        if hub is None:
            return
        try:
            await self.channel_layer.group_discard(hub.group_name, self.channel_name)
            hub.unregister(self.channel_name)
            logger.info(f"Client disconnected: {self.channel_name}, code={close_code}")
        except Exception as e:
            logger.error(f"Error disconnecting WebSocket: {e}")

    async def receive(self, text_data=None, bytes_data=None):
        """Handle messages from WebSocket"""
        try:
            data = json.loads(text_data or bytes_data or "")
        except (json.JSONDecodeError, UnicodeDecodeError):
            await self.send_error("Invalid JSON format")
            return

        if not isinstance(data, dict):
            await self.send_error("Expected a JSON object")
            return

        message_type = data.get("type")
        payload = data.get("payload")
        lifecycle = self.hub.lifecycle

        logger.debug(f"Received {message_type} from {self.channel_name}")

        try:
            if message_type == "new_order":
                await self.handle_new_order(payload)
            elif message_type == "mark_item_paid":
                lifecycle.mark_item_paid(extract_order_id(payload), extract_item_index(payload))
            elif message_type == "mark_ready":
                lifecycle.mark_ready(extract_order_id(payload))
            elif message_type == "close_table":
                lifecycle.close_table(extract_order_id(payload))
            elif message_type == "kitchen_reject_order":
                lifecycle.kitchen_reject_order(extract_order_id(payload))
            elif message_type == "kitchen_reject_item":
                lifecycle.kitchen_reject_item(extract_order_id(payload), extract_item_index(payload))
            elif message_type == "cancel_order":
                lifecycle.cancel_order(payload)
            elif message_type == "cancel_item":
                lifecycle.cancel_item(extract_order_id(payload), extract_item_index(payload))
            elif message_type == "call_waiter":
                lifecycle.call_waiter(payload)
            elif message_type == "resolve_waiter_call":
                lifecycle.resolve_waiter_call(extract_order_id(payload))
            elif message_type == "restore_session":
                await self.handle_restore_session(payload)
            elif message_type == "request_orders":
                await self.handle_request_orders()
            elif message_type == "ping":
                await self.handle_ping()
            else:
                await self.send_error(f"Unknown event: {message_type}")

        except Exception as e:
            logger.exception(f"Error processing {message_type}: {e}")
            await self.send_error(f"Error processing {message_type}")

    async def handle_new_order(self, payload):
        order = self.hub.lifecycle.create_order(payload)
        if order is None:
            await self.send_error("Order could not be created")
            return

        # Only the submitting page gets the confirmation
        await self.send_event("order_confirmed", {
            "orderId": order.order_id,
            "shortId": order.short_id,
        })

    async def handle_restore_session(self, payload):
        order_id = extract_order_id(payload)
        order = self.hub.lifecycle.restore_session(order_id)

        if order is None:
            await self.send_event("session_expired", {
                "orderId": order_id,
                "message": "Session expirée",
            })
        else:
            await self.send_event("session_restored", {"order": order})

    async def handle_request_orders(self):
        """Replay every order the kitchen still has to see to this socket only"""
        backlog = self.hub.lifecycle.kitchen_backlog()
        logger.info(f"Sending {len(backlog)} active orders to {self.channel_name}")
        for order in backlog:
            await self.send_event("send_to_kitchen", order)

    async def handle_ping(self):
        """Handle ping to keep connection alive"""
        await self.send(text_data=json.dumps({
            "type": "pong",
            "timestamp": timezone.now().isoformat(),
        }))

    async def send_event(self, event, payload):
        await self.send(text_data=json.dumps({
            "type": event,
            "payload": payload,
        }))

    async def send_error(self, message):
        """Send error message"""
        await self.send(text_data=json.dumps({
            "type": "error",
            "message": message,
        }))

    # Event handlers for group messages
    async def hub_event(self, event):
        """Forward a broadcast from the hub group to this socket"""
        try:
            await self.send_event(event["event"], event["data"])
        except Exception as e:
            logger.error(f"Error forwarding {event.get('event')} to {self.channel_name}: {e}")
