from typing import Any, Dict, List, Optional
import asyncio
import logging

from channels.layers import get_channel_layer
from django.utils import timezone

from ..conf import hub_settings

logger = logging.getLogger(__name__)


class OrderBroadcastService:
    """
    Pushes order events to every socket in the hub group.

    publish() never blocks the caller: events are queued and a single drain
    task sends them through the channel layer in the order they were
    published. There is no role filtering; each client page picks the events
    it cares about.
    """

    def __init__(self, channel_layer=None, group_name: Optional[str] = None):
        self.channel_layer = channel_layer or get_channel_layer()
        self.group_name = group_name or hub_settings.GROUP_NAME
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

    def publish(self, event: str, data: Any):
        """Queue `event` for every connected party"""
        if not self.channel_layer:
            logger.warning("No channel layer available for broadcasts")
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Hub state only changes on the server loop
            logger.error(f"Cannot broadcast {event} outside the event loop, dropping it")
            return

        self._ensure_worker(loop)
        self._queue.put_nowait((event, data))

    def publish_snapshot(self, orders: List[Dict[str, Any]]):
        """Full active-order snapshot; clients replace their state with it"""
        self.publish("active_orders", {"orders": orders})

    def order_created_notification(self, order: Dict[str, Any]):
        """Single new order for the kitchen display"""
        self.publish("send_to_kitchen", order)

    def status_changed_notification(self, order: Dict[str, Any]):
        self.publish("status_change", {
            "orderId": order["orderId"],
            "status": order["status"],
            "progress": order["progress"],
            "canCancel": order["canCancel"],
            "timestamp": self._get_timestamp(),
        })

    def order_cancelled_notification(self, order_id):
        self.publish("kitchen_cancel", {"orderId": order_id})

    def item_cancelled_notification(self, order_id, item_index: int):
        self.publish("kitchen_cancel_item", {"orderId": order_id, "itemIndex": item_index})

    def customer_alert(self, order_id, alert: str, message: str, item_index: Optional[int] = None):
        """Alert shown on the customer display of one order"""
        data = {
            "orderId": order_id,
            "alert": alert,
            "message": message,
            "timestamp": self._get_timestamp(),
        }
        if item_index is not None:
            data["itemIndex"] = item_index
        self.publish("customer_alert", data)

    def waiter_called_notification(self, order: Dict[str, Any]):
        self.publish("waiter_called", {
            "orderId": order["orderId"],
            "tableNumber": order["tableNumber"],
            "waiterCalledAt": order["waiterCalledAt"],
        })

    async def flush(self):
        """Wait until every queued event has been handed to the channel layer"""
        if self._queue is not None and self._loop is asyncio.get_running_loop():
            await self._queue.join()

    def close(self):
        worker = self._worker
        if worker is not None and not worker.done() and not worker.get_loop().is_closed():
            worker.cancel()
        self._worker = None
        self._queue = None
        self._loop = None

    def _ensure_worker(self, loop: asyncio.AbstractEventLoop):
        if self._loop is not loop:
            self._loop = loop
            self._queue = asyncio.Queue()
            self._worker = None
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._drain(self._queue))

    async def _drain(self, queue: asyncio.Queue):
        while True:
            event, data = await queue.get()
            try:
                await self._send(event, data)
            except Exception as e:
                logger.error(f"Error broadcasting {event}: {e}")
            finally:
                queue.task_done()

    async def _send(self, event: str, data: Any):
        logger.debug(f"Broadcasting {event} to group {self.group_name}")
        await self.channel_layer.group_send(self.group_name, self._message(event, data))

    @staticmethod
    def _message(event: str, data: Any) -> Dict[str, Any]:
        return {
            "type": "hub_event",
            "event": event,
            "data": data,
        }

    def _get_timestamp(self):
        """Get current timestamp in ISO format"""
        return timezone.now().isoformat()


