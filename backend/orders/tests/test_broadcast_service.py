"""
Broadcast Service Tests

Events go through the channel layer to the hub group, in publish order,
without blocking the publisher.
"""
import asyncio

import pytest
from channels.layers import get_channel_layer

from orders.services import OrderBroadcastService


class FlakyLayer:
    """Channel layer stand-in that fails on the 'boom' event"""

    def __init__(self):
        self.sent = []

    async def group_send(self, group, message):
        if message["event"] == "boom":
            raise RuntimeError("layer unavailable")
        self.sent.append((group, message["event"], message["data"]))


@pytest.mark.asyncio
class TestQueuedDelivery:
    """publish() from inside the event loop"""

    async def test_events_reach_group_in_publish_order(self):
        layer = get_channel_layer()
        channel = await layer.new_channel()
        await layer.group_add("order_hub", channel)
        service = OrderBroadcastService(channel_layer=layer)

        service.publish("first", {"n": 1})
        service.publish_snapshot([{"orderId": 1}])
        await service.flush()

        assert await layer.receive(channel) == {"type": "hub_event", "event": "first", "data": {"n": 1}}
        assert await layer.receive(channel) == {
            "type": "hub_event",
            "event": "active_orders",
            "data": {"orders": [{"orderId": 1}]},
        }
        service.close()

    async def test_publish_does_not_send_synchronously(self):
        layer = FlakyLayer()
        service = OrderBroadcastService(channel_layer=layer, group_name="room")

        service.publish("queued", 1)
        assert layer.sent == []

        await service.flush()
        assert layer.sent == [("room", "queued", 1)]
        service.close()

    async def test_failed_delivery_is_dropped(self):
        layer = FlakyLayer()
        service = OrderBroadcastService(channel_layer=layer, group_name="room")

        service.publish("before", 1)
        service.publish("boom", 2)
        service.publish("after", 3)
        await service.flush()

        assert [event for _, event, _ in layer.sent] == ["before", "after"]
        service.close()

    async def test_notification_payloads(self):
        layer = FlakyLayer()
        service = OrderBroadcastService(channel_layer=layer, group_name="room")
        order = {
            "orderId": 5,
            "tableNumber": "2",
            "status": "Prêt à être servi",
            "progress": 100,
            "canCancel": False,
            "waiterCalledAt": 123,
        }

        service.status_changed_notification(order)
        service.item_cancelled_notification(5, 0)
        service.customer_alert(5, "item_unavailable", "Pizza n'est plus disponible.", item_index=0)
        service.waiter_called_notification(order)
        await service.flush()

        events = {event: data for _, event, data in layer.sent}
        assert events["status_change"]["status"] == "Prêt à être servi"
        assert events["status_change"]["progress"] == 100
        assert "timestamp" in events["status_change"]
        assert events["kitchen_cancel_item"] == {"orderId": 5, "itemIndex": 0}
        assert events["customer_alert"]["itemIndex"] == 0
        assert events["waiter_called"] == {"orderId": 5, "tableNumber": "2", "waiterCalledAt": 123}
        service.close()

    async def test_close_stops_worker(self):
        service = OrderBroadcastService(channel_layer=FlakyLayer())
        service.publish("x", 1)
        worker = service._worker

        service.close()

        assert service._worker is None
        with pytest.raises(asyncio.CancelledError):
            await worker


class TestOutsideEventLoop:
    """publish() from sync code with no running loop"""

    def test_publish_without_loop_is_dropped(self):
        layer = FlakyLayer()
        service = OrderBroadcastService(channel_layer=layer, group_name="room")

        service.publish("late", {"ok": True})

        assert layer.sent == []
        assert service._worker is None
        assert service._queue is None

    def test_default_group_comes_from_settings(self, settings):
        settings.ORDER_HUB = {"GROUP_NAME": "dining_room"}

        service = OrderBroadcastService(channel_layer=FlakyLayer())

        assert service.group_name == "dining_room"
