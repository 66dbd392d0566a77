"""
Shared fixtures for order hub tests.

The lifecycle service is built with millisecond-scale timings so timer-driven
transitions can be observed with short sleeps.
"""
import pytest

from orders.services import LifecycleTimings, OrderBroadcastService, OrderLifecycleService
from orders.store import OrderStore
from orders.timers import OrderTimerRegistry


class RecordingBroadcaster(OrderBroadcastService):
    """Broadcast service that records events instead of sending them"""

    def __init__(self):
        super().__init__()
        self.events = []

    def publish(self, event, data):
        self.events.append((event, data))

    def of_type(self, event):
        return [data for name, data in self.events if name == event]

    def last_snapshot(self):
        snapshots = self.of_type("active_orders")
        assert snapshots, "No snapshot was broadcast"
        return snapshots[-1]["orders"]

    def clear(self):
        self.events.clear()


FAST_TIMINGS = LifecycleTimings(
    cancel_window=0.05,
    auto_cook=0.15,
    removal_delay=0.05,
    stale_ttl=60,
)


# ============================================================================
# HUB COMPONENT FIXTURES
# ============================================================================

@pytest.fixture
def store():
    return OrderStore()


@pytest.fixture
def timers():
    registry = OrderTimerRegistry()
    yield registry
    registry.clear()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def lifecycle(store, timers, broadcaster):
    """Lifecycle service wired to a recording broadcaster and fast timers"""
    return OrderLifecycleService(
        store=store,
        timers=timers,
        broadcaster=broadcaster,
        timings=FAST_TIMINGS,
    )


# ============================================================================
# PAYLOAD FIXTURES
# ============================================================================

@pytest.fixture
def pizza_order():
    """Scenario payload: one pizza on table 5"""
    return {
        "orderId": 1,
        "shortId": "A1",
        "tableNumber": "5",
        "items": [{"name": "Pizza", "price": 10}],
    }


@pytest.fixture
def two_item_order():
    return {
        "orderId": 2,
        "shortId": "B2",
        "table": "8",
        "items": [
            {"name": "Pizza", "price": 10},
            {"name": "Salade", "price": 5},
        ],
    }
