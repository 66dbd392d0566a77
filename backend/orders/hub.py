"""
Process-wide wiring of the order hub.

The OrderHub owns the store, the timer registry and the broadcast service and
hands them to the lifecycle service. It is built on first use and lives until
the process exits; nothing is persisted.
"""
from typing import Optional
import asyncio
import logging

from .conf import hub_settings
from .services.broadcast_service import OrderBroadcastService
from .services.lifecycle_service import LifecycleTimings, OrderLifecycleService
from .store import OrderStore
from .timers import OrderTimerRegistry

logger = logging.getLogger(__name__)


class OrderHub:
    def __init__(self, channel_layer=None, timings: Optional[LifecycleTimings] = None):
        self.store = OrderStore()
        self.timers = OrderTimerRegistry()
        self.broadcaster = OrderBroadcastService(channel_layer=channel_layer)
        self.lifecycle = OrderLifecycleService(
            store=self.store,
            timers=self.timers,
            broadcaster=self.broadcaster,
            timings=timings,
        )
        self.connections = set()
        self._sweeper: Optional[asyncio.Task] = None

    @property
    def group_name(self) -> str:
        return self.broadcaster.group_name

    def register(self, channel_name: str):
        self.connections.add(channel_name)

    def unregister(self, channel_name: str):
        self.connections.discard(channel_name)

    def ensure_sweeper(self):
        """Start the periodic stale-order sweep on the running loop"""
        loop = asyncio.get_running_loop()
        if self._sweeper is not None and not self._sweeper.done() and self._sweeper.get_loop() is loop:
            return
        self._sweeper = loop.create_task(self._sweep_forever(hub_settings.SWEEP_INTERVAL_SECONDS))
        logger.info("Stale order sweeper started")

    async def _sweep_forever(self, interval: float):
        while True:
            await asyncio.sleep(interval)
            try:
                self.lifecycle.sweep_stale_orders()
            except Exception:
                logger.exception("Stale order sweep failed")

    def shutdown(self):
        sweeper = self._sweeper
        if sweeper is not None and not sweeper.done() and not sweeper.get_loop().is_closed():
            sweeper.cancel()
        self._sweeper = None
        self.lifecycle.shutdown()
        self.broadcaster.close()
        self.connections.clear()


_hub: Optional[OrderHub] = None


def get_order_hub() -> OrderHub:
    global _hub
    if _hub is None:
        _hub = OrderHub()
        logger.info("Order hub initialised")
    return _hub


def reset_order_hub():
    """Discard the current hub with all of its orders and timers"""
    global _hub
    if _hub is not None:
        _hub.shutdown()
    _hub = None
