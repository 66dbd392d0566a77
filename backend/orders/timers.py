"""
Cancellable one-shot timers keyed by order id.

Every order owns at most one timer set. Scheduling a new set for an id
cancels the previous one in the same step, so two generations of timers for
one order never coexist.
"""
from typing import Callable, Dict, Optional, Tuple
import asyncio
import itertools
import logging

from .models import order_key

logger = logging.getLogger(__name__)

TimerSpec = Tuple[float, Callable[[], None]]


class OrderTimerRegistry:
    """Pending delayed actions per order, built on the event loop's call_later"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handles: Dict[str, Dict[int, asyncio.TimerHandle]] = {}
        self._ids = itertools.count(1)

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def schedule(self, order_id, *timers: TimerSpec):
        """Replace the timer set of an order with `timers` ((delay, action) pairs)"""
        key = order_key(order_id)
        self.cancel_all(key)

        loop = self._get_loop()
        handles = {}
        for delay, action in timers:
            timer_id = next(self._ids)
            handles[timer_id] = loop.call_later(delay, self._fire, key, timer_id, action)
        self._handles[key] = handles

        logger.debug(f"Scheduled {len(handles)} timer(s) for order {key}")

    def cancel_all(self, order_id):
        """Cancel every pending timer of an order; no-op when there are none"""
        key = order_key(order_id)
        handles = self._handles.pop(key, {})
        for handle in handles.values():
            handle.cancel()
        if handles:
            logger.debug(f"Cancelled {len(handles)} timer(s) for order {key}")

    def pending(self, order_id) -> int:
        return len(self._handles.get(order_key(order_id), {}))

    def clear(self):
        for key in list(self._handles):
            self.cancel_all(key)

    def _fire(self, key: str, timer_id: int, action: Callable[[], None]):
        handles = self._handles.get(key)
        if handles is None or handles.pop(timer_id, None) is None:
            # Belongs to a replaced generation
            logger.debug(f"Ignoring stale timer {timer_id} for order {key}")
            return
        if not handles:
            del self._handles[key]

        try:
            action()
        except Exception:
            logger.exception(f"Timer action failed for order {key}")
