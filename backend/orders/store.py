"""
The in-memory order store: active orders plus an append-only history log.

The store is the single owner of order state. It is created once per process
by the OrderHub and handed to the lifecycle service; nothing else writes to it.
"""
from typing import Dict, Iterator, List, Optional
import logging

from .models import HistoryEntry, HistoryStatus, Order, OrderStatus, now_ms, order_key

logger = logging.getLogger(__name__)


class OrderStore:
    """Active orders keyed by order id, in order of arrival"""

    def __init__(self):
        self._active: Dict[str, Order] = {}
        self._history: List[HistoryEntry] = []

    def __len__(self) -> int:
        return len(self._active)

    def __contains__(self, order_id) -> bool:
        return order_key(order_id) in self._active

    def __iter__(self) -> Iterator[Order]:
        return iter(list(self._active.values()))

    def get(self, order_id) -> Optional[Order]:
        if order_id is None:
            return None
        return self._active.get(order_key(order_id))

    def find_by_table(self, table_number) -> Optional[Order]:
        """First live order seated at `table_number`; cancelled orders are on their way out"""
        if table_number is None:
            return None
        wanted = str(table_number).strip()
        for order in self._active.values():
            if order.status == OrderStatus.CANCELLED:
                continue
            if str(order.table_number).strip() == wanted:
                return order
        return None

    def add(self, order: Order) -> Order:
        if order.key in self._active:
            logger.warning(f"Order {order.key} already active, replacing it")
        self._active[order.key] = order
        return order

    def remove(self, order_id) -> Optional[Order]:
        return self._active.pop(order_key(order_id), None)

    def archive(self, order: Order, final_status: str) -> HistoryEntry:
        """Append a history entry for an order leaving the active set"""
        final_total = 0 if final_status == HistoryStatus.CANCELED else order.total
        entry = HistoryEntry(
            order=order.to_dict(),
            final_status=final_status,
            final_time=now_ms(),
            final_total=final_total,
        )
        self._history.append(entry)
        logger.info(f"Archived order {order.key} as {final_status} (total {final_total})")
        return entry

    @property
    def history(self) -> List[HistoryEntry]:
        return list(self._history)

    def snapshot(self) -> List[dict]:
        """Serialized copy of every order in the active set"""
        return [order.to_dict() for order in self._active.values()]

    def stale_orders(self, cutoff_ms: int) -> List[Order]:
        return [order for order in self._active.values() if order.last_updated < cutoff_ms]

    def clear(self):
        self._active.clear()
        self._history.clear()
