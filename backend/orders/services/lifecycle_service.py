from dataclasses import dataclass
from functools import partial, wraps
from typing import Any, Dict, List, Optional
import logging
import uuid

from ..conf import hub_settings
from ..exceptions import ItemNotFound, MalformedPayload, OrderHubError, OrderNotFound
from ..models import (
    UNKNOWN_TABLE,
    HistoryStatus,
    Order,
    OrderItem,
    OrderStatus,
    now_ms,
)
from ..store import OrderStore
from ..timers import OrderTimerRegistry
from .broadcast_service import OrderBroadcastService

logger = logging.getLogger(__name__)

# Keys of a new_order payload that map onto Order fields; anything else is kept as-is
ORDER_FIELDS = {
    "orderId", "shortId", "table", "tableNumber", "items", "status", "progress",
    "canCancel", "needsWaiter", "waiterCalledAt", "createdAt", "lastUpdated",
}


def extract_order_id(payload) -> Any:
    """Order id from either a bare id or an object carrying `orderId`"""
    if isinstance(payload, dict):
        return payload.get("orderId")
    return payload


def extract_table(payload) -> Any:
    if not isinstance(payload, dict):
        return None
    table = payload.get("tableNumber")
    if table in (None, ""):
        table = payload.get("table")
    return None if table in (None, "") else table


def ignore_hub_errors(func):
    """Turn lookup failures into a logged no-op returning None"""

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except OrderHubError as e:
            logger.warning(f"{func.__name__} ignored: {e}")
            return None

    return wrapper


@dataclass(frozen=True)
class LifecycleTimings:
    cancel_window: float = 20
    auto_cook: float = 30
    removal_delay: float = 5
    stale_ttl: float = 24 * 60 * 60

    @classmethod
    def from_settings(cls) -> "LifecycleTimings":
        return cls(
            cancel_window=hub_settings.CANCEL_WINDOW_SECONDS,
            auto_cook=hub_settings.AUTO_COOK_SECONDS,
            removal_delay=hub_settings.REMOVAL_DELAY_SECONDS,
            stale_ttl=hub_settings.STALE_ORDER_TTL_SECONDS,
        )


class OrderLifecycleService:
    """
    Applies client events and timer firings to the order store.

    Every public method runs to completion without awaiting, so on the single
    event loop no other mutation or timer can interleave with it. Outbound
    events are handed to the broadcast service, which delivers them later.
    Unknown orders and item indexes are logged and ignored.
    """

    def __init__(
        self,
        store: OrderStore,
        timers: OrderTimerRegistry,
        broadcaster: OrderBroadcastService,
        timings: Optional[LifecycleTimings] = None,
    ):
        self.store = store
        self.timers = timers
        self.broadcaster = broadcaster
        self.timings = timings or LifecycleTimings.from_settings()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> List[Dict[str, Any]]:
        return self.store.snapshot()

    def restore_session(self, order_id) -> Optional[Dict[str, Any]]:
        """Current state of an order for a reconnecting customer, or None"""
        order = self.store.get(extract_order_id(order_id))
        if order is None:
            logger.info(f"Session restore for unknown order {order_id!r}")
            return None
        return order.to_dict()

    def kitchen_backlog(self) -> List[Dict[str, Any]]:
        """Orders the kitchen still has to see, in arrival order"""
        return [
            order.to_dict() for order in self.store
            if order.status not in (OrderStatus.CANCELLED, OrderStatus.SERVICE_REQUESTED)
        ]

    # ------------------------------------------------------------------
    # Creation and timer-driven transitions
    # ------------------------------------------------------------------

    @ignore_hub_errors
    def create_order(self, payload: Dict[str, Any]) -> Optional[Order]:
        if not isinstance(payload, dict):
            raise MalformedPayload("new_order", "orderId")

        order_id = payload.get("orderId")
        if order_id in (None, ""):
            order_id = uuid.uuid4().hex[:12]
            logger.warning(f"new_order without orderId, assigned {order_id}")

        table = extract_table(payload)
        if table is None:
            table = UNKNOWN_TABLE

        raw_items = payload.get("items") or []
        if not isinstance(raw_items, list):
            raw_items = [raw_items]

        order = Order(
            order_id=order_id,
            short_id=payload.get("shortId") or str(order_id)[-4:].upper(),
            table_number=table,
            items=[OrderItem.from_payload(item) for item in raw_items],
            status=OrderStatus.QUEUED,
            progress=0,
            can_cancel=True,
            extras={k: v for k, v in payload.items() if k not in ORDER_FIELDS},
        )
        # Timers first: without a running loop nothing reaches the store
        self.timers.schedule(
            order.key,
            (self.timings.cancel_window, partial(self._close_cancel_window, order.key)),
            (self.timings.auto_cook, partial(self._start_cooking, order.key)),
        )
        self.store.add(order)

        logger.info(f"📦 New order {order.key} (short id {order.short_id}, table {order.table_number}, {len(order.items)} items)")

        self.broadcaster.order_created_notification(order.to_dict())
        self._broadcast_snapshot()
        return order

    def _close_cancel_window(self, key: str):
        order = self.store.get(key)
        if order is None or order.status != OrderStatus.QUEUED:
            logger.debug(f"Cancel window timer for {key} skipped")
            return

        order.can_cancel = False
        order.touch()
        logger.info(f"Cancel window closed for order {key}")

        self.broadcaster.status_changed_notification(order.to_dict())
        self._broadcast_snapshot()

    def _start_cooking(self, key: str):
        order = self.store.get(key)
        if order is None or order.status != OrderStatus.QUEUED:
            logger.debug(f"Auto-cook timer for {key} skipped")
            return

        order.status = OrderStatus.COOKING
        order.progress = 50
        order.can_cancel = False
        order.touch()
        logger.info(f"🍳 Order {key} started cooking")

        self.broadcaster.status_changed_notification(order.to_dict())
        self._broadcast_snapshot()

    def _remove_cancelled(self, key: str):
        order = self.store.get(key)
        if order is None or order.status != OrderStatus.CANCELLED:
            logger.debug(f"Removal timer for {key} skipped")
            return

        self.store.remove(key)
        logger.info(f"Removed cancelled order {key}")
        self._broadcast_snapshot()

    # ------------------------------------------------------------------
    # Kitchen
    # ------------------------------------------------------------------

    @ignore_hub_errors
    def mark_ready(self, order_id) -> Optional[Order]:
        order = self._require_order(order_id)
        if order.status == OrderStatus.CANCELLED:
            logger.warning(f"Order {order.key} is cancelled, not marking it ready")
            return None

        self.timers.cancel_all(order.key)
        order.status = OrderStatus.READY
        order.progress = 100
        order.can_cancel = False
        order.touch()
        logger.info(f"✅ Order {order.key} ready")

        self.broadcaster.status_changed_notification(order.to_dict())
        self._broadcast_snapshot()
        return order

    @ignore_hub_errors
    def kitchen_reject_order(self, order_id) -> Optional[Order]:
        order = self._require_order(order_id)

        self.timers.cancel_all(order.key)
        order.status = OrderStatus.CANCELLED
        order.can_cancel = False
        order.touch()
        self.store.remove(order.key)
        logger.info(f"❌ Kitchen rejected order {order.key}")

        self.broadcaster.order_cancelled_notification(order.order_id)
        self.broadcaster.customer_alert(
            order.order_id, "order_rejected", "Votre commande a été refusée par la cuisine."
        )
        self._broadcast_snapshot()
        return order

    @ignore_hub_errors
    def kitchen_reject_item(self, order_id, item_index) -> Optional[Order]:
        order = self._require_order(order_id)
        index, item = self._require_item(order, item_index)

        item.cancelled = True
        order.touch()
        logger.info(f"Kitchen rejected item {index} ({item.name}) of order {order.key}")

        self.broadcaster.item_cancelled_notification(order.order_id, index)
        self.broadcaster.customer_alert(
            order.order_id, "item_unavailable", f"{item.name} n'est plus disponible.", item_index=index
        )
        self._cascade_if_all_cancelled(order)
        self._broadcast_snapshot()
        return order

    # ------------------------------------------------------------------
    # Customer
    # ------------------------------------------------------------------

    @ignore_hub_errors
    def cancel_order(self, order_id) -> Optional[Order]:
        order = self._require_order(extract_order_id(order_id))

        self.timers.cancel_all(order.key)
        order.status = OrderStatus.CANCELLED
        order.can_cancel = False
        for item in order.items:
            item.cancelled = True
        order.touch()
        self.store.archive(order, HistoryStatus.CANCELED)
        self.store.remove(order.key)
        logger.info(f"❌ Customer cancelled order {order.key}")

        self.broadcaster.order_cancelled_notification(order.order_id)
        self.broadcaster.customer_alert(order.order_id, "order_canceled", "Votre commande a été annulée.")
        self._broadcast_snapshot()
        return order

    @ignore_hub_errors
    def cancel_item(self, order_id, item_index) -> Optional[Order]:
        order = self._require_order(order_id)
        index, item = self._require_item(order, item_index)

        item.cancelled = True
        order.touch()
        logger.info(f"🔪 Customer cancelled item {index} ({item.name}) of order {order.key}")

        self.broadcaster.item_cancelled_notification(order.order_id, index)
        self._cascade_if_all_cancelled(order)
        self._broadcast_snapshot()
        return order

    # ------------------------------------------------------------------
    # POS / manager
    # ------------------------------------------------------------------

    @ignore_hub_errors
    def mark_item_paid(self, order_id, item_index) -> Optional[Order]:
        order = self._require_order(order_id)
        index, item = self._require_item(order, item_index)

        item.is_paid = not item.is_paid
        order.touch()
        logger.info(f"Item {index} of order {order.key} marked {'paid' if item.is_paid else 'unpaid'}")

        self._broadcast_snapshot()
        return order

    @ignore_hub_errors
    def close_table(self, order_id) -> Optional[Order]:
        order = self._require_order(order_id)

        self.store.archive(order, HistoryStatus.COMPLETED)
        self.timers.cancel_all(order.key)
        self.store.remove(order.key)
        logger.info(f"Closed table {order.table_number} (order {order.key})")

        self._broadcast_snapshot()
        return order

    # ------------------------------------------------------------------
    # Waiter calls
    # ------------------------------------------------------------------

    @ignore_hub_errors
    def call_waiter(self, payload) -> Optional[Order]:
        order_id = extract_order_id(payload)
        table = extract_table(payload)

        # orderId wins over tableNumber
        order = self.store.get(order_id) if order_id not in (None, "") else None
        if order is not None and order.status == OrderStatus.CANCELLED:
            # The removal timer would take the call with it
            if table is None:
                table = order.table_number
            order = None
        if order is None and table is not None:
            order = self.store.find_by_table(table)

        if order is not None:
            order.needs_waiter = True
            order.waiter_called_at = now_ms()
            order.touch()
            logger.info(f"🔔 Waiter called for order {order.key} (table {order.table_number})")
        else:
            order = self._create_service_request(table if table is not None else UNKNOWN_TABLE)

        self.broadcaster.waiter_called_notification(order.to_dict())
        self._broadcast_snapshot()
        return order

    @ignore_hub_errors
    def resolve_waiter_call(self, order_id) -> Optional[Order]:
        order = self._require_order(order_id)

        order.needs_waiter = False
        order.waiter_called_at = None
        order.touch()

        if not order.items:
            self.timers.cancel_all(order.key)
            self.store.remove(order.key)
            logger.info(f"Waiter call {order.key} resolved and removed")
        else:
            logger.info(f"Waiter call resolved for order {order.key}")

        self._broadcast_snapshot()
        return order

    def _create_service_request(self, table) -> Order:
        called_at = now_ms()
        order = Order(
            order_id=f"service-{table}-{called_at}",
            short_id=f"T{table}",
            table_number=table,
            items=[],
            status=OrderStatus.SERVICE_REQUESTED,
            progress=0,
            can_cancel=False,
            needs_waiter=True,
            waiter_called_at=called_at,
        )
        self.store.add(order)
        logger.info(f"🔔 Waiter called from table {table} without an order, created {order.key}")
        return order

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def sweep_stale_orders(self, now: Optional[int] = None) -> List[str]:
        """Drop orders untouched for longer than the stale TTL"""
        now = now if now is not None else now_ms()
        cutoff = now - int(self.timings.stale_ttl * 1000)

        removed = []
        for order in self.store.stale_orders(cutoff):
            self.timers.cancel_all(order.key)
            self.store.remove(order.key)
            removed.append(order.key)

        if removed:
            logger.info(f"Swept {len(removed)} stale order(s): {removed}")
            self._broadcast_snapshot()
        return removed

    def shutdown(self):
        self.timers.clear()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_order(self, order_id) -> Order:
        if order_id in (None, ""):
            raise MalformedPayload("order event", "orderId")
        order = self.store.get(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def _require_item(self, order: Order, item_index):
        item = order.get_item(item_index)
        if item is None:
            raise ItemNotFound(order.order_id, item_index)
        return int(item_index), item

    def _cascade_if_all_cancelled(self, order: Order):
        """Cancel an order whose items are all cancelled and remove it after the grace delay"""
        if order.status == OrderStatus.CANCELLED or not order.all_items_cancelled:
            return

        order.status = OrderStatus.CANCELLED
        order.can_cancel = False
        self.timers.schedule(
            order.key,
            (self.timings.removal_delay, partial(self._remove_cancelled, order.key)),
        )
        logger.info(f"Every item of order {order.key} cancelled, removing in {self.timings.removal_delay}s")

        self.broadcaster.status_changed_notification(order.to_dict())
        self.broadcaster.order_cancelled_notification(order.order_id)

    def _broadcast_snapshot(self):
        self.broadcaster.publish_snapshot(self.store.snapshot())
