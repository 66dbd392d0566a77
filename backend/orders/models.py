"""
In-memory order entities for the live order hub.

Nothing here is persisted: orders live in the OrderStore for as long as they
are active and are serialized to camelCase dicts for the client pages.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import math

from django.db import models
from django.utils import timezone

UNKNOWN_TABLE = "inconnue"
DEFAULT_ITEM_NAME = "Article"


class OrderStatus(models.TextChoices):
    QUEUED = "En attente", "Queued"
    COOKING = "En préparation", "Cooking"
    READY = "Prêt à être servi", "Ready"
    CANCELLED = "Annulé", "Cancelled"
    SERVICE_REQUESTED = "Service demandé", "Service requested"


class HistoryStatus(models.TextChoices):
    COMPLETED = "completed", "Completed"
    CANCELED = "canceled", "Canceled"


def now_ms() -> int:
    """Current wall-clock time in milliseconds since epoch"""
    return int(timezone.now().timestamp() * 1000)


def to_price(value) -> float:
    try:
        price = float(value)
    except (TypeError, ValueError):
        return 0.0
    # NaN and infinity are not valid JSON for the client pages
    return price if math.isfinite(price) else 0.0


@dataclass
class OrderItem:
    name: str
    price: float
    is_paid: bool = False
    cancelled: bool = False
    extras: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, data) -> "OrderItem":
        """Build a fresh, unpaid and uncancelled item from a client payload"""
        if not isinstance(data, dict):
            return cls(name=str(data) if data is not None else DEFAULT_ITEM_NAME, price=0.0)

        extras = {
            k: v for k, v in data.items()
            if k not in ("name", "price", "isPaid", "cancelled")
        }
        return cls(
            name=data.get("name") or DEFAULT_ITEM_NAME,
            price=to_price(data.get("price")),
            extras=extras,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.extras,
            "name": self.name,
            "price": self.price,
            "isPaid": self.is_paid,
            "cancelled": self.cancelled,
        }


@dataclass
class Order:
    """
    An active order as seen by every connected party.

    `progress` is a display hint only: 0 when queued, 50 once cooking starts
    and 100 when ready. `extras` keeps any additional keys the client sent
    with the order so they are echoed back untouched.
    """

    order_id: Any
    short_id: Optional[str]
    table_number: Any
    items: List[OrderItem] = field(default_factory=list)
    status: str = OrderStatus.QUEUED
    progress: int = 0
    can_cancel: bool = False
    needs_waiter: bool = False
    waiter_called_at: Optional[int] = None
    created_at: int = field(default_factory=now_ms)
    last_updated: int = field(default_factory=now_ms)
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return order_key(self.order_id)

    @property
    def total(self) -> float:
        """Sum of the prices of items that were not cancelled"""
        return sum(item.price for item in self.items if not item.cancelled)

    @property
    def all_items_cancelled(self) -> bool:
        return bool(self.items) and all(item.cancelled for item in self.items)

    def get_item(self, index) -> Optional[OrderItem]:
        try:
            index = int(index)
        except (TypeError, ValueError):
            return None
        if 0 <= index < len(self.items):
            return self.items[index]
        return None

    def touch(self):
        self.last_updated = now_ms()

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.extras,
            "orderId": self.order_id,
            "shortId": self.short_id,
            "tableNumber": self.table_number,
            "items": [item.to_dict() for item in self.items],
            "status": str(self.status),
            "progress": self.progress,
            "canCancel": self.can_cancel,
            "needsWaiter": self.needs_waiter,
            "waiterCalledAt": self.waiter_called_at,
            "createdAt": self.created_at,
            "lastUpdated": self.last_updated,
        }


@dataclass(frozen=True)
class HistoryEntry:
    """Snapshot of an order at the moment it left the active set"""

    order: Dict[str, Any]
    final_status: str
    final_time: int
    final_total: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.order,
            "finalStatus": str(self.final_status),
            "finalTime": self.final_time,
            "finalTotal": self.final_total,
        }


def order_key(order_id) -> str:
    """Store key for an order id; 1 and "1" address the same order"""
    return str(order_id).strip()
