"""
Order Store Tests

The store holds the active set and the append-only history log.
"""
from orders.models import HistoryStatus, Order, OrderItem, OrderStatus


def make_order(order_id, table="1", items=None, **kwargs):
    return Order(
        order_id=order_id,
        short_id=str(order_id),
        table_number=table,
        items=items if items is not None else [OrderItem(name="Pizza", price=10.0)],
        **kwargs,
    )


class TestActiveSet:
    """Lookups, insertion order and removal"""

    def test_get_normalizes_ids(self, store):
        order = store.add(make_order(1))

        assert store.get(1) is order
        assert store.get("1") is order
        assert store.get(" 1 ") is order
        assert "1" in store

    def test_get_unknown_or_none(self, store):
        assert store.get(99) is None
        assert store.get(None) is None

    def test_find_by_table_returns_first_match(self, store):
        first = store.add(make_order(1, table=7))
        store.add(make_order(2, table="7"))

        assert store.find_by_table("7") is first
        assert store.find_by_table(8) is None
        assert store.find_by_table(None) is None

    def test_find_by_table_skips_cancelled_orders(self, store):
        store.add(make_order(1, table="7", status=OrderStatus.CANCELLED))
        live = store.add(make_order(2, table="7"))

        assert store.find_by_table("7") is live
        store.remove(2)
        assert store.find_by_table("7") is None

    def test_iteration_keeps_arrival_order(self, store):
        for order_id in (3, 1, 2):
            store.add(make_order(order_id))

        assert [o.order_id for o in store] == [3, 1, 2]
        assert len(store) == 3

    def test_remove(self, store):
        store.add(make_order(1))

        removed = store.remove("1")

        assert removed.order_id == 1
        assert store.remove(1) is None
        assert len(store) == 0

    def test_stale_orders(self, store):
        old = store.add(make_order(1))
        fresh = store.add(make_order(2))
        old.last_updated = 1_000
        fresh.last_updated = 5_000

        assert store.stale_orders(cutoff_ms=2_000) == [old]


class TestSnapshot:
    """Snapshots are detached, camelCase copies"""

    def test_snapshot_serializes_every_order(self, store):
        store.add(make_order(1, table="5"))

        snapshot = store.snapshot()

        assert len(snapshot) == 1
        entry = snapshot[0]
        assert entry["orderId"] == 1
        assert entry["tableNumber"] == "5"
        assert entry["status"] == "En attente"
        assert entry["items"] == [{"name": "Pizza", "price": 10.0, "isPaid": False, "cancelled": False}]

    def test_snapshot_does_not_follow_later_mutations(self, store):
        order = store.add(make_order(1))
        snapshot = store.snapshot()

        order.status = OrderStatus.READY
        order.items[0].is_paid = True

        assert snapshot[0]["status"] == "En attente"
        assert snapshot[0]["items"][0]["isPaid"] is False

    def test_snapshot_keeps_extra_client_fields(self, store):
        store.add(make_order(1, extras={"customerName": "Léa"}))

        assert store.snapshot()[0]["customerName"] == "Léa"


class TestHistory:
    """Archived orders and their final totals"""

    def test_completed_total_excludes_cancelled_items(self, store):
        order = make_order(1, items=[
            OrderItem(name="Pizza", price=10.0, is_paid=True),
            OrderItem(name="Salade", price=5.0, cancelled=True),
        ])

        entry = store.archive(order, HistoryStatus.COMPLETED)

        assert entry.final_total == 10
        assert entry.final_status == "completed"
        assert store.history == [entry]

    def test_canceled_total_is_zero(self, store):
        entry = store.archive(make_order(1), HistoryStatus.CANCELED)

        assert entry.final_total == 0
        assert entry.to_dict()["finalStatus"] == "canceled"

    def test_history_is_append_only_copy(self, store):
        store.archive(make_order(1), HistoryStatus.COMPLETED)

        history = store.history
        history.clear()

        assert len(store.history) == 1
