"""
Health Check Tests

GET /api/health/ reports liveness plus a few hub counters and needs no
authentication.
"""
from django.test import Client

from orders.hub import get_order_hub
from orders.models import Order, OrderItem


class TestHealthCheck:
    """The only HTTP endpoint the hub exposes"""

    def test_reports_ok(self):
        response = Client().get("/api/health/")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["active_orders"] == 0
        assert body["connections"] == 0
        assert body["timestamp"]

    def test_counts_active_orders(self):
        get_order_hub().store.add(Order(
            order_id=1,
            short_id="A1",
            table_number="5",
            items=[OrderItem(name="Pizza", price=10.0)],
        ))

        body = Client().get("/api/health/").json()

        assert body["active_orders"] == 1

    def test_other_paths_are_not_served(self):
        response = Client().get("/api/orders/")

        assert response.status_code == 404
