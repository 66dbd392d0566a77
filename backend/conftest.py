"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from orders.hub import reset_order_hub


# ============================================================================
# AUTO-USE FIXTURES (Run automatically for every test)
# ============================================================================

@pytest.fixture(autouse=True)
def reset_hub():
    """
    Start every test with an empty order hub.

    The hub is a process-wide singleton; without this, orders and timers
    from one test would show up in the next.
    """
    reset_order_hub()
    yield
    reset_order_hub()


@pytest.fixture(autouse=True)
def flush_channel_layer():
    """
    Drop every channel and group membership after each test.

    The in-memory layer outlives the per-test event loop, so stale queues
    must not leak into the next test.
    """
    yield
    async_to_sync(get_channel_layer().flush)()
