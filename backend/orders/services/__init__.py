"""
Order hub services.

- OrderLifecycleService: applies client events and timer firings to the store
- OrderBroadcastService: fans outbound events out to every connected socket
"""

from .broadcast_service import OrderBroadcastService
from .lifecycle_service import LifecycleTimings, OrderLifecycleService

__all__ = [
    'OrderBroadcastService',
    'OrderLifecycleService',
    'LifecycleTimings',
]
