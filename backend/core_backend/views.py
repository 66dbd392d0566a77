from django.http import JsonResponse
from django.utils import timezone
import logging

from orders.hub import get_order_hub

logger = logging.getLogger(__name__)


async def health_check(request):
    """Simple health check endpoint that doesn't require authentication"""
    hub = get_order_hub()
    return JsonResponse({
        "status": "ok",
        "message": "Order hub is running",
        "active_orders": len(hub.store),
        "connections": len(hub.connections),
        "timestamp": timezone.now().isoformat(),
    })
