"""
Custom exceptions for the live order hub.

These never reach the client: the lifecycle service catches them, logs a
warning and treats the request as a no-op.
"""


class OrderHubError(Exception):
    """Base exception for order hub errors."""
    pass


class OrderNotFound(OrderHubError):
    """Raised when an order id is not in the active set."""

    def __init__(self, order_id, message=None):
        self.order_id = order_id
        if message is None:
            message = f"Order '{order_id}' is not active"
        super().__init__(message)


class ItemNotFound(OrderHubError):
    """Raised when an item index does not address an item of the order."""

    def __init__(self, order_id, item_index, message=None):
        self.order_id = order_id
        self.item_index = item_index
        if message is None:
            message = f"Order '{order_id}' has no item at index {item_index!r}"
        super().__init__(message)


class MalformedPayload(OrderHubError):
    """Raised when an inbound payload lacks a field that cannot be defaulted."""

    def __init__(self, event, field, message=None):
        self.event = event
        self.field = field
        if message is None:
            message = f"'{event}' payload is missing '{field}'"
        super().__init__(message)
