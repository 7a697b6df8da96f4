from .events import NotificationEvent
from .dispatcher import dispatch_order_event, register_handler, clear_handlers

__all__ = [
    "NotificationEvent",
    "dispatch_order_event",
    "register_handler",
    "clear_handlers",
]
