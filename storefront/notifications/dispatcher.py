import logging
from collections import defaultdict
from typing import Callable, Optional

from storefront.notifications.events import NotificationEvent

logger = logging.getLogger(__name__)

_handlers: dict[NotificationEvent, list[Callable]] = defaultdict(list)


def register_handler(event: NotificationEvent, handler: Callable):
    """Subscribe ``handler(event, order, extra)`` to an order event."""
    _handlers[event].append(handler)


def clear_handlers():
    _handlers.clear()


def dispatch_order_event(
    *,
    event: NotificationEvent,
    order,
    extra: Optional[dict] = None,
):
    """
    Central notification dispatcher.

    Called after the triggering transaction has committed, so a handler
    never sees a rolled-back state change. A failing handler is logged and
    does not affect the order.
    """
    extra = extra or {}

    logger.info(
        f"Order event {event.value} for order {getattr(order, 'order_number', None)}"
    )

    for handler in list(_handlers.get(event, [])):
        try:
            handler(event, order, extra)
        except Exception:
            logger.exception(f"Notification handler failed for {event.value}")
