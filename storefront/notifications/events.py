from enum import Enum


class NotificationEvent(str, Enum):
    ORDER_PLACED = "order_placed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUND_PROCESSED = "refund_processed"
