from storefront.models.order import OrderStatus


ALLOWED_TRANSITIONS = {
    OrderStatus.pending: [OrderStatus.processing, OrderStatus.cancelled],
    OrderStatus.processing: [OrderStatus.shipped, OrderStatus.cancelled],
    OrderStatus.shipped: [OrderStatus.delivered, OrderStatus.returned],
    OrderStatus.delivered: [OrderStatus.returned],
    OrderStatus.cancelled: [],
    OrderStatus.returned: [],
}

CANCELLABLE_STATUSES = (OrderStatus.pending, OrderStatus.processing)

# orders an admin still has to act on
ATTENTION_STATUSES = (OrderStatus.pending, OrderStatus.processing)

# orders whose total counts as revenue
REVENUE_STATUSES = (OrderStatus.delivered,)
