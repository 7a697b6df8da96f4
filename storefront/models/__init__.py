from storefront.models.product import Product
from storefront.models.address import ShippingAddress
from storefront.models.order_item import OrderItem
from storefront.models.order import Order, OrderStatus
from storefront.models.payment import Payment, PaymentMethod, PaymentStatus
from storefront.models.order_event import OrderEvent

# add ALL models here
