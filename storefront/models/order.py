from sqlmodel import SQLModel, Field, Relationship
from typing import List, Optional, TYPE_CHECKING
from datetime import datetime
from decimal import Decimal
from enum import Enum

from storefront.models.address import ShippingAddress
from storefront.models.order_item import OrderItem

if TYPE_CHECKING:
    from storefront.models.payment import Payment


class OrderStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"
    returned = "returned"


class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_number: str = Field(max_length=50, unique=True, index=True)

    customer_id: int = Field(index=True)
    shipping_address_id: int = Field(foreign_key="shippingaddress.id", index=True)

    # total == subtotal + shipping + tax, fixed at checkout
    subtotal: Decimal = Field(max_digits=18, decimal_places=2)
    shipping: Decimal = Field(max_digits=18, decimal_places=2)
    tax: Decimal = Field(max_digits=18, decimal_places=2)
    total: Decimal = Field(max_digits=18, decimal_places=2)
    discount_amount: Optional[Decimal] = Field(default=None, max_digits=18, decimal_places=2)

    status: OrderStatus = Field(default=OrderStatus.pending, index=True)

    notes: Optional[str] = Field(default=None, max_length=500)
    tracking_number: Optional[str] = Field(default=None, max_length=100, index=True)

    order_date: datetime = Field(default_factory=datetime.utcnow, index=True)
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    # relationships
    shipping_address: Optional[ShippingAddress] = Relationship()
    items: List[OrderItem] = Relationship(back_populates="order")
    payment: Optional["Payment"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"uselist": False},
    )
