from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import CheckConstraint
from typing import Optional, TYPE_CHECKING
from decimal import Decimal

if TYPE_CHECKING:
    from storefront.models.order import Order


class OrderItem(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_orderitem_quantity_positive"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)
    product_id: int = Field(foreign_key="product.id", index=True)

    # snapshot of the catalog row at checkout time
    product_name: str = Field(max_length=200)
    product_sku: Optional[str] = Field(default=None, max_length=100)
    unit_price: Decimal = Field(max_digits=18, decimal_places=2)
    quantity: int
    discount_amount: Optional[Decimal] = Field(default=None, max_digits=18, decimal_places=2)

    order: Optional["Order"] = Relationship(back_populates="items")

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity
