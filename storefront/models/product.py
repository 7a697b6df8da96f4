from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint
from typing import Optional
from datetime import datetime
from decimal import Decimal


class Product(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_product_stock_non_negative"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=200)
    sku: Optional[str] = Field(default=None, max_length=100, index=True)

    price: Decimal = Field(max_digits=18, decimal_places=2)
    discount_price: Optional[Decimal] = Field(default=None, max_digits=18, decimal_places=2)

    # only checkout and the order lifecycle services change this
    stock_quantity: int = Field(default=0)

    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    @property
    def in_stock(self) -> bool:
        return self.stock_quantity > 0
