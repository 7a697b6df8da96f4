from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import CheckConstraint
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from decimal import Decimal
from enum import Enum

if TYPE_CHECKING:
    from storefront.models.order import Order


class PaymentMethod(str, Enum):
    credit_card = "credit_card"
    paypal = "paypal"
    bank_transfer = "bank_transfer"
    cash_on_delivery = "cash_on_delivery"


class PaymentStatus(str, Enum):
    none = "none"
    pending = "pending"
    completed = "completed"
    failed = "failed"
    refunded = "refunded"


class Payment(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    # one payment per order
    order_id: int = Field(foreign_key="order.id", unique=True, index=True)

    method: PaymentMethod = Field(index=True)
    status: PaymentStatus = Field(default=PaymentStatus.pending, index=True)
    amount: Decimal = Field(max_digits=18, decimal_places=2)

    transaction_id: Optional[str] = Field(default=None, max_length=100, unique=True, index=True)
    gateway: Optional[str] = Field(default=None, max_length=100)
    details: Optional[str] = Field(default=None, max_length=500)
    failure_reason: Optional[str] = Field(default=None, max_length=500)

    refund_amount: Optional[Decimal] = Field(default=None, max_digits=18, decimal_places=2)

    payment_date: datetime = Field(default_factory=datetime.utcnow, index=True)
    processed_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    order: Optional["Order"] = Relationship(back_populates="payment")
