from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from storefront.models.order import OrderStatus
from storefront.models.payment import PaymentMethod, PaymentStatus


class OrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    product_name: str
    product_sku: Optional[str] = None
    unit_price: Decimal
    quantity: int
    discount_amount: Optional[Decimal] = None
    line_total: Decimal


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    method: PaymentMethod
    status: PaymentStatus
    amount: Decimal
    transaction_id: Optional[str] = None
    gateway: Optional[str] = None
    failure_reason: Optional[str] = None
    refund_amount: Optional[Decimal] = None
    payment_date: datetime
    processed_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None


class ShippingAddressRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    address_line: str
    address_line2: Optional[str] = None
    city: str
    state: str
    country: str
    zip_code: str
    phone_number: Optional[str] = None


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    customer_id: int
    status: OrderStatus
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal
    notes: Optional[str] = None
    tracking_number: Optional[str] = None
    order_date: datetime
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    items: List[OrderItemRead] = []
    payment: Optional[PaymentRead] = None
    shipping_address: Optional[ShippingAddressRead] = None


class StatusUpdateRequest(BaseModel):
    status: OrderStatus
    notes: Optional[str] = Field(default=None, max_length=500)
    tracking_number: Optional[str] = Field(default=None, max_length=100)


class CancelOrderRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class RefundRequest(BaseModel):
    amount: Decimal
    reason: str = Field(min_length=1, max_length=500)


class OrderNoteRequest(BaseModel):
    note: str = Field(min_length=1, max_length=500)


class OrderEventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    event_type: str
    label: str
    meta: Optional[dict] = None
    created_at: datetime
    created_by: str


class PaymentStatusUpdateRequest(BaseModel):
    status: PaymentStatus
    reason: Optional[str] = Field(default=None, max_length=500)
    transaction_id: Optional[str] = Field(default=None, max_length=100)
    gateway: Optional[str] = Field(default=None, max_length=100)
