# storefront/schemas/checkout_schemas.py
from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal


class CartLine(BaseModel):
    product_id: int
    quantity: int
    unit_price: Optional[Decimal] = None   # cart snapshot; product price when omitted


class CartItemRequest(BaseModel):
    """A cart line as sent by the customer. Prices always come from the catalog."""

    product_id: int
    quantity: int

    def to_cart_line(self) -> CartLine:
        return CartLine(product_id=self.product_id, quantity=self.quantity)


class ShippingAddressCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    address_line: str = Field(min_length=1, max_length=200)
    address_line2: Optional[str] = Field(default=None, max_length=200)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    country: str = Field(min_length=1, max_length=100)
    zip_code: str = Field(min_length=1, max_length=20)
    phone_number: Optional[str] = Field(default=None, max_length=20)


class PlaceOrderRequest(BaseModel):
    items: List[CartItemRequest]
    shipping_address: ShippingAddressCreate
    payment_method: str = "credit card"
    notes: Optional[str] = Field(default=None, max_length=500)


class CheckoutSummaryRequest(BaseModel):
    items: List[CartItemRequest]


class OrderTotals(BaseModel):
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal
