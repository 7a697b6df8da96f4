from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class ShippingAddress(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    customer_id: int = Field(index=True)

    first_name: str = Field(max_length=50)
    last_name: str = Field(max_length=50)
    address_line: str = Field(max_length=200)
    address_line2: Optional[str] = Field(default=None, max_length=200)
    city: str = Field(max_length=100)
    state: str = Field(max_length=100)
    country: str = Field(max_length=100)
    zip_code: str = Field(max_length=20)
    phone_number: Optional[str] = Field(default=None, max_length=20)
    is_default: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
