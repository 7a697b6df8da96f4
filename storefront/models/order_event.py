from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import JSON, Column, Index
from sqlmodel import Field, SQLModel


class OrderEvent(SQLModel, table=True):
    """One entry on an order's timeline. Rows are only ever appended."""

    __tablename__ = "order_event"
    __table_args__ = (
        # timeline reads filter by order and sort by time
        Index("ix_order_event_order_created", "order_id", "created_at"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True, max_length=36)

    order_id: int = Field(foreign_key="order.id", index=True)
    event_type: str = Field(index=True, max_length=50)

    label: str
    meta: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    # customer or admin id as text, "system" for automated changes
    created_by: str = Field(default="system", max_length=50)
