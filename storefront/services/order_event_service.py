# storefront/services/order_event_service.py

from datetime import datetime
from typing import List, Optional
from uuid import uuid4
from sqlmodel import Session, select
from storefront.models.order_event import OrderEvent


def actor_label(actor_id: Optional[int]) -> str:
    return str(actor_id) if actor_id is not None else "system"


def log_order_event(
    session: Session,
    order_id: int,
    event_type: str,
    label: str,
    actor_id: Optional[int] = None,
    meta: Optional[dict] = None,
) -> OrderEvent:
    """
    Append-only event log for order timeline
    """

    event = OrderEvent(
        id=str(uuid4()),
        order_id=order_id,
        event_type=event_type,
        label=label,
        meta=meta,
        created_by=actor_label(actor_id),
        created_at=datetime.utcnow(),
    )

    session.add(event)
    return event


def get_order_events(session: Session, order_id: int) -> List[OrderEvent]:
    return session.exec(
        select(OrderEvent)
        .where(OrderEvent.order_id == order_id)
        .order_by(OrderEvent.created_at, OrderEvent.id)
    ).all()
