from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status


@dataclass(frozen=True)
class RequestContext:
    """Who is calling. Resolved per request, never stored globally."""

    actor_id: Optional[int] = None
    role: str = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def get_request_context(
    x_actor_id: Optional[int] = Header(default=None),
    x_actor_role: str = Header(default="customer"),
) -> RequestContext:
    return RequestContext(actor_id=x_actor_id, role=x_actor_role.lower())


def get_current_customer(context: RequestContext = Depends(get_request_context)) -> RequestContext:
    if context.actor_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not identify the customer",
        )
    return context


def require_admin(context: RequestContext = Depends(get_request_context)) -> RequestContext:
    if not context.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return context
