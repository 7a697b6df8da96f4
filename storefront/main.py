import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from storefront.config import settings
from storefront.database import create_db_and_tables
from storefront.routes import (
    admin_analytics,
    admin_orders,
    admin_payments,
    checkout,
    health,
    user_orders,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local
    if settings.env == "local":
        create_db_and_tables()
    yield

app = FastAPI(title="Storefront Orders API", lifespan=lifespan)

app.include_router(health.router, prefix="/health", tags=["Health"])
app.include_router(checkout.router, prefix="/checkout", tags=["Checkout"])
app.include_router(user_orders.router, prefix="/orders", tags=["Orders"])
app.include_router(admin_orders.router, prefix="/admin/orders", tags=["Admin Orders"])
app.include_router(admin_payments.router, prefix="/admin/payments", tags=["Admin Payments"])
app.include_router(admin_analytics.router, prefix="/admin/analytics", tags=["Admin Analytics"])


@app.get("/")
def root():
    return {
        "checkout_endpoints": [
            "/checkout/summary", "/checkout/place-order"
        ],
        "order_endpoints": [
            "/orders", "/orders/{order_number}", "/orders/{order_id}/cancel"
        ],
        "admin_order_endpoints": [
            "/admin/orders", "/admin/orders/attention", "/admin/orders/{order_id}",
            "/admin/orders/{order_id}/transitions", "/admin/orders/{order_id}/status",
            "/admin/orders/{order_id}/cancel", "/admin/orders/{order_id}/refund",
            "/admin/orders/{order_id}/notes", "/admin/orders/{order_id}/events"
        ],
        "admin_payment_endpoints": [
            "/admin/payments", "/admin/payments/{payment_id}",
            "/admin/payments/{payment_id}/status", "/admin/payments/{payment_id}/refund"
        ],
        "admin_analytics_endpoints": [
            "/admin/analytics/orders", "/admin/analytics/orders/metrics",
            "/admin/analytics/payments"
        ]
    }
