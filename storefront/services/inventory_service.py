import logging
from typing import Dict, Iterable, Mapping

from sqlmodel import Session, select

from storefront.models.order import Order
from storefront.models.product import Product
from storefront.services.errors import InsufficientStockError, ProductNotFoundError

logger = logging.getLogger(__name__)


def lock_products(session: Session, product_ids: Iterable[int]) -> Dict[int, Product]:
    """
    Load and row-lock the given products for the rest of the transaction.

    Rows are locked in ascending id order so two checkouts touching the same
    products cannot deadlock. Concurrent checkouts serialize here and the
    later one sees the stock left by the earlier commit.
    """
    ids = sorted(set(product_ids))
    products = session.exec(
        select(Product)
        .where(Product.id.in_(ids))
        .order_by(Product.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).all()
    return {p.id: p for p in products}


def check_stock(products: Mapping[int, Product], requested: Mapping[int, int]):
    for product_id, quantity in requested.items():
        product = products.get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        if not product.is_active:
            raise ProductNotFoundError(product_id, "is not available")
        if product.stock_quantity < quantity:
            raise InsufficientStockError(
                product_id, product.name, product.stock_quantity, quantity
            )


def reduce_inventory(
    session: Session,
    products: Mapping[int, Product],
    requested: Mapping[int, int],
):
    """Decrement locked products. Caller commits."""
    check_stock(products, requested)

    for product_id, quantity in requested.items():
        product = products[product_id]
        product.stock_quantity -= quantity
        session.add(product)
        logger.info(f"Reserved {quantity} of product {product_id}, stock now {product.stock_quantity}")

    session.flush()


def restore_inventory(session: Session, order: Order) -> int:
    """Put every item of ``order`` back on the shelf. Caller commits."""
    restored = 0
    items = sorted(order.items, key=lambda i: i.product_id)

    for item in items:
        product = session.get(
            Product, item.product_id, with_for_update=True, populate_existing=True
        )
        if product is None:
            logger.warning(f"Product {item.product_id} of order {order.order_number} no longer exists")
            continue

        product.stock_quantity += item.quantity
        session.add(product)
        restored += item.quantity

    session.flush()
    logger.info(f"Restored {restored} units for order {order.order_number}")
    return restored
