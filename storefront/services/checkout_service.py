import logging
import random
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from storefront.config import settings
from storefront.models.address import ShippingAddress
from storefront.models.order import Order, OrderStatus
from storefront.models.order_item import OrderItem
from storefront.models.payment import Payment, PaymentMethod, PaymentStatus
from storefront.models.product import Product
from storefront.notifications import NotificationEvent, dispatch_order_event
from storefront.schemas.checkout_schemas import CartLine, OrderTotals, ShippingAddressCreate
from storefront.services.errors import (
    EmptyCartError,
    InvalidCartLineError,
    OrderNumberConflictError,
    ProductNotFoundError,
    UnknownPaymentMethodError,
)
from storefront.services.inventory_service import check_stock, lock_products, reduce_inventory
from storefront.services.order_event_service import log_order_event

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

PAYMENT_METHOD_ALIASES = {
    "visa": PaymentMethod.credit_card,
    "mastercard": PaymentMethod.credit_card,
    "american express": PaymentMethod.credit_card,
    "credit card": PaymentMethod.credit_card,
    "credit_card": PaymentMethod.credit_card,
    "creditcard": PaymentMethod.credit_card,
    "paypal": PaymentMethod.paypal,
    "bank transfer": PaymentMethod.bank_transfer,
    "bank_transfer": PaymentMethod.bank_transfer,
    "banktransfer": PaymentMethod.bank_transfer,
    "cash on delivery": PaymentMethod.cash_on_delivery,
    "cash_on_delivery": PaymentMethod.cash_on_delivery,
    "cashondelivery": PaymentMethod.cash_on_delivery,
    "cod": PaymentMethod.cash_on_delivery,
}


def to_money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def map_payment_method(value: Optional[str], strict: Optional[bool] = None) -> PaymentMethod:
    """
    Map free text from the checkout form onto a PaymentMethod.

    Unrecognized text falls back to credit card unless ``strict`` (default:
    ``settings.reject_unknown_payment_methods``) is on.
    """
    if isinstance(value, PaymentMethod):
        return value

    if strict is None:
        strict = settings.reject_unknown_payment_methods

    key = (value or "").strip().lower()
    method = PAYMENT_METHOD_ALIASES.get(key)
    if method is not None:
        return method

    if strict:
        raise UnknownPaymentMethodError(value or "")

    logger.warning(f"Unknown payment method {value!r}, defaulting to credit card")
    return PaymentMethod.credit_card


def calculate_order_totals(
    subtotal: Decimal,
    *,
    free_shipping_threshold: Optional[Decimal] = None,
    flat_shipping_fee: Optional[Decimal] = None,
    tax_rate: Optional[Decimal] = None,
) -> OrderTotals:
    if free_shipping_threshold is None:
        free_shipping_threshold = settings.free_shipping_threshold
    if flat_shipping_fee is None:
        flat_shipping_fee = settings.flat_shipping_fee
    if tax_rate is None:
        tax_rate = settings.tax_rate

    subtotal = to_money(subtotal)
    shipping = Decimal("0.00") if subtotal >= free_shipping_threshold else to_money(flat_shipping_fee)
    tax = to_money(subtotal * tax_rate)

    return OrderTotals(
        subtotal=subtotal,
        shipping=shipping,
        tax=tax,
        total=subtotal + shipping + tax,
    )


def _validate_cart(cart_items: Sequence[CartLine]) -> "OrderedDict[int, int]":
    """Sum quantities per product, rejecting malformed lines."""
    if not cart_items:
        raise EmptyCartError()

    requested: "OrderedDict[int, int]" = OrderedDict()
    for line in cart_items:
        if line.quantity < 1:
            raise InvalidCartLineError(
                f"Quantity for product {line.product_id} must be at least 1"
            )
        if line.unit_price is not None and (
            not line.unit_price.is_finite() or to_money(line.unit_price) <= 0
        ):
            raise InvalidCartLineError(
                f"Unit price for product {line.product_id} must be greater than zero"
            )
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

    return requested


def _unit_price(line: CartLine, product: Product) -> Decimal:
    if line.unit_price is not None:
        return to_money(line.unit_price)
    return to_money(product.price)


def cart_subtotal(session: Session, cart_items: Sequence[CartLine]) -> Decimal:
    """Subtotal for a cart preview. No locks, nothing written."""
    _validate_cart(cart_items)

    subtotal = Decimal("0.00")
    for line in cart_items:
        product = session.get(Product, line.product_id)
        if product is None or not product.is_active:
            raise ProductNotFoundError(line.product_id)
        subtotal += _unit_price(line, product) * line.quantity
    return subtotal


def _new_order_number() -> str:
    return f"ORD-{datetime.utcnow():%Y%m%d}-{random.randint(1000, 9999)}"


def generate_order_number(session: Session, max_attempts: Optional[int] = None) -> str:
    """Draw order numbers until one is not taken yet."""
    attempts = max_attempts or settings.order_number_max_attempts

    for _ in range(attempts):
        candidate = _new_order_number()
        taken = session.exec(
            select(Order.id).where(Order.order_number == candidate)
        ).first()
        if taken is None:
            return candidate
        logger.info(f"Order number {candidate} already taken, drawing again")

    raise OrderNumberConflictError(attempts)


def _create_payment(session: Session, order: Order, method: PaymentMethod) -> Payment:
    payment = Payment(
        order_id=order.id,
        method=method,
        status=PaymentStatus.pending,
        amount=order.total,
        payment_date=datetime.utcnow(),
    )
    session.add(payment)
    return payment


def _place_order_once(
    session: Session,
    customer_id: int,
    cart_items: Sequence[CartLine],
    requested: Dict[int, int],
    shipping_address: ShippingAddressCreate,
    method: PaymentMethod,
    notes: Optional[str],
) -> Order:
    # 1. lock and validate stock before any write
    products = lock_products(session, requested.keys())
    check_stock(products, requested)

    # 2. order number
    order_number = generate_order_number(session)

    # 3. shipping address
    address = ShippingAddress(customer_id=customer_id, **shipping_address.model_dump())
    session.add(address)
    session.flush()

    # 4. totals
    priced = [(line, products[line.product_id], _unit_price(line, products[line.product_id]))
              for line in cart_items]
    subtotal = sum((price * line.quantity for line, _, price in priced), Decimal("0.00"))
    totals = calculate_order_totals(subtotal)

    # 5. order
    now = datetime.utcnow()
    order = Order(
        order_number=order_number,
        customer_id=customer_id,
        shipping_address_id=address.id,
        subtotal=totals.subtotal,
        shipping=totals.shipping,
        tax=totals.tax,
        total=totals.total,
        status=OrderStatus.pending,
        notes=notes,
        order_date=now,
        created_at=now,
        updated_at=now,
    )
    session.add(order)
    session.flush()

    # 6. items, frozen copies of the catalog rows
    for line, product, price in priced:
        session.add(
            OrderItem(
                order_id=order.id,
                product_id=product.id,
                product_name=product.name,
                product_sku=product.sku,
                unit_price=price,
                quantity=line.quantity,
            )
        )

    # 7. pending payment for the full total
    _create_payment(session, order, method)

    # 8. stock
    reduce_inventory(session, products, requested)

    log_order_event(
        session,
        order_id=order.id,
        event_type="order_placed",
        label=f"Order {order_number} placed",
        actor_id=customer_id,
        meta={"total": str(order.total), "payment_method": method.value},
    )

    session.commit()
    return order


def place_order(
    session: Session,
    customer_id: int,
    cart_items: Sequence[CartLine],
    shipping_address: ShippingAddressCreate,
    payment_method: Optional[str] = None,
    notes: Optional[str] = None,
) -> Order:
    """
    Turn a cart into an Order, its OrderItems and a pending Payment.

    Everything (address, order, items, payment, stock decrement, timeline
    event) is committed together or not at all. Business-rule failures raise
    a ``CheckoutError`` subclass before anything is written; database errors
    are re-raised after rollback. A unique-index clash on the order number
    (a concurrent checkout drew the same number) retries the whole unit.
    """
    requested = _validate_cart(cart_items)
    method = map_payment_method(payment_method)

    attempts = settings.order_number_max_attempts
    for attempt in range(1, attempts + 1):
        try:
            order = _place_order_once(
                session, customer_id, cart_items, requested, shipping_address, method, notes
            )
        except IntegrityError as exc:
            session.rollback()
            if "order_number" not in str(exc.orig) or attempt == attempts:
                logger.error(f"Checkout failed for customer {customer_id}: {exc}")
                raise
            logger.warning(f"Order number collision on commit, retrying ({attempt}/{attempts})")
            continue
        except Exception:
            session.rollback()
            raise
        break
    else:
        raise OrderNumberConflictError(attempts)

    session.refresh(order)
    logger.info(f"Order {order.order_number} placed for customer {customer_id}, total {order.total}")

    dispatch_order_event(event=NotificationEvent.ORDER_PLACED, order=order)
    return order
