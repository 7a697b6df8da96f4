class CheckoutError(ValueError):
    """A cart that cannot become an order. Raised before anything is written."""

    status_code = 400


class EmptyCartError(CheckoutError):
    def __init__(self):
        super().__init__("Cart is empty")


class InvalidCartLineError(CheckoutError):
    pass


class ProductNotFoundError(CheckoutError):
    def __init__(self, product_id: int, reason: str = "not found"):
        self.product_id = product_id
        super().__init__(f"Product {product_id} {reason}")


class InsufficientStockError(CheckoutError):
    status_code = 409

    def __init__(self, product_id: int, name: str, available: int, requested: int):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {name}. Available: {available}, Requested: {requested}"
        )


class UnknownPaymentMethodError(CheckoutError):
    def __init__(self, method: str):
        self.method = method
        super().__init__(f"Unknown payment method: {method!r}")


class OrderNumberConflictError(CheckoutError):
    status_code = 409

    def __init__(self, attempts: int):
        super().__init__(f"Could not allocate a unique order number after {attempts} attempts")
