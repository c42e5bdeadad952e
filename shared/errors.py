"""
Storefront domain exceptions.

Raised by the service layer when a business rule is violated. The API layer
never catches them one by one: `register_exception_handlers` translates every
StoreError into a JSON response with the status code declared on the class.
"""
import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class StoreError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ProductNotFound(StoreError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, product_id):
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id


class InsufficientStock(StoreError):
    def __init__(self, product_name: str, available: int, requested: int):
        super().__init__(f"Insufficient stock for {product_name}")
        self.product_name = product_name
        self.available = available
        self.requested = requested


class CartEmpty(StoreError):
    def __init__(self):
        super().__init__("Cart is empty")


class OrderNotFound(StoreError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, order_id):
        super().__init__("Order not found")
        self.order_id = order_id


class OrderNotCancellable(StoreError):
    """The order's status or its cancellation window no longer allows a customer cancel."""


class InvalidStatusTransition(StoreError):
    status_code = status.HTTP_409_CONFLICT


class ValidationError(StoreError):
    pass


class DuplicateEntry(StoreError):
    pass


class StorageError(StoreError):
    """Persistence failed. The caller may retry."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


async def store_error_handler(request: Request, exc: StoreError):
    logger.warning(
        "store_error",
        error=type(exc).__name__,
        detail=exc.message,
        path=request.url.path,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(StoreError, store_error_handler)
