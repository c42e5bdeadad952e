"""
Inventory ledger.

Stock is only ever moved through a conditional UPDATE, so two requests racing
for the last units of a product cannot both succeed. Nothing here commits:
reservations join the caller's transaction, and reserve_all rolls that
transaction back as soon as one line cannot be served.
"""
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import InsufficientStock, ProductNotFound, ValidationError
from shared.observability import ecomm_stock_reservation_failures_total

from .repository import ProductRepository
from .schemas import MAX_STOCK_QUANTITY

logger = structlog.get_logger(__name__)


class InventoryLedger:

    @staticmethod
    async def reserve(db: AsyncSession, product_id: int, quantity: int):
        if quantity <= 0:
            raise ValidationError("Quantity must be a positive integer")

        if await ProductRepository.decrement_stock_if_available(db, product_id, quantity):
            logger.info("stock_reserved", product_id=product_id, quantity=quantity)
            return

        product = await ProductRepository.get_product_by_id(db, product_id)
        if product is None:
            ecomm_stock_reservation_failures_total.labels(reason="product_not_found").inc()
            raise ProductNotFound(product_id)

        ecomm_stock_reservation_failures_total.labels(reason="insufficient_stock").inc()
        logger.warning(
            "stock_reservation_failed",
            product_id=product_id,
            requested=quantity,
            available=product.stock_quantity,
        )
        raise InsufficientStock(product.name, product.stock_quantity, quantity)

    @staticmethod
    async def reserve_all(db: AsyncSession, lines):
        """Reserves every (product_id, quantity) pair or none of them."""
        try:
            for product_id, quantity in lines:
                await InventoryLedger.reserve(db, product_id, quantity)
        except Exception:
            await db.rollback()
            raise

    @staticmethod
    async def release(db: AsyncSession, product_id: int, quantity: int):
        if quantity <= 0:
            raise ValidationError("Quantity must be a positive integer")

        if not await ProductRepository.increment_stock(db, product_id, quantity):
            # Product removed from the catalog since the order was placed
            logger.warning("stock_release_skipped", product_id=product_id, quantity=quantity)
            return
        logger.info("stock_released", product_id=product_id, quantity=quantity)

    @staticmethod
    async def restock(db: AsyncSession, product_id: int, quantity: int):
        """Admin stock intake, capped so the level never exceeds MAX_STOCK_QUANTITY."""
        if quantity <= 0:
            raise ValidationError("Quantity must be a positive integer")

        if await ProductRepository.increment_stock(db, product_id, quantity, ceiling=MAX_STOCK_QUANTITY):
            logger.info("stock_restocked", product_id=product_id, quantity=quantity)
            return

        product = await ProductRepository.get_product_by_id(db, product_id)
        if product is None:
            raise ProductNotFound(product_id)
        raise ValidationError(
            f"Restocking {product.name} by {quantity} would exceed the limit of {MAX_STOCK_QUANTITY}"
        )
