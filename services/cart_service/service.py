import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.product_service.repository import ProductRepository
from services.product_service.schemas import ProductSummary
from shared.config.database import commit
from shared.errors import ProductNotFound, ValidationError

from .models import CartItem
from .repository import CartRepository
from .schemas import CartLineResponse, CartResponse

logger = structlog.get_logger(__name__)


class CartService:
    """Per-user cart. Every mutation returns the authoritative snapshot."""

    @staticmethod
    async def _require_product(db: AsyncSession, product_id: int):
        product = await ProductRepository.get_product_by_id(db, product_id)
        if not product:
            raise ProductNotFound(product_id)
        return product

    @staticmethod
    async def snapshot(db: AsyncSession, user_id: int) -> CartResponse:
        items = await CartRepository.get_items(db, user_id)
        lines = [
            CartLineResponse(
                product_id=item.product_id,
                quantity=item.quantity,
                line_total=item.product.price * item.quantity,
                product=ProductSummary.model_validate(item.product),
            )
            for item in items
        ]
        # Always priced from the current catalog, never cached
        return CartResponse(items=lines, total=sum(line.line_total for line in lines))

    @staticmethod
    async def add(db: AsyncSession, user_id: int, product_id: int, quantity: int = 1) -> CartResponse:
        await CartService._require_product(db, product_id)
        if quantity <= 0:
            raise ValidationError("Quantity must be a positive integer")

        item = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
        await CartRepository.add_item(db, item)
        await commit(db)
        logger.info("cart_item_added", user_id=user_id, product_id=product_id, quantity=quantity)
        return await CartService.snapshot(db, user_id)

    @staticmethod
    async def set_quantity(db: AsyncSession, user_id: int, product_id: int, quantity: int) -> CartResponse:
        if quantity <= 0:
            return await CartService.remove(db, user_id, product_id)

        await CartService._require_product(db, product_id)
        item = await CartRepository.get_item(db, user_id, product_id)
        if item:
            item.quantity = quantity
        else:
            await CartRepository.add_item(db, CartItem(user_id=user_id, product_id=product_id, quantity=quantity))
        await commit(db)
        return await CartService.snapshot(db, user_id)

    @staticmethod
    async def remove(db: AsyncSession, user_id: int, product_id: int) -> CartResponse:
        await CartRepository.remove_item(db, user_id, product_id)
        await commit(db)
        return await CartService.snapshot(db, user_id)

    @staticmethod
    async def clear(db: AsyncSession, user_id: int) -> CartResponse:
        await CartRepository.clear_cart(db, user_id)
        await commit(db)
        logger.info("cart_cleared", user_id=user_id)
        return CartResponse()
