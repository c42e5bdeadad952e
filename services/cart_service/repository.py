from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import CartItem


class CartRepository:

    @staticmethod
    async def get_items(db: AsyncSession, user_id: int):
        result = await db.execute(
            select(CartItem)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    @staticmethod
    async def get_item(db: AsyncSession, user_id: int, product_id: int) -> Optional[CartItem]:
        result = await db.execute(
            select(CartItem)
            .where(CartItem.user_id == user_id)
            .where(CartItem.product_id == product_id)
        )
        return result.scalars().first()

    @staticmethod
    async def add_item(db: AsyncSession, item: CartItem):
        """Merges into the existing (user, product) line when there is one."""
        existing_item = await CartRepository.get_item(db, item.user_id, item.product_id)
        if existing_item:
            existing_item.quantity += item.quantity
            return existing_item
        db.add(item)
        return item

    @staticmethod
    async def remove_item(db: AsyncSession, user_id: int, product_id: int):
        await db.execute(
            delete(CartItem).where(
                CartItem.user_id == user_id,
                CartItem.product_id == product_id
            )
        )

    @staticmethod
    async def clear_cart(db: AsyncSession, user_id: int):
        await db.execute(delete(CartItem).where(CartItem.user_id == user_id))
