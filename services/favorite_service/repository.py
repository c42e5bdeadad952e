from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Favorite


class FavoriteRepository:

    @staticmethod
    async def add(db: AsyncSession, favorite: Favorite):
        db.add(favorite)
        await db.flush()
        return favorite

    @staticmethod
    async def get(db: AsyncSession, user_id: int, product_id: int) -> Optional[Favorite]:
        result = await db.execute(
            select(Favorite).where(Favorite.user_id == user_id, Favorite.product_id == product_id)
        )
        return result.scalars().first()

    @staticmethod
    async def list_for_user(db: AsyncSession, user_id: int):
        result = await db.execute(
            select(Favorite).where(Favorite.user_id == user_id).order_by(Favorite.id)
        )
        return result.scalars().all()

    @staticmethod
    async def remove(db: AsyncSession, user_id: int, product_id: int):
        await db.execute(
            delete(Favorite).where(Favorite.user_id == user_id, Favorite.product_id == product_id)
        )
