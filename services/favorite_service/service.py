from sqlalchemy.ext.asyncio import AsyncSession

from services.product_service.repository import ProductRepository
from shared.config.database import commit
from shared.errors import DuplicateEntry, ProductNotFound

from .models import Favorite
from .repository import FavoriteRepository


class FavoriteService:

    @staticmethod
    async def list_favorites(db: AsyncSession, user_id: int):
        return await FavoriteRepository.list_for_user(db, user_id)

    @staticmethod
    async def add_favorite(db: AsyncSession, user_id: int, product_id: int) -> Favorite:
        if not await ProductRepository.get_product_by_id(db, product_id):
            raise ProductNotFound(product_id)
        if await FavoriteRepository.get(db, user_id, product_id):
            raise DuplicateEntry("Product already in favorites")

        favorite = Favorite(user_id=user_id, product_id=product_id)
        await FavoriteRepository.add(db, favorite)
        await commit(db)
        await db.refresh(favorite, attribute_names=["product"])
        return favorite

    @staticmethod
    async def remove_favorite(db: AsyncSession, user_id: int, product_id: int):
        await FavoriteRepository.remove(db, user_id, product_id)
        await commit(db)
