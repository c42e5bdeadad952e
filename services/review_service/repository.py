from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Review


class ReviewRepository:

    @staticmethod
    async def add(db: AsyncSession, review: Review):
        db.add(review)
        await db.flush()
        return review

    @staticmethod
    async def get_for_user(db: AsyncSession, user_id: int, product_id: int) -> Optional[Review]:
        result = await db.execute(
            select(Review).where(Review.user_id == user_id, Review.product_id == product_id)
        )
        return result.scalars().first()

    @staticmethod
    async def list_for_product(db: AsyncSession, product_id: int):
        result = await db.execute(
            select(Review)
            .where(Review.product_id == product_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
        )
        return result.scalars().all()

    @staticmethod
    async def rating_stats(db: AsyncSession, product_id: int):
        """(average rating, review count) for a product."""
        result = await db.execute(
            select(func.avg(Review.rating), func.count(Review.id)).where(Review.product_id == product_id)
        )
        average, count = result.one()
        return float(average or 0.0), int(count)
