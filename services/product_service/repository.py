from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Product


class ProductRepository:

    @staticmethod
    async def add(db: AsyncSession, product: Product):
        db.add(product)
        await db.flush()
        return product

    @staticmethod
    async def get_all_products(db: AsyncSession, category: Optional[str] = None):
        stmt = select(Product).order_by(Product.id)
        if category:
            stmt = stmt.where(Product.category == category)
        result = await db.execute(stmt)
        return result.scalars().all()

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: int) -> Optional[Product]:
        result = await db.execute(select(Product).where(Product.id == product_id))
        return result.scalars().first()

    @staticmethod
    async def get_products_by_ids(db: AsyncSession, product_ids) -> dict:
        result = await db.execute(
            select(Product)
            .where(Product.id.in_(list(product_ids)))
            .execution_options(populate_existing=True)
        )
        return {p.id: p for p in result.scalars().all()}

    @staticmethod
    async def decrement_stock_if_available(db: AsyncSession, product_id: int, quantity: int) -> bool:
        """Compare-and-decrement. True only if the row had enough stock and was updated."""
        result = await db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock_quantity >= quantity)
            .values(stock_quantity=Product.stock_quantity - quantity)
        )
        return result.rowcount == 1

    @staticmethod
    async def increment_stock(db: AsyncSession, product_id: int, quantity: int, ceiling: Optional[int] = None) -> bool:
        """True if the row was updated. With a ceiling, refuses to lift the level above it."""
        stmt = update(Product).where(Product.id == product_id)
        if ceiling is not None:
            stmt = stmt.where(Product.stock_quantity + quantity <= ceiling)
        result = await db.execute(stmt.values(stock_quantity=Product.stock_quantity + quantity))
        return result.rowcount == 1

    @staticmethod
    async def set_rating(db: AsyncSession, product_id: int, rating: float, review_count: int):
        await db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(rating=rating, review_count=review_count)
        )
