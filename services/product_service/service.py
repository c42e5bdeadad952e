from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import commit
from shared.errors import ProductNotFound

from .inventory import InventoryLedger
from .models import Product
from .repository import ProductRepository
from .schemas import ProductCreate, ProductUpdate

logger = structlog.get_logger(__name__)


class ProductService:

    @staticmethod
    async def create_product(db: AsyncSession, data: ProductCreate) -> Product:
        product = Product(
            name=data.name,
            description=data.description,
            price=data.price,
            original_price=data.original_price,
            category=data.category.value,
            stock_quantity=data.stock_quantity,
            featured=data.featured,
        )
        await ProductRepository.add(db, product)
        await commit(db)
        await db.refresh(product)
        logger.info("product_created", product_id=product.id, name=product.name)
        return product

    @staticmethod
    async def list_products(db: AsyncSession, category: Optional[str] = None, query: Optional[str] = None):
        products = await ProductRepository.get_all_products(db, category)

        # Any shared word between the query and the product name is a match
        if query:
            query_words = set(query.lower().split())
            products = [p for p in products if query_words & set(p.name.lower().split())]

        return products

    @staticmethod
    async def get_product(db: AsyncSession, product_id: int) -> Product:
        product = await ProductRepository.get_product_by_id(db, product_id)
        if not product:
            raise ProductNotFound(product_id)
        return product

    @staticmethod
    async def update_product(db: AsyncSession, product_id: int, data: ProductUpdate) -> Product:
        product = await ProductService.get_product(db, product_id)
        changes = data.model_dump(exclude_unset=True)
        if "category" in changes and changes["category"] is not None:
            changes["category"] = changes["category"].value
        for field, value in changes.items():
            setattr(product, field, value)
        await commit(db)
        await db.refresh(product)
        logger.info("product_updated", product_id=product_id, fields=sorted(changes))
        return product

    @staticmethod
    async def restock(db: AsyncSession, product_id: int, quantity: int) -> Product:
        product = await ProductService.get_product(db, product_id)
        await InventoryLedger.restock(db, product_id, quantity)
        await commit(db)
        await db.refresh(product)
        return product
