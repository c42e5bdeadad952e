from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security.dependencies import get_current_admin

from .schemas import ProductCategory, ProductCreate, ProductResponse, ProductUpdate, StockUpdate
from .service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("/", response_model=list[ProductResponse])
async def list_products(
    category: Optional[ProductCategory] = Query(default=None),
    query: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db)
):
    return await ProductService.list_products(db, category.value if category else None, query)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    return await ProductService.get_product(db, product_id)


@router.post("/", response_model=ProductResponse, status_code=201, dependencies=[Depends(get_current_admin)])
async def create_product(product: ProductCreate, db: AsyncSession = Depends(get_db)):
    return await ProductService.create_product(db, product)


@router.patch("/{product_id}", response_model=ProductResponse, dependencies=[Depends(get_current_admin)])
async def update_product(product_id: int, payload: ProductUpdate, db: AsyncSession = Depends(get_db)):
    return await ProductService.update_product(db, product_id, payload)


@router.post("/{product_id}/restock", response_model=ProductResponse, dependencies=[Depends(get_current_admin)])
async def restock(product_id: int, payload: StockUpdate, db: AsyncSession = Depends(get_db)):
    return await ProductService.restock(db, product_id, payload.quantity)
