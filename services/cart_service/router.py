from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security.dependencies import get_current_user

from .schemas import CartItemAdd, CartItemUpdate, CartResponse
from .service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.get("/", response_model=CartResponse)
async def get_cart(user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await CartService.snapshot(db, user_id)


@router.post("/add", response_model=CartResponse)
async def add_item(
    item: CartItemAdd,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await CartService.add(db, user_id, item.product_id, item.quantity)


@router.put("/update", response_model=CartResponse)
async def update_item(
    item: CartItemUpdate,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await CartService.set_quantity(db, user_id, item.product_id, item.quantity)


@router.delete("/remove/{product_id}", response_model=CartResponse)
async def remove_item(
    product_id: int,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await CartService.remove(db, user_id, product_id)


@router.delete("/clear", response_model=CartResponse)
async def clear_cart(user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await CartService.clear(db, user_id)
