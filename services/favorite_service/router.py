from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security import get_current_user

from .schemas import FavoriteCreate, FavoriteResponse
from .service import FavoriteService

router = APIRouter(prefix="/favorites", tags=["Favorites"])


@router.get("/", response_model=list[FavoriteResponse])
async def list_favorites(user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await FavoriteService.list_favorites(db, user_id)


@router.post("/add", response_model=FavoriteResponse, status_code=201)
async def add_favorite(
    payload: FavoriteCreate,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await FavoriteService.add_favorite(db, user_id, payload.product_id)


@router.delete("/remove/{product_id}")
async def remove_favorite(
    product_id: int,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await FavoriteService.remove_favorite(db, user_id, product_id)
    return {"message": "Removed from favorites"}
