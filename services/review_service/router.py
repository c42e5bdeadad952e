from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security import get_current_user

from .schemas import ReviewCreate, ReviewResponse
from .service import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.get("/product/{product_id}", response_model=list[ReviewResponse])
async def list_reviews(product_id: int, db: AsyncSession = Depends(get_db)):
    return await ReviewService.list_reviews(db, product_id)


@router.post("/", response_model=ReviewResponse, status_code=201)
async def add_review(
    payload: ReviewCreate,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ReviewService.add_review(db, user_id, payload)
