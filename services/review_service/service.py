import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.product_service.repository import ProductRepository
from shared.config.database import commit
from shared.errors import DuplicateEntry, ProductNotFound

from .models import Review
from .repository import ReviewRepository
from .schemas import ReviewCreate, ReviewResponse

logger = structlog.get_logger(__name__)


def to_response(review: Review) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        user_id=review.user_id,
        user_name=review.user.name,
        product_id=review.product_id,
        rating=review.rating,
        comment=review.comment,
        created_at=review.created_at,
    )


class ReviewService:

    @staticmethod
    async def list_reviews(db: AsyncSession, product_id: int):
        reviews = await ReviewRepository.list_for_product(db, product_id)
        return [to_response(r) for r in reviews]

    @staticmethod
    async def add_review(db: AsyncSession, user_id: int, data: ReviewCreate) -> ReviewResponse:
        if not await ProductRepository.get_product_by_id(db, data.product_id):
            raise ProductNotFound(data.product_id)
        if await ReviewRepository.get_for_user(db, user_id, data.product_id):
            raise DuplicateEntry("You have already reviewed this product")

        review = Review(user_id=user_id, product_id=data.product_id, rating=data.rating, comment=data.comment)
        await ReviewRepository.add(db, review)

        # Product rating is the mean of all its reviews
        average, count = await ReviewRepository.rating_stats(db, data.product_id)
        await ProductRepository.set_rating(db, data.product_id, average, count)
        await commit(db)
        await db.refresh(review, attribute_names=["user"])

        logger.info("review_added", product_id=data.product_id, user_id=user_id, rating=data.rating)
        return to_response(review)
