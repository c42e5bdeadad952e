from datetime import datetime

from pydantic import BaseModel

from services.product_service.schemas import ProductSummary


class FavoriteCreate(BaseModel):
    product_id: int


class FavoriteResponse(BaseModel):
    id: int
    product_id: int
    created_at: datetime
    product: ProductSummary

    class Config:
        from_attributes = True
