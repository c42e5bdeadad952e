from typing import List

from pydantic import BaseModel, Field

from services.product_service.schemas import MAX_STOCK_QUANTITY, ProductSummary


class CartItemAdd(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1, le=MAX_STOCK_QUANTITY)


class CartItemUpdate(BaseModel):
    product_id: int
    # zero or negative removes the line
    quantity: int = Field(le=MAX_STOCK_QUANTITY)


class CartLineResponse(BaseModel):
    product_id: int
    quantity: int
    line_total: float
    product: ProductSummary


class CartResponse(BaseModel):
    items: List[CartLineResponse] = []
    total: float = 0.0
