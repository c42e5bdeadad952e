from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

# Upper bound for a single stock movement, and for the level an admin restock may reach
MAX_STOCK_QUANTITY = 100_000


class ProductCategory(str, Enum):
    TRUFFLES = "truffles"
    PRALINES = "pralines"
    BARS = "bars"
    BONBONS = "bonbons"
    GIFT_SETS = "gift-sets"


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    price: float = Field(ge=0)
    original_price: Optional[float] = Field(default=None, ge=0)
    category: ProductCategory
    stock_quantity: int = Field(default=100, ge=0, le=MAX_STOCK_QUANTITY)
    featured: bool = False


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    original_price: Optional[float] = Field(default=None, ge=0)
    category: Optional[ProductCategory] = None
    featured: Optional[bool] = None

    @field_validator("name", "description", "price", "category", "featured", mode="before")
    @classmethod
    def not_null(cls, value):
        # Omit a field to leave it unchanged; only original_price may be cleared
        if value is None:
            raise ValueError("may be omitted but not set to null")
        return value


class StockUpdate(BaseModel):
    quantity: int = Field(gt=0, le=MAX_STOCK_QUANTITY)


class ProductSummary(BaseModel):
    id: int
    name: str
    price: float
    category: str
    in_stock: bool

    class Config:
        from_attributes = True


class ProductResponse(ProductSummary):
    description: str
    original_price: Optional[float]
    stock_quantity: int
    rating: float
    review_count: int
    featured: bool
    created_at: datetime

    class Config:
        from_attributes = True
