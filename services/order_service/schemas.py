from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from services.product_service.schemas import MAX_STOCK_QUANTITY, ProductSummary

from .lifecycle import OrderStatus, PaymentMethod


class ShippingAddress(BaseModel):
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip_code: str = Field(min_length=1)
    country: str = Field(min_length=1)


class OrderLineCreate(BaseModel):
    product_id: int
    quantity: int = Field(ge=1, le=MAX_STOCK_QUANTITY)


class OrderCreate(BaseModel):
    # Omitted items means "check out the current cart"
    items: Optional[List[OrderLineCreate]] = None
    shipping_address: ShippingAddress
    payment_method: PaymentMethod


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemResponse(BaseModel):
    product_id: int
    quantity: int
    price: float
    product: Optional[ProductSummary] = None

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    user_id: int
    items: List[OrderItemResponse]
    total: float
    status: OrderStatus
    can_cancel: bool
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    payment_status: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    packed_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None

    class Config:
        from_attributes = True
