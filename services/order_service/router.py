from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security import get_current_admin, get_current_user, limiter
from shared.security.rate_limiter import ORDER_RATE_LIMIT

from .schemas import OrderCreate, OrderResponse, OrderStatusUpdate
from .service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("/", response_model=OrderResponse, status_code=201)
@limiter.limit(ORDER_RATE_LIMIT)
async def create_order(
    request: Request,                          # REQUIRED: slowapi needs this to check IP/Headers
    payload: OrderCreate,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.place_order(db, user_id, payload)


@router.get("/my-orders", response_model=list[OrderResponse])
async def my_orders(user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await OrderService.list_orders(db, user_id=user_id)


# Admin routes are declared before /{order_id} so "admin" is never parsed as an id
@router.get("/admin/all", response_model=list[OrderResponse], dependencies=[Depends(get_current_admin)])
async def all_orders(db: AsyncSession = Depends(get_db)):
    return await OrderService.list_orders(db)


@router.patch("/admin/{order_id}/status", response_model=OrderResponse, dependencies=[Depends(get_current_admin)])
async def update_order_status(order_id: int, payload: OrderStatusUpdate, db: AsyncSession = Depends(get_db)):
    return await OrderService.admin_set_status(db, order_id, payload.status)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: int, user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await OrderService.get_order(db, order_id, user_id=user_id)


@router.patch("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(order_id: int, user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await OrderService.cancel_order(db, user_id, order_id)
