from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from . import lifecycle
from .lifecycle import LOCKED_STATUSES, OrderStatus
from .models import Order


class OrderRepository:
    @staticmethod
    async def add(db: AsyncSession, order: Order):
        db.add(order)
        await db.flush()
        return order

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int, user_id: Optional[int] = None) -> Optional[Order]:
        stmt = select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def list_orders(db: AsyncSession, user_id: Optional[int] = None):
        stmt = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        result = await db.execute(stmt)
        return result.scalars().all()

    @staticmethod
    async def update_unless_cancelled(
        db: AsyncSession,
        order_id: int,
        values: dict,
        user_id: Optional[int] = None,
        cancellable_since: Optional[datetime] = None,
    ) -> bool:
        """
        Compare-and-set on the order row. Never writes to a cancelled order.
        With cancellable_since, the row must also still be open to a customer
        cancel: not locked, flag set, created no earlier than that moment.
        True only if the row matched and was written.
        """
        stmt = update(Order).where(Order.id == order_id, Order.status != OrderStatus.CANCELLED.value)
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        if cancellable_since is not None:
            stmt = stmt.where(
                Order.status.notin_([status.value for status in LOCKED_STATUSES]),
                Order.can_cancel.is_(True),
                Order.created_at >= cancellable_since,
            )
        # The caller reloads the order afterwards, so no in-session sync
        result = await db.execute(stmt.values(**values).execution_options(synchronize_session=False))
        return result.rowcount == 1

    @staticmethod
    async def mark_cancelled_if(
        db: AsyncSession,
        order_id: int,
        now: datetime,
        user_id: Optional[int] = None,
        window: Optional[timedelta] = None,
    ) -> bool:
        """Cancels the order unless it is already cancelled; with a window, only while a customer may still cancel."""
        return await OrderRepository.update_unless_cancelled(
            db,
            order_id,
            lifecycle.cancellation_changes(now),
            user_id=user_id,
            cancellable_since=now - window if window is not None else None,
        )
