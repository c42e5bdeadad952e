from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.cart_service.repository import CartRepository
from services.product_service.inventory import InventoryLedger
from services.product_service.repository import ProductRepository
from shared.config.database import commit
from shared.errors import (
    CartEmpty,
    InsufficientStock,
    InvalidStatusTransition,
    OrderNotCancellable,
    OrderNotFound,
    ProductNotFound,
    StoreError,
    ValidationError,
)
from shared.observability import (
    ecomm_checkout_duration_seconds,
    ecomm_checkout_total,
    ecomm_order_cancellations_total,
    ecomm_order_status_transitions_total,
    ecomm_stock_reservation_failures_total,
)

from . import lifecycle
from .lifecycle import OrderStatus, PaymentStatus
from .models import Order, OrderItem
from .repository import OrderRepository
from .schemas import OrderCreate

logger = structlog.get_logger(__name__)


def _merge_lines(lines) -> dict:
    """Collapses repeated products into one line, keeping first-seen order."""
    merged = {}
    for product_id, quantity in lines:
        merged[product_id] = merged.get(product_id, 0) + quantity
    return merged


class OrderService:

    @staticmethod
    async def place_order(
        db: AsyncSession,
        user_id: int,
        data: OrderCreate,
        now: Optional[datetime] = None,
    ) -> Order:
        now = now or lifecycle.utcnow()
        with ecomm_checkout_duration_seconds.time():
            try:
                order = await OrderService._place_order(db, user_id, data, now)
            except StoreError as exc:
                ecomm_checkout_total.labels(status="failed").inc()
                logger.warning("order_rejected", user_id=user_id, reason=type(exc).__name__, detail=exc.message)
                raise
        ecomm_checkout_total.labels(status="success").inc()
        return order

    @staticmethod
    async def _place_order(db: AsyncSession, user_id: int, data: OrderCreate, now: datetime) -> Order:
        from_cart = data.items is None
        if from_cart:
            cart_items = await CartRepository.get_items(db, user_id)
            lines = _merge_lines((item.product_id, item.quantity) for item in cart_items)
        else:
            lines = _merge_lines((line.product_id, line.quantity) for line in data.items)

        if not lines:
            raise CartEmpty()

        # 1. Validate every line before touching stock
        products = await ProductRepository.get_products_by_ids(db, lines.keys())
        for product_id, quantity in lines.items():
            if quantity <= 0:
                raise ValidationError("Quantity must be a positive integer")
            product = products.get(product_id)
            if product is None:
                ecomm_stock_reservation_failures_total.labels(reason="product_not_found").inc()
                raise ProductNotFound(product_id)
            if product.stock_quantity < quantity:
                ecomm_stock_reservation_failures_total.labels(reason="insufficient_stock").inc()
                raise InsufficientStock(product.name, product.stock_quantity, quantity)

        # 2. Freeze current prices into the order
        items = [
            OrderItem(product_id=product_id, quantity=quantity, price=products[product_id].price)
            for product_id, quantity in lines.items()
        ]
        total = sum(item.price * item.quantity for item in items)

        # 3. Reserve all lines or none
        await InventoryLedger.reserve_all(db, lines.items())

        # 4. Persist in the same transaction as the reservation
        order = Order(
            user_id=user_id,
            items=items,
            total=total,
            status=OrderStatus.PENDING.value,
            can_cancel=True,
            shipping_address=data.shipping_address.model_dump(),
            payment_method=data.payment_method.value,
            payment_status=PaymentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        await OrderRepository.add(db, order)
        if from_cart:
            await CartRepository.clear_cart(db, user_id)
        await commit(db)

        logger.info(
            "order_placed",
            order_id=order.id,
            user_id=user_id,
            total=total,
            lines=len(items),
            from_cart=from_cart,
        )
        return await OrderService.get_order(db, order.id, now=now)

    @staticmethod
    async def get_order(
        db: AsyncSession,
        order_id: int,
        user_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Order:
        order = await OrderRepository.get_order(db, order_id, user_id=user_id)
        if not order:
            raise OrderNotFound(order_id)
        lifecycle.refresh_can_cancel(order, now or lifecycle.utcnow())
        return order

    @staticmethod
    async def list_orders(db: AsyncSession, user_id: Optional[int] = None, now: Optional[datetime] = None):
        """Newest first. Without a user_id this is the admin view of every order."""
        now = now or lifecycle.utcnow()
        orders = await OrderRepository.list_orders(db, user_id=user_id)
        for order in orders:
            lifecycle.refresh_can_cancel(order, now)
        return orders

    @staticmethod
    async def _release_items(db: AsyncSession, order: Order):
        for item in order.items:
            await InventoryLedger.release(db, item.product_id, item.quantity)

    @staticmethod
    async def cancel_order(
        db: AsyncSession,
        user_id: int,
        order_id: int,
        now: Optional[datetime] = None,
    ) -> Order:
        now = now or lifecycle.utcnow()
        order = await OrderRepository.get_order(db, order_id, user_id=user_id)
        if not order:
            raise OrderNotFound(order_id)

        lifecycle.ensure_customer_cancellable(order, now)

        # A concurrent cancel or admin move may have landed since the read above;
        # only the request whose conditional write matches returns the stock.
        cancelled = await OrderRepository.mark_cancelled_if(
            db, order_id, now, user_id=user_id, window=lifecycle.CANCEL_WINDOW
        )
        if not cancelled:
            await db.rollback()
            logger.warning("order_cancel_lost_race", order_id=order_id, user_id=user_id)
            raise OrderNotCancellable("Order cannot be cancelled")

        await OrderService._release_items(db, order)
        await commit(db)

        ecomm_order_cancellations_total.labels(initiator="customer").inc()
        logger.info("order_cancelled", order_id=order_id, user_id=user_id, initiator="customer")
        return await OrderService.get_order(db, order_id, now=now)

    @staticmethod
    async def admin_set_status(
        db: AsyncSession,
        order_id: int,
        status,
        now: Optional[datetime] = None,
    ) -> Order:
        """
        Unconstrained admin override: any status, in any order, except leaving
        `cancelled`. Cancelling here returns the stock just like a customer cancel.
        """
        now = now or lifecycle.utcnow()
        try:
            status = OrderStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown order status: {status}")

        order = await OrderRepository.get_order(db, order_id)
        if not order:
            raise OrderNotFound(order_id)

        previous = order.status
        changes = lifecycle.admin_status_changes(order, status, now)
        if not changes:
            # Already cancelled; repeating the cancel is a no-op
            return await OrderService.get_order(db, order_id, now=now)

        if not await OrderRepository.update_unless_cancelled(db, order_id, changes):
            await db.rollback()
            if status is OrderStatus.CANCELLED:
                # Someone else cancelled first and already returned the stock
                return await OrderService.get_order(db, order_id, now=now)
            raise InvalidStatusTransition(f"Order is cancelled and cannot be moved to '{status.value}'")

        releasing = status is OrderStatus.CANCELLED
        if releasing:
            await OrderService._release_items(db, order)
        await commit(db)

        ecomm_order_status_transitions_total.labels(status=status.value).inc()
        if releasing:
            ecomm_order_cancellations_total.labels(initiator="admin").inc()
        logger.info("order_status_updated", order_id=order_id, previous=previous, status=status.value)
        return await OrderService.get_order(db, order_id, now=now)
