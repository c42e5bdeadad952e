"""
Order lifecycle.

    pending -> confirmed -> processing -> packed -> shipped -> delivered

`cancelled` is reachable from every status before `packed`.

A customer may cancel while the order is still before `packed` and no more
than CANCEL_WINDOW has passed since it was created. The window is evaluated
against `created_at` every time it matters, so it holds across restarts and
across any number of server processes.

Admins may set any status, in any order. The only move refused is taking an
order out of `cancelled`, because its stock has already been returned.
"""
import os
from datetime import datetime, timedelta, timezone
from enum import Enum

from shared.errors import InvalidStatusTransition, OrderNotCancellable

CANCEL_WINDOW = timedelta(minutes=float(os.getenv("ORDER_CANCEL_WINDOW_MINUTES", "5")))


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    PACKED = "packed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit-card"
    PAYPAL = "paypal"
    CASH_ON_DELIVERY = "cash-on-delivery"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


# can_cancel is always False in these
LOCKED_STATUSES = frozenset({
    OrderStatus.PACKED,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
})

# Admin status -> timestamp column it stamps
_STATUS_TIMESTAMPS = {
    OrderStatus.PACKED: "packed_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def cancel_window_elapsed(order, now: datetime, window: timedelta = CANCEL_WINDOW) -> bool:
    return as_utc(now) - as_utc(order.created_at) > window


def is_cancellable(order, now: datetime, window: timedelta = CANCEL_WINDOW) -> bool:
    return (
        bool(order.can_cancel)
        and OrderStatus(order.status) not in LOCKED_STATUSES
        and not cancel_window_elapsed(order, now, window)
    )


def refresh_can_cancel(order, now: datetime, window: timedelta = CANCEL_WINDOW) -> bool:
    """Folds the elapsed window and the status into the stored flag. Only ever clears it."""
    if order.can_cancel and not is_cancellable(order, now, window):
        order.can_cancel = False
    return order.can_cancel


def ensure_customer_cancellable(order, now: datetime, window: timedelta = CANCEL_WINDOW):
    if OrderStatus(order.status) in LOCKED_STATUSES:
        raise OrderNotCancellable("Order cannot be cancelled at this stage")
    if not order.can_cancel or cancel_window_elapsed(order, now, window):
        raise OrderNotCancellable("Order cannot be cancelled")


def cancellation_changes(now: datetime) -> dict:
    return {
        "status": OrderStatus.CANCELLED.value,
        "cancelled_at": now,
        "can_cancel": False,
    }


def mark_cancelled(order, now: datetime):
    for column, value in cancellation_changes(now).items():
        setattr(order, column, value)


def admin_status_changes(order, status: OrderStatus, now: datetime) -> dict:
    """Columns an admin move to `status` writes. Empty when the order is already cancelled and stays so."""
    current = OrderStatus(order.status)
    if current is OrderStatus.CANCELLED:
        if status is OrderStatus.CANCELLED:
            return {}
        raise InvalidStatusTransition(f"Order is cancelled and cannot be moved to '{status.value}'")

    if status is OrderStatus.CANCELLED:
        return cancellation_changes(now)

    changes = {"status": status.value}
    column = _STATUS_TIMESTAMPS.get(status)
    if column:
        changes[column] = now
    if status in LOCKED_STATUSES:
        changes["can_cancel"] = False
    return changes


def apply_admin_status(order, status: OrderStatus, now: datetime):
    for column, value in admin_status_changes(order, status, now).items():
        setattr(order, column, value)
