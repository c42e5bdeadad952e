"""
Order placement, cancellation and admin status changes against a real session.
"""

import asyncio
from datetime import timedelta
from types import SimpleNamespace

import pytest

from conftest import T0, order_request
from services.auth_service.models import User
from services.cart_service.service import CartService
from services.order_service import lifecycle
from services.order_service.repository import OrderRepository
from services.order_service.service import OrderService
from services.product_service.repository import ProductRepository
from services.product_service.schemas import ProductCategory, ProductCreate, ProductUpdate
from services.product_service.service import ProductService
from shared.errors import (
    CartEmpty,
    InsufficientStock,
    InvalidStatusTransition,
    OrderNotCancellable,
    OrderNotFound,
    ProductNotFound,
    ValidationError,
)


async def stock_of(db, product):
    await db.refresh(product)
    return product.stock_quantity


@pytest.mark.asyncio
async def test_place_order_freezes_prices_and_reserves_stock(db, make_user, make_product):
    user = await make_user()
    truffle = await make_product(name="Truffle", price=2.5, stock_quantity=10)
    bar = await make_product(name="Bar", price=4.0, stock_quantity=3)

    order = await OrderService.place_order(db, user.id, order_request((truffle.id, 4), (bar.id, 3)), now=T0)

    assert order.status == "pending"
    assert order.payment_status == "pending"
    assert order.payment_method == "credit-card"
    assert order.can_cancel is True
    assert order.total == pytest.approx(22.0)
    assert [(i.product_id, i.quantity, i.price) for i in order.items] == [
        (truffle.id, 4, 2.5),
        (bar.id, 3, 4.0),
    ]
    assert order.items[0].product.name == "Truffle"
    assert order.shipping_address["city"] == "Bruges"
    assert await stock_of(db, truffle) == 6
    assert await stock_of(db, bar) == 0


@pytest.mark.asyncio
async def test_duplicate_lines_are_merged(db, make_user, make_product):
    user = await make_user()
    product = await make_product(stock_quantity=5)

    order = await OrderService.place_order(db, user.id, order_request((product.id, 2), (product.id, 2)), now=T0)

    assert len(order.items) == 1
    assert order.items[0].quantity == 4
    assert await stock_of(db, product) == 1


@pytest.mark.asyncio
async def test_duplicate_lines_count_against_stock_together(db, make_user, make_product):
    user = await make_user()
    product = await make_product(stock_quantity=3)

    with pytest.raises(InsufficientStock):
        await OrderService.place_order(db, user.id, order_request((product.id, 2), (product.id, 2)), now=T0)
    assert await stock_of(db, product) == 3


@pytest.mark.asyncio
async def test_second_order_for_remaining_stock_fails(session_factory, make_user, make_product):
    ada = await make_user(email="ada@example.com")
    bob = await make_user(email="bob@example.com")
    product = await make_product(stock_quantity=5)

    async with session_factory() as first:
        await OrderService.place_order(first, ada.id, order_request((product.id, 3)), now=T0)

    async with session_factory() as second:
        with pytest.raises(InsufficientStock):
            await OrderService.place_order(second, bob.id, order_request((product.id, 3)), now=T0)

    async with session_factory() as check:
        fresh = await ProductService.get_product(check, product.id)
        assert fresh.stock_quantity == 2


@pytest.mark.asyncio
async def test_failed_line_leaves_every_stock_untouched(db, make_user, make_product):
    user = await make_user()
    plenty = await make_product(name="Plenty", stock_quantity=10)
    scarce = await make_product(name="Scarce", stock_quantity=1)

    with pytest.raises(InsufficientStock):
        await OrderService.place_order(db, user.id, order_request((plenty.id, 5), (scarce.id, 2)), now=T0)

    assert await stock_of(db, plenty) == 10
    assert await stock_of(db, scarce) == 1
    assert await OrderService.list_orders(db, user_id=user.id) == []


@pytest.mark.asyncio
async def test_unknown_product_aborts_before_reserving(db, make_user, make_product):
    user = await make_user()
    product = await make_product(stock_quantity=4)

    with pytest.raises(ProductNotFound):
        await OrderService.place_order(db, user.id, order_request((product.id, 1), (31337, 1)), now=T0)
    assert await stock_of(db, product) == 4


@pytest.mark.asyncio
async def test_order_from_cart_clears_cart(db, make_user, make_product):
    user = await make_user()
    truffle = await make_product(name="Truffle", price=3.0, stock_quantity=5)
    bar = await make_product(name="Bar", price=5.0, stock_quantity=5)
    await CartService.add(db, user.id, truffle.id, 2)
    await CartService.add(db, user.id, bar.id, 1)

    order = await OrderService.place_order(db, user.id, order_request(payment_method="paypal"), now=T0)

    assert order.total == pytest.approx(11.0)
    assert order.payment_method == "paypal"
    assert (await CartService.snapshot(db, user.id)).items == []
    assert await stock_of(db, truffle) == 3


@pytest.mark.asyncio
async def test_empty_cart_checkout(db, make_user):
    user = await make_user()

    with pytest.raises(CartEmpty):
        await OrderService.place_order(db, user.id, order_request(), now=T0)


@pytest.mark.asyncio
async def test_cart_kept_when_checkout_fails(db, make_user, make_product):
    user = await make_user()
    product = await make_product(stock_quantity=1)
    await CartService.add(db, user.id, product.id, 2)

    with pytest.raises(InsufficientStock):
        await OrderService.place_order(db, user.id, order_request(), now=T0)

    cart = await CartService.snapshot(db, user.id)
    assert cart.items[0].quantity == 2


@pytest.mark.asyncio
async def test_total_unaffected_by_later_price_change(db, make_user, make_product):
    user = await make_user()
    product = await make_product(price=10.0, stock_quantity=10)
    order = await OrderService.place_order(db, user.id, order_request((product.id, 2)), now=T0)
    await CartService.add(db, user.id, product.id, 2)

    await ProductService.update_product(db, product.id, ProductUpdate(price=15.0))

    reloaded = await OrderService.get_order(db, order.id, now=T0)
    assert reloaded.total == pytest.approx(20.0)
    assert reloaded.items[0].price == pytest.approx(10.0)
    assert sum(i.price * i.quantity for i in reloaded.items) == pytest.approx(reloaded.total)
    assert (await CartService.snapshot(db, user.id)).total == pytest.approx(30.0)


@pytest.mark.asyncio
async def test_cancel_within_window_restores_stock(db, make_user, make_product):
    user = await make_user()
    product = await make_product(stock_quantity=5)
    order = await OrderService.place_order(db, user.id, order_request((product.id, 3)), now=T0)

    cancelled = await OrderService.cancel_order(db, user.id, order.id, now=T0 + timedelta(minutes=4))

    assert cancelled.status == "cancelled"
    assert cancelled.can_cancel is False
    assert cancelled.cancelled_at is not None
    assert await stock_of(db, product) == 5


@pytest.mark.asyncio
async def test_cancel_after_window_fails(db, make_user, make_product):
    user = await make_user()
    product = await make_product(stock_quantity=5)
    order = await OrderService.place_order(db, user.id, order_request((product.id, 3)), now=T0)

    with pytest.raises(OrderNotCancellable):
        await OrderService.cancel_order(db, user.id, order.id, now=T0 + timedelta(minutes=6))
    assert await stock_of(db, product) == 2


@pytest.mark.asyncio
async def test_packed_order_cannot_be_cancelled_inside_window(db, make_user, make_product):
    user = await make_user()
    product = await make_product(stock_quantity=5)
    order = await OrderService.place_order(db, user.id, order_request((product.id, 1)), now=T0)

    packed = await OrderService.admin_set_status(db, order.id, "packed", now=T0 + timedelta(minutes=1))
    assert packed.can_cancel is False
    assert packed.packed_at is not None

    with pytest.raises(OrderNotCancellable):
        await OrderService.cancel_order(db, user.id, order.id, now=T0 + timedelta(minutes=2))


@pytest.mark.asyncio
async def test_cancel_twice_fails(db, make_user, make_product):
    user = await make_user()
    product = await make_product(stock_quantity=5)
    order = await OrderService.place_order(db, user.id, order_request((product.id, 2)), now=T0)
    await OrderService.cancel_order(db, user.id, order.id, now=T0 + timedelta(minutes=1))

    with pytest.raises(OrderNotCancellable):
        await OrderService.cancel_order(db, user.id, order.id, now=T0 + timedelta(minutes=2))
    assert await stock_of(db, product) == 5


@pytest.mark.asyncio
async def test_cannot_cancel_someone_elses_order(db, make_user, make_product):
    ada = await make_user(email="ada@example.com")
    bob = await make_user(email="bob@example.com")
    product = await make_product()
    order = await OrderService.place_order(db, ada.id, order_request((product.id, 1)), now=T0)

    with pytest.raises(OrderNotFound):
        await OrderService.cancel_order(db, bob.id, order.id, now=T0)


@pytest.mark.asyncio
async def test_reads_report_closed_window(db, make_user, make_product):
    user = await make_user()
    product = await make_product()
    order = await OrderService.place_order(db, user.id, order_request((product.id, 1)), now=T0)

    later = await OrderService.get_order(db, order.id, user_id=user.id, now=T0 + timedelta(minutes=10))
    assert later.can_cancel is False


@pytest.mark.asyncio
async def test_locked_statuses_always_report_cannot_cancel(db, make_user, make_product):
    user = await make_user()
    product = await make_product(stock_quantity=20)

    for status in ("packed", "shipped", "delivered", "cancelled"):
        order = await OrderService.place_order(db, user.id, order_request((product.id, 1)), now=T0)
        updated = await OrderService.admin_set_status(db, order.id, status, now=T0)
        assert updated.status == status
        assert updated.can_cancel is False


@pytest.mark.asyncio
async def test_admin_cancel_restores_stock_once(db, make_user, make_product):
    user = await make_user()
    product = await make_product(stock_quantity=5)
    order = await OrderService.place_order(db, user.id, order_request((product.id, 2)), now=T0)

    await OrderService.admin_set_status(db, order.id, "processing", now=T0)
    await OrderService.admin_set_status(db, order.id, "cancelled", now=T0)
    await OrderService.admin_set_status(db, order.id, "cancelled", now=T0)

    assert await stock_of(db, product) == 5
    with pytest.raises(InvalidStatusTransition):
        await OrderService.admin_set_status(db, order.id, "pending", now=T0)


@pytest.mark.asyncio
async def test_admin_can_skip_to_delivered(db, make_user, make_product):
    user = await make_user()
    product = await make_product()
    order = await OrderService.place_order(db, user.id, order_request((product.id, 1)), now=T0)

    delivered = await OrderService.admin_set_status(db, order.id, "delivered", now=T0)

    assert delivered.status == "delivered"
    assert delivered.delivered_at is not None
    assert delivered.shipped_at is None


@pytest.mark.asyncio
async def test_admin_unknown_status(db, make_user, make_product):
    user = await make_user()
    product = await make_product()
    order = await OrderService.place_order(db, user.id, order_request((product.id, 1)), now=T0)

    with pytest.raises(ValidationError):
        await OrderService.admin_set_status(db, order.id, "teleported", now=T0)


@pytest.mark.asyncio
async def test_list_orders_newest_first(db, make_user, make_product):
    ada = await make_user(email="ada@example.com")
    bob = await make_user(email="bob@example.com")
    product = await make_product(stock_quantity=10)
    first = await OrderService.place_order(db, ada.id, order_request((product.id, 1)), now=T0)
    second = await OrderService.place_order(db, ada.id, order_request((product.id, 1)), now=T0 + timedelta(minutes=1))
    other = await OrderService.place_order(db, bob.id, order_request((product.id, 1)), now=T0 + timedelta(minutes=2))

    mine = await OrderService.list_orders(db, user_id=ada.id, now=T0)
    everything = await OrderService.list_orders(db, now=T0)

    assert [o.id for o in mine] == [second.id, first.id]
    assert [o.id for o in everything] == [other.id, second.id, first.id]


@pytest.mark.asyncio
async def test_stock_taken_after_validation_rolls_everything_back(db, make_user, make_product, monkeypatch):
    ada = await make_user(email="ada@example.com")
    bob = await make_user(email="bob@example.com")
    truffle = await make_product(name="Truffle", stock_quantity=10)
    bar = await make_product(name="Bar", stock_quantity=5)
    await CartService.add(db, ada.id, truffle.id, 2)
    await CartService.add(db, ada.id, bar.id, 3)

    # What Ada's checkout validates against
    stale = {
        p.id: SimpleNamespace(id=p.id, name=p.name, price=p.price, stock_quantity=p.stock_quantity)
        for p in (truffle, bar)
    }
    # Bob's order lands between that read and Ada's reservation
    await OrderService.place_order(db, bob.id, order_request((bar.id, 4)), now=T0)

    async def stale_lookup(session, product_ids):
        return {pid: stale[pid] for pid in product_ids if pid in stale}

    monkeypatch.setattr(ProductRepository, "get_products_by_ids", staticmethod(stale_lookup))

    with pytest.raises(InsufficientStock):
        await OrderService.place_order(db, ada.id, order_request(), now=T0)

    assert await OrderService.list_orders(db, user_id=ada.id) == []
    assert await stock_of(db, truffle) == 10
    assert await stock_of(db, bar) == 1
    cart = await CartService.snapshot(db, ada.id)
    assert [(line.product_id, line.quantity) for line in cart.items] == [(truffle.id, 2), (bar.id, 3)]


async def seed_order(session_factory, quantity=3, stock_quantity=5):
    """A committed user, product and pending order placed at T0."""
    async with session_factory() as session:
        user = User(name="Ada", email="ada@example.com", hashed_password="not-a-real-hash", role="customer")
        session.add(user)
        await session.commit()
        product = await ProductService.create_product(
            session,
            ProductCreate(name="Praline Tin", price=8.0, stock_quantity=stock_quantity, category=ProductCategory.PRALINES),
        )
        order = await OrderService.place_order(session, user.id, order_request((product.id, quantity)), now=T0)
        return user.id, product.id, order.id


async def committed_stock(session_factory, product_id):
    async with session_factory() as session:
        return (await ProductService.get_product(session, product_id)).stock_quantity


@pytest.mark.asyncio
async def test_concurrent_customer_cancels_return_stock_once(file_session_factory):
    user_id, product_id, order_id = await seed_order(file_session_factory)
    assert await committed_stock(file_session_factory, product_id) == 2

    async def cancel():
        async with file_session_factory() as session:
            return await OrderService.cancel_order(session, user_id, order_id, now=T0 + timedelta(minutes=1))

    results = await asyncio.gather(cancel(), cancel(), return_exceptions=True)

    assert sorted(type(r).__name__ for r in results) == ["Order", "OrderNotCancellable"]
    assert await committed_stock(file_session_factory, product_id) == 5


@pytest.mark.asyncio
async def test_concurrent_customer_and_admin_cancel_return_stock_once(file_session_factory):
    user_id, product_id, order_id = await seed_order(file_session_factory)

    async def customer_cancel():
        async with file_session_factory() as session:
            return await OrderService.cancel_order(session, user_id, order_id, now=T0 + timedelta(minutes=1))

    async def admin_cancel():
        async with file_session_factory() as session:
            return await OrderService.admin_set_status(session, order_id, "cancelled", now=T0 + timedelta(minutes=1))

    customer, admin = await asyncio.gather(customer_cancel(), admin_cancel(), return_exceptions=True)

    assert not isinstance(admin, Exception)
    assert admin.status == "cancelled"
    assert isinstance(customer, OrderNotCancellable) or customer.status == "cancelled"
    assert await committed_stock(file_session_factory, product_id) == 5



@pytest.mark.asyncio
async def test_conditional_cancel_matches_only_open_orders(db, make_user, make_product):
    user = await make_user()
    product = await make_product(stock_quantity=10)
    packed = await OrderService.place_order(db, user.id, order_request((product.id, 1)), now=T0)
    await OrderService.admin_set_status(db, packed.id, "packed", now=T0)
    fresh = await OrderService.place_order(db, user.id, order_request((product.id, 1)), now=T0)
    window = lifecycle.CANCEL_WINDOW

    assert not await OrderRepository.mark_cancelled_if(db, packed.id, T0, user_id=user.id, window=window)
    assert not await OrderRepository.mark_cancelled_if(db, fresh.id, T0 + timedelta(minutes=6), user_id=user.id, window=window)
    assert not await OrderRepository.mark_cancelled_if(db, fresh.id, T0, user_id=user.id + 1, window=window)
    assert await OrderRepository.mark_cancelled_if(db, fresh.id, T0 + window, user_id=user.id, window=window)
    assert not await OrderRepository.mark_cancelled_if(db, fresh.id, T0 + window, user_id=user.id, window=window)

    # Without a window only an existing cancellation blocks it
    assert await OrderRepository.mark_cancelled_if(db, packed.id, T0 + timedelta(hours=1))
    assert not await OrderRepository.mark_cancelled_if(db, packed.id, T0 + timedelta(hours=1))
    await db.commit()
