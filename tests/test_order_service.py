import re

import pytest
from sqlalchemy import func
from sqlmodel import select

from bookstore.constants.order_status import OrderStatus
from bookstore.models.book import Book
from bookstore.models.order import Order
from bookstore.services.cart_service import CartService
from bookstore.services.order_service import OrderService, generate_order_number
from bookstore.services.outcomes import CartError, OrderError


@pytest.fixture()
def orders(session):
    return OrderService(session)


@pytest.fixture()
def carts(session):
    return CartService(session)


def _order_count(session):
    return session.exec(select(func.count()).select_from(Order)).one()


def test_order_number_format():
    assert re.fullmatch(r"BK\d{8}[0-9A-F]{6}", generate_order_number())


def test_empty_cart_creates_nothing(orders, session, user, checkout):
    outcome = orders.create_order(user.id, checkout)

    assert outcome.error_code == OrderError.EMPTY_CART
    assert _order_count(session) == 0


def test_checkout_snapshots_prices_and_decrements_stock(orders, carts, session, user, make_book, checkout):
    first = make_book(stock=5, price=120000, discount_price=100000)
    second = make_book(stock=4, price=80000)
    carts.add_item(user.id, first.id, 2)
    carts.add_item(user.id, second.id, 1)

    outcome = orders.create_order(user.id, checkout)

    assert outcome.success
    order = outcome.order
    assert order.status == OrderStatus.pending.value
    assert len(order.items) == 2
    prices = {item.book_id: item.unit_price for item in order.items}
    assert prices == {first.id: 100000, second.id: 80000}
    assert order.subtotal == 280000
    assert order.tax == 28000
    assert order.shipping == 30000
    assert order.total == 338000

    assert session.get(Book, first.id).stock == 3
    assert session.get(Book, second.id).stock == 3
    assert carts.get_cart(user.id).is_empty


def test_one_short_line_aborts_whole_order(orders, carts, session, user, make_book, checkout):
    plenty = make_book(stock=5)
    scarce = make_book(stock=5)
    carts.add_item(user.id, plenty.id, 2)
    carts.add_item(user.id, scarce.id, 3)

    scarce.stock = 1
    session.add(scarce)
    session.commit()

    outcome = orders.create_order(user.id, checkout)

    assert outcome.error_code == OrderError.INSUFFICIENT_STOCK
    assert outcome.book_id == scarce.id
    assert outcome.available_stock == 1
    assert outcome.requested == 3
    assert _order_count(session) == 0
    assert session.get(Book, plenty.id).stock == 5
    assert carts.get_item_count(user.id) == 5


def test_withdrawn_book_blocks_checkout(orders, carts, session, user, make_book, checkout):
    book = make_book()
    carts.add_item(user.id, book.id, 1)
    book.is_active = False
    session.add(book)
    session.commit()

    outcome = orders.create_order(user.id, checkout)

    assert outcome.error_code == OrderError.BOOK_UNAVAILABLE
    assert _order_count(session) == 0


def test_failed_commit_leaves_stock_and_cart(orders, carts, session, user, make_book, checkout, monkeypatch):
    from sqlalchemy.exc import IntegrityError

    from bookstore.exceptions import StoreError

    book = make_book(stock=4)
    carts.add_item(user.id, book.id, 3)

    def stock_check_violated(*args, **kwargs):
        raise IntegrityError("UPDATE book", {}, Exception("CHECK constraint failed"))

    monkeypatch.setattr(session, "commit", stock_check_violated)
    with pytest.raises(StoreError):
        orders.create_order(user.id, checkout)
    monkeypatch.undo()

    assert _order_count(session) == 0
    assert session.get(Book, book.id).stock == 4
    assert carts.get_item_count(user.id) == 3


def test_scenario_from_add_to_checkout(orders, carts, session, user, make_book, checkout):
    book = make_book(stock=3, price=100000)

    assert carts.add_item(user.id, book.id, 2).success
    failed = carts.add_item(user.id, book.id, 2)
    assert failed.error_code == CartError.INSUFFICIENT_STOCK
    assert carts.update_item(user.id, book.id, 3).success

    outcome = orders.create_order(user.id, checkout)

    item = outcome.order.items[0]
    assert (item.book_id, item.quantity, item.unit_price) == (book.id, 3, 100000)
    assert session.get(Book, book.id).stock == 0


def _place(orders, carts, user, book, quantity, checkout):
    carts.add_item(user.id, book.id, quantity)
    return orders.create_order(user.id, checkout).order


def test_owner_only_sees_order(orders, carts, make_user, make_book, checkout):
    owner, stranger = make_user(), make_user()
    order = _place(orders, carts, owner, make_book(), 1, checkout)

    assert orders.get_order(order.id, owner.id) is not None
    assert orders.get_order(order.id, stranger.id) is None
    assert orders.cancel_order(order.id, stranger.id).error_code == OrderError.ORDER_NOT_FOUND


def test_cancel_pending_order_restores_stock(orders, carts, session, user, make_book, checkout):
    book = make_book(stock=5)
    order = _place(orders, carts, user, book, 2, checkout)
    assert session.get(Book, book.id).stock == 3

    outcome = orders.cancel_order(order.id, user.id)

    assert outcome.success
    assert outcome.status == OrderStatus.cancelled.value
    refreshed = session.get(Order, order.id)
    assert refreshed.cancelled_at is not None
    assert session.get(Book, book.id).stock == 5


@pytest.mark.parametrize("status", ["processing", "shipped", "delivered", "cancelled"])
def test_only_pending_orders_can_be_cancelled(orders, carts, session, user, make_book, checkout, status):
    order = _place(orders, carts, user, make_book(), 1, checkout)
    order.status = status
    session.add(order)
    session.commit()

    outcome = orders.cancel_order(order.id, user.id)

    assert outcome.error_code == OrderError.NOT_CANCELLABLE
    assert session.get(Order, order.id).status == status


def test_admin_status_transitions(orders, carts, session, user, make_book, checkout):
    order = _place(orders, carts, user, make_book(), 1, checkout)

    assert orders.update_status(order.id, OrderStatus.shipped).error_code == OrderError.INVALID_TRANSITION
    for status in (OrderStatus.processing, OrderStatus.shipped, OrderStatus.delivered):
        assert orders.update_status(order.id, status).success

    assert orders.update_status(order.id, OrderStatus.cancelled).error_code == OrderError.INVALID_TRANSITION
    assert session.get(Order, order.id).status == OrderStatus.delivered.value
    assert orders.update_status(9999, OrderStatus.processing).error_code == OrderError.ORDER_NOT_FOUND


def test_admin_cancel_restores_stock(orders, carts, session, user, make_book, checkout):
    book = make_book(stock=4)
    order = _place(orders, carts, user, book, 3, checkout)

    assert orders.update_status(order.id, OrderStatus.cancelled).success
    assert session.get(Book, book.id).stock == 4


def test_list_orders_newest_first(orders, carts, user, make_book, checkout):
    first = _place(orders, carts, user, make_book(), 1, checkout)
    second = _place(orders, carts, user, make_book(), 1, checkout)

    page = orders.list_orders(user_id=user.id)

    assert page["total_items"] == 2
    assert [o.id for o in page["results"]] == [second.id, first.id]
    assert orders.list_orders(user_id=user.id, status=OrderStatus.cancelled)["total_items"] == 0


def test_reorder_reports_each_line(orders, carts, session, user, make_book, checkout):
    available = make_book(stock=5)
    gone = make_book(stock=2)
    carts.add_item(user.id, available.id, 1)
    carts.add_item(user.id, gone.id, 2)
    order = orders.create_order(user.id, checkout).order

    result = orders.reorder(order.id, user.id)

    assert result.success
    assert result.added == 1
    by_book = {line.book_id: line for line in result.lines}
    assert by_book[available.id].success
    assert by_book[gone.id].error_code == CartError.OUT_OF_STOCK
    assert result.item_count == 1


def test_reorder_of_someone_elses_order(orders, carts, make_user, make_book, checkout):
    owner, stranger = make_user(), make_user()
    order = _place(orders, carts, owner, make_book(), 1, checkout)

    result = orders.reorder(order.id, stranger.id)
    assert not result.success
    assert result.error_code == OrderError.ORDER_NOT_FOUND
