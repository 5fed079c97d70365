"""Checkout and order lifecycle.

Creating an order, cancelling it and admin status changes each run in a
single transaction: stock is re-checked under row locks in the same
transaction that decrements (or restores) it, so either every line lands or
nothing does.
"""
from datetime import datetime
import logging
from typing import Optional
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from bookstore.constants.order_status import CANCELLABLE_STATUSES, OrderStatus, can_transition
from bookstore.exceptions import StoreError
from bookstore.models.cart import CartItem
from bookstore.models.order import Order
from bookstore.models.order_item import OrderItem
from bookstore.schemas.orders_schemas import CheckoutRequest
from bookstore.services.cart_rules import calculate_totals
from bookstore.services.cart_service import CartService
from bookstore.services.inventory_service import lock_books, reduce_inventory, restock_order_items
from bookstore.services.outcomes import (
    OrderError,
    OrderOutcome,
    ReorderLine,
    ReorderResult,
)
from bookstore.utils.pagination import paginate

logger = logging.getLogger(__name__)


def generate_order_number() -> str:
    return f"BK{datetime.utcnow():%Y%m%d}{uuid4().hex[:6].upper()}"


class OrderService:
    def __init__(self, session: Session):
        self.session = session
        self.carts = CartService(session)

    def _abort(self, outcome: OrderOutcome, user_id: Optional[int] = None) -> OrderOutcome:
        self.session.rollback()
        logger.warning(
            f"Order operation rejected ({outcome.error_code.value}): "
            f"user={user_id} order={outcome.order_id} book={outcome.book_id}"
        )
        return outcome

    # ---------- CHECKOUT ----------

    def create_order(self, user_id: int, checkout: CheckoutRequest) -> OrderOutcome:
        try:
            cart_items = self.session.exec(
                select(CartItem)
                .where(CartItem.user_id == user_id)
                .order_by(CartItem.created_at, CartItem.id)
            ).all()

            if not cart_items:
                return self._abort(
                    OrderOutcome.fail(OrderError.EMPTY_CART, "Your cart is empty"), user_id
                )

            # the cart page may be stale, so stock is checked again under lock
            books = lock_books(self.session, [c.book_id for c in cart_items])
            lines = []

            for c in cart_items:
                book = books.get(c.book_id)

                if book is None or not book.is_active:
                    title = book.title if book else None
                    return self._abort(
                        OrderOutcome.fail(
                            OrderError.BOOK_UNAVAILABLE,
                            f"'{title}' is no longer available" if title else "A book in your cart is no longer available",
                            book_id=c.book_id,
                            book_title=title,
                        ),
                        user_id,
                    )

                if book.stock < c.quantity:
                    return self._abort(
                        OrderOutcome.fail(
                            OrderError.INSUFFICIENT_STOCK,
                            f"Only {book.stock} left of '{book.title}', you asked for {c.quantity}",
                            book_id=book.id,
                            book_title=book.title,
                            available_stock=book.stock,
                            requested=c.quantity,
                        ),
                        user_id,
                    )

                lines.append((book, c.quantity))

            totals = calculate_totals(
                sum(book.display_price * quantity for book, quantity in lines)
            )

            order = Order(
                order_number=generate_order_number(),
                user_id=user_id,
                status=OrderStatus.pending.value,
                **checkout.model_dump(),
                **totals,
            )
            self.session.add(order)
            self.session.flush()

            for book, quantity in lines:
                self.session.add(
                    OrderItem(
                        order_id=order.id,
                        book_id=book.id,
                        book_title=book.title,
                        unit_price=book.display_price,
                        quantity=quantity,
                    )
                )

            reduce_inventory(self.session, lines)
            self.carts.delete_items(user_id)

            self.session.commit()
            self.session.refresh(order)
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(f"Creating order failed for user {user_id}")
            raise StoreError()

        logger.info(
            f"Order {order.order_number} created for user {user_id}: "
            f"{len(lines)} line(s), total {order.total}"
        )
        return OrderOutcome.ok(
            f"Order #{order.order_number} has been placed",
            order_id=order.id,
            status=order.status,
            order=order,
        )

    # ---------- READ ----------

    def get_order(self, order_id: int, user_id: int) -> Optional[Order]:
        """Only the owner sees an order; anyone else gets the same None as a bad id."""
        return self.session.exec(
            select(Order).where(Order.id == order_id, Order.user_id == user_id)
        ).first()

    def list_orders(
        self,
        user_id: Optional[int] = None,
        status: Optional[OrderStatus] = None,
        page: int = 1,
        limit: int = 10,
        serializer=None,
    ):
        query = select(Order)
        if user_id is not None:
            query = query.where(Order.user_id == user_id)
        if status:
            query = query.where(Order.status == status.value)

        query = query.order_by(Order.created_at.desc(), Order.id.desc())
        return paginate(
            session=self.session, query=query, page=page, limit=limit, serializer=serializer
        )

    # ---------- CANCEL / STATUS ----------

    def _mark_cancelled(self, order: Order) -> None:
        now = datetime.utcnow()
        order.status = OrderStatus.cancelled.value
        order.cancelled_at = now
        order.updated_at = now
        self.session.add(order)
        restock_order_items(self.session, order.id)

    def cancel_order(self, order_id: int, user_id: int) -> OrderOutcome:
        try:
            order = self.session.exec(
                select(Order)
                .where(Order.id == order_id, Order.user_id == user_id)
                .with_for_update()
            ).first()

            if not order:
                return self._abort(
                    OrderOutcome.fail(
                        OrderError.ORDER_NOT_FOUND, "Order not found", order_id=order_id
                    ),
                    user_id,
                )

            if order.status not in {s.value for s in CANCELLABLE_STATUSES}:
                return self._abort(
                    OrderOutcome.fail(
                        OrderError.NOT_CANCELLABLE,
                        "This order can no longer be cancelled. It may already be processing.",
                        order_id=order_id,
                        status=order.status,
                    ),
                    user_id,
                )

            self._mark_cancelled(order)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(f"Cancelling order {order_id} failed for user {user_id}")
            raise StoreError()

        logger.info(f"Order {order_id} cancelled by user {user_id}")
        return OrderOutcome.ok(
            "Your order has been cancelled",
            order_id=order_id,
            status=OrderStatus.cancelled.value,
        )

    def update_status(self, order_id: int, new_status: OrderStatus) -> OrderOutcome:
        try:
            order = self.session.exec(
                select(Order).where(Order.id == order_id).with_for_update()
            ).first()

            if not order:
                return self._abort(
                    OrderOutcome.fail(
                        OrderError.ORDER_NOT_FOUND, "Order not found", order_id=order_id
                    )
                )

            previous = order.status
            if not can_transition(previous, new_status):
                return self._abort(
                    OrderOutcome.fail(
                        OrderError.INVALID_TRANSITION,
                        f"Cannot change order status from {previous} to {new_status.value}",
                        order_id=order_id,
                        status=previous,
                    )
                )

            if new_status == OrderStatus.cancelled:
                self._mark_cancelled(order)
            else:
                order.status = new_status.value
                order.updated_at = datetime.utcnow()
                self.session.add(order)

            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(f"Updating status of order {order_id} to {new_status.value} failed")
            raise StoreError()

        logger.info(f"Order {order_id} status changed {previous} -> {new_status.value}")
        return OrderOutcome.ok(
            f"Order status updated to {new_status.value}",
            order_id=order_id,
            status=new_status.value,
        )

    # ---------- REORDER ----------

    def reorder(self, order_id: int, user_id: int) -> ReorderResult:
        order = self.get_order(order_id, user_id)
        if not order:
            return ReorderResult(
                success=False,
                error_code=OrderError.ORDER_NOT_FOUND,
                message="Order not found",
            )

        # each add commits or rolls back, which expires the loaded order
        snapshot = [(i.book_id, i.book_title, i.quantity) for i in order.items]

        lines = []
        for book_id, book_title, quantity in snapshot:
            outcome = self.carts.add_item(user_id, book_id, quantity)
            lines.append(
                ReorderLine(
                    book_id=book_id,
                    book_title=book_title,
                    quantity=quantity,
                    success=outcome.success,
                    message=outcome.message,
                    error_code=outcome.error_code,
                )
            )

        added = sum(1 for line in lines if line.success)
        if added == len(lines):
            message = "All items were added to your cart"
        elif added:
            message = f"{added} of {len(lines)} items were added to your cart"
        else:
            message = "None of the items could be added to your cart"

        return ReorderResult(
            success=added > 0,
            message=message,
            lines=lines,
            added=added,
            item_count=self.carts.get_item_count(user_id),
        )
