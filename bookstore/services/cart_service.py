from abc import ABC, abstractmethod
from datetime import datetime
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from bookstore.exceptions import StoreError
from bookstore.models.book import Book
from bookstore.models.cart import CartItem
from bookstore.schemas.cart_schemas import CartView
from bookstore.services.cart_rules import (
    build_cart_view,
    build_line,
    check_purchasable,
    check_quantity,
)
from bookstore.services.outcomes import CartError, CartOutcome

logger = logging.getLogger(__name__)


class BaseCartService(ABC):
    """Operations every cart offers, whoever owns it.

    ``owner`` is passed to every call: a user id for the persistent cart,
    the visitor's session mapping for the guest cart.
    """

    def __init__(self, session: Session):
        self.session = session

    @abstractmethod
    def add_item(self, owner, book_id: int, quantity: int) -> CartOutcome: ...

    @abstractmethod
    def update_item(self, owner, book_id: int, quantity: int) -> CartOutcome: ...

    @abstractmethod
    def remove_item(self, owner, book_id: int) -> CartOutcome: ...

    @abstractmethod
    def clear(self, owner) -> None: ...

    @abstractmethod
    def get_cart(self, owner) -> CartView: ...

    @abstractmethod
    def get_item_count(self, owner) -> int: ...


class CartService(BaseCartService):
    """Cart rows stored per (user, book) for signed-in users."""

    def _locked_book(self, book_id: int):
        return self.session.exec(
            select(Book).where(Book.id == book_id).with_for_update()
        ).first()

    def _find_item(self, user_id: int, book_id: int, lock: bool = False):
        query = select(CartItem).where(
            CartItem.user_id == user_id,
            CartItem.book_id == book_id
        )
        if lock:
            query = query.with_for_update()
        return self.session.exec(query).first()

    def _reject(self, outcome: CartOutcome, user_id: int, quantity: int) -> CartOutcome:
        # release the row locks taken for validation
        self.session.rollback()
        logger.warning(
            f"Cart change rejected ({outcome.error_code.value}): "
            f"user={user_id} book={outcome.book_id} quantity={quantity}"
        )
        return outcome

    def add_item(self, user_id: int, book_id: int, quantity: int) -> CartOutcome:
        if quantity < 1:
            return CartOutcome.fail(
                CartError.INVALID_QUANTITY,
                "Quantity must be at least 1",
                book_id=book_id,
            )

        try:
            # locking the book first serializes every change to this (user, book) pair
            book = self._locked_book(book_id)
            failure = check_purchasable(book, book_id)
            if failure:
                return self._reject(failure, user_id, quantity)

            existing_item = self._find_item(user_id, book_id, lock=True)
            current_quantity = existing_item.quantity if existing_item else 0
            new_total = current_quantity + quantity

            failure = check_quantity(book, current_quantity, new_total)
            if failure:
                return self._reject(failure, user_id, quantity)

            if existing_item:
                existing_item.quantity = new_total
                existing_item.updated_at = datetime.utcnow()
                self.session.add(existing_item)
            else:
                self.session.add(
                    CartItem(user_id=user_id, book_id=book_id, quantity=quantity)
                )

            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(
                f"Add to cart failed: user={user_id} book={book_id} quantity={quantity}"
            )
            raise StoreError()

        logger.info(f"Cart updated: user={user_id} book={book_id} quantity={new_total}")
        return CartOutcome.ok(
            "Added to cart",
            book_id=book_id,
            current_in_cart=new_total,
            item_count=self.get_item_count(user_id),
        )

    def update_item(self, user_id: int, book_id: int, quantity: int) -> CartOutcome:
        if quantity <= 0:
            return self.remove_item(user_id, book_id)

        try:
            book = self._locked_book(book_id)
            item = self._find_item(user_id, book_id, lock=True)

            if item is None:
                return self._reject(
                    CartOutcome.fail(
                        CartError.ITEM_NOT_FOUND, "Cart item not found", book_id=book_id
                    ),
                    user_id,
                    quantity,
                )

            if book is None or not book.is_active:
                return self._reject(check_purchasable(book, book_id), user_id, quantity)

            failure = check_quantity(book, item.quantity, quantity, mention_current=False)
            if failure:
                return self._reject(failure, user_id, quantity)

            item.quantity = quantity
            item.updated_at = datetime.utcnow()
            self.session.add(item)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(
                f"Update cart failed: user={user_id} book={book_id} quantity={quantity}"
            )
            raise StoreError()

        cart = self.get_cart(user_id)
        return CartOutcome.ok(
            "Quantity updated",
            book_id=book_id,
            current_in_cart=quantity,
            item_count=cart.item_count,
            cart=cart,
        )

    def remove_item(self, user_id: int, book_id: int) -> CartOutcome:
        try:
            item = self._find_item(user_id, book_id)
            if item:
                self.session.delete(item)
                self.session.commit()
                logger.info(f"Removed cart item: user={user_id} book={book_id}")
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(f"Remove from cart failed: user={user_id} book={book_id}")
            raise StoreError()

        cart = self.get_cart(user_id)
        return CartOutcome.ok(
            "Item removed from cart",
            book_id=book_id,
            current_in_cart=0,
            item_count=cart.item_count,
            cart=cart,
        )

    def delete_items(self, user_id: int) -> None:
        """Stage deletion of every row of the cart without committing."""
        items = self.session.exec(
            select(CartItem).where(CartItem.user_id == user_id)
        ).all()

        for item in items:
            self.session.delete(item)

    def clear(self, user_id: int) -> None:
        try:
            self.delete_items(user_id)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(f"Clear cart failed: user={user_id}")
            raise StoreError()

        logger.info(f"Cleared cart for user {user_id}")

    def get_cart(self, user_id: int) -> CartView:
        rows = self.session.exec(
            select(CartItem, Book)
            .join(Book, CartItem.book_id == Book.id)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.created_at, CartItem.id)
        ).all()

        return build_cart_view(
            build_line(book, item.quantity, item_id=item.id, created_at=item.created_at)
            for item, book in rows
        )

    def get_item_count(self, user_id: int) -> int:
        count = self.session.exec(
            select(func.coalesce(func.sum(CartItem.quantity), 0)).where(
                CartItem.user_id == user_id
            )
        ).one()
        return int(count or 0)
