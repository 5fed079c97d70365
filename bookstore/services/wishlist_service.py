import logging
from typing import List, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from bookstore.exceptions import StoreError
from bookstore.models.book import Book
from bookstore.models.wishlist import Wishlist
from bookstore.services.cart_service import CartService
from bookstore.services.outcomes import CartOutcome

logger = logging.getLogger(__name__)


class WishlistService:
    def __init__(self, session: Session):
        self.session = session

    def _find(self, user_id: int, book_id: int):
        return self.session.exec(
            select(Wishlist).where(Wishlist.user_id == user_id, Wishlist.book_id == book_id)
        ).first()

    def _commit(self, action: str, user_id: int, book_id: int) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(f"Wishlist {action} failed: user={user_id} book={book_id}")
            raise StoreError()

    def add(self, user_id: int, book_id: int) -> bool:
        """False when the book does not exist or is not for sale."""
        book = self.session.get(Book, book_id)
        if not book or not book.is_active:
            return False

        if self._find(user_id, book_id):
            return True

        self.session.add(Wishlist(user_id=user_id, book_id=book_id))
        self._commit("add", user_id, book_id)
        return True

    def remove(self, user_id: int, book_id: int) -> bool:
        item = self._find(user_id, book_id)
        if not item:
            return False

        self.session.delete(item)
        self._commit("remove", user_id, book_id)
        return True

    def toggle(self, user_id: int, book_id: int) -> Tuple[bool, bool]:
        """Returns (success, in_wishlist)."""
        book = self.session.get(Book, book_id)
        if not book or not book.is_active:
            return False, False

        item = self._find(user_id, book_id)
        if item:
            self.session.delete(item)
            self._commit("toggle", user_id, book_id)
            return True, False

        self.session.add(Wishlist(user_id=user_id, book_id=book_id))
        self._commit("toggle", user_id, book_id)
        return True, True

    def contains(self, user_id: int, book_id: int) -> bool:
        return self._find(user_id, book_id) is not None

    def count(self, user_id: int) -> int:
        return self.session.exec(
            select(func.count()).select_from(Wishlist).where(Wishlist.user_id == user_id)
        ).one()

    def list_items(self, user_id: int) -> List[dict]:
        rows = self.session.exec(
            select(Wishlist, Book)
            .join(Book, Wishlist.book_id == Book.id)
            .where(Wishlist.user_id == user_id)
            .order_by(Wishlist.created_at.desc(), Wishlist.id.desc())
        ).all()

        return [
            {
                "wishlist_id": w.id,
                "book_id": book.id,
                "title": book.title,
                "author": book.author,
                "slug": book.slug,
                "price": book.price,
                "display_price": book.display_price,
                "cover_image": book.cover_image,
                "in_stock": book.in_stock,
                "is_active": book.is_active,
                "added_at": w.created_at,
            }
            for w, book in rows
        ]

    def move_to_cart(self, user_id: int, book_id: int, quantity: int = 1) -> CartOutcome:
        """Add the book to the cart and drop it from the wishlist if that worked."""
        outcome = CartService(self.session).add_item(user_id, book_id, quantity)

        if outcome.success:
            item = self._find(user_id, book_id)
            if item:
                self.session.delete(item)
                self._commit("move to cart", user_id, book_id)

        return outcome
