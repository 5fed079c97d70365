from datetime import datetime
import logging
from typing import List, MutableMapping

from sqlmodel import select

from bookstore.config import settings
from bookstore.models.book import Book
from bookstore.schemas.cart_schemas import CartView
from bookstore.services.cart_rules import (
    build_cart_view,
    build_line,
    check_purchasable,
    check_quantity,
)
from bookstore.services.cart_service import BaseCartService
from bookstore.services.outcomes import CartError, CartOutcome

logger = logging.getLogger(__name__)

CART_SESSION_KEY = "guest_cart"


class SessionCartService(BaseCartService):
    """Guest cart kept in the visitor's session.

    The owner is the session mapping itself (``request.session``); the
    session middleware signs it into a cookie whose idle expiry bounds the
    cart's lifetime. Stored shape::

        {"items": [{"book_id": 1, "quantity": 2, "created_at": "2025-01-01T10:00:00"}]}

    Only ids and quantities are kept; titles and prices always come from the
    book rows. The number of distinct lines is capped so the signed cookie
    stays under the 4 KB browsers accept.
    """

    def get_items(self, owner: MutableMapping) -> List[dict]:
        data = owner.get(CART_SESSION_KEY) or {}
        items = []

        for raw in data.get("items", []):
            try:
                book_id = int(raw["book_id"])
                quantity = int(raw["quantity"])
            except (KeyError, TypeError, ValueError):
                logger.warning(f"Dropping malformed guest cart entry: {raw!r}")
                continue
            if quantity > 0:
                items.append({
                    "book_id": book_id,
                    "quantity": quantity,
                    "created_at": raw.get("created_at"),
                })

        return items

    def _save(self, owner: MutableMapping, items: List[dict]) -> None:
        owner[CART_SESSION_KEY] = {"items": items}

    def _find(self, items: List[dict], book_id: int):
        return next((i for i in items if i["book_id"] == book_id), None)

    def add_item(self, owner: MutableMapping, book_id: int, quantity: int) -> CartOutcome:
        logger.info(f"Guest cart add: book={book_id} quantity={quantity}")

        if quantity < 1:
            return CartOutcome.fail(
                CartError.INVALID_QUANTITY,
                "Quantity must be at least 1",
                book_id=book_id,
            )

        book = self.session.get(Book, book_id)
        failure = check_purchasable(book, book_id)
        if failure:
            logger.warning(f"Guest cart add rejected ({failure.error_code.value}): book={book_id}")
            return failure

        items = self.get_items(owner)
        existing_item = self._find(items, book_id)
        current_quantity = existing_item["quantity"] if existing_item else 0
        new_total = current_quantity + quantity

        failure = check_quantity(book, current_quantity, new_total)
        if failure:
            logger.warning(
                f"Guest cart add rejected ({failure.error_code.value}): "
                f"book={book_id} requested total={new_total}"
            )
            return failure

        if not existing_item and len(items) >= settings.guest_cart_max_lines:
            logger.warning(f"Guest cart add rejected (CART_FULL): book={book_id} lines={len(items)}")
            return CartOutcome.fail(
                CartError.CART_FULL,
                f"Your cart can hold up to {settings.guest_cart_max_lines} different books. "
                "Sign in to add more.",
                book_id=book_id,
                current_in_cart=0,
            )

        if existing_item:
            existing_item["quantity"] = new_total
        else:
            items.append({
                "book_id": book.id,
                "quantity": quantity,
                "created_at": datetime.utcnow().isoformat(timespec="seconds"),
            })

        self._save(owner, items)
        return CartOutcome.ok(
            "Added to cart",
            book_id=book_id,
            current_in_cart=new_total,
            item_count=sum(i["quantity"] for i in items),
        )

    def update_item(self, owner: MutableMapping, book_id: int, quantity: int) -> CartOutcome:
        if quantity <= 0:
            return self.remove_item(owner, book_id)

        items = self.get_items(owner)
        item = self._find(items, book_id)
        if item is None:
            return CartOutcome.fail(
                CartError.ITEM_NOT_FOUND, "Cart item not found", book_id=book_id
            )

        book = self.session.get(Book, book_id)
        if book is None or not book.is_active:
            return check_purchasable(book, book_id)

        failure = check_quantity(book, item["quantity"], quantity, mention_current=False)
        if failure:
            logger.warning(
                f"Guest cart update rejected ({failure.error_code.value}): "
                f"book={book_id} quantity={quantity}"
            )
            return failure

        item["quantity"] = quantity
        self._save(owner, items)

        cart = self.get_cart(owner)
        return CartOutcome.ok(
            "Quantity updated",
            book_id=book_id,
            current_in_cart=quantity,
            item_count=cart.item_count,
            cart=cart,
        )

    def remove_item(self, owner: MutableMapping, book_id: int) -> CartOutcome:
        items = self.get_items(owner)
        remaining = [i for i in items if i["book_id"] != book_id]

        if len(remaining) != len(items):
            self._save(owner, remaining)
            logger.info(f"Removed guest cart item: book={book_id}")

        cart = self.get_cart(owner)
        return CartOutcome.ok(
            "Item removed from cart",
            book_id=book_id,
            current_in_cart=0,
            item_count=cart.item_count,
            cart=cart,
        )

    def clear(self, owner: MutableMapping) -> None:
        owner.pop(CART_SESSION_KEY, None)
        logger.info("Guest cart cleared")

    def get_cart(self, owner: MutableMapping) -> CartView:
        items = self.get_items(owner)
        if not items:
            return build_cart_view([])

        books = {
            b.id: b
            for b in self.session.exec(
                select(Book).where(Book.id.in_([i["book_id"] for i in items]))
            ).all()
        }

        lines = []
        for item in items:
            book = books.get(item["book_id"])
            if book is None:
                continue
            created_at = item.get("created_at")
            lines.append(
                build_line(
                    book,
                    item["quantity"],
                    created_at=datetime.fromisoformat(created_at) if created_at else None,
                )
            )

        return build_cart_view(lines)

    def get_item_count(self, owner: MutableMapping) -> int:
        return sum(i["quantity"] for i in self.get_items(owner))
