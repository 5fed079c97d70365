from datetime import datetime
import logging
from typing import Dict, Iterable, Tuple

from sqlmodel import Session, select

from bookstore.models.book import Book
from bookstore.models.order_item import OrderItem

logger = logging.getLogger(__name__)


def lock_books(session: Session, book_ids: Iterable[int]) -> Dict[int, Book]:
    """Load and row-lock books, always in id order to avoid deadlocks."""
    ids = sorted(set(book_ids))
    if not ids:
        return {}

    books = session.exec(
        select(Book).where(Book.id.in_(ids)).order_by(Book.id).with_for_update()
    ).all()
    return {book.id: book for book in books}


def reduce_inventory(session: Session, lines: Iterable[Tuple[Book, int]]) -> None:
    """Decrement stock for books already locked and checked by the caller. Caller commits."""
    for book, quantity in lines:
        book.stock -= quantity
        book.updated_at = datetime.utcnow()
        session.add(book)
        logger.info(f"Reduced stock of book {book.id} by {quantity} to {book.stock}")


def restock_order_items(session: Session, order_id: int) -> int:
    """Put the quantities of a cancelled order back on the shelf. Caller commits."""
    order_items = session.exec(
        select(OrderItem).where(OrderItem.order_id == order_id)
    ).all()

    books = lock_books(session, [item.book_id for item in order_items])
    restocked = 0

    for item in order_items:
        book = books.get(item.book_id)
        if not book:
            logger.warning(f"Book {item.book_id} from order {order_id} no longer exists, not restocked")
            continue

        book.stock += item.quantity
        book.updated_at = datetime.utcnow()
        session.add(book)
        restocked += 1

    logger.info(f"Restocked {restocked} item(s) for order {order_id}")
    return restocked
