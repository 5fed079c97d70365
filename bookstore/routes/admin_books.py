from datetime import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from bookstore.database import get_session
from bookstore.dependencies.admin import require_admin
from bookstore.exceptions import StoreError
from bookstore.models.book import Book
from bookstore.models.category import Category
from bookstore.models.user import User
from bookstore.schemas.book_schemas import BookCreate, BookResponse, BookUpdate, StockAdjust
from bookstore.services import catalog_service
from bookstore.services.inventory_service import lock_books

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_book_or_404(session: Session, book_id: int) -> Book:
    book = session.get(Book, book_id)
    if not book:
        raise HTTPException(404, "Book not found")
    return book


def _check_category(session: Session, category_id: Optional[int]) -> None:
    if category_id is not None and not session.get(Category, category_id):
        raise HTTPException(400, "Invalid category_id")


def _save(session: Session, book: Book) -> None:
    label = f"{book.id} ({book.slug})"
    session.add(book)
    try:
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"Saving book {label} failed")
        raise StoreError()
    session.refresh(book)


# -------- LIST --------
@router.get("")
def list_books(
    q: Optional[str] = None,
    category_id: Optional[int] = None,
    in_stock: Optional[bool] = None,
    page: int = 1,
    limit: int = 20,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin)
):
    return catalog_service.search_books(
        session,
        q=q,
        category_id=category_id,
        in_stock=in_stock,
        include_inactive=True,
        page=page,
        limit=limit,
        serializer=BookResponse.model_validate,
    )


# -------- CREATE --------
@router.post("", response_model=BookResponse, status_code=201)
def create_book(
    data: BookCreate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    _check_category(session, data.category_id)

    values = data.model_dump(exclude_none=True)
    values["slug"] = catalog_service.unique_slug(session, data.slug or data.title)

    book = Book(**values)
    _save(session, book)

    logger.info(f"Book {book.id} '{book.title}' created by admin {admin.id}")
    return book


# -------- GET --------
@router.get("/{book_id}", response_model=BookResponse)
def get_book(
    book_id: int,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin)
):
    return _get_book_or_404(session, book_id)


# -------- UPDATE --------
@router.put("/{book_id}", response_model=BookResponse)
def update_book(
    book_id: int,
    data: BookUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    book = _get_book_or_404(session, book_id)
    changes = data.model_dump(exclude_unset=True)

    if "category_id" in changes:
        _check_category(session, changes["category_id"])

    if changes.get("slug"):
        changes["slug"] = catalog_service.unique_slug(session, changes["slug"], exclude_id=book.id)
    else:
        changes.pop("slug", None)

    price = changes.get("price", book.price)
    discount = changes.get("discount_price", book.discount_price)
    if discount is not None and discount > price:
        raise HTTPException(400, "Discount price cannot be higher than price")

    for key, value in changes.items():
        setattr(book, key, value)

    book.updated_at = datetime.utcnow()
    _save(session, book)

    logger.info(f"Book {book.id} updated by admin {admin.id}: {sorted(changes)}")
    return book


# -------- STOCK --------
@router.patch("/{book_id}/stock", response_model=BookResponse)
def set_stock(
    book_id: int,
    data: StockAdjust,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    book = lock_books(session, [book_id]).get(book_id)
    if not book:
        raise HTTPException(404, "Book not found")

    previous = book.stock
    book.stock = data.stock
    book.updated_at = datetime.utcnow()
    _save(session, book)

    logger.info(f"Stock of book {book.id} set {previous} -> {book.stock} by admin {admin.id}")
    return book


# -------- ACTIVATE / DEACTIVATE --------
@router.patch("/{book_id}/toggle-active", response_model=BookResponse)
def toggle_active(
    book_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    book = _get_book_or_404(session, book_id)
    book.is_active = not book.is_active
    book.updated_at = datetime.utcnow()
    _save(session, book)

    logger.info(f"Book {book.id} is_active={book.is_active} (admin {admin.id})")
    return book


# Books referenced by orders keep their row; deleting only hides them.
@router.delete("/{book_id}")
def delete_book(
    book_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    book = _get_book_or_404(session, book_id)
    book.is_active = False
    book.updated_at = datetime.utcnow()
    _save(session, book)

    logger.info(f"Book {book_id} deactivated by admin {admin.id}")
    return {"message": "Book deactivated", "book_id": book_id}
