from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from bookstore.database import get_session
from bookstore.models.book import Book
from bookstore.models.category import Category
from bookstore.schemas.book_schemas import BookResponse
from bookstore.services import catalog_service

router = APIRouter()

RELATED_BOOKS_LIMIT = 4


def _book_detail(session: Session, book: Book) -> dict:
    category = session.get(Category, book.category_id) if book.category_id else None

    related = []
    if book.category_id:
        related = session.exec(
            select(Book)
            .where(
                Book.category_id == book.category_id,
                Book.id != book.id,
                Book.is_active == True,  # noqa: E712
            )
            .order_by(Book.rating.desc(), Book.id.desc())
            .limit(RELATED_BOOKS_LIMIT)
        ).all()

    return {
        **BookResponse.model_validate(book).model_dump(),
        "category_name": category.name if category else None,
        "max_quantity": catalog_service.max_orderable(book),
        "related_books": [BookResponse.model_validate(b) for b in related],
    }


# ---------- LIST / FILTER BOOKS ----------
@router.get("", summary="List books with filters")
def list_books(
    q: Optional[str] = None,
    category_id: Optional[int] = None,
    author: Optional[str] = None,
    price_min: Optional[float] = None,
    price_max: Optional[float] = None,
    in_stock: Optional[bool] = None,
    is_featured: Optional[bool] = None,
    on_sale: Optional[bool] = None,
    sort: str = Query(
        "newest", pattern="^(newest|title|price_asc|price_desc|rating|bestseller|discount)$"
    ),
    page: int = 1,
    limit: int = 12,
    session: Session = Depends(get_session)
):
    return catalog_service.search_books(
        session,
        q=q,
        category_id=category_id,
        author=author,
        price_min=price_min,
        price_max=price_max,
        in_stock=in_stock,
        is_featured=is_featured,
        on_sale=on_sale,
        sort=sort,
        page=page,
        limit=limit,
        serializer=BookResponse.model_validate,
    )


# ---------- SEARCH AS YOU TYPE ----------
@router.get("/search/suggest", summary="Search suggestions by title or author")
def suggest_books(
    q: str = Query("", description="Search term for title or author"),
    session: Session = Depends(get_session)
):
    results = catalog_service.suggest_books(session, q)
    return {"query": q, "total": len(results), "results": results}


# ---------- BOOK DETAIL ----------
@router.get("/slug/{slug}")
def get_book_by_slug(slug: str, session: Session = Depends(get_session)):
    book = catalog_service.get_public_book_by_slug(session, slug)
    if not book:
        raise HTTPException(404, "Book not found")
    return _book_detail(session, book)


@router.get("/{book_id}")
def get_book(book_id: int, session: Session = Depends(get_session)):
    book = catalog_service.get_public_book(session, book_id)
    if not book:
        raise HTTPException(404, "Book not found")
    return _book_detail(session, book)
