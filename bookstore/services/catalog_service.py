from typing import List, Optional

from slugify import slugify
from sqlalchemy import func
from sqlmodel import Session, select

from bookstore.config import settings
from bookstore.constants.order_status import OrderStatus
from bookstore.models.book import Book
from bookstore.models.category import Category
from bookstore.models.order import Order
from bookstore.models.order_item import OrderItem
from bookstore.models.review import Review
from bookstore.utils.pagination import paginate

SORT_OPTIONS = {
    "newest": (Book.created_at.desc(), Book.id.desc()),
    "title": (Book.title.asc(),),
    "price_asc": (func.coalesce(Book.discount_price, Book.price).asc(),),
    "price_desc": (func.coalesce(Book.discount_price, Book.price).desc(),),
    "rating": (Book.rating.desc(), Book.id.desc()),
    "discount": ((Book.price - func.coalesce(Book.discount_price, Book.price)).desc(), Book.id.desc()),
}

SUGGESTION_LIMIT = 8


def search_books(
    session: Session,
    *,
    q: Optional[str] = None,
    category_id: Optional[int] = None,
    author: Optional[str] = None,
    price_min: Optional[float] = None,
    price_max: Optional[float] = None,
    in_stock: Optional[bool] = None,
    is_featured: Optional[bool] = None,
    on_sale: Optional[bool] = None,
    include_inactive: bool = False,
    sort: str = "newest",
    page: int = 1,
    limit: int = 12,
    serializer=None,
):
    query = select(Book)
    display_price = func.coalesce(Book.discount_price, Book.price)

    if not include_inactive:
        query = query.where(Book.is_active == True)  # noqa: E712

    if q:
        like = f"%{q}%"
        query = query.where(
            Book.title.ilike(like) |
            Book.author.ilike(like) |
            Book.isbn.ilike(like)
        )

    if category_id:
        query = query.where(Book.category_id == category_id)

    if author:
        query = query.where(Book.author.ilike(f"%{author}%"))

    if price_min is not None:
        query = query.where(display_price >= price_min)

    if price_max is not None:
        query = query.where(display_price <= price_max)

    if in_stock:
        query = query.where(Book.stock > 0)

    if is_featured is not None:
        query = query.where(Book.is_featured == is_featured)

    if on_sale:
        query = query.where(Book.discount_price.is_not(None), Book.discount_price < Book.price)

    if sort == "bestseller":
        sold = _units_sold()
        query = query.outerjoin(sold, sold.c.book_id == Book.id).order_by(
            func.coalesce(sold.c.units, 0).desc(), Book.id.desc()
        )
    else:
        query = query.order_by(*SORT_OPTIONS.get(sort, SORT_OPTIONS["newest"]))
    return paginate(session=session, query=query, page=page, limit=limit, serializer=serializer)


def _units_sold():
    """Units ordered per book, cancelled orders excluded."""
    return (
        select(OrderItem.book_id, func.sum(OrderItem.quantity).label("units"))
        .join(Order, Order.id == OrderItem.order_id)
        .where(Order.status != OrderStatus.cancelled.value)
        .group_by(OrderItem.book_id)
        .subquery()
    )


def suggest_books(session: Session, q: str, limit: int = SUGGESTION_LIMIT) -> List[dict]:
    """Short result list for search-as-you-type boxes."""
    q = (q or "").strip()
    if len(q) < 2:
        return []

    like = f"%{q}%"
    books = session.exec(
        select(Book)
        .where(Book.is_active == True)  # noqa: E712
        .where(Book.title.ilike(like) | Book.author.ilike(like))
        .order_by(Book.title)
        .limit(limit)
    ).all()

    return [
        {
            "id": b.id,
            "title": b.title,
            "author": b.author,
            "slug": b.slug,
            "cover_image": b.cover_image,
            "price": b.price,
            "display_price": b.display_price,
        }
        for b in books
    ]


def get_public_book(session: Session, book_id: int) -> Optional[Book]:
    book = session.get(Book, book_id)
    if not book or not book.is_active:
        return None
    return book


def get_public_book_by_slug(session: Session, slug: str) -> Optional[Book]:
    return session.exec(
        select(Book).where(Book.slug == slug, Book.is_active == True)  # noqa: E712
    ).first()


def list_categories_with_counts(session: Session) -> List[dict]:
    rows = session.exec(
        select(Category, func.count(Book.id))
        .join(
            Book,
            (Book.category_id == Category.id) & (Book.is_active == True),  # noqa: E712
            isouter=True,
        )
        .group_by(Category.id)
        .order_by(Category.name)
    ).all()

    return [
        {
            "id": category.id,
            "name": category.name,
            "description": category.description,
            "book_count": count,
        }
        for category, count in rows
    ]


def unique_slug(session: Session, title: str, exclude_id: Optional[int] = None) -> str:
    base = slugify(title) or "book"
    slug = base
    suffix = 2

    while True:
        query = select(Book.id).where(Book.slug == slug)
        if exclude_id is not None:
            query = query.where(Book.id != exclude_id)
        if session.exec(query).first() is None:
            return slug
        slug = f"{base}-{suffix}"
        suffix += 1


def refresh_book_rating(session: Session, book_id: int) -> None:
    """Recompute the cached average rating. Caller commits."""
    average = session.exec(
        select(func.avg(Review.rating)).where(Review.book_id == book_id)
    ).one()

    book = session.get(Book, book_id)
    if book:
        book.rating = round(float(average or 0), 2)
        session.add(book)


def max_orderable(book: Book) -> int:
    return max(0, min(book.stock, settings.max_quantity_per_item))
