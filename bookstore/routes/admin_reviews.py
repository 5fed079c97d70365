import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from bookstore.database import get_session
from bookstore.dependencies.admin import require_admin
from bookstore.models.review import Review
from bookstore.models.user import User
from bookstore.schemas.review_schemas import ReviewRead
from bookstore.services.catalog_service import refresh_book_rating
from bookstore.utils.pagination import paginate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
def list_reviews(
    book_id: Optional[int] = None,
    rating: Optional[int] = None,
    page: int = 1,
    limit: int = 20,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin)
):
    query = select(Review)
    if book_id:
        query = query.where(Review.book_id == book_id)
    if rating:
        query = query.where(Review.rating == rating)

    query = query.order_by(Review.created_at.desc(), Review.id.desc())
    return paginate(
        session=session, query=query, page=page, limit=limit, serializer=ReviewRead.model_validate
    )


@router.delete("/{review_id}")
def delete_review(
    review_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    review = session.get(Review, review_id)
    if not review:
        raise HTTPException(404, "Review not found")

    book_id = review.book_id
    session.delete(review)
    session.flush()
    refresh_book_rating(session, book_id)
    session.commit()

    logger.info(f"Review {review_id} on book {book_id} removed by admin {admin.id}")
    return {"message": "Review deleted"}
