import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from bookstore.database import get_session
from bookstore.exceptions import StoreError
from bookstore.models.book import Book
from bookstore.models.review import Review
from bookstore.models.user import User
from bookstore.schemas.review_schemas import ReviewCreate, ReviewRead
from bookstore.services.catalog_service import refresh_book_rating
from bookstore.utils.token import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# LIST REVIEWS FOR A BOOK
# ---------------------------------------------------------

@router.get("/books/{book_id}")
def list_book_reviews(book_id: int, session: Session = Depends(get_session)):
    book = session.get(Book, book_id)
    if not book or not book.is_active:
        raise HTTPException(404, "Book not found")

    reviews = session.exec(
        select(Review)
        .where(Review.book_id == book_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
    ).all()

    average = session.exec(
        select(func.avg(Review.rating)).where(Review.book_id == book_id)
    ).one()

    return {
        "book_id": book_id,
        "average_rating": round(float(average or 0), 2),
        "total_reviews": len(reviews),
        "reviews": [ReviewRead.model_validate(r) for r in reviews],
    }


# ---------------------------------------------------------
# CREATE OR UPDATE MY REVIEW
# ---------------------------------------------------------

@router.post("/books/{book_id}", status_code=201)
def create_review(
    book_id: int,
    data: ReviewCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    book = session.get(Book, book_id)
    if not book or not book.is_active:
        raise HTTPException(404, "Book not found")

    # one review per user per book; posting again edits it
    review = session.exec(
        select(Review).where(Review.book_id == book_id, Review.user_id == current_user.id)
    ).first()

    if review:
        review.rating = data.rating
        review.comment = data.comment
        review.updated_at = datetime.utcnow()
        message = "Review updated"
    else:
        review = Review(
            book_id=book_id,
            user_id=current_user.id,
            user_name=current_user.full_name or current_user.username,
            rating=data.rating,
            comment=data.comment,
        )
        message = "Review added"

    try:
        session.add(review)
        session.flush()
        refresh_book_rating(session, book_id)
        session.commit()
    except SQLAlchemyError:
        # a concurrent first review by the same user hits uq_review_book_user
        session.rollback()
        logger.exception(f"Saving review failed: user={current_user.id} book={book_id}")
        raise StoreError()
    session.refresh(review)

    return {"message": message, "review": ReviewRead.model_validate(review)}


# ---------------------------------------------------------
# DELETE REVIEW
# ---------------------------------------------------------

@router.delete("/{review_id}")
def delete_review(
    review_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    review = session.get(Review, review_id)
    if not review:
        raise HTTPException(404, "Review not found")

    if review.user_id != current_user.id and current_user.role != "admin":
        raise HTTPException(403, "You can only delete your own reviews")

    book_id = review.book_id
    try:
        session.delete(review)
        session.flush()
        refresh_book_rating(session, book_id)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"Deleting review {review_id} failed: book={book_id}")
        raise StoreError()

    return {"message": "Review deleted"}
