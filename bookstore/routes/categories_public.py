from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from bookstore.database import get_session
from bookstore.models.category import Category
from bookstore.schemas.book_schemas import BookResponse
from bookstore.services import catalog_service

router = APIRouter()


@router.get("")
def list_categories(session: Session = Depends(get_session)):
    return catalog_service.list_categories_with_counts(session)


@router.get("/{category_id}")
def get_category(
    category_id: int,
    page: int = 1,
    limit: int = 12,
    session: Session = Depends(get_session)
):
    category = session.get(Category, category_id)
    if not category:
        raise HTTPException(404, "Category not found")

    books = catalog_service.search_books(
        session,
        category_id=category_id,
        page=page,
        limit=limit,
        serializer=BookResponse.model_validate,
    )

    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "books": books,
    }
