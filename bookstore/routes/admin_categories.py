from datetime import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlmodel import Session, select

from bookstore.database import get_session
from bookstore.dependencies.admin import require_admin
from bookstore.models.book import Book
from bookstore.models.category import Category
from bookstore.models.user import User
from bookstore.schemas.category_schemas import CategoryCreate, CategoryResponse, CategoryUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


def _name_taken(session: Session, name: str, exclude_id: Optional[int] = None) -> bool:
    query = select(Category.id).where(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        query = query.where(Category.id != exclude_id)
    return session.exec(query).first() is not None


@router.get("", response_model=list[CategoryResponse])
def list_categories(
    session: Session = Depends(get_session),
    _: User = Depends(require_admin)
):
    return session.exec(select(Category).order_by(Category.name)).all()


@router.post("", response_model=CategoryResponse, status_code=201)
def create_category(
    data: CategoryCreate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    if _name_taken(session, data.name):
        raise HTTPException(400, "Category already exists")

    category = Category(name=data.name, description=data.description)
    session.add(category)
    session.commit()
    session.refresh(category)

    logger.info(f"Category {category.id} '{category.name}' created by admin {admin.id}")
    return category


@router.put("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    data: CategoryUpdate,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin)
):
    category = session.get(Category, category_id)
    if not category:
        raise HTTPException(404, "Category not found")

    if data.name and data.name != category.name:
        if _name_taken(session, data.name, exclude_id=category_id):
            raise HTTPException(400, "Category already exists")
        category.name = data.name

    if data.description is not None:
        category.description = data.description

    category.updated_at = datetime.utcnow()
    session.add(category)
    session.commit()
    session.refresh(category)
    return category


@router.delete("/{category_id}")
def delete_category(
    category_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    category = session.get(Category, category_id)
    if not category:
        raise HTTPException(404, "Category not found")

    book_count = session.exec(
        select(func.count()).select_from(Book).where(Book.category_id == category_id)
    ).one()
    if book_count:
        raise HTTPException(400, f"Category still has {book_count} book(s)")

    session.delete(category)
    session.commit()

    logger.info(f"Category {category_id} deleted by admin {admin.id}")
    return {"message": "Category deleted"}
