from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session

from bookstore.database import get_session
from bookstore.models.user import User
from bookstore.services.wishlist_service import WishlistService
from bookstore.utils.responses import raise_for_outcome
from bookstore.utils.token import get_current_user

router = APIRouter()


class MoveToCartRequest(BaseModel):
    quantity: int = Field(1, ge=1)


@router.get("")
def list_wishlist(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    items = WishlistService(session).list_items(current_user.id)
    return {"total": len(items), "items": items}


@router.get("/count")
def wishlist_count(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    return {"count": WishlistService(session).count(current_user.id)}


@router.get("/status/{book_id}")
def wishlist_status(
    book_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    return {
        "book_id": book_id,
        "in_wishlist": WishlistService(session).contains(current_user.id, book_id),
    }


@router.post("/add/{book_id}")
def add_to_wishlist(
    book_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    if not WishlistService(session).add(current_user.id, book_id):
        raise HTTPException(404, "Book not found")
    return {"message": "Added to wishlist", "book_id": book_id, "in_wishlist": True}


@router.delete("/remove/{book_id}")
def remove_from_wishlist(
    book_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    if not WishlistService(session).remove(current_user.id, book_id):
        raise HTTPException(404, "Book is not in your wishlist")
    return {"message": "Removed from wishlist", "book_id": book_id, "in_wishlist": False}


@router.post("/toggle/{book_id}")
def toggle_wishlist(
    book_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    success, in_wishlist = WishlistService(session).toggle(current_user.id, book_id)
    if not success:
        raise HTTPException(404, "Book not found")

    return {
        "message": "Added to wishlist" if in_wishlist else "Removed from wishlist",
        "book_id": book_id,
        "in_wishlist": in_wishlist,
    }


@router.post("/move-to-cart/{book_id}")
def move_to_cart(
    book_id: int,
    data: Optional[MoveToCartRequest] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    quantity = data.quantity if data else 1
    outcome = WishlistService(session).move_to_cart(current_user.id, book_id, quantity)
    raise_for_outcome(outcome)

    return {
        "message": "Moved to cart",
        "book_id": book_id,
        "item_count": outcome.item_count,
    }
