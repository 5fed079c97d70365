from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from sqlmodel import Session

from bookstore.database import get_session
from bookstore.models.user import User
from bookstore.services.cart_service import BaseCartService, CartService
from bookstore.services.session_cart_service import SessionCartService
from bookstore.utils.token import get_optional_user


@dataclass
class ActiveCart:
    """The cart a request works on, together with the owner to pass to it."""

    service: BaseCartService
    owner: object
    user: Optional[User] = None


def get_active_cart(
    request: Request,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
) -> ActiveCart:
    if current_user:
        return ActiveCart(CartService(session), current_user.id, current_user)
    return ActiveCart(SessionCartService(session), request.session)
