import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel import Session, select
from bookstore.database import get_session
from bookstore.models.user import User
from bookstore.schemas.user_schemas import UserRegister, UserLogin, Token, UserResponse
from bookstore.services.cart_migration import migrate_guest_cart
from bookstore.services.cart_service import CartService
from bookstore.services.session_cart_service import SessionCartService
from bookstore.utils.hash import hash_password, verify_password
from bookstore.utils.token import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter()


# -------- AUTH ROUTES --------

@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register_user(payload: UserRegister, session: Session = Depends(get_session)):
    email = payload.email.lower()
    existing_user = session.exec(select(User).where(User.email == email)).first()
    if existing_user:
        raise HTTPException(400, "Email already registered")

    user = User(
        first_name=payload.first_name,
        last_name=payload.last_name,
        username=payload.username or email,
        email=email,
        phone_number=payload.phone_number,
        password=hash_password(payload.password)
    )

    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info(f"Registered user {user.id}")

    return UserResponse(
        message="Registration successful.",
        user_id=user.id,
        email=user.email,
        role=user.role,
        can_login=user.can_login
    )


@router.post("/login", response_model=Token)
def login(payload: UserLogin, request: Request, session: Session = Depends(get_session)):
    user = session.exec(select(User).where(User.email == payload.email.lower())).first()

    if not user or not verify_password(payload.password, user.password):
        raise HTTPException(401, "Invalid email or password")

    if not user.can_login:
        raise HTTPException(403, "User account is disabled")

    user_id = user.id
    # the guest cart from before login moves into the saved cart
    migrated = migrate_guest_cart(
        SessionCartService(session),
        request.session,
        CartService(session),
        user_id,
    )

    token = create_access_token({"user_id": user_id})
    logger.info(f"User {user_id} logged in")
    return Token(access_token=token, token_type="bearer", migrated_cart_items=migrated)


@router.post("/logout")
def logout(request: Request):
    request.session.clear()
    return {"message": "Logout successful"}
