import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select
from bookstore.database import get_session
from bookstore.models.user import User
from bookstore.schemas.user_schemas import PasswordChange, ProfileUpdate, UserRead
from bookstore.utils.hash import hash_password, verify_password
from bookstore.utils.token import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


# -------- USER PROFILE --------

@router.get("/me", response_model=UserRead)
def get_my_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/me", response_model=UserRead)
def update_my_profile(
    data: ProfileUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    if data.username and data.username != current_user.username:
        existing = session.exec(
            select(User).where(User.username == data.username, User.id != current_user.id)
        ).first()
        if existing:
            raise HTTPException(400, "Username already taken")
        current_user.username = data.username

    if data.first_name:
        current_user.first_name = data.first_name

    if data.last_name is not None:
        current_user.last_name = data.last_name

    if data.phone_number is not None:
        current_user.phone_number = data.phone_number

    session.add(current_user)
    session.commit()
    session.refresh(current_user)

    return current_user


# -------- CHANGE PASSWORD --------

@router.put("/me/password")
def change_my_password(
    data: PasswordChange,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    if not verify_password(data.current_password, current_user.password):
        logger.warning(f"Password change rejected: user={current_user.id} wrong current password")
        raise HTTPException(400, "Current password is incorrect")

    if data.new_password == data.current_password:
        raise HTTPException(400, "New password must be different from the current one")

    current_user.password = hash_password(data.new_password)
    session.add(current_user)
    session.commit()

    logger.info(f"Password changed: user={current_user.id}")
    return {"message": "Password changed"}
