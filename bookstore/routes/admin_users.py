import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from bookstore.database import get_session
from bookstore.dependencies.admin import require_admin
from bookstore.models.user import User
from bookstore.schemas.user_schemas import AdminUserUpdate, UserRead
from bookstore.utils.pagination import paginate

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_user_or_404(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(404, "User not found")
    return user


@router.get("")
def list_users(
    search: Optional[str] = None,
    role: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin)
):
    query = select(User)

    if search:
        like = f"%{search}%"
        query = query.where(
            User.email.ilike(like) |
            User.first_name.ilike(like) |
            User.last_name.ilike(like) |
            User.username.ilike(like)
        )

    if role:
        query = query.where(User.role == role)

    query = query.order_by(User.created_at.desc(), User.id.desc())
    return paginate(
        session=session, query=query, page=page, limit=limit, serializer=UserRead.model_validate
    )


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: int,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin)
):
    return _get_user_or_404(session, user_id)


@router.patch("/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    data: AdminUserUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    user = _get_user_or_404(session, user_id)

    if user.id == admin.id and (data.role == "user" or data.can_login is False):
        raise HTTPException(400, "You cannot demote or lock your own account")

    if data.role is not None:
        user.role = data.role
    if data.can_login is not None:
        user.can_login = data.can_login

    session.add(user)
    session.commit()
    session.refresh(user)

    logger.info(f"User {user.id} updated by admin {admin.id}: role={user.role} can_login={user.can_login}")
    return user


@router.patch("/{user_id}/toggle-lock", response_model=UserRead)
def toggle_lock(
    user_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    user = _get_user_or_404(session, user_id)
    if user.id == admin.id:
        raise HTTPException(400, "You cannot lock your own account")

    user.can_login = not user.can_login
    session.add(user)
    session.commit()
    session.refresh(user)

    logger.info(f"User {user.id} can_login={user.can_login} (admin {admin.id})")
    return user
