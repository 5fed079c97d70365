from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from bookstore.constants.order_status import OrderStatus
from bookstore.database import get_session
from bookstore.dependencies.admin import require_admin
from bookstore.models.order import Order
from bookstore.models.user import User
from bookstore.schemas.orders_schemas import OrderRead, OrderStatusUpdate, OrderSummary
from bookstore.services.order_service import OrderService
from bookstore.utils.responses import raise_for_outcome

router = APIRouter()


@router.get("")
def list_orders(
    status: Optional[OrderStatus] = None,
    user_id: Optional[int] = None,
    page: int = 1,
    limit: int = 20,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin)
):
    return OrderService(session).list_orders(
        user_id=user_id,
        status=status,
        page=page,
        limit=limit,
        serializer=OrderSummary.model_validate,
    )


@router.get("/{order_id}", response_model=OrderRead)
def get_order(
    order_id: int,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin)
):
    order = session.get(Order, order_id)
    if not order:
        raise HTTPException(404, "Order not found")
    return order


@router.put("/{order_id}/status")
def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin)
):
    outcome = OrderService(session).update_status(order_id, data.status)
    raise_for_outcome(outcome)

    return {
        "message": outcome.message,
        "order_id": order_id,
        "status": outcome.status,
    }
