from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from bookstore.constants.order_status import PAYMENT_METHODS, SHIPPING_COUNTRIES, OrderStatus
from bookstore.database import get_session
from bookstore.models.user import User
from bookstore.schemas.orders_schemas import CheckoutRequest, OrderRead, OrderSummary
from bookstore.services.cart_service import CartService
from bookstore.services.order_service import OrderService
from bookstore.services.outcomes import ReorderResult
from bookstore.utils.responses import raise_for_outcome
from bookstore.utils.token import get_current_user

router = APIRouter()


# My Orders

@router.get("")
def list_my_orders(
    page: int = 1,
    limit: int = 10,
    status: Optional[OrderStatus] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    return OrderService(session).list_orders(
        user_id=current_user.id,
        status=status,
        page=page,
        limit=limit,
        serializer=OrderSummary.model_validate,
    )

# Checkout page - cart summary + form options

@router.get("/checkout")
def checkout_summary(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    cart = CartService(session).get_cart(current_user.id)
    if cart.is_empty:
        raise HTTPException(400, "Your cart is empty.")

    return {
        "cart": cart,
        "shipping_first_name": current_user.first_name,
        "shipping_last_name": current_user.last_name,
        "shipping_phone": current_user.phone_number,
        "shipping_email": current_user.email,
        "payment_methods": PAYMENT_METHODS,
        "countries": SHIPPING_COUNTRIES,
    }

# Place Order

@router.post("/checkout", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
def place_order(
    data: CheckoutRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    outcome = raise_for_outcome(OrderService(session).create_order(current_user.id, data))
    return outcome.order

# Order Details

@router.get("/{order_id}", response_model=OrderRead)
def get_order(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    order = OrderService(session).get_order(order_id, current_user.id)
    if not order:
        raise HTTPException(404, "Order not found")
    return order

# Cancel Order

@router.post("/{order_id}/cancel")
def cancel_order(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    outcome = raise_for_outcome(OrderService(session).cancel_order(order_id, current_user.id))
    return {"message": outcome.message, "order_id": order_id, "status": outcome.status}

# Reorder - put the books of a past order back in the cart

@router.post("/{order_id}/reorder", response_model=ReorderResult)
def reorder(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    result = OrderService(session).reorder(order_id, current_user.id)
    if result.error_code:
        raise HTTPException(404, result.message)
    return result
