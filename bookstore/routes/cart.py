from fastapi import APIRouter, Depends

from bookstore.dependencies.cart import ActiveCart, get_active_cart
from bookstore.schemas.cart_schemas import CartAddRequest, CartUpdateRequest, CartView
from bookstore.utils.responses import raise_for_outcome

router = APIRouter()

# View Cart

@router.get("", response_model=CartView)
def get_cart(cart: ActiveCart = Depends(get_active_cart)):
    return cart.service.get_cart(cart.owner)


@router.get("/count")
def get_cart_count(cart: ActiveCart = Depends(get_active_cart)):
    return {"count": cart.service.get_item_count(cart.owner)}

# Add to Cart

@router.post("/add")
def add_to_cart(data: CartAddRequest, cart: ActiveCart = Depends(get_active_cart)):
    outcome = raise_for_outcome(
        cart.service.add_item(cart.owner, data.book_id, data.quantity)
    )
    return {
        "message": outcome.message,
        "book_id": outcome.book_id,
        "quantity": outcome.current_in_cart,
        "item_count": outcome.item_count,
    }

# Update Cart

@router.put("/update", response_model=CartView)
def update_cart_item(data: CartUpdateRequest, cart: ActiveCart = Depends(get_active_cart)):
    outcome = raise_for_outcome(
        cart.service.update_item(cart.owner, data.book_id, data.quantity)
    )
    return outcome.cart

# Remove Cart

@router.delete("/remove/{book_id}", response_model=CartView)
def remove_item(book_id: int, cart: ActiveCart = Depends(get_active_cart)):
    return cart.service.remove_item(cart.owner, book_id).cart

# Clear Cart

@router.delete("/clear")
def clear_cart(cart: ActiveCart = Depends(get_active_cart)):
    cart.service.clear(cart.owner)
    return {"message": "Cart cleared"}
