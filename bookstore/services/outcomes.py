"""Typed results returned by the cart and order services.

Expected business failures (stock, quantity cap, inactive book, empty cart,
non-cancellable order) are returned as outcome values instead of raised, so
routes can render a precise message without guessing from an exception.
Unexpected database failures go through ``StoreError`` instead.
"""
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel


class CartError(str, Enum):
    INVALID_QUANTITY = "INVALID_QUANTITY"
    BOOK_NOT_FOUND = "BOOK_NOT_FOUND"
    BOOK_INACTIVE = "BOOK_INACTIVE"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    QUANTITY_LIMIT_EXCEEDED = "QUANTITY_LIMIT_EXCEEDED"
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"
    CART_FULL = "CART_FULL"


class OrderError(str, Enum):
    EMPTY_CART = "EMPTY_CART"
    BOOK_UNAVAILABLE = "BOOK_UNAVAILABLE"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    NOT_CANCELLABLE = "NOT_CANCELLABLE"
    INVALID_TRANSITION = "INVALID_TRANSITION"


NOT_FOUND_ERRORS = {
    CartError.BOOK_NOT_FOUND,
    CartError.ITEM_NOT_FOUND,
    OrderError.ORDER_NOT_FOUND,
}


class CartOutcome(BaseModel):
    success: bool
    message: str
    error_code: Optional[CartError] = None
    book_id: Optional[int] = None
    available_stock: Optional[int] = None
    current_in_cart: Optional[int] = None
    max_quantity: Optional[int] = None
    item_count: Optional[int] = None
    cart: Optional[Any] = None

    @classmethod
    def ok(cls, message: str, **values) -> "CartOutcome":
        return cls(success=True, message=message, **values)

    @classmethod
    def fail(cls, error_code: CartError, message: str, **context) -> "CartOutcome":
        return cls(success=False, error_code=error_code, message=message, **context)


class OrderOutcome(BaseModel):
    success: bool
    message: str
    error_code: Optional[OrderError] = None
    order_id: Optional[int] = None
    book_id: Optional[int] = None
    book_title: Optional[str] = None
    available_stock: Optional[int] = None
    requested: Optional[int] = None
    status: Optional[str] = None
    order: Optional[Any] = None

    @classmethod
    def ok(cls, message: str, **values) -> "OrderOutcome":
        return cls(success=True, message=message, **values)

    @classmethod
    def fail(cls, error_code: OrderError, message: str, **context) -> "OrderOutcome":
        return cls(success=False, error_code=error_code, message=message, **context)


class ReorderLine(BaseModel):
    book_id: int
    book_title: str
    quantity: int
    success: bool
    message: str
    error_code: Optional[CartError] = None


class ReorderResult(BaseModel):
    success: bool
    message: str
    error_code: Optional[OrderError] = None
    lines: List[ReorderLine] = []
    added: int = 0
    item_count: int = 0
