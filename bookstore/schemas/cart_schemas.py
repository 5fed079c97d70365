from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel
from sqlmodel import SQLModel


class CartAddRequest(SQLModel):
    book_id: int
    quantity: int = 1


class CartUpdateRequest(SQLModel):
    book_id: int
    quantity: int


class CartLine(BaseModel):
    item_id: Optional[int] = None  # guest lines have no row id
    book_id: int
    title: str
    author: str
    slug: Optional[str] = None
    cover_image: Optional[str] = None
    price: float
    discount_price: Optional[float] = None
    unit_price: float
    quantity: int
    line_total: float
    stock: int
    in_stock: bool
    is_active: bool
    max_quantity: int
    created_at: Optional[datetime] = None


class CartView(BaseModel):
    items: List[CartLine] = []
    subtotal: float = 0
    tax: float = 0
    shipping: float = 0
    total: float = 0
    item_count: int = 0
    is_empty: bool = True
    qualifies_for_free_shipping: bool = False
    amount_for_free_shipping: float = 0
