from sqlmodel import SQLModel, Field, Relationship
from typing import List, Optional
from datetime import datetime

from bookstore.constants.order_status import OrderStatus
from bookstore.models.order_item import OrderItem

class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_number: str = Field(index=True, unique=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    shipping_first_name: str
    shipping_last_name: str
    shipping_phone: str
    shipping_email: Optional[str] = None
    shipping_address: str
    shipping_city: str
    shipping_postal_code: Optional[str] = None
    shipping_country: str
    payment_method: str
    notes: Optional[str] = None

    subtotal: float
    tax: float
    shipping: float
    total: float

    status: str = Field(default=OrderStatus.pending.value, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    cancelled_at: Optional[datetime] = None

    items: List["OrderItem"] = Relationship(back_populates="order")
