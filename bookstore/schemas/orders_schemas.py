from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from bookstore.constants.order_status import PAYMENT_METHODS, SHIPPING_COUNTRIES, OrderStatus


class CheckoutRequest(BaseModel):
    shipping_first_name: str = Field(..., min_length=1, max_length=50)
    shipping_last_name: str = Field(..., min_length=1, max_length=50)
    shipping_phone: str = Field(..., min_length=6, max_length=20)
    shipping_email: Optional[EmailStr] = None
    shipping_address: str = Field(..., min_length=1, max_length=255)
    shipping_city: str = Field(..., min_length=1, max_length=100)
    shipping_postal_code: Optional[str] = Field(None, max_length=20)
    shipping_country: str = "Vietnam"
    payment_method: str
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("payment_method")
    @classmethod
    def validate_payment_method(cls, value):
        if value not in PAYMENT_METHODS:
            raise ValueError(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}")
        return value

    @field_validator("shipping_country")
    @classmethod
    def validate_country(cls, value):
        if value not in SHIPPING_COUNTRIES:
            raise ValueError(f"We do not ship to {value}")
        return value


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    book_id: int
    book_title: str
    unit_price: float
    quantity: int
    line_total: float


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    user_id: int
    status: str

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

    created_at: datetime
    updated_at: datetime
    cancelled_at: Optional[datetime] = None

    items: List[OrderItemRead] = []


class OrderSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    status: str
    total: float
    created_at: datetime
