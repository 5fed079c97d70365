from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional
from datetime import datetime

NON_NULLABLE_BOOK_FIELDS = (
    "title", "author", "description", "cover_image", "price", "stock", "is_active", "is_featured",
)


class BookCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    description: str = ""
    author: str = Field(..., min_length=1, max_length=100)

    # Optional metadata
    language: Optional[str] = None
    isbn: Optional[str] = None
    publisher: Optional[str] = None
    published_date: Optional[datetime] = None
    cover_image: Optional[str] = None

    price: float = Field(..., gt=0)
    discount_price: Optional[float] = Field(None, gt=0)
    stock: int = Field(default=0, ge=0)

    category_id: Optional[int] = None

    is_active: bool = True
    is_featured: bool = False

    @model_validator(mode="after")
    def validate_discount(self):
        if self.discount_price is not None and self.discount_price > self.price:
            raise ValueError("Discount price cannot be higher than price")
        return self


class BookUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    description: Optional[str] = None
    author: Optional[str] = Field(None, min_length=1, max_length=100)

    language: Optional[str] = None
    isbn: Optional[str] = None
    publisher: Optional[str] = None
    published_date: Optional[datetime] = None
    cover_image: Optional[str] = None

    price: Optional[float] = Field(None, gt=0)
    discount_price: Optional[float] = Field(None, gt=0)
    stock: Optional[int] = Field(None, ge=0)

    category_id: Optional[int] = None

    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None

    @model_validator(mode="after")
    def reject_null_required(self):
        # omitted means "leave as is"; an explicit null would blank a NOT NULL column
        cleared = sorted(
            name for name in NON_NULLABLE_BOOK_FIELDS
            if name in self.model_fields_set and getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"These fields cannot be null: {', '.join(cleared)}")
        return self


class StockAdjust(BaseModel):
    stock: int = Field(..., ge=0)


class BookResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    excerpt: Optional[str]
    description: str
    author: str

    language: Optional[str]
    isbn: Optional[str]
    publisher: Optional[str]
    published_date: Optional[datetime]
    cover_image: Optional[str]
    rating: float

    price: float
    discount_price: Optional[float]
    display_price: float
    stock: int
    in_stock: bool

    category_id: Optional[int]

    is_active: bool
    is_featured: bool

    created_at: datetime
    updated_at: datetime
