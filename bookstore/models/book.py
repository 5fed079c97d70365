from sqlmodel import SQLModel, Field ,Relationship
from sqlalchemy import CheckConstraint
from typing import Optional, TYPE_CHECKING , List
from datetime import datetime


if TYPE_CHECKING:
    from .category import Category
    from .review import Review

class Book(SQLModel, table=True):
    __table_args__ = (CheckConstraint("stock >= 0", name="ck_book_stock_non_negative"),)

    #main info
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    slug: str = Field(index=True, unique=True)
    excerpt: Optional[str] = None
    description: str = ""

    #Author and meta
    author: str
    language: Optional[str] = Field(default=None, description="Language of the book")
    publisher: Optional[str] = None
    isbn: Optional[str] = None
    published_date: Optional[datetime] = None
    rating: float = 0.0

    cover_image: str = Field(default="/images/books/placeholder.jpg")

    #Shop Details
    price: float
    discount_price: Optional[float] = None
    stock: int = 0
    is_active: bool = True
    is_featured: bool = False

    #timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    #category
    category_id: Optional[int] = Field(default=None, foreign_key="category.id")
    category: Optional["Category"] = Relationship(back_populates="books")

    reviews: List["Review"] = Relationship(back_populates="book")

    @property
    def display_price(self) -> float:
        return self.discount_price if self.discount_price is not None else self.price

    @property
    def in_stock(self) -> bool:
         return self.stock is not None and self.stock > 0
