from sqlmodel import SQLModel, Field
from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint
from typing import Optional
from datetime import datetime


class Wishlist(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("user_id", "book_id", name="uq_wishlist_user_book"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    book_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("book.id", ondelete="CASCADE"),
            nullable=False
        )
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)
