from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class ReviewCreate(SQLModel):
    rating: int = Field(ge=1, le=5)
    comment: str = Field(min_length=1, max_length=2000)

class ReviewRead(SQLModel):
    id: int
    book_id: int
    user_id: Optional[int] = None
    user_name: str
    rating: int
    comment: str
    created_at: datetime
    updated_at: Optional[datetime] = None
