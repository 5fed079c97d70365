from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from typing import Optional
from datetime import datetime


class UserRegister(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field("", max_length=50)
    username: Optional[str] = None
    email: EmailStr
    phone_number: Optional[str] = None
    password: str = Field(..., min_length=6)
    confirm_password: str

    @model_validator(mode="after")
    def validate_passwords(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self

class UserResponse(BaseModel):
    message: str
    user_id: int
    email: EmailStr
    role: str
    can_login: bool

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str
    migrated_cart_items: int = 0

class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    username: Optional[str] = None
    phone_number: Optional[str] = None

class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    username: str
    email: str
    phone_number: Optional[str] = None
    role: str
    can_login: bool
    created_at: datetime

class AdminUserUpdate(BaseModel):
    role: Optional[str] = Field(None, pattern="^(user|admin)$")
    can_login: Optional[bool] = None

class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6, max_length=100)
    confirm_password: str

    @model_validator(mode="after")
    def validate_passwords(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self
