from typing import Optional
from pydantic import EmailStr

from .base import BaseSchema, BaseResponseSchema


class UserBase(BaseSchema):
    """Base user schema."""
    name: str
    last_name: str = ""
    email: EmailStr
    phone: Optional[str] = None


class UserCreate(UserBase):
    """Schema for creating a user."""
    password: str


# Properties to return to client
# out
class UserResponse(UserBase, BaseResponseSchema):
    """Schema for user response, without credentials."""
    role: str
    is_staff: bool = False
