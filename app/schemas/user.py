from typing import Optional

from pydantic import BaseModel, EmailStr

from app.models.profile import UserRole


class UserCreate(BaseModel):
    name: str
    role: UserRole = UserRole.DRIVER
    phone: Optional[str] = None
    email: Optional[EmailStr] = None


class UserUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[UserRole] = None
    avatar_url: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    user_id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: str
    is_verified: bool

    class Config:
        from_attributes = True
