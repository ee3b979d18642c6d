"""
User Models
Accounts, roles and password changes
"""
from pydantic import BaseModel, Field, EmailStr
from typing import Optional
from datetime import datetime
from enum import Enum


DEFAULT_PROFILE_PICTURE = "/placeholder.svg?height=200&width=200"


class UserRole(str, Enum):
    """User roles"""
    ADMIN = "admin"
    USER = "user"


class UserStatus(str, Enum):
    """Account states"""
    ACTIVE = "active"
    INACTIVE = "inactive"


class UserBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=150)
    email: EmailStr


class UserRegister(UserBase):
    """Self registration, always creates a regular user"""
    password: str = Field(..., min_length=1)


class UserCreate(UserBase):
    """User creation by an admin"""
    password: str = Field(..., min_length=1)
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.ACTIVE
    profile_picture: Optional[str] = None


class UserUpdate(BaseModel):
    """User update by an admin"""
    name: Optional[str] = Field(None, min_length=2, max_length=150)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=1)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    profile_picture: Optional[str] = None


class UserOut(BaseModel):
    """User without the password hash"""
    id: str
    name: str
    email: str
    role: UserRole
    status: UserStatus
    profile_picture: str = DEFAULT_PROFILE_PICTURE
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "id": "5d4c3a8e-7b0e-4bb5-9a0d-2c9e0f0f3b77",
                "name": "Jane Doe",
                "email": "jane.doe@example.com",
                "role": "user",
                "status": "active"
            }
        }


class PasswordChange(BaseModel):
    """Password change"""
    old_password: str
    new_password: str
