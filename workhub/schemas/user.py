from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import List, Optional
from workhub.models.user import UserRole


class UserBase(BaseModel):
    name: str
    email: EmailStr


class UserCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone_number: Optional[str] = None
    access_code: Optional[str] = None
    auto_generate_code: bool = False


class UserResponse(UserBase):
    id: int
    role: UserRole
    skills: List[str] = []
    profile_picture: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AdminUserResponse(UserResponse):
    access_code: Optional[str] = None
    phone_number: Optional[str] = None


class ProfileResponse(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole
    skills: List[str] = []
    is_guest: bool = False
    project_id: Optional[int] = None
    profile_picture: Optional[str] = None

    class Config:
        from_attributes = True


class RoleChangeRequest(BaseModel):
    # Plain string so an unknown role is reported by the policy engine
    new_role: str


class RoleChangeResponse(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    previous_role: UserRole
    message: str


class SendCredentialsRequest(BaseModel):
    method: str = "email"
