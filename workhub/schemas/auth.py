from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from workhub.models.user import UserRole


class TokenClaims(BaseModel):
    sub: str
    email: str
    role: UserRole
    project_id: Optional[int] = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class SignupRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    profile_picture: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class CodeLoginRequest(BaseModel):
    access_code: str


class ChangeCodeRequest(BaseModel):
    new_access_code: str


class GuestLoginRequest(BaseModel):
    access_code: str


class AuthResponse(Token):
    user: dict
    redirect_to: Optional[str] = None
