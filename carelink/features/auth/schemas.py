from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime


# Request Schemas
class RegisterRequest(BaseModel):
    """Registration request schema."""

    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    phone: Optional[str] = None


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str


# Response Schemas
class UserResponse(BaseModel):
    """Public view of a user account."""

    id: str
    email: str
    name: str
    phone: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class TokenResponse(BaseModel):
    """Access token plus the authenticated user."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse
