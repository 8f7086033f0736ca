from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from jobboard.schemas.base import CamelModel


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(BaseModel):
    token: str


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserResponse(CamelModel):
    user_id: int
    user_email: str
    user_role: str
    created_at: Optional[datetime] = None


class RegisterResponse(BaseModel):
    message: str
    user: UserResponse
