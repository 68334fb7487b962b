from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class User(BaseModel):
    """Authenticated caller, as decoded from a Firebase token"""
    user_id: str
    email: Optional[str] = None


class Account(BaseModel):
    id: str
    username: str
    email: Optional[str] = None
    created_at: Optional[datetime] = None


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: str
    password: str = Field(..., min_length=6)
