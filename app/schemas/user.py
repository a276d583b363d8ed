# schemas/user.py

from typing import List, Optional
from pydantic import BaseModel
from datetime import datetime


class UserCreate(BaseModel):
    username: str
    email: str
    password: str
    full_name: Optional[str] = None


class UserUpdate(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None


class MembershipRead(BaseModel):
    org_id: int
    role: str


class UserRead(BaseModel):
    id: int
    username: str
    email: str
    full_name: Optional[str]
    last_access_date: Optional[datetime]
    created_date: datetime
    updated_date: datetime
    active: bool
    memberships: List[MembershipRead] = []

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
