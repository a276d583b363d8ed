from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from app.workflow.states import Role


class OrganizationCreate(BaseModel):
    name: str


class OrganizationUpdate(BaseModel):
    name: Optional[str] = None
    is_active: Optional[bool] = None


class OrganizationRead(BaseModel):
    id: int
    name: str
    slug: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class MemberCreate(BaseModel):
    email: str
    role: Role = Role.SUBMITTER


class MemberUpdate(BaseModel):
    role: Role


class MemberRead(BaseModel):
    user_id: int
    org_id: int
    role: str
    username: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
