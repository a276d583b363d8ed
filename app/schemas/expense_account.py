from pydantic import BaseModel
from typing import Optional


class ExpenseAccountCreate(BaseModel):
    code: str
    name: str
    description: Optional[str] = None
    project_id: Optional[int] = None

class ExpenseAccountRead(BaseModel):
    id: int
    org_id: int
    code: str
    name: str
    description: Optional[str]
    project_id: Optional[int]
    is_active: bool

    class Config:
        from_attributes = True

class ExpenseAccountUpdate(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    project_id: Optional[int] = None
    is_active: Optional[bool] = None
