from decimal import Decimal
from pydantic import BaseModel
from typing import Optional
from datetime import date


class ProjectCreate(BaseModel):
    code: str
    name: str
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: Optional[Decimal] = None

class ProjectRead(BaseModel):
    id: int
    org_id: int
    code: str
    name: str
    description: Optional[str]
    start_date: Optional[date]
    end_date: Optional[date]
    budget: Optional[Decimal]
    is_active: bool

    class Config:
        from_attributes = True

class ProjectUpdate(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: Optional[Decimal] = None
    is_active: Optional[bool] = None

class ProjectBudgetSummary(BaseModel):
    project_id: int
    project_name: str
    budget: Decimal
    spent: Decimal
    pending: Decimal
    in_review: Decimal
    remaining: Decimal
    available: Decimal
    utilization_percentage: Decimal
