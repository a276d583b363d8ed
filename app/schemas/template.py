from decimal import Decimal
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

from app.schemas.requisition import LineItemIn
from app.workflow.states import RequisitionType


class TemplateCreate(BaseModel):
    template_name: str
    description: Optional[str] = None
    type: RequisitionType = RequisitionType.PURCHASE
    project_id: Optional[int] = None
    expense_account_id: Optional[int] = None
    items: List[LineItemIn] = []


class TemplateUpdate(BaseModel):
    template_name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[RequisitionType] = None
    project_id: Optional[int] = None
    expense_account_id: Optional[int] = None
    is_active: Optional[bool] = None
    items: Optional[List[LineItemIn]] = None


class TemplateItemRead(BaseModel):
    id: int
    item_id: Optional[int]
    item_description: Optional[str]
    quantity: Decimal
    unit_price: Decimal
    line_number: int
    notes: Optional[str]

    class Config:
        from_attributes = True


class TemplateRead(BaseModel):
    id: int
    org_id: int
    created_by: int
    template_name: str
    description: Optional[str]
    type: str
    project_id: Optional[int]
    expense_account_id: Optional[int]
    is_active: bool
    created_at: datetime
    updated_at: datetime
    items: List[TemplateItemRead] = []

    class Config:
        from_attributes = True


class TemplateUse(BaseModel):
    title: Optional[str] = None
