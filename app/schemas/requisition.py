# schemas/requisition.py

from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime

from app.workflow.states import RequisitionStatus, RequisitionType, WorkflowEvent


class LineItemIn(BaseModel):
    item_id: Optional[int] = None
    item_description: Optional[str] = None
    quantity: Decimal = Field(gt=0)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)
    notes: Optional[str] = None


class LineItemRead(BaseModel):
    id: int
    item_id: Optional[int]
    item_description: Optional[str]
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    line_number: int
    notes: Optional[str]

    class Config:
        from_attributes = True


class RequisitionCreate(BaseModel):
    type: RequisitionType = RequisitionType.PURCHASE
    title: str = ""
    description: Optional[str] = None
    justification: Optional[str] = None
    project_id: Optional[int] = None
    expense_account_id: Optional[int] = None
    required_by: Optional[date] = None
    delivery_location: Optional[str] = None
    supplier_preference: Optional[str] = None
    is_urgent: bool = False
    items: List[LineItemIn] = []


class RequisitionUpdate(BaseModel):
    type: Optional[RequisitionType] = None
    title: Optional[str] = None
    description: Optional[str] = None
    justification: Optional[str] = None
    project_id: Optional[int] = None
    expense_account_id: Optional[int] = None
    required_by: Optional[date] = None
    delivery_location: Optional[str] = None
    supplier_preference: Optional[str] = None
    is_urgent: Optional[bool] = None
    items: Optional[List[LineItemIn]] = None


class RequisitionRead(BaseModel):
    id: int
    org_id: int
    requisition_number: str
    type: str
    title: str
    description: Optional[str]
    justification: Optional[str]
    project_id: Optional[int]
    expense_account_id: Optional[int]
    required_by: Optional[date]
    delivery_location: Optional[str]
    supplier_preference: Optional[str]
    is_urgent: bool
    status: str
    total_amount: Decimal
    submitted_by: int
    reviewed_by: Optional[int]
    approved_by: Optional[int]
    rejected_by: Optional[int]
    cancelled_by: Optional[int]
    rejection_reason: Optional[str]
    submitted_at: Optional[datetime]
    reviewed_at: Optional[datetime]
    approved_at: Optional[datetime]
    rejected_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    items: List[LineItemRead] = []

    class Config:
        from_attributes = True


class TransitionRequest(BaseModel):
    event: WorkflowEvent
    comment: Optional[str] = None
    expected_status: Optional[RequisitionStatus] = None


class CommentCreate(BaseModel):
    comment_text: str
    is_internal: bool = False


class CommentRead(BaseModel):
    id: int
    requisition_id: int
    user_id: int
    comment_text: str
    is_internal: bool
    created_at: datetime

    class Config:
        from_attributes = True
