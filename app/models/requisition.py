from decimal import Decimal
from typing import List, Optional
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import UniqueConstraint
from datetime import date, datetime


class Requisition(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("org_id", "requisition_number", name="uq_requisition_org_number"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    org_id: int = Field(foreign_key="organization.id", index=True)
    requisition_number: str = Field(index=True)   # REQ-YY-NNNNN, unique per org
    type: str = "purchase"         # 'purchase', 'expense', 'petty_cash'
    title: str = ""
    description: Optional[str] = None
    justification: Optional[str] = None
    project_id: Optional[int] = Field(default=None, foreign_key="project.id")
    expense_account_id: Optional[int] = Field(default=None, foreign_key="expenseaccount.id")
    required_by: Optional[date] = None
    delivery_location: Optional[str] = None
    supplier_preference: Optional[str] = None
    is_urgent: bool = False
    status: str = Field(default="draft", index=True)
    total_amount: Decimal = Field(default=Decimal("0"), max_digits=15, decimal_places=2)

    submitted_by: int = Field(foreign_key="user.id", index=True)
    reviewed_by: Optional[int] = Field(default=None, foreign_key="user.id")
    approved_by: Optional[int] = Field(default=None, foreign_key="user.id")
    rejected_by: Optional[int] = Field(default=None, foreign_key="user.id")
    cancelled_by: Optional[int] = Field(default=None, foreign_key="user.id")
    rejection_reason: Optional[str] = None

    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    items: List["RequisitionItem"] = Relationship(
        back_populates="requisition",
        sa_relationship_kwargs={
            "order_by": "RequisitionItem.line_number",
            "cascade": "all, delete-orphan",
        },
    )


class RequisitionItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    requisition_id: Optional[int] = Field(default=None, foreign_key="requisition.id", index=True)
    item_id: Optional[int] = Field(default=None, foreign_key="item.id")
    item_description: Optional[str] = None
    quantity: Decimal = Field(max_digits=10, decimal_places=2)
    unit_price: Decimal = Field(default=Decimal("0"), max_digits=15, decimal_places=2)
    total_price: Decimal = Field(default=Decimal("0"), max_digits=15, decimal_places=2)
    line_number: int = 1
    notes: Optional[str] = None

    requisition: Optional[Requisition] = Relationship(back_populates="items")
