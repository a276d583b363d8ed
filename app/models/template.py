from decimal import Decimal
from typing import List, Optional
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime


class RequisitionTemplate(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    org_id: int = Field(foreign_key="organization.id", index=True)
    created_by: int = Field(foreign_key="user.id", index=True)
    template_name: str
    description: Optional[str] = None
    type: str = "purchase"
    project_id: Optional[int] = Field(default=None, foreign_key="project.id")
    expense_account_id: Optional[int] = Field(default=None, foreign_key="expenseaccount.id")
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    items: List["RequisitionTemplateItem"] = Relationship(
        back_populates="template",
        sa_relationship_kwargs={
            "order_by": "RequisitionTemplateItem.line_number",
            "cascade": "all, delete-orphan",
        },
    )


class RequisitionTemplateItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    template_id: Optional[int] = Field(default=None, foreign_key="requisitiontemplate.id", index=True)
    item_id: Optional[int] = Field(default=None, foreign_key="item.id")
    item_description: Optional[str] = None
    quantity: Decimal = Field(max_digits=10, decimal_places=2)
    unit_price: Decimal = Field(default=Decimal("0"), max_digits=15, decimal_places=2)
    line_number: int = 1
    notes: Optional[str] = None

    template: Optional[RequisitionTemplate] = Relationship(back_populates="items")
