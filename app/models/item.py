from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime


class Item(SQLModel, table=True):
    """Catalog entry that requisition lines can point at."""

    id: Optional[int] = Field(default=None, primary_key=True)
    org_id: int = Field(foreign_key="organization.id", index=True)
    code: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    unit_of_measure: str = "each"
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
