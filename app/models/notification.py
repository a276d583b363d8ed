from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    org_id: int = Field(foreign_key="organization.id", index=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    type: str   # requisition_submitted | requisition_reviewed | requisition_approved | requisition_rejected | requisition_commented
    title: str
    message: str
    requisition_id: Optional[int] = Field(default=None, foreign_key="requisition.id")
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
