from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime


class Comment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    org_id: int = Field(foreign_key="organization.id", index=True)
    requisition_id: int = Field(foreign_key="requisition.id", index=True)
    user_id: int = Field(foreign_key="user.id")
    comment_text: str
    is_internal: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
