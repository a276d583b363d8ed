from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class NotificationRead(BaseModel):
    id: int
    type: str
    title: str
    message: str
    requisition_id: Optional[int]
    is_read: bool
    read_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True
