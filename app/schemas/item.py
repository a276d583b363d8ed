from pydantic import BaseModel
from typing import Optional


class ItemCreate(BaseModel):
    code: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    unit_of_measure: str = "each"

class ItemRead(BaseModel):
    id: int
    org_id: int
    code: str
    name: str
    description: Optional[str]
    category: Optional[str]
    unit_of_measure: str
    is_active: bool

    class Config:
        from_attributes = True

class ItemUpdate(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    unit_of_measure: Optional[str] = None
    is_active: Optional[bool] = None
