from fastapi import APIRouter, HTTPException, Depends, status
from sqlmodel import Session, select
from typing import List, Optional
from app.models.item import Item
from app.schemas.item import ItemCreate, ItemRead, ItemUpdate
from app.api.endpoints.auth import get_org_context, require_roles
from app.core.tenancy import OrgContext, get_scoped, scoped, stamp_org
from app.database import get_session
from app.workflow.states import Role

router = APIRouter()

catalog_managers = require_roles(Role.SUPER_ADMIN, Role.STORE_MANAGER)

@router.post("/", response_model=ItemRead, status_code=status.HTTP_201_CREATED)
def create_item(
    item_in: ItemCreate,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(catalog_managers),
):
    existing = session.exec(
        scoped(select(Item), Item, ctx).where(Item.code == item_in.code)
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="Item code already exists")
    item = stamp_org(Item(**item_in.dict()), ctx)
    session.add(item)
    session.commit()
    session.refresh(item)
    return item

@router.get("/", response_model=List[ItemRead])
def list_items(
    category: Optional[str] = None,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    query = scoped(select(Item), Item, ctx).where(Item.is_active == True)  # noqa: E712
    if category:
        query = query.where(Item.category == category)
    return session.exec(query.order_by(Item.name)).all()

@router.get("/{item_id}", response_model=ItemRead)
def get_item(
    item_id: int,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    item = get_scoped(session, Item, item_id, ctx)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    return item

@router.put("/{item_id}", response_model=ItemRead)
def update_item(
    item_id: int,
    item_in: ItemUpdate,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(catalog_managers),
):
    item = get_scoped(session, Item, item_id, ctx)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    for key, value in item_in.dict(exclude_unset=True).items():
        setattr(item, key, value)
    session.add(item)
    session.commit()
    session.refresh(item)
    return item

@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(
    item_id: int,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(catalog_managers),
):
    item = get_scoped(session, Item, item_id, ctx)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    session.delete(item)
    session.commit()
