from datetime import datetime
from fastapi import APIRouter, HTTPException, Depends, status
from sqlmodel import Session, select
from typing import List, Optional
from app.models.expense_account import ExpenseAccount
from app.models.project import Project
from app.schemas.expense_account import ExpenseAccountCreate, ExpenseAccountRead, ExpenseAccountUpdate
from app.api.endpoints.auth import get_org_context, require_roles
from app.core.tenancy import OrgContext, get_scoped, scoped, stamp_org
from app.database import get_session
from app.workflow.states import Role

router = APIRouter()

admin_only = require_roles(Role.SUPER_ADMIN)


def check_project(session: Session, project_id: Optional[int], ctx: OrgContext):
    if project_id is not None and not get_scoped(session, Project, project_id, ctx):
        raise HTTPException(status_code=400, detail="Unknown project")


@router.post("/", response_model=ExpenseAccountRead, status_code=status.HTTP_201_CREATED)
def create_expense_account(
    account_in: ExpenseAccountCreate,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(admin_only),
):
    check_project(session, account_in.project_id, ctx)
    account = stamp_org(ExpenseAccount(**account_in.dict()), ctx)
    session.add(account)
    session.commit()
    session.refresh(account)
    return account

@router.get("/", response_model=List[ExpenseAccountRead])
def list_expense_accounts(
    project_id: Optional[int] = None,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    query = scoped(select(ExpenseAccount), ExpenseAccount, ctx).where(ExpenseAccount.is_active == True)  # noqa: E712
    if project_id is not None:
        query = query.where(ExpenseAccount.project_id == project_id)
    return session.exec(query.order_by(ExpenseAccount.name)).all()

@router.get("/{account_id}", response_model=ExpenseAccountRead)
def get_expense_account(
    account_id: int,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    account = get_scoped(session, ExpenseAccount, account_id, ctx)
    if not account:
        raise HTTPException(status_code=404, detail="Expense account not found")
    return account

@router.put("/{account_id}", response_model=ExpenseAccountRead)
def update_expense_account(
    account_id: int,
    account_in: ExpenseAccountUpdate,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(admin_only),
):
    account = get_scoped(session, ExpenseAccount, account_id, ctx)
    if not account:
        raise HTTPException(status_code=404, detail="Expense account not found")
    update_data = account_in.dict(exclude_unset=True)
    check_project(session, update_data.get("project_id"), ctx)
    for key, value in update_data.items():
        setattr(account, key, value)
    account.updated_at = datetime.utcnow()
    session.add(account)
    session.commit()
    session.refresh(account)
    return account

@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense_account(
    account_id: int,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(admin_only),
):
    account = get_scoped(session, ExpenseAccount, account_id, ctx)
    if not account:
        raise HTTPException(status_code=404, detail="Expense account not found")
    session.delete(account)
    session.commit()
