from datetime import datetime
from fastapi import APIRouter, HTTPException, Depends, status
from sqlmodel import Session, select
from typing import List
from app.models.project import Project
from app.schemas.project import ProjectBudgetSummary, ProjectCreate, ProjectRead, ProjectUpdate
from app.api.endpoints.auth import get_org_context, require_roles
from app.core.tenancy import OrgContext, get_scoped, scoped, stamp_org
from app.database import get_session
from app.services import project_service
from app.workflow.states import Role

router = APIRouter()

admin_only = require_roles(Role.SUPER_ADMIN)

@router.post("/", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
def create_project(
    project_in: ProjectCreate,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(admin_only),
):
    project = stamp_org(Project(**project_in.dict(), created_by=ctx.user_id), ctx)
    session.add(project)
    session.commit()
    session.refresh(project)
    return project

@router.get("/", response_model=List[ProjectRead])
def list_projects(
    include_inactive: bool = False,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    query = scoped(select(Project), Project, ctx)
    if not include_inactive:
        query = query.where(Project.is_active == True)  # noqa: E712
    return session.exec(query.order_by(Project.code)).all()

@router.get("/{project_id}", response_model=ProjectRead)
def get_project(
    project_id: int,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    project = get_scoped(session, Project, project_id, ctx)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project

@router.get("/{project_id}/budget_summary", response_model=ProjectBudgetSummary)
def get_budget_summary(
    project_id: int,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    project = get_scoped(session, Project, project_id, ctx)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project_service.budget_summary(session, ctx, project)

@router.put("/{project_id}", response_model=ProjectRead)
def update_project(
    project_id: int,
    project_in: ProjectUpdate,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(admin_only),
):
    project = get_scoped(session, Project, project_id, ctx)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    project_data = project_in.dict(exclude_unset=True)
    for key, value in project_data.items():
        setattr(project, key, value)
    project.updated_at = datetime.utcnow()
    session.add(project)
    session.commit()
    session.refresh(project)
    return project

@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: int,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(admin_only),
):
    project = get_scoped(session, Project, project_id, ctx)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    session.delete(project)
    session.commit()
