from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session
from typing import List
from app.models.template import RequisitionTemplate
from app.schemas.requisition import RequisitionRead
from app.schemas.template import TemplateCreate, TemplateRead, TemplateUpdate, TemplateUse
from app.api.endpoints.auth import get_org_context
from app.core.tenancy import OrgContext, get_scoped
from app.database import get_session
from app.services import template_service

router = APIRouter()


def get_manageable_template(session: Session, template_id: int, ctx: OrgContext) -> RequisitionTemplate:
    template = get_scoped(session, RequisitionTemplate, template_id, ctx)
    if not template or not template_service.can_manage(template, ctx):
        raise HTTPException(status_code=404, detail="Template not found")
    return template


@router.post("/", response_model=TemplateRead, status_code=status.HTTP_201_CREATED)
def create_template(
    template_in: TemplateCreate,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    return template_service.create_template(
        session, ctx, template_in.dict(exclude={"items"}), template_in.items
    )

@router.get("/", response_model=List[TemplateRead])
def list_templates(
    include_inactive: bool = False,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    return template_service.list_templates(session, ctx, include_inactive=include_inactive)

@router.get("/{template_id}", response_model=TemplateRead)
def get_template(
    template_id: int,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    return get_manageable_template(session, template_id, ctx)

@router.put("/{template_id}", response_model=TemplateRead)
def update_template(
    template_id: int,
    template_in: TemplateUpdate,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    template = get_manageable_template(session, template_id, ctx)
    update_data = {
        key: value
        for key, value in template_in.dict(exclude_unset=True, exclude={"items"}).items()
        if value is not None
    }
    return template_service.update_template(session, ctx, template, update_data, template_in.items)

@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(
    template_id: int,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    template = get_manageable_template(session, template_id, ctx)
    template_service.delete_template(session, ctx, template)

@router.post("/{template_id}/requisitions", response_model=RequisitionRead, status_code=status.HTTP_201_CREATED)
def use_template(
    template_id: int,
    use_in: TemplateUse,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    template = get_manageable_template(session, template_id, ctx)
    if not template.is_active:
        raise HTTPException(status_code=400, detail="Template is inactive")
    return template_service.instantiate(session, ctx, template, title=use_in.title)
