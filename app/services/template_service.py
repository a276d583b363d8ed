from datetime import datetime
from types import SimpleNamespace
from typing import List

from sqlmodel import Session, select

from app.core.tenancy import OrgContext, assert_same_org, get_scoped, require_org_id, scoped, stamp_org
from app.models.item import Item
from app.models.requisition import Requisition
from app.models.template import RequisitionTemplate, RequisitionTemplateItem
from app.services import requisition_service
from app.workflow.errors import PermissionDeniedError, ValidationError
from app.workflow.states import Role


def _template_items(session: Session, ctx: OrgContext, items_in) -> List[RequisitionTemplateItem]:
    lines = []
    for line_number, item_in in enumerate(items_in, start=1):
        if item_in.item_id is not None and get_scoped(session, Item, item_in.item_id, ctx) is None:
            raise ValidationError(f"Line {line_number}: unknown item", field="items")
        lines.append(RequisitionTemplateItem(
            item_id=item_in.item_id,
            item_description=item_in.item_description,
            quantity=item_in.quantity,
            unit_price=item_in.unit_price,
            line_number=line_number,
            notes=item_in.notes,
        ))
    return lines


def list_templates(session: Session, ctx: OrgContext, include_inactive: bool = False) -> List[RequisitionTemplate]:
    query = scoped(select(RequisitionTemplate), RequisitionTemplate, ctx)
    if ctx.role != Role.SUPER_ADMIN:
        query = query.where(RequisitionTemplate.created_by == ctx.user_id)
    if not include_inactive:
        query = query.where(RequisitionTemplate.is_active == True)  # noqa: E712
    return session.exec(query.order_by(RequisitionTemplate.template_name)).all()


def can_manage(template: RequisitionTemplate, ctx: OrgContext) -> bool:
    return template.org_id == ctx.org_id and (template.created_by == ctx.user_id or ctx.is_admin)


def create_template(session: Session, ctx: OrgContext, data: dict, items_in) -> RequisitionTemplate:
    require_org_id(ctx)
    data = requisition_service.plain_values(data)
    requisition_service.check_references(session, ctx, data)
    template = stamp_org(RequisitionTemplate(**data, created_by=ctx.user_id), ctx)
    template.items = _template_items(session, ctx, items_in or [])
    session.add(template)
    session.commit()
    session.refresh(template)
    return template


def update_template(session: Session, ctx: OrgContext, template: RequisitionTemplate, data: dict, items_in=None):
    assert_same_org(template, ctx)
    if not can_manage(template, ctx):
        raise PermissionDeniedError()
    data = requisition_service.plain_values(data)
    requisition_service.check_references(session, ctx, data)
    items = _template_items(session, ctx, items_in) if items_in is not None else None
    for key, value in data.items():
        setattr(template, key, value)
    if items is not None:
        template.items = items
    template.updated_at = datetime.utcnow()
    session.add(template)
    session.commit()
    session.refresh(template)
    return template


def delete_template(session: Session, ctx: OrgContext, template: RequisitionTemplate) -> None:
    assert_same_org(template, ctx)
    if not can_manage(template, ctx):
        raise PermissionDeniedError()
    session.delete(template)
    session.commit()


def instantiate(session: Session, ctx: OrgContext, template: RequisitionTemplate, title: str = None) -> Requisition:
    """Start a new draft, owned by the caller, pre-filled from ``template``."""
    assert_same_org(template, ctx)
    data = {
        "type": template.type,
        "title": title if title is not None else template.template_name,
        "description": template.description,
        "project_id": template.project_id,
        "expense_account_id": template.expense_account_id,
    }
    lines = [
        SimpleNamespace(
            item_id=line.item_id,
            item_description=line.item_description,
            quantity=line.quantity,
            unit_price=line.unit_price,
            notes=line.notes,
        )
        for line in template.items
    ]
    return requisition_service.create_draft(session, ctx, data, lines)
