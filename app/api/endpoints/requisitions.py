# api/endpoints/requisitions.py

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session
from typing import List, Optional
from app.models.requisition import Requisition
from app.schemas.requisition import (
    CommentCreate,
    CommentRead,
    RequisitionCreate,
    RequisitionRead,
    RequisitionUpdate,
    TransitionRequest,
)
from app.api.endpoints.auth import get_org_context
from app.core.tenancy import OrgContext, get_scoped
from app.database import get_session
from app.services import requisition_service
from app.workflow.states import RequisitionStatus
from app.workflow.transitions import available_events, editable_fields

router = APIRouter()

NOT_NULL_FIELDS = {"type", "title", "is_urgent"}


def get_visible_requisition(session: Session, requisition_id: int, ctx: OrgContext) -> Requisition:
    requisition = get_scoped(session, Requisition, requisition_id, ctx)
    if not requisition_service.can_view(requisition, ctx):
        raise HTTPException(status_code=404, detail="Requisition not found")
    return requisition


def parse_status_filter(raw: Optional[str]) -> List[str]:
    """Accepts a single status or a comma separated list ("pending,under_review")."""
    if not raw:
        return []
    statuses = [s.strip() for s in raw.split(",") if s.strip()]
    valid = {s.value for s in RequisitionStatus}
    unknown = [s for s in statuses if s not in valid]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown status: {', '.join(unknown)}")
    return statuses


@router.post("/", response_model=RequisitionRead, status_code=status.HTTP_201_CREATED)
def create_requisition(
    requisition_in: RequisitionCreate,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    return requisition_service.create_draft(
        session, ctx, requisition_in.dict(exclude={"items"}), requisition_in.items
    )

@router.get("/", response_model=List[RequisitionRead])
def list_requisitions(
    status: Optional[str] = None,
    project_id: Optional[int] = None,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    return requisition_service.list_visible(
        session, ctx, statuses=parse_status_filter(status), project_id=project_id
    )

@router.get("/{requisition_id}", response_model=RequisitionRead)
def get_requisition(
    requisition_id: int,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    return get_visible_requisition(session, requisition_id, ctx)

@router.put("/{requisition_id}", response_model=RequisitionRead)
def update_requisition(
    requisition_id: int,
    requisition_in: RequisitionUpdate,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    requisition = get_visible_requisition(session, requisition_id, ctx)
    update_data = {
        key: value
        for key, value in requisition_in.dict(exclude_unset=True, exclude={"items"}).items()
        if value is not None or key not in NOT_NULL_FIELDS
    }
    items = requisition_in.items
    return requisition_service.update_draft(session, ctx, requisition, update_data, items)

@router.delete("/{requisition_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_requisition(
    requisition_id: int,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    requisition = get_visible_requisition(session, requisition_id, ctx)
    requisition_service.delete_draft(session, ctx, requisition)

@router.post("/{requisition_id}/transitions", response_model=RequisitionRead)
def transition_requisition(
    requisition_id: int,
    transition_in: TransitionRequest,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    requisition = get_visible_requisition(session, requisition_id, ctx)
    return requisition_service.apply_transition(
        session,
        ctx,
        requisition,
        transition_in.event,
        comment=transition_in.comment,
        expected_status=transition_in.expected_status,
    )

@router.get("/{requisition_id}/editable_fields", response_model=List[str])
def get_editable_fields(
    requisition_id: int,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    requisition = get_visible_requisition(session, requisition_id, ctx)
    return sorted(editable_fields(requisition, ctx))

@router.get("/{requisition_id}/available_events", response_model=List[str])
def get_available_events(
    requisition_id: int,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    requisition = get_visible_requisition(session, requisition_id, ctx)
    return sorted(event.value for event in available_events(requisition, ctx))

@router.get("/{requisition_id}/comments", response_model=List[CommentRead])
def list_comments(
    requisition_id: int,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    requisition = get_visible_requisition(session, requisition_id, ctx)
    return requisition_service.list_comments(session, ctx, requisition)

@router.post("/{requisition_id}/comments", response_model=CommentRead, status_code=status.HTTP_201_CREATED)
def add_comment(
    requisition_id: int,
    comment_in: CommentCreate,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    requisition = get_visible_requisition(session, requisition_id, ctx)
    return requisition_service.add_comment(
        session, ctx, requisition, comment_in.comment_text, comment_in.is_internal
    )
