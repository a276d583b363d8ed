import logging
from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import delete, or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, func, select

from app.core.tenancy import OrgContext, assert_same_org, get_scoped, require_org_id, scoped, stamp_org
from app.models.comment import Comment
from app.models.expense_account import ExpenseAccount
from app.models.item import Item
from app.models.notification import Notification
from app.models.project import Project
from app.models.requisition import Requisition, RequisitionItem
from app.services import notification_service
from app.workflow import engine, guard
from app.workflow.errors import ConflictError, PermissionDeniedError, ValidationError
from app.workflow.states import RequisitionStatus, Role, WorkflowEvent
from app.workflow.transitions import attempt_transition

logger = logging.getLogger(__name__)

APPROVER_VISIBLE_STATUSES = (
    RequisitionStatus.REVIEWED.value,
    RequisitionStatus.APPROVED.value,
    RequisitionStatus.REJECTED.value,
)

# Comment text recorded alongside each transition; {comment} is the actor's note
TRANSITION_COMMENTS = {
    WorkflowEvent.START_REVIEW: ("Started review", "Started review", True),
    WorkflowEvent.MARK_REVIEWED: ("Marked as reviewed", "Reviewed: {comment}", False),
    WorkflowEvent.APPROVE: (None, "Approved: {comment}", False),
    WorkflowEvent.REJECT: (None, "Rejected: {comment}", False),
    WorkflowEvent.CANCEL: ("Cancelled", "Cancelled: {comment}", False),
}


NUMBER_ATTEMPTS = 3


def next_requisition_number(session: Session, org_id: int, now: Optional[datetime] = None) -> str:
    """REQ-YY-NNNNN, numbered per organization and year.

    The suffix is zero padded to five digits and grows past that, so the
    longest number sorts last and ties are broken lexically.
    """
    prefix = f"REQ-{(now or datetime.utcnow()):%y}-"
    last = session.exec(
        select(Requisition.requisition_number)
        .where(Requisition.org_id == org_id)
        .where(Requisition.requisition_number.like(prefix + "%"))
        .order_by(func.length(Requisition.requisition_number).desc(), Requisition.requisition_number.desc())
        .limit(1)
    ).first()
    last_number = int(last[len(prefix):]) if last else 0
    return f"{prefix}{last_number + 1:05d}"


def build_line_items(session: Session, ctx: OrgContext, items_in) -> List[RequisitionItem]:
    lines = []
    for line_number, item_in in enumerate(items_in, start=1):
        if item_in.item_id is not None and get_scoped(session, Item, item_in.item_id, ctx) is None:
            raise ValidationError(f"Line {line_number}: unknown item", field="items")
        lines.append(RequisitionItem(
            item_id=item_in.item_id,
            item_description=item_in.item_description,
            quantity=item_in.quantity,
            unit_price=item_in.unit_price,
            total_price=engine.line_total(item_in.quantity, item_in.unit_price),
            line_number=line_number,
            notes=item_in.notes,
        ))
    if lines:
        engine.validate_line_items(lines)
    return lines


def plain_values(data: dict) -> dict:
    return {key: (value.value if isinstance(value, Enum) else value) for key, value in data.items()}


def check_references(session: Session, ctx: OrgContext, data: dict) -> None:
    """Project and expense account must exist inside the caller's organization."""
    if data.get("project_id") is not None and get_scoped(session, Project, data["project_id"], ctx) is None:
        raise ValidationError("Unknown project", field="project_id")
    if (
        data.get("expense_account_id") is not None
        and get_scoped(session, ExpenseAccount, data["expense_account_id"], ctx) is None
    ):
        raise ValidationError("Unknown expense account", field="expense_account_id")


def create_draft(session: Session, ctx: OrgContext, data: dict, items_in) -> Requisition:
    org_id = require_org_id(ctx)
    data = plain_values(data)
    check_references(session, ctx, data)

    for attempt in range(1, NUMBER_ATTEMPTS + 1):
        requisition = Requisition(
            **data,
            requisition_number=next_requisition_number(session, org_id),
            status=RequisitionStatus.DRAFT.value,
            submitted_by=ctx.user_id,
        )
        stamp_org(requisition, ctx)
        requisition.items = build_line_items(session, ctx, items_in or [])
        requisition.total_amount = engine.compute_total(requisition.items)
        session.add(requisition)
        try:
            session.commit()
            break
        except IntegrityError:
            # Another draft took the same number first
            session.rollback()
            if attempt == NUMBER_ATTEMPTS:
                raise
            logger.warning("Requisition number %s taken in org %s, retrying", requisition.requisition_number, org_id)

    session.refresh(requisition)
    logger.info("Draft %s created in org %s by user %s", requisition.requisition_number, org_id, ctx.user_id)
    return requisition


def _claim_draft(session: Session, ctx: OrgContext, requisition: Requisition, values: dict) -> None:
    """Write ``values`` only while the stored row is still the caller's draft.

    The snapshot said draft; if it was submitted meanwhile no row matches
    and nothing in this transaction is kept.
    """
    result = session.exec(
        update(Requisition)
        .where(Requisition.id == requisition.id)
        .where(Requisition.org_id == ctx.org_id)
        .where(Requisition.submitted_by == ctx.user_id)
        .where(Requisition.status == RequisitionStatus.DRAFT.value)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        session.rollback()
        logger.warning("Requisition %s is no longer an editable draft", requisition.id)
        raise ConflictError(requisition.id, RequisitionStatus.DRAFT)


def update_draft(session: Session, ctx: OrgContext, requisition: Requisition, data: dict, items_in=None) -> Requisition:
    assert_same_org(requisition, ctx)
    allowed = guard.editable_fields_for(requisition, ctx.user_id)
    requested = set(data) | ({"items"} if items_in is not None else set())
    if not allowed or not requested <= allowed:
        raise PermissionDeniedError()
    values = plain_values(data)
    check_references(session, ctx, values)

    lines = None
    if items_in is not None:
        lines = build_line_items(session, ctx, items_in)
        values["total_amount"] = engine.compute_total(lines)
    values["updated_at"] = datetime.utcnow()

    _claim_draft(session, ctx, requisition, values)
    if lines is not None:
        session.exec(delete(RequisitionItem).where(RequisitionItem.requisition_id == requisition.id))
        for line in lines:
            line.requisition_id = requisition.id
            session.add(line)
    session.commit()
    return session.get(Requisition, requisition.id)


def delete_draft(session: Session, ctx: OrgContext, requisition: Requisition) -> None:
    assert_same_org(requisition, ctx)
    if not guard.can_edit(requisition, ctx.user_id):
        raise PermissionDeniedError()

    _claim_draft(session, ctx, requisition, {"updated_at": datetime.utcnow()})
    for model in (RequisitionItem, Comment, Notification):
        session.exec(delete(model).where(model.requisition_id == requisition.id))
    session.exec(
        delete(Requisition)
        .where(Requisition.id == requisition.id)
        .where(Requisition.org_id == ctx.org_id)
    )
    session.commit()
    logger.info("Draft %s deleted by user %s", requisition.id, ctx.user_id)


def can_view(requisition: Requisition, ctx: OrgContext) -> bool:
    if requisition is None or requisition.org_id != ctx.org_id:
        return False
    if requisition.submitted_by == ctx.user_id:
        return True
    if ctx.role in (Role.SUPER_ADMIN, Role.REVIEWER):
        return True
    if ctx.role == Role.APPROVER:
        return requisition.status in APPROVER_VISIBLE_STATUSES
    return False


def list_visible(
    session: Session,
    ctx: OrgContext,
    statuses: Optional[List[str]] = None,
    project_id: Optional[int] = None,
) -> List[Requisition]:
    """Requisitions the actor may see: reviewers and admins see the whole
    organization, approvers see their queue and history, everyone sees their own."""
    query = scoped(select(Requisition), Requisition, ctx)
    if ctx.role == Role.APPROVER:
        query = query.where(or_(
            Requisition.submitted_by == ctx.user_id,
            Requisition.status.in_(APPROVER_VISIBLE_STATUSES),
        ))
    elif ctx.role not in (Role.SUPER_ADMIN, Role.REVIEWER):
        query = query.where(Requisition.submitted_by == ctx.user_id)

    if statuses:
        query = query.where(Requisition.status.in_([RequisitionStatus(s).value for s in statuses]))
    if project_id is not None:
        query = query.where(Requisition.project_id == project_id)
    return session.exec(query.order_by(Requisition.created_at.desc(), Requisition.id.desc())).all()


def _transition_comment(event: WorkflowEvent, comment: Optional[str]):
    if event not in TRANSITION_COMMENTS:
        return None
    plain, with_comment, internal = TRANSITION_COMMENTS[event]
    if comment and comment.strip():
        return with_comment.format(comment=comment.strip()), internal
    return (plain, internal) if plain else None


def apply_transition(
    session: Session,
    ctx: OrgContext,
    requisition: Requisition,
    event,
    comment: Optional[str] = None,
    expected_status=None,
) -> Requisition:
    """Run ``event`` and persist it with a compare-and-swap on ``status``.

    ``requisition`` is the snapshot the caller decided on. The UPDATE only
    matches while the stored status still equals the snapshot's, so of two
    concurrent attempts from the same state exactly one wins and the other
    gets ConflictError.
    """
    expected = RequisitionStatus(requisition.status)
    if expected_status is not None and RequisitionStatus(expected_status) != expected:
        raise ConflictError(requisition.id, expected_status)

    now = datetime.utcnow()
    changes = attempt_transition(requisition, event, ctx, comment=comment, now=now)
    event = WorkflowEvent(event)

    result = session.exec(
        update(Requisition)
        .where(Requisition.id == requisition.id)
        .where(Requisition.org_id == ctx.org_id)
        .where(Requisition.status == expected.value)
        .values(**changes, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        session.rollback()
        logger.warning(
            "Conflict applying %s to requisition %s: status is no longer %s",
            event.value, requisition.id, expected.value,
        )
        raise ConflictError(requisition.id, expected)

    note = _transition_comment(event, comment)
    if note:
        text, internal = note
        session.add(Comment(
            org_id=ctx.org_id,
            requisition_id=requisition.id,
            user_id=ctx.user_id,
            comment_text=text,
            is_internal=internal,
        ))
    notification_service.notify_status_change(session, requisition, changes["status"])
    session.commit()
    logger.info(
        "Requisition %s moved %s -> %s by user %s",
        requisition.id, expected.value, changes["status"], ctx.user_id,
    )
    return session.get(Requisition, requisition.id)


def add_comment(session: Session, ctx: OrgContext, requisition: Requisition, text: str, is_internal: bool = False) -> Comment:
    assert_same_org(requisition, ctx)
    if not text or not text.strip():
        raise ValidationError("Comment text is required", field="comment_text")
    comment = stamp_org(Comment(
        requisition_id=requisition.id,
        user_id=ctx.user_id,
        comment_text=text.strip(),
        is_internal=is_internal,
    ), ctx)
    session.add(comment)
    notification_service.notify_comment(session, requisition, ctx.user_id)
    session.commit()
    session.refresh(comment)
    return comment


def list_comments(session: Session, ctx: OrgContext, requisition: Requisition) -> List[Comment]:
    query = scoped(select(Comment), Comment, ctx).where(Comment.requisition_id == requisition.id)
    if requisition.submitted_by == ctx.user_id and ctx.role not in (Role.SUPER_ADMIN, Role.REVIEWER, Role.APPROVER):
        query = query.where(Comment.is_internal == False)  # noqa: E712
    return session.exec(query.order_by(Comment.created_at, Comment.id)).all()
