from datetime import datetime
from typing import Iterable, List

from sqlmodel import Session, select

from app.models.notification import Notification
from app.models.organization import OrganizationMember
from app.models.requisition import Requisition
from app.workflow.states import RequisitionStatus, Role


def _members_with_roles(session: Session, org_id: int, roles: Iterable[Role]) -> List[int]:
    values = [r.value for r in roles]
    rows = session.exec(
        select(OrganizationMember.user_id)
        .where(OrganizationMember.org_id == org_id)
        .where(OrganizationMember.role.in_(values))
    ).all()
    return sorted(set(rows))


def _notify(session: Session, requisition: Requisition, user_ids, type_: str, title: str, message: str):
    for user_id in user_ids:
        session.add(Notification(
            org_id=requisition.org_id,
            user_id=user_id,
            type=type_,
            title=title,
            message=message,
            requisition_id=requisition.id,
        ))


def notify_status_change(session: Session, requisition: Requisition, new_status) -> None:
    """Queue notifications for a status change; the caller commits."""
    number = requisition.requisition_number
    new_status = RequisitionStatus(new_status)

    if new_status == RequisitionStatus.PENDING:
        recipients = [
            uid for uid in _members_with_roles(session, requisition.org_id, (Role.REVIEWER, Role.SUPER_ADMIN))
            if uid != requisition.submitted_by
        ]
        _notify(session, requisition, recipients, "requisition_submitted",
                "New Requisition for Review",
                f"Requisition {number} has been submitted for review.")
    elif new_status == RequisitionStatus.REVIEWED:
        recipients = [
            uid for uid in _members_with_roles(session, requisition.org_id, (Role.APPROVER, Role.SUPER_ADMIN))
            if uid != requisition.submitted_by
        ]
        _notify(session, requisition, recipients, "requisition_reviewed",
                "Requisition Ready for Approval",
                f"Requisition {number} has been reviewed and is ready for approval.")
    elif new_status == RequisitionStatus.APPROVED:
        _notify(session, requisition, [requisition.submitted_by], "requisition_approved",
                "Requisition Approved",
                f"Your requisition {number} has been approved.")
    elif new_status == RequisitionStatus.REJECTED:
        _notify(session, requisition, [requisition.submitted_by], "requisition_rejected",
                "Requisition Rejected",
                f"Your requisition {number} has been rejected.")


def notify_comment(session: Session, requisition: Requisition, author_id: int) -> None:
    if author_id == requisition.submitted_by:
        return
    _notify(session, requisition, [requisition.submitted_by], "requisition_commented",
            "New Comment",
            f"A new comment was added to requisition {requisition.requisition_number}.")


def list_for_user(session: Session, org_id: int, user_id: int, unread_only: bool = False) -> List[Notification]:
    query = (
        select(Notification)
        .where(Notification.org_id == org_id)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
    )
    if unread_only:
        query = query.where(Notification.is_read == False)  # noqa: E712
    return session.exec(query).all()


def mark_read(session: Session, notification: Notification) -> Notification:
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.utcnow()
        session.add(notification)
        session.commit()
        session.refresh(notification)
    return notification
