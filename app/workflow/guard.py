"""
Role / permission guard for requisition events.

The decision depends only on (role, is_owner, status, event), so the whole
policy is a finite table: ``allowed_events`` maps every combination to a
frozenset, possibly empty. ``can_transition`` looks an event up in it.

Conflict of interest: reviewers and approvers never act on a requisition they
submitted themselves. Only ``super_admin`` is exempt, and it may also approve
straight from ``pending`` or ``under_review``.
"""

from typing import FrozenSet

from app.workflow.states import (
    RequisitionStatus,
    Role,
    WorkflowEvent,
    is_terminal,
)

S = RequisitionStatus
E = WorkflowEvent

NO_EVENTS: FrozenSet[WorkflowEvent] = frozenset()

ADMIN_EVENTS = frozenset({E.START_REVIEW, E.MARK_REVIEWED, E.APPROVE, E.REJECT, E.CANCEL})
REVIEWER_EVENTS = frozenset({E.START_REVIEW, E.MARK_REVIEWED, E.REJECT})
APPROVER_EVENTS = frozenset({E.APPROVE, E.REJECT})

REVIEWABLE_STATUSES = frozenset({S.PENDING, S.UNDER_REVIEW})

DRAFT_EDITABLE_FIELDS = frozenset({
    "type",
    "title",
    "description",
    "justification",
    "project_id",
    "expense_account_id",
    "required_by",
    "delivery_location",
    "supplier_preference",
    "is_urgent",
    "items",
})


def allowed_events(role, is_owner: bool, status) -> FrozenSet[WorkflowEvent]:
    role = Role.parse(role)
    status = RequisitionStatus(status)

    if status == S.DRAFT:
        # Drafts belong to their owner alone, whatever the owner's role
        return frozenset({E.SUBMIT}) if is_owner else NO_EVENTS

    if is_terminal(status):
        return NO_EVENTS

    if role == Role.SUPER_ADMIN:
        return ADMIN_EVENTS

    if is_owner:
        return NO_EVENTS

    if role == Role.REVIEWER and status in REVIEWABLE_STATUSES:
        return REVIEWER_EVENTS
    if role == Role.APPROVER and status == S.REVIEWED:
        return APPROVER_EVENTS
    return NO_EVENTS


def is_owner(requisition, actor_id) -> bool:
    return requisition.submitted_by is not None and requisition.submitted_by == actor_id


def can_transition(role, actor_id, requisition, event) -> bool:
    try:
        event = WorkflowEvent(event)
    except ValueError:
        return False
    return event in allowed_events(role, is_owner(requisition, actor_id), requisition.status)


def can_edit(requisition, actor_id) -> bool:
    return is_owner(requisition, actor_id) and requisition.status == S.DRAFT.value


def editable_fields_for(requisition, actor_id) -> FrozenSet[str]:
    return DRAFT_EDITABLE_FIELDS if can_edit(requisition, actor_id) else frozenset()
